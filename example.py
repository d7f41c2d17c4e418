"""Example usage of the typed_values library."""

from pathlib import Path

from typed_values import MutableTypedValue, TypedValue, load_value, parse_encoding, save_value

# Describe a C struct with named fields:
#   struct particle { char tag; double position[3]; float mass; };
encoding = '{particle="tag"c"position"[3d]"mass"f}'

layout = parse_encoding(encoding)
print(f"{layout.normalized_encoding}: {layout.size} bytes, aligned to {layout.alignment}")
for field, offset in zip(layout.fields, layout.field_offsets):
    print(f"  {field.name:<10} offset {offset:>2}  size {field.type_desc.size:>2}  {field.type_desc}")

# Box a value from Python data
particle = MutableTypedValue.box(
    {"tag": 7, "position": [0.0, 1.5, -2.0], "mass": 0.25},
    encoding,
)
print(f"\nBoxed: {particle}")

# Read through keyed and indexed access
position = particle.for_key("position")
print(f"position[1] = {position.at(1).unpack('d')}")

# Write in place; incompatible types are refused without touching the bytes
# Field 1 is the position array, so a lone double is refused
print(f"Write double at index 1:    {particle.pack(3.0, 'd', index=1)}")
print(f"Write double into position: {particle.pack([3.0, 3.0, 3.0], '[3d]', key='position')}")
print(f"Write int into mass:        {particle.pack(1, 'i', key='mass')}")

# Take an immutable snapshot and archive it
snapshot = particle.freeze()
archive_path = Path("./particle.tval")
written = save_value(snapshot, archive_path)
print(f"\nArchived {written} bytes to {archive_path}")

restored = load_value(archive_path)
assert isinstance(restored, TypedValue)
assert restored == snapshot
print(f"Restored: {restored}")
