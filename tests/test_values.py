"""Tests for TypedValue construction and read access."""

import array
import copy
import struct

import pytest

from typed_values import (
    IndexOutOfRange,
    KeyNotFound,
    MalformedEncoding,
    MutableTypedValue,
    SizeMismatch,
    TypedValue,
    TypeMismatch,
    box,
    from_bytes,
    parse_encoding,
)


@pytest.fixture
def point():
    """A record of two floats holding (1.0, 2.0)."""
    return TypedValue(struct.pack("=ff", 1.0, 2.0), "{point=ff}")


@pytest.fixture
def named_point():
    """A record of two named floats holding (1.0, 2.0)."""
    return TypedValue(struct.pack("=ff", 1.0, 2.0), '{point="x"f"y"f}')


class TestConstruction:
    """Tests for building values."""

    def test_from_bytes_and_encoding(self):
        """A value copies exactly size bytes."""
        value = TypedValue(struct.pack("=3i", 1, 2, 3), "[3i]")
        assert value.size == 12
        assert value.encoding == "[3i]"
        assert value.type == parse_encoding("[3i]")
        assert value.to_bytes() == struct.pack("=3i", 1, 2, 3)

    def test_from_descriptor(self):
        """A parsed descriptor can be passed instead of a string."""
        desc = parse_encoding("d")
        value = TypedValue.from_bytes(struct.pack("=d", 0.5), desc)
        assert value.type is desc

    def test_module_level_from_bytes(self):
        """from_bytes() builds an immutable value."""
        value = from_bytes(b"\x01", "B")
        assert isinstance(value, TypedValue)
        assert value.unpack() is True

    def test_short_data(self):
        """Too few bytes raise SizeMismatch and produce no value."""
        with pytest.raises(SizeMismatch) as exc_info:
            TypedValue(b"\x00" * 7, "{point=ff}")
        assert exc_info.value.expected == 8
        assert exc_info.value.actual == 7

    def test_extra_data_ignored(self):
        """Bytes beyond the descriptor's size are not stored."""
        value = TypedValue(b"\x01\x02\x03\x04\x05", "i")
        assert value.to_bytes() == b"\x01\x02\x03\x04"

    def test_malformed_encoding(self):
        """A malformed encoding fails construction."""
        with pytest.raises(MalformedEncoding):
            TypedValue(b"\x00" * 8, "{unbalanced")

    def test_non_buffer_data(self):
        """Data must support the buffer protocol."""
        with pytest.raises(TypeError):
            TypedValue(4, "i")

    def test_copies_source_buffer(self):
        """Later changes to the source buffer do not reach the value."""
        source = bytearray(struct.pack("=i", 1))
        value = TypedValue(source, "i")
        source[:] = struct.pack("=i", 2)
        assert value.unpack() == 1

    def test_box_inferred(self):
        """bool, int and float box without an explicit encoding."""
        assert box(True).encoding == "B"
        assert box(3).encoding == "q"
        assert box(2.5).encoding == "d"
        assert box(3).unpack() == 3

    def test_box_explicit(self):
        """box() packs with an explicit encoding."""
        value = TypedValue.box([1, 2, 3], "[3i]")
        assert value.to_bytes() == struct.pack("=3i", 1, 2, 3)

    def test_box_needs_encoding(self):
        """Other Python types need an explicit encoding."""
        with pytest.raises(TypeError):
            box([1, 2])

    def test_zeros(self):
        """zeros() builds a zero-filled value."""
        value = TypedValue.zeros("{s=cd}")
        assert value.to_bytes() == bytes(16)
        assert MutableTypedValue.zeros("i").unpack() == 0


class TestGetValue:
    """Tests for get_value()."""

    def test_whole_value(self):
        """A compatible type copies the bytes into the buffer."""
        data = struct.pack("=3i", 1, 2, 3)
        value = TypedValue(data, "[3i]")
        out = bytearray(12)
        assert value.get_value(out, "[3i]") is True
        assert out == data

    @pytest.mark.parametrize(
        "encoding",
        ["c", "d", "[4S]", "{s=cd}", '{rect="o"{p=ff}"s"{s=ff}}', "^v", "{e=}"],
    )
    def test_get_returns_stored_bytes(self, encoding):
        """Reading a value with its own type returns its bytes."""
        desc = parse_encoding(encoding)
        data = bytes(range(desc.size))
        out = bytearray(desc.size)
        assert TypedValue(data, desc).get_value(out, desc) is True
        assert bytes(out) == data

    def test_incompatible_type(self):
        """An incompatible type leaves the buffer untouched."""
        value = TypedValue(struct.pack("=2i", 1, 2), "{pair=ii}")
        out = bytearray(b"\xaa" * 8)
        assert value.get_value(out, "[2i]") is False
        assert out == bytearray(b"\xaa" * 8)

    def test_field_names_ignored(self, named_point):
        """Reading with an unnamed encoding of the same record succeeds."""
        out = bytearray(8)
        assert named_point.get_value(out, "{point=ff}") is True

    def test_expected_not_a_type(self, point):
        """An expected type that is not a type at all is refused."""
        assert point.get_value(bytearray(8), None) is False

    def test_buffer_too_small(self, point):
        """A small output buffer is refused."""
        out = bytearray(4)
        assert point.get_value(out, "{point=ff}") is False
        assert out == bytearray(4)

    def test_readonly_buffer(self, point):
        """A read-only output buffer is refused."""
        assert point.get_value(bytes(8), "{point=ff}") is False

    def test_larger_buffer(self, point):
        """Only the leading bytes of a larger buffer are written."""
        out = bytearray(b"\xff" * 12)
        assert point.get_value(out, "{point=ff}") is True
        assert out[8:] == b"\xff" * 4

    def test_at_index(self, point):
        """A field can be read by index."""
        out = bytearray(4)
        assert point.get_value(out, "f", index=1) is True
        assert struct.unpack("=f", out)[0] == 2.0

    def test_at_bad_index(self, point):
        """An invalid index reports failure."""
        out = bytearray(4)
        assert point.get_value(out, "f", index=2) is False

    def test_for_key(self, named_point):
        """A field can be read by key."""
        out = bytearray(4)
        assert named_point.get_value(out, "f", key="y") is True
        assert struct.unpack("=f", out)[0] == 2.0
        assert named_point.get_value(out, "f", key="z") is False

    def test_index_and_key(self, named_point):
        """Passing both index and key is a usage error."""
        with pytest.raises(ValueError):
            named_point.get_value(bytearray(4), "f", index=0, key="x")

    def test_into_typed_array(self, point):
        """Any writable buffer works, including typed arrays."""
        out = array.array("f", [0.0, 0.0])
        assert point.get_value(out, "{point=ff}") is True
        assert list(out) == [1.0, 2.0]


class TestUnpack:
    """Tests for unpack()."""

    def test_unpack(self, point, named_point):
        """Whole values decode to Python values."""
        assert point.unpack() == (1.0, 2.0)
        assert named_point.unpack() == {"x": 1.0, "y": 2.0}

    def test_unpack_with_index(self, point):
        """unpack() addresses sub-values by index."""
        assert point.unpack("f", index=0) == 1.0

    def test_unpack_with_key(self, named_point):
        """unpack() addresses sub-values by key."""
        assert named_point.unpack("f", key="y") == 2.0

    def test_unpack_type_mismatch(self, point):
        """An incompatible expected type raises TypeMismatch."""
        with pytest.raises(TypeMismatch):
            point.unpack("d", index=0)
        with pytest.raises(TypeError):
            point.unpack("[2f]")


class TestSubAccess:
    """Tests for at() and for_key()."""

    def test_point_scenario(self, point):
        """{point=ff}: at(0) is 1.0, at(1) is 2.0, at(2) fails."""
        assert point.at(0).unpack("f") == 1.0
        assert point.at(1).unpack("f") == 2.0
        with pytest.raises(IndexOutOfRange):
            point.at(2)

    @pytest.mark.parametrize("count", [1, 2, 7])
    def test_array_bounds(self, count):
        """Indices below count succeed, count and above fail."""
        value = TypedValue.box(list(range(count)), f"[{count}i]")
        for i in range(count):
            assert value.at(i).unpack("i") == i
        with pytest.raises(IndexOutOfRange):
            value.at(count)
        with pytest.raises(IndexError):
            value.at(count + 1)

    def test_negative_index(self, point):
        """Negative indices are out of range."""
        with pytest.raises(IndexOutOfRange):
            point.at(-1)

    def test_scalar_index(self):
        """Scalars have no sub-values."""
        with pytest.raises(IndexOutOfRange):
            box(1).at(0)

    def test_sub_value_type(self):
        """A sub-value carries the sub-descriptor."""
        value = TypedValue.zeros('{s="a"c"b"[2d]}')
        sub = value.at(1)
        assert sub.encoding == "[2d]"
        assert sub.size == 16
        assert isinstance(sub, TypedValue)

    def test_nested_traversal(self):
        """Sub-values can be traversed further."""
        encoding = '{rect="origin"{point="x"d"y"d}"size"{size="w"d"h"d}}'
        rect = TypedValue.box(
            {"origin": {"x": 1.0, "y": 2.0}, "size": {"w": 3.0, "h": 4.0}},
            encoding,
        )
        assert rect.for_key("size").for_key("h").unpack("d") == 4.0
        assert rect.at(0).at(1).unpack("d") == 2.0

    def test_for_key(self, named_point):
        """Fields are found by name."""
        assert named_point.for_key("x").unpack() == 1.0

    def test_for_key_first_match(self):
        """Duplicate names resolve to the first field."""
        value = TypedValue.box((1, 2), '{dup="a"i"a"i}')
        assert value.for_key("a").unpack() == 1

    def test_for_key_missing(self, named_point, point):
        """Unknown names, unnamed records, and non-records raise KeyNotFound."""
        with pytest.raises(KeyNotFound):
            named_point.for_key("z")
        with pytest.raises(KeyNotFound):
            point.for_key("x")
        with pytest.raises(KeyError):
            TypedValue.zeros("[2i]").for_key("x")

    def test_sub_value_is_copy(self):
        """A sub-value does not alias the parent's storage."""
        parent = MutableTypedValue.box([1, 2, 3], "[3i]")
        child = parent.at(1)
        parent.pack(99, "i", index=1)
        assert child.unpack() == 2


class TestCopyAndEquality:
    """Tests for copies, equality and hashing."""

    def test_copy_isolation(self, point):
        """Mutating a mutable copy never changes another copy."""
        snapshot = point.copy()
        mutable = point.mutable_copy()
        mutable.pack(5.0, "f", index=0)
        assert snapshot.unpack() == (1.0, 2.0)
        assert point.unpack() == (1.0, 2.0)
        assert mutable.unpack() == (5.0, 2.0)

    def test_copy_types(self, point):
        """copy() is immutable, mutable_copy() is mutable."""
        assert isinstance(point.copy(), TypedValue)
        assert isinstance(point.mutable_copy(), MutableTypedValue)
        assert not isinstance(point.mutable_copy(), TypedValue)

    def test_copy_module(self, point):
        """copy.copy and copy.deepcopy keep the variant."""
        assert copy.copy(point) == point
        mutable = point.mutable_copy()
        clone = copy.deepcopy(mutable)
        assert isinstance(clone, MutableTypedValue)
        clone.pack(9.0, "f", index=0)
        assert mutable.unpack("f", index=0) == 1.0

    def test_equality(self, point, named_point):
        """Values with compatible types and equal bytes are equal."""
        assert point == TypedValue(point.to_bytes(), "{point=ff}")
        assert point == named_point
        assert point == point.mutable_copy()
        assert point != TypedValue(point.to_bytes(), "[2f]")
        assert point != TypedValue.box((1.0, 3.0), "{point=ff}")
        assert point != "{point=ff}"

    def test_hash(self, point, named_point):
        """Immutable values hash by normalized type and bytes."""
        assert hash(point) == hash(named_point)
        assert len({point, named_point, point.copy()}) == 1

    def test_mutable_unhashable(self, point):
        """Mutable values cannot be hashed."""
        with pytest.raises(TypeError):
            hash(point.mutable_copy())

    def test_repr(self, point):
        """repr shows the variant, encoding and contents."""
        assert repr(point) == "TypedValue('{point=ff}', (1.0, 2.0))"
