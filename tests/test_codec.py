import base64
import struct

import pytest

from byte_cursor import ByteCursor
from packedxml_codec import (
    PackedXmlDataDescriptor,
    PackedXmlDataType as T,
    read_data_descriptor,
    read_dictionary,
    read_element_descriptors,
    read_value,
    write_dictionary,
)
from packedxml_errors import (
    InvalidBooleanEncoding,
    InvalidDescriptorRange,
    UnexpectedEndOfStream,
    UnknownTypeTag,
)


def value(data, end, type_, offset=0):
    cursor = ByteCursor(data)
    result = read_value(cursor, 'item', PackedXmlDataDescriptor.from_parts(end, type_), offset)
    return result, cursor.position


def test_dictionary_layout():
    buf = bytearray()
    write_dictionary(buf, ['A', 'bb'])
    assert bytes(buf) == b'A\x00bb\x00\x00'


def test_dictionary_stops_at_empty_name():
    cursor = ByteCursor(b'health\x00name\x00\x00\x99')
    assert read_dictionary(cursor) == ['health', 'name']
    assert cursor.position == 13


def test_dictionary_without_sentinel_is_truncated():
    with pytest.raises(UnexpectedEndOfStream):
        read_dictionary(ByteCursor(b'health\x00'))


def test_empty_dictionary_entry_rejected():
    with pytest.raises(ValueError):
        write_dictionary(bytearray(), ['a', ''])


def test_data_descriptor_bits():
    d = read_data_descriptor(ByteCursor(struct.pack('<I', 0x3000002A)))
    assert (d.end, d.type) == (0x2A, T.Float)
    d = PackedXmlDataDescriptor(0xFFFFFFFF)
    assert (d.end, d.type) == (0x0FFFFFFF, 0xF)
    assert PackedXmlDataDescriptor.from_parts(0x2A, 3).encode() == 0x3000002A


def test_element_descriptors_keep_order():
    data = struct.pack('<HIHI', 2, 0x10000004, 0, 0x00000010)
    first, second = read_element_descriptors(ByteCursor(data), 2)
    assert (first.name_index, first.end, first.type) == (2, 4, T.String)
    assert (second.name_index, second.end, second.type) == (0, 16, T.Element)


def test_string_is_read_verbatim():
    (text, rows), pos = value(b'abcdef', 5, T.String, offset=2)
    assert text == 'abc'
    assert rows is None
    assert pos == 3


def test_non_utf8_string_keeps_bytes():
    (text, _), _ = value(b'\xe9t\xe9', 3, T.String)
    assert text == '\xe9t\xe9'


@pytest.mark.parametrize('fmt,number', [('<b', -7), ('<h', -300), ('<i', 70000), ('<q', -(1 << 40))])
def test_integer_widths(fmt, number):
    data = struct.pack(fmt, number)
    (text, _), pos = value(data, len(data), T.Integer)
    assert text == str(number)
    assert pos == len(data)


@pytest.mark.parametrize('length', [0, 3, 5])
def test_integer_odd_length_renders_zero_without_reading(length):
    (text, _), pos = value(b'\x01' * 8, length, T.Integer)
    assert text == '0'
    assert pos == 0


def test_float_vector_flat():
    data = struct.pack('<3f', 1.0, -0.5, 2.25)
    (text, rows), pos = value(data, 12, T.Float)
    assert text == '1.000000 -0.500000 2.250000'
    assert rows is None
    assert pos == 12


def test_twelve_floats_become_rows():
    data = struct.pack('<12f', *range(12))
    (text, rows), _ = value(data, 48, T.Float)
    assert text is None
    assert rows == [
        '0.000000 1.000000 2.000000',
        '3.000000 4.000000 5.000000',
        '6.000000 7.000000 8.000000',
        '9.000000 10.000000 11.000000',
    ]


def test_boolean_true():
    (text, _), pos = value(b'\x01', 1, T.Boolean)
    assert text == 'true'
    assert pos == 1


@pytest.mark.parametrize('byte', [b'\x00', b'\x02', b'\xff'])
def test_boolean_other_byte_is_error(byte):
    with pytest.raises(InvalidBooleanEncoding) as exc:
        value(byte, 1, T.Boolean)
    assert exc.value.element_name == 'item'


@pytest.mark.parametrize('length', [0, 2, 4])
def test_boolean_without_single_byte_is_false_and_reads_nothing(length):
    (text, _), pos = value(b'\x01\x01\x01\x01', length, T.Boolean)
    assert text == 'false'
    assert pos == 0


@pytest.mark.parametrize('raw', [b'', b'\x00', b'\x00\xff', b'\x00\xff\x10', bytes(range(10))])
def test_base64_is_padded_rfc4648(raw):
    (text, _), pos = value(raw, len(raw), T.Base64)
    assert text == base64.b64encode(raw).decode('ascii')
    assert pos == len(raw)


def test_base64_known_value():
    (text, _), _ = value(b'\x00\xff\x10\x01', 4, T.Base64)
    assert text == 'AP8QAQ=='


@pytest.mark.parametrize('tag', [6, 7, 15])
def test_unknown_type_tag(tag):
    with pytest.raises(UnknownTypeTag) as exc:
        value(b'\x00' * 4, 4, tag)
    assert exc.value.element_name == 'item'
    assert exc.value.descriptor.type == tag


def test_end_before_offset_is_error():
    with pytest.raises(InvalidDescriptorRange):
        value(b'abc', 1, T.String, offset=2)


def test_truncated_payload():
    with pytest.raises(UnexpectedEndOfStream):
        value(b'ab', 4, T.String)
