import base64
import struct
from collections import namedtuple

from packedxml_errors import (
    InvalidBooleanEncoding,
    InvalidDescriptorRange,
    UnknownTypeTag,
)

PACKED_HEADER = 0x62A14E45
END_MASK = 0xFFFFFFF  # 低 28 位


class PackedXmlDataType:
    Element = 0
    String = 1
    Integer = 2
    Float = 3
    Boolean = 4
    Base64 = 5


class PackedXmlDataDescriptor:
    def __init__(self, encoded):
        self.end = encoded & END_MASK      # bottom 28 bits
        self.type = (encoded >> 28) & 0xF  # top 4 bits

    @classmethod
    def from_parts(cls, end, type_):
        return cls(((type_ & 0xF) << 28) | (end & END_MASK))

    def encode(self):
        return ((self.type & 0xF) << 28) | (self.end & END_MASK)

    def __eq__(self, other):
        if not isinstance(other, PackedXmlDataDescriptor):
            return NotImplemented
        return self.end == other.end and self.type == other.type

    def __repr__(self):
        return f'[0x{self.end:x}, 0x{self.type:x}]'


class PackedXmlElementDescriptor(PackedXmlDataDescriptor):
    def __init__(self, name_index, encoded):
        super().__init__(encoded)
        self.name_index = name_index

    def __repr__(self):
        return f'[0x{self.name_index:x}:{super().__repr__()}'


# text: 普通叶子文本；rows: 12 个浮点数时的 row0..row3 文本
LeafValue = namedtuple('LeafValue', ['text', 'rows'])


def decode_text(raw):
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        # 非 UTF-8 时逐字节保留
        return raw.decode('latin-1')


def write_dictionary(buf, dictionary):
    """
    buf: bytearray 或二进制写入流（有 write 方法）
    dictionary: 字符串列表
    """
    out = bytearray()
    for text in dictionary:
        raw = text.encode('utf-8')
        if not raw or b'\x00' in raw:
            raise ValueError(f'invalid dictionary entry: {text!r}')
        out += raw
        out += b'\x00'
    out += b'\x00'  # 结尾
    if isinstance(buf, bytearray):
        buf += out
    else:
        buf.write(bytes(out))


def read_dictionary(cursor):
    """
    cursor: ByteCursor
    return: 字符串列表，遇到空串结束（空串本身不加入）
    """
    dictionary = []
    while True:
        raw = cursor.read_cstring()
        if not raw:
            break
        dictionary.append(decode_text(raw))
    return dictionary


def read_data_descriptor(cursor):
    return PackedXmlDataDescriptor(cursor.read_u32())


def read_element_descriptors(cursor, number):
    result = []
    for _ in range(number):
        name_index = cursor.read_u16()
        result.append(PackedXmlElementDescriptor(name_index, cursor.read_u32()))
    return result


def read_string(cursor, length):
    return decode_text(cursor.read_bytes(length))


def read_number(cursor, length):
    if length == 1:
        return str(cursor.read_i8())
    elif length == 2:
        return str(cursor.read_i16())
    elif length == 4:
        return str(cursor.read_i32())
    elif length == 8:
        return str(cursor.read_i64())
    # 其他长度不读取，固定输出 '0'
    return '0'


def read_floats(cursor, length):
    return [cursor.read_f32() for _ in range(length // 4)]


def format_floats(floats):
    return ' '.join(f'{f:.6f}' for f in floats)


def read_boolean(cursor, length, name=''):
    # 只有长度为 1 时才读一个字节；否则不消费任何字节，结果为 false
    if length != 1:
        return False
    value = cursor.read_i8()
    if value != 1:
        raise InvalidBooleanEncoding(name, value)
    return True


def read_base64(cursor, length):
    return base64.b64encode(cursor.read_bytes(length)).decode('ascii')


def read_value(cursor, name, descriptor, offset=0):
    """
    按类型标签解码叶子数据。
    offset: 当前区域内已消费到的偏移，长度 = descriptor.end - offset
    类型 0（嵌套元素）由 reader 递归处理，这里不接受。
    """
    length = descriptor.end - offset
    if length < 0:
        raise InvalidDescriptorRange(name, descriptor, offset)
    t = descriptor.type
    if t == PackedXmlDataType.String:
        return LeafValue(read_string(cursor, length), None)
    elif t == PackedXmlDataType.Integer:
        return LeafValue(read_number(cursor, length), None)
    elif t == PackedXmlDataType.Float:
        floats = read_floats(cursor, length)
        if len(floats) == 12:
            rows = [format_floats(floats[i * 3:(i + 1) * 3]) for i in range(4)]
            return LeafValue(None, rows)
        return LeafValue(format_floats(floats), None)
    elif t == PackedXmlDataType.Boolean:
        return LeafValue('true' if read_boolean(cursor, length, name) else 'false', None)
    elif t == PackedXmlDataType.Base64:
        return LeafValue(read_base64(cursor, length), None)
    raise UnknownTypeTag(name, descriptor)


def pack_data_descriptor(end, type_):
    return struct.pack('<I', PackedXmlDataDescriptor.from_parts(end, type_).encode())
