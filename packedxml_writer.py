"""
PackedXml 写入：读取过程的逆过程。

元素布局：子元素个数(u16)、自身描述符(u32)、子元素描述符表(u16 + u32)*n，
之后是数据区：自身值，然后按顺序是每个子元素的值（嵌套元素整块内联）。
描述符的 end 是相对数据区起点的累计偏移。
"""
import logging
import re
import struct
import xml.etree.ElementTree as ET

from packedxml_codec import (
    END_MASK,
    PACKED_HEADER,
    PackedXmlDataType,
    format_floats,
    pack_data_descriptor,
    write_dictionary,
)
from packedxml_errors import PackedXmlEncodeError

logger = logging.getLogger(__name__)

INT_RE = re.compile(r'0|-?[1-9][0-9]*')
FLOAT_RE = re.compile(r'-?[0-9]+\.[0-9]{6}')
ROW_NAMES = ('row0', 'row1', 'row2', 'row3')
MAX_CHILDREN = 0xFFFF


def collect_names(root):
    """根节点以下所有元素名：去重后按字典序排序（根节点本身不计入）"""
    names = set()
    for element in root.iter():
        if element is not root:
            names.add(element.tag)
    return sorted(names)


def _float_tokens(text):
    if text is None:
        return None
    tokens = text.split(' ')
    if not tokens or not all(FLOAT_RE.fullmatch(t) for t in tokens):
        return None
    # float32 存不下或存不准的，按字符串处理
    fmt = f'<{len(tokens)}f'
    try:
        floats = list(struct.unpack(fmt, struct.pack(fmt, *(float(t) for t in tokens))))
    except OverflowError:
        return None
    if format_floats(floats) != text:
        return None
    return floats


def _matrix_values(element):
    # 只有 row0..row3 四个子元素、每行 3 个浮点数的才算矩阵
    if (element.text or '').strip():
        return None
    if [child.tag for child in element] != list(ROW_NAMES):
        return None
    values = []
    for row in element:
        if len(row):
            return None
        floats = _float_tokens(row.text)
        if floats is None or len(floats) != 3:
            return None
        values.extend(floats)
    return values


def _pack_integer(text, name):
    value = int(text)
    if value == 0:
        return b''
    for fmt, bits in (('<b', 8), ('<h', 16), ('<i', 32), ('<q', 64)):
        limit = 1 << (bits - 1)
        if -limit <= value < limit:
            return struct.pack(fmt, value)
    raise PackedXmlEncodeError(f'Integer out of int64 range in {name}: {text}')


def encode_leaf(text, name=''):
    """
    按文本形态选择类型，保证重新解码后文本不变。
    return: (payload bytes, type tag)
    """
    if text is None or text == '':
        return b'', PackedXmlDataType.String
    if text == 'true':
        return b'\x01', PackedXmlDataType.Boolean
    if text == 'false':
        return b'', PackedXmlDataType.Boolean
    if INT_RE.fullmatch(text):
        return _pack_integer(text, name), PackedXmlDataType.Integer
    floats = _float_tokens(text)
    if floats is not None and len(floats) != 12:
        return struct.pack(f'<{len(floats)}f', *floats), PackedXmlDataType.Float
    return text.encode('utf-8'), PackedXmlDataType.String


def _own_text(element):
    if len(element):
        return (element.text or '').strip()
    return element.text


def encode_element(element, dictionary, index=None):
    """
    element: ET.Element
    dictionary: 名字列表；index 为 名字 -> 下标 的映射（可省略）
    return: 整个元素的字节块
    """
    if index is None:
        index = {name: i for i, name in enumerate(dictionary)}
    matrix = _matrix_values(element)
    if matrix is not None:
        own, own_type = struct.pack('<12f', *matrix), PackedXmlDataType.Float
        children = []
    else:
        own, own_type = encode_leaf(_own_text(element), element.tag)
        children = list(element)
    if len(children) > MAX_CHILDREN:
        raise PackedXmlEncodeError(f'Too many children in {element.tag}: {len(children)}')

    region = bytearray(own)
    table = bytearray()
    for child in children:
        if (child.tail or '').strip():
            logger.warning(f'{element.tag}: text after <{child.tag}> is not stored: {child.tail.strip()!r}')
        if child.tag not in index:
            raise PackedXmlEncodeError(f'Name not in dictionary: {child.tag}')
        child_matrix = _matrix_values(child) if len(child) else None
        if child_matrix is not None:
            payload, type_ = struct.pack('<12f', *child_matrix), PackedXmlDataType.Float
        elif len(child):
            payload, type_ = encode_element(child, dictionary, index), PackedXmlDataType.Element
        else:
            payload, type_ = encode_leaf(child.text, child.tag)
        region += payload
        if len(region) > END_MASK:
            raise PackedXmlEncodeError(f'Element {element.tag} exceeds 28-bit offsets')
        table += struct.pack('<H', index[child.tag])
        table += pack_data_descriptor(len(region), type_)

    out = bytearray(struct.pack('<H', len(children)))
    out += pack_data_descriptor(len(own), own_type)
    out += table
    out += region
    return bytes(out)


def write_packed_section(root):
    dictionary = collect_names(root)
    logger.debug(f'writing {root.tag} with {len(dictionary)} dictionary names')
    out = bytearray(struct.pack('<I', PACKED_HEADER))
    out += b'\x00'  # 保留字节
    write_dictionary(out, dictionary)
    out += encode_element(root, dictionary)
    return bytes(out)


def encode_packedxml(xml_text):
    return write_packed_section(ET.fromstring(xml_text))
