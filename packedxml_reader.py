import logging
import xml.dom.minidom
import xml.etree.ElementTree as ET
from xml.parsers.expat import ExpatError

from byte_cursor import ByteCursor
from packedxml_codec import (
    PACKED_HEADER,
    PackedXmlDataType,
    read_data_descriptor,
    read_dictionary,
    read_element_descriptors,
    read_value,
)
from packedxml_errors import (
    DictionaryIndexOutOfRange,
    InvalidDescriptorRange,
    NotPackedFormat,
)

logger = logging.getLogger(__name__)

DEFAULT_ROOT_NAME = 'root'


def is_packed(data):
    """只检查前 4 字节的文件头"""
    return len(data) >= 4 and int.from_bytes(data[:4], byteorder='little') == PACKED_HEADER


class PackedXmlReader:
    Packed_Header = PACKED_HEADER

    def __init__(self, data, root_name=DEFAULT_ROOT_NAME):
        self.cursor = ByteCursor(data)
        self.root_name = root_name

    def read_header(self):
        if self.cursor.remaining() < 4:
            raise NotPackedFormat()
        head = self.cursor.read_u32()
        if head != self.Packed_Header:
            raise NotPackedFormat(head)
        self.cursor.read_u8()  # 保留字节，忽略

    def read(self):
        root = ET.Element(self.root_name)
        self.read_header()
        dictionary = read_dictionary(self.cursor)
        logger.debug(f'dictionary: {len(dictionary)} names, elements start at 0x{self.cursor.position:X}')
        self.read_element(root, dictionary)
        if not self.cursor.at_end():
            logger.debug(f'{self.cursor.remaining()} trailing bytes after root element')
        return root

    def decode(self):
        return ET.tostring(self.read(), encoding='unicode')

    def read_element(self, element, dictionary):
        # 描述表在前：子元素个数、自身描述符、全部子元素描述符，之后才是数据
        child_count = self.cursor.read_u16()
        descriptor = read_data_descriptor(self.cursor)
        elements = read_element_descriptors(self.cursor, child_count)
        offset = self.read_element_data(element, dictionary, descriptor)
        for element_descriptor in elements:
            index = element_descriptor.name_index
            if index >= len(dictionary):
                raise DictionaryIndexOutOfRange(index, len(dictionary))
            child = ET.Element(dictionary[index])
            offset = self.read_element_data(child, dictionary, element_descriptor, offset)
            element.append(child)

    def read_element_data(self, element, dictionary, descriptor, offset=0):
        if descriptor.type == PackedXmlDataType.Element:
            if descriptor.end < offset:
                raise InvalidDescriptorRange(element.tag, descriptor, offset)
            # 嵌套元素：立即递归，读入同一个节点
            self.read_element(element, dictionary)
            return descriptor.end
        value = read_value(self.cursor, element.tag, descriptor, offset)
        if value.rows is not None:
            for i, row_text in enumerate(value.rows):
                row = ET.SubElement(element, f'row{i}')
                row.text = row_text
        else:
            element.text = value.text
        return descriptor.end


def read_packed_section(bin_data, root_name=DEFAULT_ROOT_NAME):
    return PackedXmlReader(bin_data, root_name).read()


def decode_packedxml_strict(bin_data, root_name=DEFAULT_ROOT_NAME):
    reader = PackedXmlReader(bin_data, root_name)
    return reader.decode()


def remove_xml_declaration(xml_str):
    lines = xml_str.splitlines()
    if lines and lines[0].strip().startswith('<?xml'):
        return '\n'.join(lines[1:]).lstrip()
    return xml_str


def to_pretty_xml(tree, indent='  '):
    """tree: ET.Element 或 XML 字符串"""
    if isinstance(tree, ET.Element):
        tree = ET.tostring(tree, encoding='unicode')
    try:
        pretty = xml.dom.minidom.parseString(tree).toprettyxml(indent=indent)
    except ExpatError as e:
        # 标签名不合法等情况，保留未格式化的结果
        logger.warning(f'格式化失败，输出未格式化内容: {e}')
        return tree
    return remove_xml_declaration(pretty)
