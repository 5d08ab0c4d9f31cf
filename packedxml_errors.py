class PackedXmlError(ValueError):
    """PackedXml 解码/编码错误的基类"""


class NotPackedFormat(PackedXmlError):
    def __init__(self, found=None):
        self.found = found
        if found is None:
            msg = 'File is not packed xml (too short for header)'
        else:
            msg = f'File is not packed xml (header 0x{found:08X})'
        super().__init__(msg)


class UnexpectedEndOfStream(PackedXmlError):
    def __init__(self, position, wanted, available):
        self.position = position
        self.wanted = wanted
        self.available = available
        super().__init__(
            f'Unexpected end of stream at 0x{position:X}: '
            f'wanted {wanted} bytes, {available} left')


class DictionaryIndexOutOfRange(PackedXmlError):
    def __init__(self, index, size):
        self.index = index
        self.size = size
        super().__init__(f'Dictionary index {index} out of range (size {size})')


class UnknownTypeTag(PackedXmlError):
    def __init__(self, element_name, descriptor):
        self.element_name = element_name
        self.descriptor = descriptor
        super().__init__(f'Unknown type of element {element_name}: {descriptor!r}')


class InvalidBooleanEncoding(PackedXmlError):
    def __init__(self, element_name, value):
        self.element_name = element_name
        self.value = value
        super().__init__(f'Boolean error in {element_name}: byte {value}')


class InvalidDescriptorRange(PackedXmlError):
    """
    end 小于当前区域偏移（负长度）。
    所有类型都报错；原 C# 工具对整数/布尔在此情况下仍输出 '0'/'false'。
    """

    def __init__(self, element_name, descriptor, offset):
        self.element_name = element_name
        self.descriptor = descriptor
        self.offset = offset
        super().__init__(
            f'Descriptor of {element_name} ends before current offset '
            f'0x{offset:X}: {descriptor!r}')


class PackedXmlEncodeError(PackedXmlError):
    """树结构无法写成 PackedXml 时抛出"""
