import struct

from packedxml_errors import UnexpectedEndOfStream


class ByteCursor:
    """
    小端、只向前读取的内存缓冲区游标。
    data: bytes / bytearray / memoryview
    """

    def __init__(self, data):
        self.data = memoryview(data)
        self._pos = 0

    @property
    def position(self):
        return self._pos

    def remaining(self):
        return len(self.data) - self._pos

    def at_end(self):
        return self._pos >= len(self.data)

    def _need(self, n):
        if self.remaining() < n:
            raise UnexpectedEndOfStream(self._pos, n, self.remaining())

    def _unpack(self, fmt):
        size = struct.calcsize(fmt)
        self._need(size)
        value = struct.unpack_from(fmt, self.data, self._pos)[0]
        self._pos += size
        return value

    def read_u8(self):
        return self._unpack('<B')

    def read_i8(self):
        return self._unpack('<b')

    def read_u16(self):
        return self._unpack('<H')

    def read_i16(self):
        return self._unpack('<h')

    def read_u32(self):
        return self._unpack('<I')

    def read_i32(self):
        return self._unpack('<i')

    def read_i64(self):
        return self._unpack('<q')

    def read_f32(self):
        return self._unpack('<f')

    def read_bytes(self, n):
        if n < 0:
            raise ValueError(f'negative read length: {n}')
        self._need(n)
        chunk = self.data[self._pos:self._pos + n].tobytes()
        self._pos += n
        return chunk

    def read_cstring(self):
        # 读到 0x00 为止，结尾的 0 被消费但不返回
        chars = bytearray()
        while True:
            b = self.read_u8()
            if b == 0:
                return bytes(chars)
            chars.append(b)
