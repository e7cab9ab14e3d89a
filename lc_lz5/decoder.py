from struct import unpack_from
from warnings import warn
from .command import (
    EXTENDED,
    INVERTED_KINDS,
    TERMINATOR,
    Kind,
    extended_fields,
    split_header,
)


class DecodeError(Exception):
    def __init__(self, msg: str, offset: int=None):
        self.msg = msg
        self.offset = offset

    def __str__(self):
        s = "LZ5 decode error"
        if self.offset is not None:
            s += " at offset {:#x}".format(self.offset)
        return s + ": " + self.msg


class TruncatedError(DecodeError):
    pass


class InvalidOffsetError(DecodeError):
    pass


class Decoder:
    def __init__(self, compressed_buf: bytes):
        if not isinstance(compressed_buf, (bytes, bytearray, memoryview)):
            raise TypeError("LZ5 input must be bytes-like, not {}".format(type(compressed_buf).__name__))
        self.compressed_buf = bytes(compressed_buf)
        self.decompressed_buf = bytearray()
        self.read_cursor = 0
        self._header_offset = 0

    def _truncated(self, what: str) -> TruncatedError:
        return TruncatedError("Stream ended while reading {}".format(what), self._header_offset)

    def _read_byte(self, what: str) -> int:
        if self.read_cursor >= len(self.compressed_buf):
            raise self._truncated(what)
        ret = self.compressed_buf[self.read_cursor]
        self.read_cursor += 1
        return ret

    def _read_bytes(self, size: int, what: str) -> bytes:
        end = self.read_cursor + size
        if end > len(self.compressed_buf):
            raise self._truncated(what)
        ret = self.compressed_buf[self.read_cursor:end]
        self.read_cursor = end
        return ret

    def _read_word(self, what: str) -> int:
        if self.read_cursor + 2 > len(self.compressed_buf):
            raise self._truncated(what)
        (ret,) = unpack_from("<H", self.compressed_buf, self.read_cursor)
        self.read_cursor += 2
        return ret

    def _copy(self, length: int):
        self.decompressed_buf += self._read_bytes(length, "direct copy data")

    def _byte_fill(self, length: int):
        value = self._read_byte("fill byte")
        self.decompressed_buf += bytes((value,)) * length

    def _word_fill(self, length: int):
        pair = self._read_bytes(2, "fill word")
        self.decompressed_buf += (pair * ((length + 1) // 2))[:length]

    def _increasing_fill(self, length: int):
        start = self._read_byte("fill start byte")
        self.decompressed_buf += bytes((start + i) & 0xFF for i in range(length))

    def _repeat(self, kind: Kind, length: int):
        out = self.decompressed_buf
        if kind in (Kind.REPEAT_ABSOLUTE, Kind.REPEAT_ABSOLUTE_INVERTED):
            src = self._read_word("repeat position")
        else:
            dist = self._read_byte("repeat distance")
            src = len(out) - dist
            if dist == 0:
                raise InvalidOffsetError("Relative repeat with zero distance", self._header_offset)
        if src < 0 or src >= len(out):
            raise InvalidOffsetError("Repeat source {} outside of {} decoded bytes".format(src, len(out)), self._header_offset)
        mask = 0xFF if kind in INVERTED_KINDS else 0
        # Source may overlap the bytes being written
        for i in range(length):
            out.append(out[src + i] ^ mask)

    def _read_instruction(self) -> bool:
        """Applies one instruction. Returns False once the terminator is read."""
        self._header_offset = self.read_cursor
        header = self.compressed_buf[self.read_cursor]
        self.read_cursor += 1
        if header == TERMINATOR:
            return False
        kind, low = split_header(header)
        if kind == EXTENDED:
            kind, length = extended_fields(low, self._read_byte("extended length"))
        else:
            kind, length = Kind(kind), low + 1
        if kind == Kind.COPY:
            self._copy(length)
        elif kind == Kind.BYTE_FILL:
            self._byte_fill(length)
        elif kind == Kind.WORD_FILL:
            self._word_fill(length)
        elif kind == Kind.INCREASING_FILL:
            self._increasing_fill(length)
        else:
            self._repeat(kind, length)
        return True

    def decompress(self):
        while self.read_cursor < len(self.compressed_buf):
            if not self._read_instruction():
                return
        warn("LZ5 warning: Stream ended after {} bytes without a terminator".format(self.read_cursor))


def decompress_with_size(compressed_buf: bytes) -> tuple[bytes, int]:
    """Returns the decoded data and the number of compressed bytes consumed"""
    dec = Decoder(compressed_buf)
    dec.decompress()
    return bytes(dec.decompressed_buf), dec.read_cursor


def decompress(compressed_buf: bytes) -> bytes:
    return decompress_with_size(compressed_buf)[0]
