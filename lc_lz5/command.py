from dataclasses import dataclass
from enum import IntEnum
from struct import pack


TERMINATOR = 0xFF
MAX_SHORT_LENGTH = 32
MAX_LENGTH = 0x400
MAX_RELATIVE_DISTANCE = 0xFF
MAX_ABSOLUTE_POSITION = 0xFFFF
# Extended kind 7 with length bits 0x300 would read back as the terminator
MAX_INVERTED_RELATIVE_LENGTH = 0x300
EXTENDED = 7


class Kind(IntEnum):
    COPY = 0
    BYTE_FILL = 1
    WORD_FILL = 2
    INCREASING_FILL = 3
    REPEAT_ABSOLUTE = 4
    REPEAT_ABSOLUTE_INVERTED = 5
    REPEAT_RELATIVE = 6
    # Only reachable through the extended header
    REPEAT_RELATIVE_INVERTED = 7


# Payload size in bytes, COPY excluded since it carries `length` bytes
PAYLOAD_SIZES = {
    Kind.BYTE_FILL: 1,
    Kind.WORD_FILL: 2,
    Kind.INCREASING_FILL: 1,
    Kind.REPEAT_ABSOLUTE: 2,
    Kind.REPEAT_ABSOLUTE_INVERTED: 2,
    Kind.REPEAT_RELATIVE: 1,
    Kind.REPEAT_RELATIVE_INVERTED: 1,
}

REPEAT_KINDS = frozenset((
    Kind.REPEAT_ABSOLUTE,
    Kind.REPEAT_ABSOLUTE_INVERTED,
    Kind.REPEAT_RELATIVE,
    Kind.REPEAT_RELATIVE_INVERTED,
))

INVERTED_KINDS = frozenset((Kind.REPEAT_ABSOLUTE_INVERTED, Kind.REPEAT_RELATIVE_INVERTED))


def payload_size(kind: Kind, length: int) -> int:
    if kind == Kind.COPY:
        return length
    return PAYLOAD_SIZES[kind]


def needs_extended_header(kind: Kind, length: int) -> bool:
    return length > MAX_SHORT_LENGTH or kind == Kind.REPEAT_RELATIVE_INVERTED


def header_size(kind: Kind, length: int) -> int:
    return 2 if needs_extended_header(kind, length) else 1


def encode_header(kind: Kind, length: int) -> bytes:
    """Returns the one or two header bytes announcing `length` bytes of `kind`"""
    if not 1 <= length <= MAX_LENGTH:
        raise ValueError("Instruction length out of range ({}/{})".format(length, MAX_LENGTH))
    if kind == Kind.REPEAT_RELATIVE_INVERTED and length > MAX_INVERTED_RELATIVE_LENGTH:
        raise ValueError("Inverted relative repeat too long ({}/{})".format(length, MAX_INVERTED_RELATIVE_LENGTH))
    n = length - 1
    if not needs_extended_header(kind, length):
        return bytes(((kind << 5) | n,))
    return bytes(((EXTENDED << 5) | (kind << 2) | (n >> 8), n & 0xFF))


def split_header(header: int) -> tuple[int, int]:
    """Splits a header byte into its kind field and low five bits"""
    return header >> 5, header & 0x1F


def extended_fields(low: int, continuation: int) -> tuple[Kind, int]:
    """Returns (kind, length) packed into an extended header"""
    n = ((low & 0x3) << 8) | continuation
    return Kind(low >> 2), n + 1


@dataclass
class Instruction:
    kind: Kind
    length: int
    payload: bytes = b""

    @staticmethod
    def copy(data: bytes) -> "Instruction":
        return Instruction(Kind.COPY, len(data), bytes(data))

    @staticmethod
    def byte_fill(value: int, length: int) -> "Instruction":
        return Instruction(Kind.BYTE_FILL, length, bytes((value,)))

    @staticmethod
    def word_fill(first: int, second: int, length: int) -> "Instruction":
        return Instruction(Kind.WORD_FILL, length, bytes((first, second)))

    @staticmethod
    def increasing_fill(start: int, length: int) -> "Instruction":
        return Instruction(Kind.INCREASING_FILL, length, bytes((start,)))

    @staticmethod
    def repeat_absolute(pos: int, length: int, inverted: bool=False) -> "Instruction":
        kind = Kind.REPEAT_ABSOLUTE_INVERTED if inverted else Kind.REPEAT_ABSOLUTE
        return Instruction(kind, length, pack("<H", pos))

    @staticmethod
    def repeat_relative(dist: int, length: int, inverted: bool=False) -> "Instruction":
        if not 1 <= dist <= MAX_RELATIVE_DISTANCE:
            raise ValueError("Relative distance out of range ({})".format(dist))
        kind = Kind.REPEAT_RELATIVE_INVERTED if inverted else Kind.REPEAT_RELATIVE
        return Instruction(kind, length, bytes((dist,)))

    @property
    def payload_size(self) -> int:
        return payload_size(self.kind, self.length)

    def cost(self) -> int:
        """Number of bytes this instruction occupies in the stream"""
        return header_size(self.kind, self.length) + self.payload_size

    def to_bytes(self) -> bytes:
        if len(self.payload) != self.payload_size:
            raise ValueError("{} payload has {} bytes, expected {}".format(self.kind.name, len(self.payload), self.payload_size))
        return encode_header(self.kind, self.length) + self.payload
