from .command import (
    MAX_ABSOLUTE_POSITION,
    MAX_LENGTH,
    MAX_RELATIVE_DISTANCE,
    TERMINATOR,
    Instruction,
    Kind,
)


# Shortest match worth looking up; two bytes never beat a literal
MIN_MATCH = 3

# Tie-break order among equally efficient candidates, cheapest to decode first
PREFERENCE = {
    Kind.REPEAT_RELATIVE: 0,
    Kind.BYTE_FILL: 1,
    Kind.INCREASING_FILL: 2,
    Kind.WORD_FILL: 3,
    Kind.REPEAT_ABSOLUTE: 4,
}


def byte_fill_length(buf: bytes, start: int) -> int:
    limit = min(len(buf), start + MAX_LENGTH)
    value = buf[start]
    end = start + 1
    while end < limit and buf[end] == value:
        end += 1
    return end - start


def word_fill_length(buf: bytes, start: int) -> int:
    """Length of the alternating two-byte run at `start`, last pair may be partial"""
    limit = min(len(buf), start + MAX_LENGTH)
    if limit - start < 2:
        return 0
    end = start + 2
    while end < limit and buf[end] == buf[end - 2]:
        end += 1
    return end - start


def increasing_fill_length(buf: bytes, start: int) -> int:
    limit = min(len(buf), start + MAX_LENGTH)
    end = start + 1
    while end < limit and buf[end] == (buf[end - 1] + 1) & 0xFF:
        end += 1
    return end - start


def match_length(buf: bytes, start: int, src: int) -> int:
    """Length of the match between `start` and an earlier `src`, may overlap `start`"""
    limit = min(len(buf) - start, MAX_LENGTH)
    n = 0
    while n < limit and buf[start + n] == buf[src + n]:
        n += 1
    return n


def efficiency(cmd: Instruction):
    return (cmd.length / cmd.cost(), -cmd.payload_size, -PREFERENCE[cmd.kind])


class Encoder:
    # Newest positions kept per three-byte key; must cover the relative window
    MAX_CHAIN = 0x100

    def __init__(self, uncompressed_buf: bytes, *, min_savings: int=1):
        if not isinstance(uncompressed_buf, (bytes, bytearray, memoryview)):
            raise TypeError("LZ5 input must be bytes-like, not {}".format(type(uncompressed_buf).__name__))
        if min_savings < 1:
            raise ValueError("min_savings must be at least 1, was {}".format(min_savings))
        self.min_savings = min_savings
        self._uncompressed_buf = bytes(uncompressed_buf)
        self._uncompressed_len = len(self._uncompressed_buf)
        self._compressed_buf = bytearray()
        self._read_cursor = 0
        self._copy_start = 0
        self._chains = {}
        self._indexed = 0

    def _index_to(self, pos: int):
        buf = self._uncompressed_buf
        last = min(pos, self._uncompressed_len - MIN_MATCH + 1)
        while self._indexed < last:
            key = buf[self._indexed:self._indexed + MIN_MATCH]
            chain = self._chains.setdefault(key, [])
            chain.append(self._indexed)
            if len(chain) > 2 * self.MAX_CHAIN:
                del chain[:-self.MAX_CHAIN]
            self._indexed += 1

    def _best_backreferences(self) -> list[Instruction]:
        pos = self._read_cursor
        buf = self._uncompressed_buf
        if self._uncompressed_len - pos < MIN_MATCH:
            return []
        self._index_to(pos)
        chain = self._chains.get(buf[pos:pos + MIN_MATCH])
        if not chain:
            return []
        longest = min(self._uncompressed_len - pos, MAX_LENGTH)
        best_relative = (0, 0)  # (src, length)
        best_absolute = (0, 0)
        for src in reversed(chain[-self.MAX_CHAIN:]):
            length = match_length(buf, pos, src)
            if pos - src <= MAX_RELATIVE_DISTANCE:
                if length > best_relative[1]:
                    best_relative = (src, length)
            elif src <= MAX_ABSOLUTE_POSITION and length > best_absolute[1]:
                best_absolute = (src, length)
            if best_relative[1] == longest:
                break
        candidates = []
        if best_relative[1]:
            candidates.append(Instruction.repeat_relative(pos - best_relative[0], best_relative[1]))
        if best_absolute[1] > best_relative[1]:
            candidates.append(Instruction.repeat_absolute(best_absolute[0], best_absolute[1]))
        return candidates

    def _candidates(self) -> list[Instruction]:
        pos = self._read_cursor
        buf = self._uncompressed_buf
        candidates = [Instruction.byte_fill(buf[pos], byte_fill_length(buf, pos))]
        word_len = word_fill_length(buf, pos)
        if word_len:
            candidates.append(Instruction.word_fill(buf[pos], buf[pos + 1], word_len))
            if word_len == MAX_LENGTH:
                # Long runs would otherwise hit the slowest path of the match search
                return candidates
        candidates.append(Instruction.increasing_fill(buf[pos], increasing_fill_length(buf, pos)))
        candidates += self._best_backreferences()
        return candidates

    def _flush_copy(self):
        if self._copy_start < self._read_cursor:
            data = self._uncompressed_buf[self._copy_start:self._read_cursor]
            self._compressed_buf += Instruction.copy(data).to_bytes()
        self._copy_start = self._read_cursor

    def compress(self) -> bytes:
        while self._read_cursor < self._uncompressed_len:
            best = max(self._candidates(), key=efficiency)
            if best.length - best.cost() >= self.min_savings:
                self._flush_copy()
                self._compressed_buf += best.to_bytes()
                self._read_cursor += best.length
                self._copy_start = self._read_cursor
            else:
                self._read_cursor += 1
                if self._read_cursor - self._copy_start == MAX_LENGTH:
                    self._flush_copy()
        self._flush_copy()
        self._compressed_buf.append(TERMINATOR)
        return bytes(self._compressed_buf)


def compress(uncompressed_buf: bytes, *, min_savings: int=1) -> bytes:
    return Encoder(uncompressed_buf, min_savings=min_savings).compress()
