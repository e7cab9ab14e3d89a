import random
import unittest
from lc_lz5 import (
    Instruction,
    InvalidOffsetError,
    Kind,
    TruncatedError,
    compress,
    decompress,
    decompress_with_size,
)
from lc_lz5.command import encode_header


def incompressible(length: int) -> bytes:
    """Pairs of (x, x - 1) with x stepping by 3, no fill or match is worth taking"""
    out = bytearray()
    x = 1
    while len(out) < length:
        out += bytes((x, (x - 1) & 0xFF))
        x = (x + 3) & 0xFF
    return bytes(out[:length])


def invert(data) -> list[int]:
    return [b ^ 0xFF for b in data]


class TestInstruction(unittest.TestCase):
    def test_short_header(self):
        self.assertEqual(encode_header(Kind.BYTE_FILL, 4), b"\x23")
        self.assertEqual(encode_header(Kind.COPY, 32), b"\x1f")

    def test_extended_header(self):
        self.assertEqual(encode_header(Kind.COPY, 33), b"\xe0\x20")
        self.assertEqual(encode_header(Kind.REPEAT_ABSOLUTE, 512), b"\xf1\xff")
        self.assertEqual(encode_header(Kind.REPEAT_RELATIVE, 1023), b"\xfb\xfe")

    def test_inverted_relative_is_always_extended(self):
        cmd = Instruction.repeat_relative(3, 6, inverted=True)
        self.assertEqual(cmd.to_bytes(), b"\xfc\x05\x03")
        self.assertEqual(cmd.cost(), 3)

    def test_inverted_relative_cannot_collide_with_terminator(self):
        with self.assertRaises(ValueError):
            Instruction.repeat_relative(1, 0x301, inverted=True).to_bytes()

    def test_length_out_of_range(self):
        with self.assertRaises(ValueError):
            encode_header(Kind.COPY, 0)
        with self.assertRaises(ValueError):
            encode_header(Kind.BYTE_FILL, 1025)

    def test_zero_relative_distance(self):
        with self.assertRaises(ValueError):
            Instruction.repeat_relative(0, 4)

    def test_cost(self):
        self.assertEqual(Instruction.copy(b"abc").cost(), 4)
        self.assertEqual(Instruction.word_fill(1, 2, 33).cost(), 4)
        self.assertEqual(Instruction.repeat_absolute(0x1234, 8).cost(), 3)
        self.assertEqual(Instruction.repeat_absolute(0x1234, 8).payload, b"\x34\x12")


class TestDecompression(unittest.TestCase):
    def test_direct_copy(self):
        self.assertEqual(decompress(b"\x03\x01\x02\x03\x04\xff"), b"\x01\x02\x03\x04")

    def test_byte_fill(self):
        self.assertEqual(decompress(b"\x23\xaa\xff"), b"\xaa" * 4)

    def test_word_fill(self):
        self.assertEqual(decompress(b"\x43\xaa\x55\xff"), b"\xaa\x55\xaa\x55")
        self.assertEqual(decompress(b"\x44\xaa\x55\xff"), b"\xaa\x55\xaa\x55\xaa")

    def test_increasing_fill(self):
        self.assertEqual(decompress(b"\x63\x01\xff"), b"\x01\x02\x03\x04")
        self.assertEqual(decompress(b"\x62\xfe\xff"), b"\xfe\xff\x00")

    def test_repeat_absolute(self):
        self.assertEqual(decompress(b"\x02\x01\x02\x03\x85\x00\x00\xff"), bytes([1, 2, 3] * 3))

    def test_repeat_absolute_inverted(self):
        expected = bytes([1, 2, 3] + invert([1, 2, 3]) + [1, 2, 3])
        self.assertEqual(decompress(b"\x02\x01\x02\x03\xa5\x00\x00\xff"), expected)

    def test_repeat_relative(self):
        self.assertEqual(decompress(b"\x02\x01\x02\x03\xc5\x03\xff"), bytes([1, 2, 3] * 3))

    def test_repeat_relative_inverted(self):
        expected = bytes([1, 2, 3] + invert([1, 2, 3]) + [1, 2, 3])
        self.assertEqual(decompress(b"\x02\x01\x02\x03\xfc\x05\x03\xff"), expected)

    def test_extended_overlapping_repeat(self):
        expected = bytes(([1, 2, 3] * 342)[:1026])
        self.assertEqual(decompress(b"\x02\x01\x02\x03\xfb\xfe\x03\xff"), expected)

    def test_length_boundary(self):
        self.assertEqual(decompress(b"\x3f\x07\xff"), b"\x07" * 32)
        self.assertEqual(decompress(b"\xe4\x20\x07\xff"), b"\x07" * 33)

    def test_empty_stream(self):
        self.assertEqual(decompress(b"\xff"), b"")

    def test_trailing_bytes_ignored(self):
        self.assertEqual(decompress_with_size(b"\x23\xaa\xff\x12\x34"), (b"\xaa" * 4, 3))

    def test_bytes_like_input(self):
        self.assertEqual(decompress(bytearray(b"\x23\xaa\xff")), b"\xaa" * 4)
        self.assertEqual(decompress(memoryview(b"\x23\xaa\xff")), b"\xaa" * 4)
        with self.assertRaises(TypeError):
            decompress("\x23\xaa\xff")

    def test_missing_terminator_warns(self):
        with self.assertWarns(UserWarning):
            self.assertEqual(decompress(b"\x23\xaa"), b"\xaa" * 4)


class TestDecompressionErrors(unittest.TestCase):
    def test_header_without_payload(self):
        with self.assertRaises(TruncatedError):
            decompress(b"\x20")

    def test_missing_extended_length(self):
        with self.assertRaises(TruncatedError):
            decompress(b"\xe0")

    def test_short_direct_copy(self):
        with self.assertRaises(TruncatedError):
            decompress(b"\x03\x01\x02")

    def test_short_absolute_offset(self):
        with self.assertRaises(TruncatedError):
            decompress(b"\x00\x01\x80\x00")

    def test_absolute_offset_on_empty_output(self):
        with self.assertRaises(InvalidOffsetError):
            decompress(b"\x85\x00\x00\xff")

    def test_absolute_offset_at_write_position(self):
        with self.assertRaises(InvalidOffsetError):
            decompress(b"\x00\x01\x80\x01\x00\xff")

    def test_zero_relative_distance(self):
        with self.assertRaises(InvalidOffsetError):
            decompress(b"\x00\x01\xc0\x00\xff")

    def test_relative_distance_before_start(self):
        with self.assertRaises(InvalidOffsetError) as ctx:
            decompress(b"\x00\x01\xc0\x02\xff")
        self.assertEqual(ctx.exception.offset, 2)
        self.assertIn("0x2", str(ctx.exception))


class TestCompression(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(compress(b""), b"\xff")

    def test_incompressible(self):
        self.assertEqual(compress(b"\x00\x02\x04\x06"), b"\x03\x00\x02\x04\x06\xff")

    def test_byte_fill(self):
        self.assertEqual(compress(b"\x01\x01\x01\x01"), b"\x23\x01\xff")

    def test_word_fill(self):
        self.assertEqual(compress(bytes([1, 2] * 3)), b"\x45\x01\x02\xff")
        self.assertEqual(compress(bytes([1, 2, 1, 2, 1])), b"\x44\x01\x02\xff")

    def test_increasing_fill(self):
        self.assertEqual(compress(b"\x01\x02\x03\x04"), b"\x63\x01\xff")

    def test_increasing_fill_then_relative_repeat(self):
        data = bytes([1, 2, 3, 4, 1, 2, 3, 4])
        stream = compress(data)
        self.assertEqual(stream, b"\x63\x01\xc3\x04\xff")
        self.assertEqual(decompress(stream), data)

    def test_overlapping_relative_repeat(self):
        self.assertEqual(compress(bytes([1, 2, 3, 4] * 3)), b"\x63\x01\xc7\x04\xff")

    def test_extended_copy_and_absolute_repeat(self):
        seq = incompressible(512)
        expected = b"\xe1\xff" + seq + b"\xf1\xff\x00\x00\xff"
        self.assertEqual(compress(seq + seq), expected)

    def test_copy_length_boundary(self):
        seq = incompressible(33)
        self.assertEqual(compress(seq[:32]), b"\x1f" + seq[:32] + b"\xff")
        self.assertEqual(compress(seq), b"\xe0\x20" + seq + b"\xff")

    def test_fill_length_boundary(self):
        self.assertEqual(compress(b"\x07" * 32), b"\x3f\x07\xff")
        self.assertEqual(compress(b"\x07" * 33), b"\xe4\x20\x07\xff")

    def test_min_savings(self):
        self.assertEqual(compress(b"\x01\x02\x03\x04", min_savings=3), b"\x03\x01\x02\x03\x04\xff")
        with self.assertRaises(ValueError):
            compress(b"", min_savings=0)

    def test_rejects_text(self):
        with self.assertRaises(TypeError):
            compress("abcd")

    def test_redundant_input_shrinks(self):
        for n in (4, 32, 33, 100, 1024, 1025, 5000):
            self.assertLess(len(compress(bytes(n))), n)
            self.assertLess(len(compress(b"\xab\xcd" * n)), 2 * n)


class TestRoundTrip(unittest.TestCase):
    def samples(self):
        rng = random.Random(0x5A17)
        yield b""
        yield b"\x00"
        yield b"\xff"
        yield b"\xff" * 2000
        yield incompressible(3000)
        yield bytes(range(256)) * 9
        yield b"Samus Aran enters Green Brinstar. " * 60
        for size in (1, 2, 3, 31, 32, 33, 1023, 1024, 1025, 4000):
            yield bytes(rng.randrange(256) for _ in range(size))
            yield bytes(rng.choice(b"\x00\x01\x02\xfe") for _ in range(size))
        tile = bytes(rng.randrange(256) for _ in range(300))
        blocks = [tile if rng.random() < 0.3 else bytes(rng.randrange(256) for _ in range(300)) for _ in range(240)]
        # Matches beyond the absolute range must not be referenced
        yield b"".join(blocks)

    def test_round_trip(self):
        for data in self.samples():
            stream = compress(data)
            self.assertEqual(decompress(stream), data)
            self.assertEqual(decompress(compress(data, min_savings=3)), data)

    def test_single_terminator(self):
        for data in self.samples():
            stream = compress(data)
            self.assertEqual(stream[-1], 0xFF)
            # The parse stops at the first terminator
            self.assertEqual(decompress_with_size(stream), (data, len(stream)))


if __name__ == '__main__':
    unittest.main()
