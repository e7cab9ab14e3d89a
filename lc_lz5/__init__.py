"""Encoder and decoder for the LC_LZ5 compression format used by Super Metroid"""
from .command import MAX_LENGTH, TERMINATOR, Instruction, Kind
from .decoder import (
    DecodeError,
    Decoder,
    InvalidOffsetError,
    TruncatedError,
    decompress,
    decompress_with_size,
)
from .encoder import Encoder, compress
