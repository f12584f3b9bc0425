"""
Klei TEX (KTEX) container parser.

Reads the packed header word and the mipmap chain of a .tex file.

Layout (little-endian):
- 4 bytes: magic "KTEX"
- 4 bytes: packed header word (platform, pixel format, texture type, mip count)
- mip_count x 10 bytes: width (u16), height (u16), pitch (u16), data size (u32)
- mip_count data blobs, in the same order as the table

Two revisions of the header word exist. The current one ends in a 12-bit
fill field that is always 0xFFF. Files written before the caves update use
narrower fields and an 18-bit fill that writers set to all ones; since its
top bits overlap the new marker, the old marker is checked first.
"""

import io
import struct
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from .errors import MalformedContainerError


KTEX_MAGIC = b'KTEX'
HEADER_SIZE = 8

# Mip table entry: width, height, pitch, data size
MIP_ENTRY = struct.Struct('<HHHI')

# Current header word layout: (shift, mask) per field
PLATFORM_FIELD = (0, 0xF)
PIXEL_FORMAT_FIELD = (4, 0x1F)
TEXTURE_TYPE_FIELD = (9, 0xF)
NUM_MIPS_FIELD = (13, 0x1F)
FLAGS_FIELD = (18, 0x3)
FILL_FIELD = (20, 0xFFF)

# Pre-caves-update layout
LEGACY_PLATFORM_FIELD = (0, 0x7)
LEGACY_PIXEL_FORMAT_FIELD = (3, 0x7)
LEGACY_TEXTURE_TYPE_FIELD = (6, 0x7)
LEGACY_NUM_MIPS_FIELD = (9, 0xF)
LEGACY_FLAGS_FIELD = (13, 0x1)
LEGACY_FILL_FIELD = (14, 0x3FFFF)

CURRENT_FILL_MARKER = 0xFFF
LEGACY_FILL_MARKER = 0x3FFFF


class Platform(IntEnum):
    DEFAULT = 0
    PS3 = 10
    XBOX360 = 11
    PC = 12


class PixelFormat(IntEnum):
    DXT1 = 0
    DXT3 = 1
    DXT5 = 2
    ARGB = 3


class TextureType(IntEnum):
    ONE_D = 1
    TWO_D = 2
    THREE_D = 3
    CUBEMAP = 4


@dataclass(frozen=True)
class TextureHeader:
    """Fields of the packed KTEX header word"""
    platform: int
    pixel_format: int
    texture_type: int
    mip_count: int
    flags: int = 0
    fill: int = CURRENT_FILL_MARKER
    legacy_layout: bool = False  # decoded with the pre-caves field widths


@dataclass(frozen=True)
class MipLevel:
    """One level of the mipmap chain (index 0 is the largest)"""
    width: int
    height: int
    pitch: int
    data: bytes


@dataclass(frozen=True)
class TexFile:
    """A parsed KTEX container"""
    header: TextureHeader
    mipmaps: Tuple[MipLevel, ...]

    @property
    def main_mipmap(self) -> MipLevel:
        """The primary image. Always index 0, never picked by size."""
        return self.mipmaps[0]


def _field(word: int, field: Tuple[int, int]) -> int:
    shift, mask = field
    return (word >> shift) & mask


def is_legacy_variant(header: TextureHeader) -> bool:
    """
    Check whether a header was written before the caves update.

    Decided once by unpack_header(), which records the layout it used.
    """
    return header.legacy_layout


def unpack_header(word: int) -> TextureHeader:
    """
    Decode the packed 32-bit header word.

    The pre-caves layout is recognized by its all-ones 18-bit fill, or by a
    word that lacks the current 0xFFF marker altogether. Anything else is
    read with the current field widths.
    """
    fill = _field(word, FILL_FIELD)
    legacy_fill = _field(word, LEGACY_FILL_FIELD)
    if legacy_fill != LEGACY_FILL_MARKER and fill == CURRENT_FILL_MARKER:
        return TextureHeader(
            platform=_field(word, PLATFORM_FIELD),
            pixel_format=_field(word, PIXEL_FORMAT_FIELD),
            texture_type=_field(word, TEXTURE_TYPE_FIELD),
            mip_count=_field(word, NUM_MIPS_FIELD),
            flags=_field(word, FLAGS_FIELD),
            fill=fill,
        )

    return TextureHeader(
        platform=_field(word, LEGACY_PLATFORM_FIELD),
        pixel_format=_field(word, LEGACY_PIXEL_FORMAT_FIELD),
        texture_type=_field(word, LEGACY_TEXTURE_TYPE_FIELD),
        mip_count=_field(word, LEGACY_NUM_MIPS_FIELD),
        flags=_field(word, LEGACY_FLAGS_FIELD),
        fill=legacy_fill,
        legacy_layout=True,
    )


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    # Raw pipes and sockets may return fewer bytes than asked for
    data = bytearray()
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            break
        data += chunk
    if len(data) < size:
        raise MalformedContainerError(
            f"Truncated TEX file: expected {size} bytes for {what}, got {len(data)}"
        )
    return bytes(data)


def _read_header(stream: BinaryIO) -> TextureHeader:
    data = _read_exact(stream, HEADER_SIZE, "header")
    if data[0:4] != KTEX_MAGIC:
        raise MalformedContainerError(f"Invalid TEX file: bad magic {data[0:4]!r}")

    word = struct.unpack('<I', data[4:8])[0]
    header = unpack_header(word)

    if header.mip_count < 1:
        raise MalformedContainerError("Invalid TEX file: header declares zero mipmaps")

    return header


def parse_tex(stream: BinaryIO) -> TexFile:
    """
    Parse a KTEX container from a binary stream.

    The stream is read sequentially and never seeked, so pipes and
    sockets work as well as files.

    Args:
        stream: Object with a read(n) method returning bytes

    Returns:
        TexFile with the header and every mip level, in stored order

    Raises:
        MalformedContainerError: bad magic, truncated data, zero mips,
            zero-sized or growing mip dimensions
    """
    header = _read_header(stream)

    table = _read_exact(stream, MIP_ENTRY.size * header.mip_count, "mipmap table")
    entries = [MIP_ENTRY.unpack_from(table, i * MIP_ENTRY.size) for i in range(header.mip_count)]

    mipmaps = []
    prev_width, prev_height = None, None
    for index, (width, height, pitch, data_size) in enumerate(entries):
        if width == 0 or height == 0:
            raise MalformedContainerError(f"Invalid TEX file: mipmap {index} is {width}x{height}")
        if prev_width is not None and (width > prev_width or height > prev_height):
            raise MalformedContainerError(
                f"Invalid TEX file: mipmap {index} ({width}x{height}) is larger than "
                f"mipmap {index - 1} ({prev_width}x{prev_height})"
            )
        data = _read_exact(stream, data_size, f"mipmap {index} data")
        mipmaps.append(MipLevel(width=width, height=height, pitch=pitch, data=data))
        prev_width, prev_height = width, height

    return TexFile(header=header, mipmaps=tuple(mipmaps))


def parse_tex_bytes(data: bytes) -> TexFile:
    """Parse a KTEX container held in memory"""
    return parse_tex(io.BytesIO(data))


def parse_tex_file(filepath: Path) -> TexFile:
    """Parse a KTEX container from disk"""
    with open(filepath, 'rb') as f:
        return parse_tex(f)


def parse_tex_header(filepath: Path) -> Optional[TextureHeader]:
    """
    Read only the 8-byte header of a .tex file.

    Returns:
        TextureHeader, or None if the file is unreadable or not a KTEX file
    """
    try:
        with open(filepath, 'rb') as f:
            return _read_header(f)
    except (OSError, MalformedContainerError):
        return None


def calculate_expected_mipmaps(width: int, height: int) -> int:
    """
    Calculate the length of a full mipmap chain.

    Formula: floor(log2(max(width, height))) + 1

    Examples:
        1024x1024 -> 11 mipmaps (1024, 512, 256, 128, 64, 32, 16, 8, 4, 2, 1)
        256x64 -> 9 mipmaps
    """
    if width <= 0 or height <= 0:
        return 1
    return max(width, height).bit_length()
