"""
Pixel format decoding for KTEX mip levels.

Every decoder returns canonical RGBA8888, row-major, in the order the rows
are stored (the container's bottom-up orientation; flipping is the
caller's job).

Block structures (4x4 pixels per block):
- DXT1: 8 bytes - color0 (RGB565), color1 (RGB565), 32 bits of 2-bit indices.
  color0 > color1 selects four opaque colors, color0 < color1 three colors
  plus transparent black, and color0 == color1 a solid block
- DXT3: 16 bytes - 64 bits of explicit 4-bit alpha, then a DXT1 color block
- DXT5: 16 bytes - alpha0, alpha1, 48 bits of 3-bit indices, then a DXT1 color block

Indices are little-endian, row-major inside the block. Interpolation uses
integer division, matching libsquish.

All decoders work on whole block arrays with NumPy; there is no per-pixel
Python loop.
"""

import numpy as np

from .errors import MalformedContainerError, UnsupportedFormatError
from .tex_parser import PixelFormat


BLOCK_BYTES = {
    PixelFormat.DXT1: 8,
    PixelFormat.DXT3: 16,
    PixelFormat.DXT5: 16,
}

# Bit offsets of each pixel's index within a block
_COLOR_SHIFTS = np.arange(16, dtype=np.uint32) * 2
_DXT3_ALPHA_SHIFTS = np.arange(16, dtype=np.uint64) * 4
_DXT5_ALPHA_SHIFTS = np.arange(16, dtype=np.uint64) * 3


def compressed_size(width: int, height: int, pixel_format: int) -> int:
    """
    Number of payload bytes a mip level of the given size needs.

    Raises:
        UnsupportedFormatError: pixel_format is not DXT1/DXT3/DXT5/ARGB
    """
    if pixel_format == PixelFormat.ARGB:
        return width * height * 4
    if pixel_format not in BLOCK_BYTES:
        raise UnsupportedFormatError(pixel_format)
    blocks_x = (width + 3) // 4
    blocks_y = (height + 3) // 4
    return blocks_x * blocks_y * BLOCK_BYTES[pixel_format]


def _check_payload(raw: bytes, width: int, height: int, pixel_format: int) -> int:
    needed = compressed_size(width, height, pixel_format)
    if len(raw) < needed:
        name = PixelFormat(pixel_format).name
        raise MalformedContainerError(
            f"{name} payload truncated: {width}x{height} needs {needed} bytes, got {len(raw)}"
        )
    return needed


def _unpack_565(colors: np.ndarray) -> np.ndarray:
    """Expand RGB565 values to (..., 3) uint16 RGB888 by bit replication"""
    r = (colors >> 11) & 0x1F
    g = (colors >> 5) & 0x3F
    b = colors & 0x1F
    return np.stack([(r << 3) | (r >> 2), (g << 2) | (g >> 4), (b << 3) | (b >> 2)], axis=-1)


def _color_palettes(blocks: np.ndarray, allow_transparent: bool) -> np.ndarray:
    """
    Build the 4-entry RGBA palette of each color block.

    Args:
        blocks: (N, 8) uint8 color blocks
        allow_transparent: True for DXT1, where color0 <= color1 selects
            three colors plus transparent black

    Returns:
        (N, 4, 4) uint8 palettes
    """
    c0 = blocks[:, 0].astype(np.uint16) | (blocks[:, 1].astype(np.uint16) << 8)
    c1 = blocks[:, 2].astype(np.uint16) | (blocks[:, 3].astype(np.uint16) << 8)

    rgb0 = _unpack_565(c0).astype(np.int32)
    rgb1 = _unpack_565(c1).astype(np.int32)

    count = blocks.shape[0]
    palette = np.empty((count, 4, 4), dtype=np.int32)
    palette[:, 0, :3] = rgb0
    palette[:, 1, :3] = rgb1
    palette[:, :, 3] = 255

    # Four-color mode
    palette[:, 2, :3] = (2 * rgb0 + rgb1) // 3
    palette[:, 3, :3] = (rgb0 + 2 * rgb1) // 3

    if allow_transparent:
        three_color = c0 < c1
        if np.any(three_color):
            palette[three_color, 2, :3] = (rgb0[three_color] + rgb1[three_color]) // 2
            palette[three_color, 3, :] = 0

    # Identical endpoints: solid block, every index maps to color0
    solid = c0 == c1
    if np.any(solid):
        palette[solid] = palette[solid, 0:1, :]

    return palette.astype(np.uint8)


def _color_indices(blocks: np.ndarray) -> np.ndarray:
    """(N, 8) color blocks -> (N, 16) palette indices"""
    bits = (blocks[:, 4].astype(np.uint32) |
            (blocks[:, 5].astype(np.uint32) << 8) |
            (blocks[:, 6].astype(np.uint32) << 16) |
            (blocks[:, 7].astype(np.uint32) << 24))
    return ((bits[:, None] >> _COLOR_SHIFTS) & 0x3).astype(np.intp)


def _decode_color_blocks(blocks: np.ndarray, allow_transparent: bool) -> np.ndarray:
    """(N, 8) color blocks -> (N, 16, 4) RGBA pixels"""
    palette = _color_palettes(blocks, allow_transparent)
    indices = _color_indices(blocks)
    return np.take_along_axis(palette, indices[:, :, None], axis=1)


def _le_uint64(blocks: np.ndarray, start: int, count: int) -> np.ndarray:
    """Assemble `count` little-endian bytes starting at `start` into uint64"""
    value = np.zeros(blocks.shape[0], dtype=np.uint64)
    for i in range(count):
        value |= blocks[:, start + i].astype(np.uint64) << np.uint64(8 * i)
    return value


def dxt3_alpha(blocks: np.ndarray) -> np.ndarray:
    """(N, 8) explicit alpha blocks -> (N, 16) uint8 alpha, low nibble first"""
    bits = _le_uint64(blocks, 0, 8)
    nibbles = (bits[:, None] >> _DXT3_ALPHA_SHIFTS) & np.uint64(0xF)
    return (nibbles * np.uint64(17)).astype(np.uint8)


def dxt5_alpha_ramps(alpha0: np.ndarray, alpha1: np.ndarray) -> np.ndarray:
    """
    Build the 8-entry alpha ramp of each DXT5 block.

    alpha0 > alpha1: 8-step ramp, six interpolated values between the endpoints.
    alpha0 <= alpha1: 6-step ramp, four interpolated values, then 0 and 255.

    Returns:
        (N, 8) int32 ramps
    """
    a0 = alpha0.astype(np.int32)[:, None]
    a1 = alpha1.astype(np.int32)[:, None]

    steps7 = np.arange(1, 7, dtype=np.int32)[None, :]
    steps5 = np.arange(1, 5, dtype=np.int32)[None, :]

    eight = np.empty((a0.shape[0], 8), dtype=np.int32)
    eight[:, 0:1] = a0
    eight[:, 1:2] = a1
    eight[:, 2:8] = ((7 - steps7) * a0 + steps7 * a1) // 7

    six = np.empty_like(eight)
    six[:, 0:1] = a0
    six[:, 1:2] = a1
    six[:, 2:6] = ((5 - steps5) * a0 + steps5 * a1) // 5
    six[:, 6] = 0
    six[:, 7] = 255

    return np.where(a0 > a1, eight, six)


def dxt5_alpha(blocks: np.ndarray) -> np.ndarray:
    """(N, 8) interpolated alpha blocks -> (N, 16) uint8 alpha"""
    ramps = dxt5_alpha_ramps(blocks[:, 0], blocks[:, 1])
    bits = _le_uint64(blocks, 2, 6)
    indices = ((bits[:, None] >> _DXT5_ALPHA_SHIFTS) & np.uint64(0x7)).astype(np.intp)
    return np.take_along_axis(ramps, indices, axis=1).astype(np.uint8)


def _blocks(raw: bytes, width: int, height: int, pixel_format: int) -> np.ndarray:
    """Split a payload into an (N, block_bytes) array, N in row-major block order"""
    needed = _check_payload(raw, width, height, pixel_format)
    arr = np.frombuffer(raw, dtype=np.uint8, count=needed)
    return arr.reshape(-1, BLOCK_BYTES[pixel_format])


def _assemble(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Arrange per-block pixels into an image.

    Args:
        pixels: (N, 16, 4) pixels, blocks in row-major order

    Returns:
        (height, width, 4) array; pixels past the image edge in boundary
        blocks are dropped
    """
    blocks_x = (width + 3) // 4
    blocks_y = (height + 3) // 4
    grid = pixels.reshape(blocks_y, blocks_x, 4, 4, 4)
    image = grid.transpose(0, 2, 1, 3, 4).reshape(blocks_y * 4, blocks_x * 4, 4)
    return np.ascontiguousarray(image[:height, :width])


def decode_dxt1(raw: bytes, width: int, height: int) -> np.ndarray:
    blocks = _blocks(raw, width, height, PixelFormat.DXT1)
    return _assemble(_decode_color_blocks(blocks, allow_transparent=True), width, height)


def decode_dxt3(raw: bytes, width: int, height: int) -> np.ndarray:
    blocks = _blocks(raw, width, height, PixelFormat.DXT3)
    pixels = _decode_color_blocks(blocks[:, 8:16], allow_transparent=False)
    pixels[:, :, 3] = dxt3_alpha(blocks[:, 0:8])
    return _assemble(pixels, width, height)


def decode_dxt5(raw: bytes, width: int, height: int) -> np.ndarray:
    blocks = _blocks(raw, width, height, PixelFormat.DXT5)
    pixels = _decode_color_blocks(blocks[:, 8:16], allow_transparent=False)
    pixels[:, :, 3] = dxt5_alpha(blocks[:, 0:8])
    return _assemble(pixels, width, height)


def decode_argb(raw: bytes, width: int, height: int) -> np.ndarray:
    """Reorder stored A,R,G,B bytes into R,G,B,A"""
    needed = _check_payload(raw, width, height, PixelFormat.ARGB)
    argb = np.frombuffer(raw, dtype=np.uint8, count=needed).reshape(height, width, 4)
    return np.ascontiguousarray(argb[:, :, [1, 2, 3, 0]])


_DECODERS = {
    PixelFormat.DXT1: decode_dxt1,
    PixelFormat.DXT3: decode_dxt3,
    PixelFormat.DXT5: decode_dxt5,
    PixelFormat.ARGB: decode_argb,
}


def decode_array(raw: bytes, width: int, height: int, pixel_format: int) -> np.ndarray:
    """
    Decode one mip level into a (height, width, 4) uint8 RGBA array.

    Raises:
        UnsupportedFormatError: pixel_format is not DXT1/DXT3/DXT5/ARGB
        MalformedContainerError: raw is shorter than the format requires
    """
    decoder = _DECODERS.get(pixel_format)
    if decoder is None:
        raise UnsupportedFormatError(pixel_format)
    return decoder(raw, width, height)


def decode(raw: bytes, width: int, height: int, pixel_format: int) -> bytes:
    """
    Decode one mip level into an RGBA byte buffer of length width*height*4.

    Args:
        raw: Mip level payload (not modified)
        width: Mip width in pixels
        height: Mip height in pixels
        pixel_format: PixelFormat value from the container header

    Returns:
        RGBA bytes, row-major, in stored row order
    """
    return decode_array(raw, width, height, pixel_format).tobytes()
