"""Canonical decoded image"""

from dataclasses import dataclass

import numpy as np


def flip_vertical(pixels: bytes, width: int, height: int) -> bytes:
    """
    Reverse the row order of an RGBA buffer. Columns are untouched.

    Flipping twice returns the original buffer.
    """
    rows = np.frombuffer(pixels, dtype=np.uint8, count=width * height * 4).reshape(height, width * 4)
    return rows[::-1].tobytes()


@dataclass(frozen=True)
class DecodedImage:
    """RGBA8888 pixels, row-major, top-left origin"""
    width: int
    height: int
    pixels: bytes

    def __post_init__(self):
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer is {len(self.pixels)} bytes, expected {expected} for {self.width}x{self.height}"
            )

    @property
    def size(self) -> tuple:
        return self.width, self.height

    def to_array(self) -> np.ndarray:
        """Read-only (height, width, 4) view of the pixels"""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)

    def pixel(self, x: int, y: int) -> tuple:
        o = (y * self.width + x) * 4
        return tuple(self.pixels[o:o + 4])

    def flipped(self) -> 'DecodedImage':
        return DecodedImage(self.width, self.height, flip_vertical(self.pixels, self.width, self.height))
