"""Exception types raised while decoding Klei TEX textures"""


class TexToolError(Exception):
    """Base class for all textool errors"""


class MalformedContainerError(TexToolError):
    """The KTEX container is truncated, has a bad magic, or an inconsistent mip table"""


class UnsupportedFormatError(TexToolError):
    """The pixel format is not one of DXT1, DXT3, DXT5 or ARGB"""

    def __init__(self, pixel_format: int, message: str = None):
        self.pixel_format = pixel_format
        super().__init__(message or f"Unsupported pixel format: {pixel_format}")


class AtlasEntryParseError(TexToolError):
    """A single atlas element is missing an attribute or has a non-numeric value"""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)
