"""Decode Klei TEX (KTEX) textures and map atlas UVs to pixel rectangles"""

from .errors import (
    TexToolError,
    MalformedContainerError,
    UnsupportedFormatError,
    AtlasEntryParseError,
)
from .tex_parser import (
    Platform,
    PixelFormat,
    TextureType,
    TextureHeader,
    MipLevel,
    TexFile,
    parse_tex,
    parse_tex_bytes,
    parse_tex_file,
    parse_tex_header,
    is_legacy_variant,
)
from .pixel_decoder import decode, decode_array, compressed_size
from .image import DecodedImage, flip_vertical
from .atlas import (
    AtlasEntry,
    AtlasRect,
    atlas_path_for,
    read_atlas_entries,
    map_entry,
    map_all,
)
from .settings import ToolSettings, load_settings, save_settings
from .tool import TexTool, FileOpenedInfo, DecodeResult
from .output import save_image, extract_atlas_elements

__all__ = [
    # Errors
    'TexToolError',
    'MalformedContainerError',
    'UnsupportedFormatError',
    'AtlasEntryParseError',
    # Container parsing
    'Platform',
    'PixelFormat',
    'TextureType',
    'TextureHeader',
    'MipLevel',
    'TexFile',
    'parse_tex',
    'parse_tex_bytes',
    'parse_tex_file',
    'parse_tex_header',
    'is_legacy_variant',
    # Pixel decoding
    'decode',
    'decode_array',
    'compressed_size',
    'DecodedImage',
    'flip_vertical',
    # Atlas mapping
    'AtlasEntry',
    'AtlasRect',
    'atlas_path_for',
    'read_atlas_entries',
    'map_entry',
    'map_all',
    # Settings
    'ToolSettings',
    'load_settings',
    'save_settings',
    # Orchestration
    'TexTool',
    'FileOpenedInfo',
    'DecodeResult',
    # Output
    'save_image',
    'extract_atlas_elements',
]
