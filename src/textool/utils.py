"""Display names and small helpers shared by the tool and the CLI"""

from .tex_parser import Platform, PixelFormat, TextureType


def format_size(bytes_size: int) -> str:
    """Format byte count in human-readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def format_time(seconds: float) -> str:
    """Format time in human-readable format"""
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


# Enum value -> display string
PLATFORM_NAMES = {
    Platform.DEFAULT: 'Default',
    Platform.PC: 'PC',
    Platform.PS3: 'PS3',
    Platform.XBOX360: 'Xbox 360',
}

PIXEL_FORMAT_NAMES = {
    PixelFormat.DXT1: 'DXT1',
    PixelFormat.DXT3: 'DXT3',
    PixelFormat.DXT5: 'DXT5',
    PixelFormat.ARGB: 'ARGB',
}

TEXTURE_TYPE_NAMES = {
    TextureType.ONE_D: '1D',
    TextureType.TWO_D: '2D',
    TextureType.THREE_D: '3D',
    TextureType.CUBEMAP: 'Cube Mapped',
}


def describe_platform(value: int) -> str:
    return PLATFORM_NAMES.get(value, f'Unknown ({value})')


def describe_pixel_format(value: int) -> str:
    return PIXEL_FORMAT_NAMES.get(value, f'Unknown ({value})')


def describe_texture_type(value: int) -> str:
    return TEXTURE_TYPE_NAMES.get(value, f'Unknown ({value})')
