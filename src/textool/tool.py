"""
Decode orchestration: container -> main mipmap -> RGBA -> atlas rects -> flipped image.

TexTool reports what it is doing through three optional callbacks, all
called synchronously on the calling thread:

- on_opened(info): once the header and main mipmap are known, before decoding
- on_progress(percent): while the canonical buffer is assembled, non-decreasing, ends at 100
- on_decoded(image, rects): once the image and atlas rects are ready

Callers that need these on another thread (e.g. a Tk main loop) marshal
them themselves.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

import numpy as np

from .atlas import AtlasRect, atlas_path_for, load_atlas
from .errors import MalformedContainerError, UnsupportedFormatError
from .image import DecodedImage
from .pixel_decoder import decode_array
from .settings import ToolSettings
from .tex_parser import TexFile, is_legacy_variant, parse_tex
from .utils import describe_pixel_format, describe_platform, describe_texture_type


logger = logging.getLogger(__name__)


@dataclass
class FileOpenedInfo:
    """Header summary reported before decoding starts"""
    filename: str
    platform: str
    format: str
    texture_type: str
    mipmaps: int
    width: int
    height: int
    pre_cave: bool = False  # legacy header layout

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class DecodeResult:
    """Everything produced by one TexTool.open_file call"""
    info: FileOpenedInfo
    image: DecodedImage
    atlas: List[AtlasRect] = field(default_factory=list)


def describe_tex(filename: str, tex: TexFile) -> FileOpenedInfo:
    header = tex.header
    mipmap = tex.main_mipmap
    return FileOpenedInfo(
        filename=filename,
        platform=describe_platform(header.platform),
        format=describe_pixel_format(header.pixel_format),
        texture_type=describe_texture_type(header.texture_type),
        mipmaps=header.mip_count,
        width=mipmap.width,
        height=mipmap.height,
        pre_cave=is_legacy_variant(header),
    )


class TexTool:
    """Decodes KTEX files into top-left-origin RGBA images plus atlas rects"""

    def __init__(self, settings: ToolSettings = None,
                 on_opened: Optional[Callable[[FileOpenedInfo], None]] = None,
                 on_decoded: Optional[Callable[[DecodedImage, List[AtlasRect]], None]] = None,
                 on_progress: Optional[Callable[[int], None]] = None):
        self.settings = settings or ToolSettings()
        self.on_opened = on_opened
        self.on_decoded = on_decoded
        self.on_progress = on_progress

    def open_path(self, path: Path) -> DecodeResult:
        """Open and decode a .tex file from disk. The file is closed on every exit path."""
        path = Path(path)
        with open(path, 'rb') as stream:
            return self.open_file(str(path), stream)

    def open_file(self, filename: str, stream: BinaryIO) -> DecodeResult:
        """
        Decode a KTEX stream.

        Args:
            filename: Name of the source file; used to find the atlas
                document next to it and in error messages
            stream: Binary stream positioned at the KTEX magic

        Returns:
            DecodeResult with the canonical image and sorted atlas rects

        Raises:
            MalformedContainerError: the container could not be parsed
            UnsupportedFormatError: the pixel format cannot be decoded
        """
        try:
            tex = parse_tex(stream)
        except MalformedContainerError as e:
            raise MalformedContainerError(f"{filename}: failed to parse container: {e}") from e

        mipmap = tex.main_mipmap
        info = describe_tex(filename, tex)
        logger.debug("Opened %s: %s %s %s, %d mipmap(s)%s", filename, info.platform, info.format,
                     info.size, info.mipmaps, " (pre-caves header)" if info.pre_cave else "")

        if self.on_opened:
            self.on_opened(info)

        try:
            rgba = decode_array(mipmap.data, mipmap.width, mipmap.height, tex.header.pixel_format)
        except UnsupportedFormatError as e:
            raise UnsupportedFormatError(e.pixel_format, f"{filename}: failed to decode pixels: {e}") from e
        except MalformedContainerError as e:
            raise MalformedContainerError(f"{filename}: failed to decode pixels: {e}") from e

        rects = self._read_atlas(filename, mipmap.width, mipmap.height)

        image = DecodedImage(mipmap.width, mipmap.height, self._build_canonical(rgba))
        logger.debug("Decoded %s: %d atlas element(s)", filename, len(rects))

        if self.on_decoded:
            self.on_decoded(image, rects)

        return DecodeResult(info=info, image=image, atlas=rects)

    def _read_atlas(self, filename: str, width: int, height: int) -> List[AtlasRect]:
        texture_path = Path(filename)
        if not texture_path.name:
            # In-memory streams may have no file name, so no atlas next to them
            return []
        atlas_path = atlas_path_for(texture_path, self.settings.atlas_extension)
        if not atlas_path.is_file():
            return []
        logger.debug("Reading atlas %s", atlas_path)
        return load_atlas(atlas_path, width, height, self.settings.atlas_margin)

    def _build_canonical(self, rgba: np.ndarray) -> bytes:
        """
        Copy rows into a new buffer in reverse order (bottom-up -> top-down),
        reporting progress every settings.progress_rows rows.
        """
        height = rgba.shape[0]
        step = self.settings.progress_rows
        out = np.empty_like(rgba)

        for start in range(0, height, step):
            end = min(start + step, height)
            out[start:end] = rgba[height - end:height - start][::-1]
            if self.on_progress:
                self.on_progress(end * 100 // height)

        return out.tobytes()
