"""
Writing decoded images with Pillow.

Covers the full image and per-element crops of an atlas. Klei textures are
commonly stored with premultiplied alpha; unpremultiplying is optional and
applied to the written pixels only.
"""

import logging
import math
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import numpy as np
from PIL import Image

from .atlas import AtlasRect, DEFAULT_MARGIN
from .image import DecodedImage


logger = logging.getLogger(__name__)


def unpremultiply_alpha(rgba: np.ndarray) -> np.ndarray:
    """
    Convert premultiplied RGBA to straight alpha.

    Fully transparent and fully opaque pixels are left unchanged.

    Args:
        rgba: (..., 4) uint8 array (not modified)

    Returns:
        New (..., 4) uint8 array
    """
    out = rgba.copy()
    alpha = rgba[..., 3].astype(np.uint32)
    partial = (alpha > 0) & (alpha < 255)
    if np.any(partial):
        rgb = rgba[..., :3][partial].astype(np.uint32)
        a = alpha[partial][:, None]
        out[..., :3][partial] = np.minimum(255, (rgb * 255) // a).astype(np.uint8)
    return out


def to_pil_image(image: DecodedImage, unpremultiply: bool = False) -> Image.Image:
    """Wrap a DecodedImage as an RGBA PIL image"""
    pixels = image.pixels
    if unpremultiply:
        pixels = unpremultiply_alpha(image.to_array()).tobytes()
    return Image.frombytes("RGBA", (image.width, image.height), pixels)


def save_image(image: DecodedImage, output_path: Path, image_format: Optional[str] = None,
               unpremultiply: bool = False) -> Path:
    """
    Write a decoded image to disk.

    Args:
        image: Canonical decoded image
        output_path: Destination file; parent directories are created
        image_format: Pillow format name (e.g. "PNG"); None infers it from the suffix
        unpremultiply: Convert to straight alpha before writing

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    to_pil_image(image, unpremultiply).save(output_path, format=image_format)
    return output_path


def crop_box(rect: AtlasRect, width: int, height: int,
             margin: float = DEFAULT_MARGIN) -> Optional[Tuple[int, int, int, int]]:
    """
    Convert an atlas rect into an integer crop box (left, top, right, bottom).

    The margin is added back to recover the UV edges, which are then rounded
    to the nearest pixel boundary and clamped to the image.

    Returns:
        Box in PIL convention (right/bottom exclusive), or None if empty
        or not finite
    """
    bounds = (rect.left, rect.right, rect.top, rect.bottom)
    if not all(math.isfinite(v) for v in bounds):
        return None

    xs = sorted((rect.left + margin, rect.right + margin))
    ys = sorted((rect.top + margin, rect.bottom + margin))

    left = min(width, max(0, math.floor(xs[0] + 0.5)))
    right = min(width, max(0, math.floor(xs[1] + 0.5)))
    top = min(height, max(0, math.floor(ys[0] + 0.5)))
    bottom = min(height, max(0, math.floor(ys[1] + 0.5)))

    if right <= left or bottom <= top:
        return None
    return left, top, right, bottom


def _element_filename(name: str, used: set, extension: str) -> str:
    stem = Path(name.replace("\\", "/")).stem or "element"
    candidate = stem
    counter = 1
    while candidate.lower() in used:
        candidate = f"{stem}_{counter}"
        counter += 1
    used.add(candidate.lower())
    return f"{candidate}.{extension}"


def extract_atlas_elements(image: DecodedImage, rects: Iterable[AtlasRect], output_dir: Path,
                           image_format: str = "PNG", unpremultiply: bool = False,
                           margin: float = DEFAULT_MARGIN) -> List[Path]:
    """
    Write one image per atlas element.

    Elements with duplicate names each get their own file (name, name_1, ...).
    Elements whose box is empty after clamping are skipped with a warning.

    Returns:
        Paths written, in rect order
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    source = to_pil_image(image, unpremultiply)
    extension = image_format.lower()
    used = set()
    written = []

    for rect in rects:
        box = crop_box(rect, image.width, image.height, margin)
        if box is None:
            logger.warning("Atlas element %r has no area inside the %dx%d image, skipping",
                           rect.name, image.width, image.height)
            continue

        out_path = output_dir / _element_filename(rect.name, used, extension)
        source.crop(box).save(out_path, format=image_format)
        written.append(out_path)

    return written
