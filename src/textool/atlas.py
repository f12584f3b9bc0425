"""
Atlas metadata: reading Klei atlas XML and mapping UVs to pixel rectangles.

Atlas XML layout:
    <Atlas>
        <Texture filename="inventoryimages.tex" />
        <Elements>
            <Element name="axe.tex" u1="0.0009" u2="0.0615" v1="0.9384" v2="0.9990" />
            ...
        </Elements>
    </Atlas>

Atlas v coordinates count up from the bottom of the texture. Decoded images
are flipped to a top-left origin, so v is inverted before scaling.
"""

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np

from .errors import AtlasEntryParseError


logger = logging.getLogger(__name__)

DEFAULT_ATLAS_EXTENSION = "xml"
DEFAULT_MARGIN = 0.5

UV_ATTRIBUTES = ("u1", "u2", "v1", "v2")


@dataclass(frozen=True)
class AtlasEntry:
    """An <Element> as read from the document, attribute values still text"""
    name: Optional[str]
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AtlasRect:
    """
    Pixel-space bounds of one atlas element.

    Values are single precision and may be fractional, negative, or past
    the image edge by up to the margin.
    """
    name: str
    left: float
    right: float
    top: float
    bottom: float


def atlas_path_for(texture_path: Path, extension: str = DEFAULT_ATLAS_EXTENSION) -> Path:
    """Atlas document next to a texture: same directory and base name, other extension"""
    return Path(texture_path).with_suffix("." + extension.lstrip("."))


def _find_first(root: ET.Element, tag: str) -> Optional[ET.Element]:
    # Namespace-tolerant lookup
    if root.tag.split("}")[-1] == tag:
        return root
    return root.find(f".//{{*}}{tag}")


def _load_root(path: Path) -> Optional[ET.Element]:
    try:
        return ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        logger.warning("Could not read atlas document %s: %s", path, e)
        return None


def read_atlas_entries(path: Path) -> List[AtlasEntry]:
    """
    Read the <Elements> children of an atlas document.

    Returns:
        Entries in document order. An unreadable document, or one without
        an <Elements> node, yields an empty list.
    """
    root = _load_root(path)
    if root is None:
        return []

    elements = _find_first(root, "Elements")
    if elements is None:
        logger.warning("Atlas document %s has no <Elements> node", path)
        return []

    return [AtlasEntry(name=child.get("name"), attributes=dict(child.attrib)) for child in elements]


def read_atlas_texture_name(path: Path) -> Optional[str]:
    """The <Texture filename="..."> value, or None"""
    root = _load_root(path)
    if root is None:
        return None
    texture = _find_first(root, "Texture")
    if texture is None:
        return None
    return texture.get("filename") or None


def _parse_uv(entry: AtlasEntry, key: str) -> float:
    value = entry.attributes.get(key)
    if value is None:
        raise AtlasEntryParseError(entry.name, f"Atlas element {entry.name!r} is missing '{key}'")
    try:
        number = float(value.strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number):
        raise AtlasEntryParseError(entry.name, f"Atlas element {entry.name!r} has non-numeric {key}={value!r}")
    return number


def _to_single(value: float) -> float:
    # Out-of-range values become inf and are rejected by map_entry
    with np.errstate(over="ignore"):
        return float(np.float32(value))


def map_entry(entry: AtlasEntry, width: int, height: int, margin: float = DEFAULT_MARGIN) -> AtlasRect:
    """
    Convert one element's UVs into pixel bounds.

    v is inverted first (v = 1 - v), then every bound is scaled and shifted
    by the same half-pixel margin: coord = uv * dimension - margin. Nothing
    is clamped.

    Raises:
        AtlasEntryParseError: missing name or attribute, or a value that is
            non-numeric or not finite
    """
    if not entry.name:
        raise AtlasEntryParseError(entry.name, "Atlas element has no name")

    u1, u2, v1, v2 = (_parse_uv(entry, key) for key in UV_ATTRIBUTES)

    v1 = 1 - v1
    v2 = 1 - v2

    rect = AtlasRect(
        name=entry.name,
        left=_to_single(u1 * width - margin),
        right=_to_single(u2 * width - margin),
        top=_to_single(v1 * height - margin),
        bottom=_to_single(v2 * height - margin),
    )
    if not all(math.isfinite(v) for v in (rect.left, rect.right, rect.top, rect.bottom)):
        raise AtlasEntryParseError(entry.name, f"Atlas element {entry.name!r} is out of single precision range")
    return rect


def map_all(entries: Iterable[AtlasEntry], width: int, height: int,
            margin: float = DEFAULT_MARGIN) -> List[AtlasRect]:
    """
    Map every entry and sort the result by name.

    Entries that fail to parse are logged and dropped; the rest are still
    mapped. Duplicate names are kept. The sort is stable and ordinal, so
    duplicates stay in document order.
    """
    rects = []
    for entry in entries:
        try:
            rects.append(map_entry(entry, width, height, margin))
        except AtlasEntryParseError as e:
            logger.warning("Skipping atlas element: %s", e)

    return sorted(rects, key=lambda rect: rect.name)


def load_atlas(path: Path, width: int, height: int, margin: float = DEFAULT_MARGIN) -> List[AtlasRect]:
    """Read an atlas document and map it onto a width x height image"""
    return map_all(read_atlas_entries(path), width, height, margin)
