"""Settings for decoding and exporting textures"""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from .atlas import DEFAULT_ATLAS_EXTENSION, DEFAULT_MARGIN


@dataclass
class ToolSettings:
    """Configuration for TexTool and the output writers"""

    # Atlas handling
    atlas_extension: str = DEFAULT_ATLAS_EXTENSION
    atlas_margin: float = DEFAULT_MARGIN

    # Rows assembled between progress notifications
    progress_rows: int = 32

    # Output settings
    output_format: str = "PNG"
    unpremultiply_alpha: bool = False  # Klei textures are usually premultiplied

    def __post_init__(self):
        if self.progress_rows < 1:
            raise ValueError(f"progress_rows must be at least 1, got {self.progress_rows}")

    def to_dict(self) -> dict:
        """Convert settings to dictionary for JSON export"""
        return asdict(self)


def settings_from_dict(settings_dict: dict) -> ToolSettings:
    """Load ToolSettings from dictionary. Unknown keys are ignored."""
    known = {f.name for f in fields(ToolSettings)}
    return ToolSettings(**{k: v for k, v in settings_dict.items() if k in known})


def load_settings(settings_path: Path) -> ToolSettings:
    with open(settings_path, 'r', encoding='utf-8') as f:
        return settings_from_dict(json.load(f))


def save_settings(settings: ToolSettings, settings_path: Path) -> None:
    with open(settings_path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2)
