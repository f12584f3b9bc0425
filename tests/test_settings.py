import json

import pytest

from textool.settings import ToolSettings, load_settings, save_settings, settings_from_dict


def test_defaults():
    settings = ToolSettings()
    assert settings.atlas_extension == "xml"
    assert settings.atlas_margin == 0.5
    assert settings.progress_rows == 32
    assert settings.output_format == "PNG"
    assert settings.unpremultiply_alpha is False


def test_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = ToolSettings(atlas_extension="atlas", progress_rows=8, unpremultiply_alpha=True)

    save_settings(settings, path)

    assert load_settings(path) == settings
    assert json.loads(path.read_text())["progress_rows"] == 8


def test_unknown_keys_ignored():
    settings = settings_from_dict({"output_format": "TGA", "thread_count": 4})
    assert settings.output_format == "TGA"


def test_progress_rows_must_be_positive():
    with pytest.raises(ValueError):
        ToolSettings(progress_rows=0)
