import pytest

from tex_builders import build_tex


# 2x2 ARGB image, rows stored bottom-up:
#   stored row 0: red, green
#   stored row 1: blue, white (half alpha)
ARGB_2X2 = bytes([
    255, 255, 0, 0,    255, 0, 255, 0,
    255, 0, 0, 255,    128, 255, 255, 255,
])


@pytest.fixture
def argb_tex_bytes():
    return build_tex([(2, 2, ARGB_2X2), (1, 1, bytes([255, 1, 2, 3]))], pixel_format=3)


@pytest.fixture
def argb_tex_path(tmp_path, argb_tex_bytes):
    path = tmp_path / "sprite.tex"
    path.write_bytes(argb_tex_bytes)
    return path
