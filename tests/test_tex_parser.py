import io
import struct

import pytest

from textool.errors import MalformedContainerError
from textool.tex_parser import (
    PixelFormat,
    Platform,
    TextureType,
    calculate_expected_mipmaps,
    is_legacy_variant,
    parse_tex,
    parse_tex_bytes,
    parse_tex_file,
    parse_tex_header,
    unpack_header,
)

from tex_builders import build_tex, pack_header, pack_legacy_header, solid_dxt1


def test_parses_header_fields():
    data = build_tex([(4, 4, solid_dxt1(0xF800))], pixel_format=PixelFormat.DXT1,
                     platform=Platform.PC, texture_type=TextureType.TWO_D)

    tex = parse_tex(io.BytesIO(data))

    assert tex.header.platform == Platform.PC
    assert tex.header.pixel_format == PixelFormat.DXT1
    assert tex.header.texture_type == TextureType.TWO_D
    assert tex.header.mip_count == 1
    assert not is_legacy_variant(tex.header)


def test_mip_chain_order_and_data_preserved():
    mip0 = solid_dxt1(0x001F, blocks=4)
    mip1 = solid_dxt1(0x07E0)
    mip2 = solid_dxt1(0xF800)
    data = build_tex([(8, 8, mip0), (4, 4, mip1), (2, 2, mip2)], pixel_format=PixelFormat.DXT1)

    tex = parse_tex_bytes(data)

    assert tex.header.mip_count == 3
    assert [(m.width, m.height) for m in tex.mipmaps] == [(8, 8), (4, 4), (2, 2)]
    assert [m.data for m in tex.mipmaps] == [mip0, mip1, mip2]
    assert tex.main_mipmap is tex.mipmaps[0]
    assert tex.main_mipmap.pitch == 32


def test_mip_dimensions_non_increasing():
    mips = [(16, 8, solid_dxt1(0, 8)), (8, 4, solid_dxt1(0, 2)), (4, 2, solid_dxt1(0)),
            (2, 1, solid_dxt1(0)), (1, 1, solid_dxt1(0))]
    tex = parse_tex_bytes(build_tex(mips, pixel_format=PixelFormat.DXT1))

    assert tex.header.mip_count >= 1
    for larger, smaller in zip(tex.mipmaps, tex.mipmaps[1:]):
        assert smaller.width <= larger.width
        assert smaller.height <= larger.height


def test_bad_magic():
    data = b'DDS ' + build_tex([(4, 4, solid_dxt1(0))], pixel_format=0)[4:]
    with pytest.raises(MalformedContainerError, match="magic"):
        parse_tex_bytes(data)


def test_truncated_header():
    with pytest.raises(MalformedContainerError):
        parse_tex_bytes(b'KTEX\x00')


def test_empty_stream():
    with pytest.raises(MalformedContainerError):
        parse_tex_bytes(b'')


def test_header_claims_more_mips_than_present():
    # numMips=2 but only one mip record follows
    data = build_tex([(4, 4, solid_dxt1(0))], pixel_format=PixelFormat.DXT1, mip_count=2)
    with pytest.raises(MalformedContainerError):
        parse_tex_bytes(data)


def test_missing_mip_data():
    data = build_tex([(4, 4, solid_dxt1(0)), (2, 2, solid_dxt1(0))], pixel_format=PixelFormat.DXT1)
    with pytest.raises(MalformedContainerError, match="mipmap 1"):
        parse_tex_bytes(data[:-4])


def test_zero_mips():
    data = b'KTEX' + struct.pack('<I', pack_header(PixelFormat.DXT1, 0))
    with pytest.raises(MalformedContainerError, match="zero mipmaps"):
        parse_tex_bytes(data)


def test_zero_sized_mip():
    data = build_tex([(0, 4, b'')], pixel_format=PixelFormat.DXT1)
    with pytest.raises(MalformedContainerError):
        parse_tex_bytes(data)


def test_growing_mip_chain_is_malformed():
    data = build_tex([(4, 4, solid_dxt1(0)), (8, 8, solid_dxt1(0, 4))], pixel_format=PixelFormat.DXT1)
    with pytest.raises(MalformedContainerError, match="larger"):
        parse_tex_bytes(data)


def test_blob_size_comes_from_mip_record():
    # Padded blobs are kept as stored, not trimmed to a computed size
    padded = solid_dxt1(0) + b'\x00' * 8
    tex = parse_tex_bytes(build_tex([(4, 4, padded)], pixel_format=PixelFormat.DXT1))
    assert tex.main_mipmap.data == padded


def test_legacy_header_layout():
    word = pack_legacy_header(PixelFormat.DXT5, 3, platform=2, texture_type=TextureType.TWO_D, flags=1)
    header = unpack_header(word)

    assert is_legacy_variant(header)
    assert header.platform == 2
    assert header.pixel_format == PixelFormat.DXT5
    assert header.texture_type == TextureType.TWO_D
    assert header.mip_count == 3
    assert header.flags == 1


def test_legacy_header_with_all_ones_fill():
    # The old fill covers bits 14-31, so bits 20-31 also read as 0xFFF
    word = pack_legacy_header(PixelFormat.DXT5, 3, platform=2)
    assert (word >> 20) & 0xFFF == 0xFFF

    header = unpack_header(word)

    assert is_legacy_variant(header)
    assert header.pixel_format == PixelFormat.DXT5
    assert header.mip_count == 3
    assert header.texture_type == TextureType.TWO_D
    assert header.fill == 0x3FFFF


def test_legacy_header_without_fill():
    header = unpack_header(pack_legacy_header(PixelFormat.DXT1, 5, fill=0))
    assert is_legacy_variant(header)
    assert header.pixel_format == PixelFormat.DXT1
    assert header.mip_count == 5


@pytest.mark.parametrize("mip_count,flags", [(1, 0), (13, 3), (16, 3), (29, 3), (31, 2)])
def test_current_header_never_mistaken_for_legacy(mip_count, flags):
    header = unpack_header(pack_header(PixelFormat.DXT5, mip_count, flags=flags))
    assert not is_legacy_variant(header)
    assert header.mip_count == mip_count
    assert header.flags == flags


def test_legacy_container_parses():
    word = pack_legacy_header(PixelFormat.ARGB, 1)
    data = build_tex([(1, 1, bytes(4))], pixel_format=PixelFormat.ARGB, header_word=word)

    tex = parse_tex_bytes(data)

    assert is_legacy_variant(tex.header)
    assert tex.header.pixel_format == PixelFormat.ARGB
    assert tex.main_mipmap.data == bytes(4)


def test_current_header_layout():
    header = unpack_header(pack_header(PixelFormat.DXT3, 11, platform=Platform.PS3,
                                       texture_type=TextureType.CUBEMAP, flags=2))
    assert not is_legacy_variant(header)
    assert header.platform == Platform.PS3
    assert header.pixel_format == PixelFormat.DXT3
    assert header.texture_type == TextureType.CUBEMAP
    assert header.mip_count == 11
    assert header.flags == 2


def test_unknown_pixel_format_is_not_a_parse_error():
    # Parsing succeeds; rejecting the format is the decoder's job
    tex = parse_tex_bytes(build_tex([(1, 1, bytes(4))], pixel_format=7))
    assert tex.header.pixel_format == 7


def test_parse_tex_file(tmp_path):
    path = tmp_path / "a.tex"
    path.write_bytes(build_tex([(4, 4, solid_dxt1(0))], pixel_format=PixelFormat.DXT1))
    assert parse_tex_file(path).main_mipmap.width == 4


def test_parse_tex_header(tmp_path):
    good = tmp_path / "good.tex"
    good.write_bytes(build_tex([(4, 4, solid_dxt1(0))], pixel_format=PixelFormat.DXT5))
    bad = tmp_path / "bad.tex"
    bad.write_bytes(b'not a texture')

    assert parse_tex_header(good).pixel_format == PixelFormat.DXT5
    assert parse_tex_header(bad) is None
    assert parse_tex_header(tmp_path / "missing.tex") is None


@pytest.mark.parametrize("width,height,expected", [
    (1024, 1024, 11),
    (256, 64, 9),
    (1, 1, 1),
    (0, 16, 1),
])
def test_calculate_expected_mipmaps(width, height, expected):
    assert calculate_expected_mipmaps(width, height) == expected


class TrickleStream:
    """Returns at most a few bytes per read, like a raw pipe"""

    def __init__(self, data: bytes, chunk: int = 3):
        self._data = data
        self._pos = 0
        self._chunk = chunk

    def read(self, size: int = -1) -> bytes:
        size = min(size, self._chunk)
        out = self._data[self._pos:self._pos + size]
        self._pos += len(out)
        return out


def test_short_reads_are_retried():
    mip = solid_dxt1(0x07E0, blocks=4)
    data = build_tex([(8, 8, mip), (4, 4, solid_dxt1(0))], pixel_format=PixelFormat.DXT1)

    tex = parse_tex(TrickleStream(data))

    assert tex.header.mip_count == 2
    assert tex.main_mipmap.data == mip
    assert isinstance(tex.main_mipmap.data, bytes)


def test_short_reads_still_detect_truncation():
    data = build_tex([(8, 8, solid_dxt1(0, blocks=4))], pixel_format=PixelFormat.DXT1)
    with pytest.raises(MalformedContainerError, match="mipmap 0"):
        parse_tex(TrickleStream(data[:-1]))
