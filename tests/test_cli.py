from PIL import Image

from textool.cli import build_parser, main

from tex_builders import atlas_xml, build_tex, solid_dxt1


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_parser_commands():
    args = build_parser().parse_args(["batch", "in", "out", "--atlas", "--blacklist", "minimap"])
    assert args.command == "batch"
    assert args.atlas is True
    assert args.blacklist == ["minimap"]


def test_info(argb_tex_path, capsys):
    assert main(["info", str(argb_tex_path)]) == 0

    out = capsys.readouterr().out
    assert "Platform: PC" in out
    assert "Format: ARGB" in out
    assert "Size: 2x2" in out
    assert "Mipmaps: 2" in out
    assert "Pre-caves header: no" in out


def test_info_reports_errors(tmp_path, capsys):
    bad = tmp_path / "bad.tex"
    bad.write_bytes(b'nope')

    assert main(["info", str(bad)]) == 1
    assert "Error:" in capsys.readouterr().out


def test_convert_default_output(argb_tex_path, capsys):
    assert main(["convert", str(argb_tex_path)]) == 0

    output = argb_tex_path.with_suffix(".png")
    assert output.is_file()
    with Image.open(output) as image:
        assert image.convert("RGBA").getpixel((0, 0)) == (0, 0, 255, 255)
    assert "Saved image to:" in capsys.readouterr().out


def test_convert_with_atlas(argb_tex_path, tmp_path, capsys):
    argb_tex_path.with_suffix(".xml").write_text(atlas_xml([
        {"name": "left.tex", "u1": "0", "u2": "0.5", "v1": "0", "v2": "1"},
        {"name": "right.tex", "u1": "0.5", "u2": "1", "v1": "0", "v2": "1"},
    ]))
    output = tmp_path / "out" / "sprite.png"
    atlas_dir = tmp_path / "out" / "sprite"

    assert main(["convert", str(argb_tex_path), "-o", str(output), "--atlas-dir", str(atlas_dir)]) == 0

    assert output.is_file()
    assert sorted(p.name for p in atlas_dir.iterdir()) == ["left.png", "right.png"]
    assert "Saved 2 atlas element(s)" in capsys.readouterr().out


def test_convert_reports_errors(tmp_path, capsys):
    assert main(["convert", str(tmp_path / "missing.tex")]) == 1
    assert "Error:" in capsys.readouterr().out


def test_batch(argb_tex_path, tmp_path, capsys):
    source = argb_tex_path.parent
    (source / "broken.tex").write_bytes(b'KTEX')
    output = tmp_path / "converted"

    assert main(["batch", str(source), str(output)]) == 1

    out = capsys.readouterr().out
    assert "Found 2 texture(s)" in out
    assert "Converted: 1" in out
    assert "Failed: 1" in out
    assert (output / "sprite.png").is_file()


def test_batch_missing_input(tmp_path, capsys):
    assert main(["batch", str(tmp_path / "nope"), str(tmp_path / "out")]) == 1
    assert "does not exist" in capsys.readouterr().out


def test_convert_skips_non_finite_atlas_entries(argb_tex_path, tmp_path, capsys):
    argb_tex_path.with_suffix(".xml").write_text(atlas_xml([
        {"name": "left.tex", "u1": "0", "u2": "0.5", "v1": "0", "v2": "1"},
        {"name": "nan.tex", "u1": "nan", "u2": "0.5", "v1": "0", "v2": "1"},
        {"name": "inf.tex", "u1": "0", "u2": "inf", "v1": "0", "v2": "1"},
    ]))
    atlas_dir = tmp_path / "elements"

    assert main(["convert", str(argb_tex_path), "--atlas-dir", str(atlas_dir)]) == 0

    assert [p.name for p in atlas_dir.iterdir()] == ["left.png"]
    assert "Saved 1 atlas element(s)" in capsys.readouterr().out


def test_info_uses_ktex_format_names(tmp_path, capsys):
    path = tmp_path / "dxt.tex"
    path.write_bytes(build_tex([(4, 4, solid_dxt1(0xF800))], pixel_format=0))

    assert main(["info", str(path)]) == 0

    out = capsys.readouterr().out
    assert "Format: DXT1\n" in out
    assert "BC1" not in out
