"""Command line interface: inspect and convert Klei .tex files"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .errors import TexToolError
from .file_scanner import TextureScanner
from .output import extract_atlas_elements, save_image
from .settings import ToolSettings, load_settings
from .tex_parser import parse_tex_file
from .tool import DecodeResult, TexTool, describe_tex
from .utils import format_size, format_time


EPILOG = """
Examples:
  # Show header information:
  textool info images/inventoryimages.tex

  # Convert to PNG next to the source file:
  textool convert images/inventoryimages.tex

  # Convert and also cut out every atlas element:
  textool convert images/inventoryimages.tex -o out/inventory.png --atlas-dir out/inventory

  # Convert a whole directory tree:
  textool batch data/images out/images --atlas
"""


def _load_settings(args) -> ToolSettings:
    if args.settings:
        return load_settings(Path(args.settings))
    return ToolSettings()


def _write_result(result: DecodeResult, output_path: Path, settings: ToolSettings,
                  atlas_dir: Optional[Path]) -> int:
    save_image(result.image, output_path, settings.output_format, settings.unpremultiply_alpha)
    if atlas_dir is None or not result.atlas:
        return 0
    written = extract_atlas_elements(result.image, result.atlas, atlas_dir, settings.output_format,
                                     settings.unpremultiply_alpha, settings.atlas_margin)
    return len(written)


def cmd_info(args) -> int:
    status = 0
    for name in args.files:
        path = Path(name)
        try:
            tex = parse_tex_file(path)
        except (OSError, TexToolError) as e:
            print(f"Error: {path}: {e}")
            status = 1
            continue

        info = describe_tex(str(path), tex)
        print(f"File: {path}")
        print(f"  Platform: {info.platform}")
        print(f"  Format: {info.format}")
        print(f"  Texture type: {info.texture_type}")
        print(f"  Size: {info.size}")
        print(f"  Mipmaps: {info.mipmaps}")
        print(f"  Pre-caves header: {'yes' if info.pre_cave else 'no'}")
        print(f"  Main mipmap data: {format_size(len(tex.main_mipmap.data))}")
    return status


def cmd_convert(args) -> int:
    settings = _load_settings(args)
    source = Path(args.file)
    output_path = Path(args.output) if args.output else source.with_suffix("." + settings.output_format.lower())

    def on_opened(info):
        print(f"Opened {source.name}: {info.platform} {info.format} {info.size}, {info.mipmaps} mipmap(s)")

    tool = TexTool(settings, on_opened=on_opened)
    try:
        result = tool.open_path(source)
        count = _write_result(result, output_path, settings, Path(args.atlas_dir) if args.atlas_dir else None)
    except (OSError, TexToolError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Saved image to: {output_path}")
    if args.atlas_dir:
        print(f"Saved {count} atlas element(s) to: {args.atlas_dir}")
    return 0


def cmd_batch(args) -> int:
    settings = _load_settings(args)
    input_dir = Path(args.input_dir)
    output_dir = Path(args.output_dir)

    if not input_dir.is_dir():
        print(f"Error: Input directory does not exist: {input_dir}")
        return 1

    files = TextureScanner(args.whitelist, args.blacklist).find_textures(input_dir)
    print(f"Found {len(files)} texture(s) in {input_dir}")

    tool = TexTool(settings)
    start = time.perf_counter()
    converted, failed, elements = 0, 0, 0

    for i, path in enumerate(files, 1):
        relative = path.relative_to(input_dir)
        output_path = output_dir / relative.with_suffix("." + settings.output_format.lower())
        atlas_dir = output_dir / relative.with_suffix("") if args.atlas else None
        try:
            result = tool.open_path(path)
            elements += _write_result(result, output_path, settings, atlas_dir)
            converted += 1
        except (OSError, TexToolError) as e:
            print(f"  Warning: {relative}: {e}")
            failed += 1
        if i % 100 == 0 or i == len(files):
            print(f"  Converting... {i}/{len(files)} files")

    print("\n=== Summary ===")
    print(f"Converted: {converted}")
    print(f"Failed: {failed}")
    if args.atlas:
        print(f"Atlas elements: {elements}")
    print(f"Time: {format_time(time.perf_counter() - start)}")
    return 0 if failed == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textool",
        description="Decode Klei TEX textures and cut out atlas elements.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug logging')
    subparsers = parser.add_subparsers(dest='command')

    info = subparsers.add_parser('info', help='Show header information')
    info.add_argument('files', nargs='+', metavar='FILE', help='.tex files')
    info.set_defaults(func=cmd_info)

    convert = subparsers.add_parser('convert', help='Decode one .tex file to an image')
    convert.add_argument('file', metavar='FILE', help='.tex file')
    convert.add_argument('--output', '-o', metavar='FILE', help='Output image (default: next to FILE)')
    convert.add_argument('--atlas-dir', metavar='DIR', help='Also write one image per atlas element here')
    convert.add_argument('--settings', metavar='JSON', help='Settings file')
    convert.set_defaults(func=cmd_convert)

    batch = subparsers.add_parser('batch', help='Convert every .tex file under a directory')
    batch.add_argument('input_dir', metavar='INPUT_DIR')
    batch.add_argument('output_dir', metavar='OUTPUT_DIR')
    batch.add_argument('--atlas', action='store_true', help='Also cut out atlas elements')
    batch.add_argument('--whitelist', nargs='*', metavar='PART', help='Path parts that must be present')
    batch.add_argument('--blacklist', nargs='*', metavar='PART', help='Path parts to skip')
    batch.add_argument('--settings', metavar='JSON', help='Settings file')
    batch.set_defaults(func=cmd_batch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not getattr(args, 'func', None):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
