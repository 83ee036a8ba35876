#!/usr/bin/env python3
"""
Batch convert MU Online textures (OZJ, OZT, TGA, JPG, PNG) to PNG.

The directory layout below --input-dir is mirrored under --output-dir.

Usage:
    python convert_textures.py --input-dir "C:\\MU\\Data" --output-dir "../converted/textures"
"""

import argparse
import sys
from pathlib import Path

from oz_textures import DecodeError, TextureError, decode_texture_file
from texture_match import TEXTURE_EXTENSIONS, split_extension


def find_texture_files(input_dir, max_depth=None):
    """All texture files below input_dir, sorted for stable output.

    Files directly in input_dir are depth 0; max_depth=None walks everything.
    """
    input_dir = Path(input_dir)
    files = []
    for path in sorted(input_dir.rglob("*")):
        if max_depth is not None and len(path.relative_to(input_dir).parts) - 1 > max_depth:
            continue
        if path.is_file() and split_extension(path.name)[1] in TEXTURE_EXTENSIONS:
            files.append(path)
    return files


def output_path_for(source, input_dir, output_dir):
    """Data/Item/Sword01.OZJ -> <output>/Item/Sword01.png"""
    rel = Path(source).relative_to(input_dir)
    return Path(output_dir) / rel.with_suffix(".png")


def convert_directory(input_dir, output_dir, force=False, max_depth=None):
    """
    Convert every texture below input_dir.
    Returns dict with 'converted', 'skipped' (lists of paths) and 'failed'
    (list of TextureError).
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    result = {"converted": [], "skipped": [], "failed": []}

    sources = find_texture_files(input_dir, max_depth)
    print(f"Found {len(sources)} texture files in {input_dir}")
    print(f"\n== Converting Textures ==")

    for source in sources:
        target = output_path_for(source, input_dir, output_dir)
        if not force and target.exists() and target.stat().st_mtime >= source.stat().st_mtime:
            print(f"  [SKIP] {source.relative_to(input_dir)} (up to date)")
            result["skipped"].append(source)
            continue

        try:
            bitmap = decode_texture_file(source)
        except TextureError as e:
            print(f"  [FAIL] {e}")
            result["failed"].append(e)
            continue
        except Exception as e:
            print(f"  [ERROR] Failed to convert {source}: {e}")
            result["failed"].append(DecodeError(str(e), str(source)))
            continue

        target.parent.mkdir(parents=True, exist_ok=True)
        bitmap.to_image().save(str(target), "PNG")
        print(f"  [OK] {source.relative_to(input_dir)}")
        print(f"       -> {target.name} ({bitmap.width}x{bitmap.height})")
        result["converted"].append(source)

    return result


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Convert MU Online OZJ/OZT textures to PNG")
    parser.add_argument("--input-dir", required=True,
                        help="Directory to scan (recursively) for textures")
    parser.add_argument("--output-dir", required=True,
                        help="Output base directory for PNG files")
    parser.add_argument("--depth", type=int, default=None,
                        help="Maximum directory depth to scan below --input-dir (default: unlimited)")
    parser.add_argument("--force", action="store_true",
                        help="Re-convert files whose PNG is already up to date")
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    input_dir = Path(args.input_dir)
    if not input_dir.is_dir():
        print(f"ERROR: {input_dir} is not a directory")
        return 1

    result = convert_directory(input_dir, args.output_dir, force=args.force,
                               max_depth=args.depth)

    total = len(result["converted"]) + len(result["skipped"]) + len(result["failed"])
    print(f"\n== Summary ==")
    print(f"  Converted: {len(result['converted'])}/{total}")
    if result["skipped"]:
        print(f"  Up to date: {len(result['skipped'])}")
    if result["failed"]:
        print(f"  Failed: {len(result['failed'])}")
        for error in result["failed"]:
            print(f"    - {error}")
    print(f"  Output: {args.output_dir}")
    return 1 if result["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
