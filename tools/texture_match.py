#!/usr/bin/env python3
"""
Texture name matching for model conversion.

Models reference textures by their original names ("Data/Item/sword01.jpg"),
while the shipped client usually has the OZJ/OZT container instead. Matching
therefore works on normalized base names plus an extension equivalence table.
"""

import os
from dataclasses import dataclass
from pathlib import Path

TEXTURE_EXTENSIONS = ("jpg", "jpeg", "png", "tga", "ozj", "ozt")
DEFAULT_SEARCH_DEPTH = 3

# Not symmetric; extensions_match() checks both directions.
EQUIVALENT_EXTENSIONS = {
    "jpg": ("ozj", "jpeg"),
    "jpeg": ("ozj", "jpg"),
    "ozj": ("jpg", "jpeg", "png"),
    "png": ("ozj", "ozt"),
    "tga": ("ozt", "png"),
    "ozt": ("tga", "png"),
}


# ── Name normalization ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextureReference:
    base: str
    extension: str

    def __str__(self):
        return f"{self.base}.{self.extension}" if self.extension else self.base


def split_extension(path):
    """'Data\\Item\\Sword01.OZJ' -> ('sword01', 'ozj')."""
    name = str(path).replace("\\", "/").rsplit("/", 1)[-1].lower()
    base, dot, ext = name.rpartition(".")
    if not dot:
        return name, ""
    return base, ext


def normalize_reference(path):
    if isinstance(path, TextureReference):
        return path
    base, ext = split_extension(path)
    return TextureReference(base, ext)


# ── Extension equivalence ────────────────────────────────────────────────────

def equivalent_extensions(extension):
    return EQUIVALENT_EXTENSIONS.get(extension, ())


def extensions_match(wanted, candidate):
    return (
        wanted == candidate
        or candidate in equivalent_extensions(wanted)
        or wanted in equivalent_extensions(candidate)
    )


def select_candidate(wanted, candidates):
    """Pick the first discovered file satisfying a wanted texture reference.

    candidates: dict mapping normalized base name -> list of paths in
    discovery order. Returns None when nothing fits.
    """
    wanted = normalize_reference(wanted)
    for path in candidates.get(wanted.base, ()):
        found = normalize_reference(path)
        if found.base == wanted.base and extensions_match(wanted.extension, found.extension):
            return path
    return None


# ── Discovery ────────────────────────────────────────────────────────────────

def search_textures(start_path, required_textures, max_depth=DEFAULT_SEARCH_DEPTH):
    """
    Scan start_path (and subdirectories up to max_depth) for texture files
    whose base name is in required_textures.

    Returns dict: base name -> list of every matching file path, in
    discovery order. Entries inside a directory are visited sorted so the
    order is stable across platforms.
    """
    required_names = {normalize_reference(tex).base for tex in required_textures}
    found = {}

    def search_dir(dir_path, depth):
        if depth > max_depth:
            return
        try:
            entries = sorted(os.scandir(dir_path), key=lambda e: e.name)
        except OSError as e:
            print(f"  Warning: cannot read {dir_path}: {e}")
            return

        for entry in entries:
            if entry.is_dir():
                search_dir(entry.path, depth + 1)
            elif entry.is_file():
                base, ext = split_extension(entry.name)
                if ext in TEXTURE_EXTENSIONS and base in required_names:
                    found.setdefault(base, []).append(str(Path(entry.path)))

    search_dir(start_path, 0)

    total_files = sum(len(paths) for paths in found.values())
    print(f"  Found {len(found)}/{len(required_names)} texture names ({total_files} files total)")
    return found
