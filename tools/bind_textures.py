#!/usr/bin/env python3
"""
Bind discovered texture files onto the materials of a parsed model scene.

For every mesh that declares a texture path, the first discovered file with
the same base name and an equivalent extension is decoded and installed as
the material's map. Render flags follow the file actually used: OZT/TGA are
alpha-blended without depth writes, everything else is opaque.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from oz_textures import DecodeError, NoMatchingMesh, NoMatchingTexture, TextureError, decode_texture_file
from scene import BLEND_NONE, BLEND_NORMAL, MaterialBinding, Texture, iter_textured_meshes, required_textures
from texture_match import DEFAULT_SEARCH_DEPTH, normalize_reference, search_textures, select_candidate

ALPHA_EXTENSIONS = ("ozt", "tga")


@dataclass
class BindReport:
    bound: list = field(default_factory=list)      # (mesh name, file path)
    failures: list = field(default_factory=list)   # TextureError per mesh / file
    unused: list = field(default_factory=list)     # NoMatchingMesh per candidate name

    @property
    def ok(self):
        return not self.failures


def binding_for(texture, extension):
    """Build the complete material state for a texture decoded from `extension`."""
    if extension in ALPHA_EXTENSIONS:
        return MaterialBinding(map=texture, transparent=True,
                               blend_mode=BLEND_NORMAL, depth_write=False)
    return MaterialBinding(map=texture, transparent=False,
                           blend_mode=BLEND_NONE, depth_write=True)


def _decode(path, decode):
    try:
        return decode(path)
    except TextureError:
        raise
    except OSError as e:
        raise DecodeError(f"cannot read texture file: {e}", path) from e
    except Exception as e:
        raise DecodeError(f"failed to decode texture: {e}", path) from e


def decode_candidates(paths, decode=decode_texture_file, workers=1):
    """Decode each path once. Returns dict path -> DecodedBitmap or TextureError."""
    results = {}
    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {path: pool.submit(_decode, path, decode) for path in paths}
            for path, future in futures.items():
                try:
                    results[path] = future.result()
                except TextureError as e:
                    results[path] = e
        return results

    for path in paths:
        try:
            results[path] = _decode(path, decode)
        except TextureError as e:
            results[path] = e
    return results


def bind_textures(root, candidates, decode=decode_texture_file, workers=1):
    """
    Resolve, decode and install one texture per textured mesh under root.

    candidates: dict base name -> list of file paths (discovery order).
    Failures are isolated per mesh / file and collected in the returned
    BindReport; nothing here raises for a single bad texture.
    """
    report = BindReport()
    plan = []
    wanted_bases = set()

    for mesh in iter_textured_meshes(root):
        wanted = normalize_reference(mesh.texture_path)
        wanted_bases.add(wanted.base)
        path = select_candidate(wanted, candidates)
        if path is None:
            error = NoMatchingTexture(f"no texture file satisfies mesh {mesh.name!r}", mesh.texture_path)
            print(f"  Warning: {error}")
            report.failures.append(error)
            continue
        plan.append((mesh, path))

    for name, paths in candidates.items():
        if name not in wanted_bases:
            error = NoMatchingMesh(f"no mesh uses {len(paths)} discovered file(s)", name)
            print(f"  Warning: {error}")
            report.unused.append(error)

    unique_paths = list(dict.fromkeys(path for _, path in plan))
    decoded = decode_candidates(unique_paths, decode, workers)

    for path in unique_paths:
        if isinstance(decoded[path], TextureError):
            print(f"  [FAIL] {decoded[path]}")
            report.failures.append(decoded[path])

    for mesh, path in plan:
        bitmap = decoded[path]
        if isinstance(bitmap, TextureError):
            continue
        texture = Texture(bitmap=bitmap, name=os.path.basename(path))
        extension = normalize_reference(path).extension
        mesh.material.install(binding_for(texture, extension))
        report.bound.append((mesh.name, path))
        print(f"  [OK] {mesh.name or '(mesh)'} <- {texture.name} ({bitmap.width}x{bitmap.height})")

    return report


def bind_scene_textures(root, start_path, max_depth=DEFAULT_SEARCH_DEPTH, workers=1):
    """Discover textures for every mesh under root below start_path, then bind them."""
    candidates = search_textures(start_path, required_textures(root), max_depth)
    return bind_textures(root, candidates, workers=workers)
