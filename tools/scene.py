#!/usr/bin/env python3
"""
Minimal scene graph handed over by the model parser.

Nodes are an explicit variant (Group / Mesh / Other). Only meshes can
declare a texture reference; the binder asks declares_texture() instead of
inspecting attributes.
"""

import threading
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from oz_textures import DecodedBitmap

BLEND_NORMAL = "normal"
BLEND_NONE = "none"

WHITE = (1.0, 1.0, 1.0)


# ── Texture resources ────────────────────────────────────────────────────────

@dataclass
class Texture:
    """A decoded bitmap owned by exactly one material."""
    bitmap: Optional[DecodedBitmap]
    name: str
    color_space: str = "srgb"
    wrap: str = "repeat"
    flip_y: bool = False
    disposed: bool = False

    def dispose(self):
        self.bitmap = None
        self.disposed = True


@dataclass(frozen=True)
class MaterialBinding:
    map: Texture
    transparent: bool
    blend_mode: str
    depth_write: bool
    color: Tuple[float, float, float] = WHITE


class Material:
    def __init__(self, name="", color=WHITE):
        self.name = name
        self.color = color
        self.map = None
        self.transparent = False
        self.blend_mode = BLEND_NORMAL
        self.depth_write = True
        self.needs_update = False
        self._lock = threading.Lock()

    def install(self, binding):
        """Swap a fully built binding in, then release the texture it replaces."""
        with self._lock:
            previous = self.map
            self.map = binding.map
            self.color = binding.color
            self.transparent = binding.transparent
            self.blend_mode = binding.blend_mode
            self.depth_write = binding.depth_write
            self.needs_update = True
        if previous is not None and previous is not binding.map:
            previous.dispose()
        return previous

    def __repr__(self):
        map_name = self.map.name if self.map is not None else None
        return (f"Material({self.name!r}, map={map_name!r}, transparent={self.transparent}, "
                f"blend_mode={self.blend_mode!r}, depth_write={self.depth_write})")


# ── Scene nodes ──────────────────────────────────────────────────────────────

@dataclass
class MeshGeometry:
    """Vertex data in glTF conventions (Y up, float32, uint indices)."""
    positions: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        self.uvs = np.asarray(self.uvs, dtype=np.float32).reshape(-1, 2)
        self.indices = np.asarray(self.indices).reshape(-1)


class SceneNode:
    def __init__(self, name="", children=None):
        self.name = name
        self.children = list(children or [])

    def declares_texture(self):
        return False

    def traverse(self):
        yield self
        for child in self.children:
            yield from child.traverse()

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, children={len(self.children)})"


class Group(SceneNode):
    pass


class Other(SceneNode):
    """Bones, helpers and anything else the parser emits."""


class Mesh(SceneNode):
    def __init__(self, name="", texture_path=None, material=None, geometry=None, children=None):
        super().__init__(name, children)
        self.texture_path = texture_path
        self.material = material if material is not None else Material(name)
        self.geometry = geometry

    def declares_texture(self):
        return bool(self.texture_path)


def iter_textured_meshes(root):
    for node in root.traverse():
        if node.declares_texture():
            yield node


def required_textures(root):
    """Texture paths declared by the scene's meshes, first occurrence order."""
    seen = []
    for mesh in iter_textured_meshes(root):
        if mesh.texture_path not in seen:
            seen.append(mesh.texture_path)
    return seen
