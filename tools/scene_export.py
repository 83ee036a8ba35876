#!/usr/bin/env python3
"""
Export a bound scene to glTF binary (.glb).

One glTF node + mesh per scene Mesh that carries geometry. Bound textures are
embedded as PNG; transparent materials become alphaMode BLEND.
"""

import numpy as np
import pygltflib

from scene import Mesh

WRAP_MODES = {"repeat": 10497, "clamp": 33071, "mirror": 33648}


def pad4(b):
    rem = len(b) % 4
    return b + b"\x00" * (4 - rem) if rem else b


def build_scene_glb(root):
    """Build a pygltflib.GLTF2 from root. Returns None when no mesh has geometry."""
    bin_data = bytearray()

    def append_bin(data_bytes):
        offset = len(bin_data)
        bin_data.extend(pad4(data_bytes))
        return offset

    bv_list = []
    acc_list = []
    meshes = []
    nodes = []
    materials = []
    images = []
    textures = []
    samplers = []

    # Materials can be shared between meshes; export each once
    material_index = {}
    sampler_index = {}

    def export_material(material):
        key = id(material)
        if key in material_index:
            return material_index[key]

        r, g, b = material.color
        pbr = pygltflib.PbrMetallicRoughness(baseColorFactor=[r, g, b, 1.0],
                                             metallicFactor=0.0, roughnessFactor=0.8)
        texture = material.map
        if texture is not None and texture.bitmap is not None:
            png = texture.bitmap.to_png_bytes()
            tex_bv = len(bv_list)
            bv_list.append(pygltflib.BufferView(buffer=0, byteOffset=append_bin(png),
                                                byteLength=len(png)))
            img_idx = len(images)
            images.append(pygltflib.Image(bufferView=tex_bv, mimeType="image/png",
                                          name=texture.name))
            wrap = WRAP_MODES.get(texture.wrap, 10497)
            if wrap not in sampler_index:
                sampler_index[wrap] = len(samplers)
                samplers.append(pygltflib.Sampler(magFilter=9729, minFilter=9987,
                                                  wrapS=wrap, wrapT=wrap))
            textures.append(pygltflib.Texture(source=img_idx, sampler=sampler_index[wrap]))
            pbr.baseColorTexture = pygltflib.TextureInfo(index=len(textures) - 1)

        mat_idx = len(materials)
        materials.append(pygltflib.Material(
            name=material.name or None,
            pbrMetallicRoughness=pbr,
            doubleSided=True,
            alphaMode="BLEND" if material.transparent else "OPAQUE"))
        material_index[key] = mat_idx
        return mat_idx

    def append_view(data, target, stride=None):
        bv_list.append(pygltflib.BufferView(buffer=0, byteOffset=append_bin(data),
                                            byteLength=len(data), target=target,
                                            byteStride=stride))
        return len(bv_list) - 1

    def append_accessor(**kwargs):
        acc_list.append(pygltflib.Accessor(**kwargs))
        return len(acc_list) - 1

    def append_primitive(geo, material):
        """Write one geometry's index + vertex streams; returns its Primitive."""
        num_verts = len(geo.positions)
        # 16-bit indices whenever every vertex is addressable with them
        indices = geo.indices.astype(np.uint16 if num_verts < 65536 else np.uint32)
        index_acc = append_accessor(
            bufferView=append_view(indices.tobytes(), 34963),
            componentType=5123 if indices.dtype == np.uint16 else 5125,
            count=len(indices), type="SCALAR",
            max=[int(indices.max())], min=[int(indices.min())])

        attrs = pygltflib.Attributes()
        for attr, array, kind in (("POSITION", geo.positions, "VEC3"),
                                  ("NORMAL", geo.normals, "VEC3"),
                                  ("TEXCOORD_0", geo.uvs, "VEC2")):
            extra = {}
            if attr == "POSITION":
                extra = {"max": array.max(axis=0).tolist(), "min": array.min(axis=0).tolist()}
            view = append_view(array.tobytes(), 34962, stride=array.shape[1] * 4)
            setattr(attrs, attr, append_accessor(bufferView=view, componentType=5126,
                                                 count=num_verts, type=kind, **extra))

        return pygltflib.Primitive(attributes=attrs, indices=index_acc,
                                   material=export_material(material))

    for node in root.traverse():
        if not isinstance(node, Mesh) or node.geometry is None:
            continue
        geo = node.geometry
        if len(geo.positions) == 0 or len(geo.indices) == 0:
            continue

        primitive = append_primitive(geo, node.material)
        nodes.append(pygltflib.Node(name=node.name or None, mesh=len(meshes)))
        meshes.append(pygltflib.Mesh(name=node.name or None, primitives=[primitive]))

    if not meshes:
        return None

    gltf = pygltflib.GLTF2(
        scene=0,
        scenes=[pygltflib.Scene(name=root.name or None, nodes=list(range(len(nodes))))],
        nodes=nodes,
        meshes=meshes,
        accessors=acc_list,
        bufferViews=bv_list,
        buffers=[pygltflib.Buffer(byteLength=len(bin_data))],
        materials=materials,
        textures=textures,
        images=images,
        samplers=samplers,
    )

    gltf.set_binary_blob(bytes(bin_data))
    return gltf


def save_scene_glb(root, output_path):
    """Write root to output_path. Returns False when there was nothing to export."""
    gltf = build_scene_glb(root)
    if gltf is None:
        print(f"  SKIP: no mesh geometry to export")
        return False
    gltf.save(str(output_path))
    return True
