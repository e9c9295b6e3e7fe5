"""
SoftGPU - Mesh Module
Procedural meshes for the demo scene, stored as interleaved position and
normal floats plus 32-bit indices.
"""

import math

import numpy as np


# Bytes per interleaved vertex: position vec3 + normal vec3
VERTEX_STRIDE = 6 * 4
NORMAL_OFFSET = 3 * 4


class MeshData:
    """Indexed triangle mesh"""

    def __init__(self, vertices, indices, name="mesh"):
        self.vertices = np.ascontiguousarray(vertices, dtype=np.float32).reshape(-1, 6)
        self.indices = np.ascontiguousarray(indices, dtype=np.uint32).ravel()
        self.name = name

    @property
    def vertex_count(self):
        return len(self.vertices)

    @property
    def index_count(self):
        return len(self.indices)

    def vertex_bytes(self):
        """Vertex data as little-endian bytes"""
        return self.vertices.astype("<f4").tobytes()

    def index_bytes(self):
        return self.indices.astype("<u4").tobytes()

    def __repr__(self):
        return f"MeshData({self.name}, {self.vertex_count} vertices, {self.index_count // 3} triangles)"


# (normal, u axis, v axis) per cube face with u x v == normal
CUBE_FACES = (
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    ((0, 1, 0), (0, 0, 1), (1, 0, 0)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),
)


def make_cube(half_size=1.0):
    """Axis-aligned cube centered at the origin with flat face normals"""
    vertices = []
    indices = []

    for normal, u, v in CUBE_FACES:
        normal = np.array(normal, dtype=np.float32)
        u = np.array(u, dtype=np.float32)
        v = np.array(v, dtype=np.float32)

        base = len(vertices)
        for su, sv in ((-1, -1), (1, -1), (1, 1), (-1, 1)):
            position = (normal + su * u + sv * v) * half_size
            vertices.append(np.concatenate([position, normal]))

        indices.extend([base, base + 1, base + 2, base, base + 2, base + 3])

    return MeshData(vertices, indices, "cube")


def make_uv_sphere(stacks=16, slices=32, radius=1.0):
    """Sphere made of `stacks` rings of `slices` quads

    Args:
        stacks: Number of rings from pole to pole
        slices: Number of segments around the y axis
        radius: Sphere radius

    Returns:
        MeshData with smooth normals
    """
    vertices = []
    for i in range(stacks + 1):
        phi = math.pi * i / stacks
        for j in range(slices + 1):
            theta = 2.0 * math.pi * j / slices
            normal = (math.sin(phi) * math.cos(theta), math.cos(phi), math.sin(phi) * math.sin(theta))
            vertices.append([radius * n for n in normal] + list(normal))

    indices = []
    for i in range(stacks):
        for j in range(slices):
            a = i * (slices + 1) + j
            b = a + slices + 1
            indices.extend([a, b, a + 1, a + 1, b, b + 1])

    return MeshData(vertices, indices, "sphere")


def make_mesh(name):
    """Mesh by configuration name"""
    if name == "cube":
        return make_cube()
    return make_uv_sphere()
