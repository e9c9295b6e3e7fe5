"""
SoftGPU - Clipper Module
Clips triangles against homogeneous clip-space half-spaces.

Every clipped vertex keeps a barycentric recipe relative to the assembled
triangle, so attributes of new vertices can be rebuilt by mixing instead of
running the vertex shader again.
"""

from enum import Enum

import numpy as np

from hardware.constants import VERTICES_PER_TRIANGLE
from hardware.linalg import mix


class FrustumPlane(Enum):
    """Planes of the clip-space view volume"""
    LEFT = 0
    RIGHT = 1
    BOTTOM = 2
    TOP = 3
    NEAR = 4
    FAR = 5


# Plane -> (clip-space component, sign) for the half-space -w <= sign * component
PLANE_AXES = {
    FrustumPlane.LEFT: (0, 1.0),
    FrustumPlane.RIGHT: (0, -1.0),
    FrustumPlane.BOTTOM: (1, 1.0),
    FrustumPlane.TOP: (1, -1.0),
    FrustumPlane.NEAR: (2, 1.0),
    FrustumPlane.FAR: (2, -1.0),
}


class ClipTriangle:
    """Clip-space positions plus barycentric recipes into the assembled triangle"""

    def __init__(self, positions, coords):
        self.positions = np.asarray(positions, dtype=np.float64).reshape(VERTICES_PER_TRIANGLE, 4)
        self.coords = np.asarray(coords, dtype=np.float64).reshape(VERTICES_PER_TRIANGLE, 3)

    def copy(self):
        return ClipTriangle(self.positions.copy(), self.coords.copy())

    def __repr__(self):
        return f"ClipTriangle(positions={self.positions.tolist()})"


def init_triangle(primitive):
    """Clip triangle of an assembled primitive, with identity recipes"""
    positions = [np.asarray(vertex.position, dtype=np.float64) for vertex in primitive.vertices]
    return ClipTriangle(positions, np.identity(VERTICES_PER_TRIANGLE))


def clip_edge(a, b, axis, sign):
    """Parameter interval of the edge a -> b inside the half-space

    Args:
        a: Clip-space start point (x, y, z, w)
        b: Clip-space end point
        axis: Component index tested (0 x, 1 y, 2 z)
        sign: +1.0 or -1.0

    Returns:
        (min_t, max_t); the edge is fully outside when min_t > max_t
    """
    min_t = 0.0
    max_t = 1.0

    m = -b[3] + a[3] - sign * (b[axis] - a[axis])
    n = sign * a[axis] + a[3]

    if m > 0.0:
        max_t = min(max_t, n / m)
    elif m < 0.0:
        min_t = max(min_t, n / m)
    elif n < 0.0:
        min_t = 1.0
        max_t = 0.0

    return min_t, max_t


def _mixed_vertex(triangle, first, second, t):
    return (mix(triangle.positions[first], triangle.positions[second], t),
            mix(triangle.coords[first], triangle.coords[second], t))


def clip_triangle(triangle, plane):
    """Clip one triangle against one frustum plane

    Returns:
        List of 0, 1 or 2 ClipTriangles keeping the winding of the input
    """
    axis, sign = PLANE_AXES[plane]
    positions = triangle.positions

    min_ts = []
    max_ts = []
    for i in range(VERTICES_PER_TRIANGLE):
        min_t, max_t = clip_edge(positions[i], positions[(i + 1) % VERTICES_PER_TRIANGLE], axis, sign)
        min_ts.append(min_t)
        max_ts.append(max_t)

    visible = 0
    for i in range(VERTICES_PER_TRIANGLE):
        if min_ts[i] == 0.0 and min_ts[i] <= max_ts[i]:
            visible |= 1 << i

    visible_count = bin(visible).count("1")

    if visible_count == 0:
        return []

    if visible_count == 3:
        return [triangle.copy()]

    if visible_count == 1:
        vertex = visible >> 1
        prev = (vertex + 2) % VERTICES_PER_TRIANGLE
        next_ = (vertex + 1) % VERTICES_PER_TRIANGLE

        next_position, next_coords = _mixed_vertex(triangle, vertex, next_, max_ts[vertex])
        prev_position, prev_coords = _mixed_vertex(triangle, prev, vertex, min_ts[prev])

        return [ClipTriangle(
            [positions[vertex], next_position, prev_position],
            [triangle.coords[vertex], next_coords, prev_coords])]

    # Two visible vertices; work around the hidden one
    vertex = (~visible & 7) >> 1
    prev = (vertex + 2) % VERTICES_PER_TRIANGLE
    next_ = (vertex + 1) % VERTICES_PER_TRIANGLE

    next_position, next_coords = _mixed_vertex(triangle, vertex, next_, min_ts[vertex])
    prev_position, prev_coords = _mixed_vertex(triangle, prev, vertex, max_ts[prev])

    return [
        ClipTriangle([next_position, positions[next_], prev_position],
                     [next_coords, triangle.coords[next_], prev_coords]),
        ClipTriangle([prev_position, positions[next_], positions[prev]],
                     [prev_coords, triangle.coords[next_], triangle.coords[prev]]),
    ]


def clip_triangles(triangles, plane):
    """Clip every triangle of a list against one plane"""
    clipped = []
    for triangle in triangles:
        clipped.extend(clip_triangle(triangle, plane))
    return clipped


def clip_triangle_frustum(triangle):
    """Clip a triangle against all six planes of the view volume in turn"""
    triangles = [triangle]
    for plane in FrustumPlane:
        triangles = clip_triangles(triangles, plane)
        if not triangles:
            break
    return triangles


def run_triangle_clipping(triangle):
    """Clipping applied by the draw path: the near plane only"""
    return clip_triangle(triangle, FrustumPlane.NEAR)
