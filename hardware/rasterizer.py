"""
SoftGPU - Rasterizer Module
Perspective division, viewport mapping and scanline rasterization of
assembled triangles, including attribute interpolation and the depth test.
"""

import math

import numpy as np

from hardware.constants import PIXEL_CENTER, VERTICES_PER_TRIANGLE, EDGES_PER_TRIANGLE
from hardware.linalg import construct_2d_line
from hardware.program import (
    AttributeType, InterpolationType, FragmentShaderInput, FragmentShaderOutput,
)


def perspective_division(primitive):
    """Divide x, y and z of every vertex by w, keeping w for smooth interpolation"""
    for vertex in primitive.vertices[:primitive.used_vertices]:
        position = np.asarray(vertex.position, dtype=np.float64)
        w = position[3]
        vertex.position = np.array([position[0] / w, position[1] / w, position[2] / w, w])


def viewport_transformation(primitive, width, height):
    """Map normalized device x and y to pixel space"""
    for vertex in primitive.vertices[:primitive.used_vertices]:
        position = np.array(vertex.position, dtype=np.float64)
        position[0] = (position[0] * 0.5 + 0.5) * width
        position[1] = (position[1] * 0.5 + 0.5) * height
        vertex.position = position


def round_down_pixel_coord(coord):
    """First pixel whose center is at or after `coord`"""
    whole = math.floor(coord)
    return int(whole) + (1 if coord - whole > PIXEL_CENTER else 0)


def round_up_pixel_coord(coord):
    """One past the last pixel whose center is at or before `coord`"""
    whole = math.floor(coord)
    return int(whole) + (1 if coord - whole >= PIXEL_CENTER else 0)


def restrict_line_borders(line, y, min_x, max_x):
    """Narrow [min_x, max_x] to the part of row `y` inside the half-plane of `line`

    The half-plane is a*x + b*y + c >= 0.
    """
    a, b, c = line
    d = -b * y - c

    if a > 0.0:
        min_x = max(min_x, d / a)
    elif a < 0.0:
        max_x = min(max_x, d / a)
    elif d > 0.0:
        min_x = math.inf
        max_x = -math.inf

    return min_x, max_x


def compute_line_borders(lines, y):
    """X interval of row `y` covered by the intersection of all half-planes"""
    min_x = -math.inf
    max_x = math.inf
    for line in lines:
        min_x, max_x = restrict_line_borders(line, y, min_x, max_x)
    return min_x, max_x


def compute_triangle_lines(points):
    """Inward-facing unit edge lines of a screen-space triangle

    Args:
        points: Three (x, y) points

    Returns:
        List of three (a, b, c) lines, or None for a triangle without area
    """
    lines = [construct_2d_line(points[i], points[(i + 1) % VERTICES_PER_TRIANGLE])
             for i in range(EDGES_PER_TRIANGLE)]

    area = ((points[1][0] - points[0][0]) * (points[2][1] - points[0][1])
            - (points[1][1] - points[0][1]) * (points[2][0] - points[0][0]))
    if area == 0.0 or not math.isfinite(area):
        return None
    if area < 0.0:
        lines = [-line for line in lines]
    return lines


def compute_screen_space_barycentrics(pixel, points):
    """Barycentric coordinates of `pixel` in the triangle `points`

    Solves for the weights of the two edge vectors leaving vertex 0 using
    their dot products.
    """
    x0, y0 = points[0][0], points[0][1]
    ax, ay = points[1][0] - x0, points[1][1] - y0
    bx, by = points[2][0] - x0, points[2][1] - y0
    cx, cy = pixel[0] - x0, pixel[1] - y0

    aa = ax * ax + ay * ay
    ab = ax * bx + ay * by
    bb = bx * bx + by * by
    ca = cx * ax + cy * ay
    cb = cx * bx + cy * by

    k = 1.0 / (aa * bb - ab * ab)
    b1 = k * (bb * ca - ab * cb)
    b2 = k * (aa * cb - ab * ca)
    return np.array([1.0 - b1 - b2, b1, b2])


def noperspective_interpolate(values, barycentrics):
    """Screen-space linear blend of per-vertex values (rows of `values`)"""
    return barycentrics @ np.asarray(values, dtype=np.float64)


def smooth_interpolate(values, barycentrics, homogeneous):
    """Perspective-correct blend: weights b/w renormalized to sum to one"""
    weights = barycentrics / homogeneous
    return (weights @ np.asarray(values, dtype=np.float64)) / weights.sum()


def interpolate_attribute(values, barycentrics, homogeneous, interpolation):
    if interpolation == InterpolationType.FLAT:
        return np.asarray(values[0])
    if interpolation == InterpolationType.NOPERSPECTIVE:
        return noperspective_interpolate(values, barycentrics)
    return smooth_interpolate(values, barycentrics, homogeneous)


def _active_attributes(primitive):
    """(slot, components, qualifier, per-vertex values) for every declared slot"""
    active = []
    vertices = primitive.vertices[:VERTICES_PER_TRIANGLE]
    for index, declaration in enumerate(primitive.interpolations):
        if declaration.type == AttributeType.EMPTY:
            continue
        components = declaration.type.components
        values = np.array([vertex.attributes[index, :components] for vertex in vertices], dtype=np.float64)
        active.append((index, components, declaration.interpolation, values))
    return active


def create_fragment(fragment, primitive, barycentrics, pixel, attributes=None):
    """Fill a fragment shader input for one covered pixel

    Args:
        fragment: FragmentShaderInput to fill
        primitive: Divided and viewport-mapped primitive
        barycentrics: Weights of the pixel center
        pixel: (x, y) of the pixel center
        attributes: Precomputed result of _active_attributes, if any
    """
    vertices = primitive.vertices[:VERTICES_PER_TRIANGLE]
    homogeneous = np.array([vertex.position[3] for vertex in vertices], dtype=np.float64)
    depths = np.array([vertex.position[2] for vertex in vertices], dtype=np.float64)

    fragment.coords[:] = pixel
    fragment.depth = float(smooth_interpolate(depths, barycentrics, homogeneous))

    if attributes is None:
        attributes = _active_attributes(primitive)

    for index, components, interpolation, values in attributes:
        fragment.attributes[index, :components] = interpolate_attribute(values, barycentrics, homogeneous, interpolation)

    return fragment


def clamp_color(color):
    return np.clip(np.asarray(color, dtype=np.float32), 0.0, 1.0)


def per_fragment_operations(gpu, fragment_output, x, y):
    """Clamp the fragment color and apply the strict-less depth test

    Returns:
        True if the fragment was written
    """
    color = clamp_color(fragment_output.color)
    # Compared at the precision of the depth plane
    depth = np.float32(fragment_output.depth)
    if depth < gpu.get_depth(x, y):
        gpu.set_color(x, y, color)
        gpu.set_depth(x, y, depth)
        return True
    return False


def rasterize_triangle(gpu, primitive, width, height, fragment_shader):
    """Rasterize one divided, viewport-mapped triangle

    Args:
        gpu: SoftwareGpu owning the framebuffer
        primitive: Primitive with three screen-space vertices
        width: Viewport width in pixels
        height: Viewport height in pixels
        fragment_shader: Callable (output, input, gpu)

    Returns:
        Number of fragments that passed the depth test
    """
    points = [np.asarray(vertex.position[:2], dtype=np.float64)
              for vertex in primitive.vertices[:VERTICES_PER_TRIANGLE]]

    lines = compute_triangle_lines(points)
    if lines is None:
        return 0

    ys = [point[1] for point in points]
    y_min = max(min(ys), 0.0)
    y_max = min(max(max(ys), 0.0), float(height))

    y_start = round_down_pixel_coord(y_min)
    y_end = min(round_up_pixel_coord(y_max), height)

    attributes = _active_attributes(primitive)
    written = 0

    for y in range(y_start, y_end):
        center_y = y + PIXEL_CENTER
        min_x, max_x = compute_line_borders(lines, center_y)
        min_x = max(min_x, 0.0)
        max_x = max(max_x, 0.0)
        if min_x >= max_x:
            continue
        max_x = min(max_x, float(width))

        x_start = round_down_pixel_coord(min_x)
        x_end = min(round_up_pixel_coord(max_x), width)

        for x in range(x_start, x_end):
            pixel = (x + PIXEL_CENTER, center_y)
            barycentrics = compute_screen_space_barycentrics(pixel, points)

            fragment = create_fragment(FragmentShaderInput(), primitive, barycentrics, pixel, attributes)
            output = FragmentShaderOutput()
            output.depth = fragment.depth

            fragment_shader(output, fragment, gpu)

            if per_fragment_operations(gpu, output, x, y):
                written += 1

    return written
