"""
SoftGPU - Linear Algebra Module
Small vector and matrix helpers used by the pipeline and the demo camera.
Matrices are numpy arrays indexed [row][column] and multiply column vectors.
"""

import math

import numpy as np


def mix(a, b, t):
    """Linear blend (1 - t) * a + t * b"""
    return (1.0 - t) * a + t * b


def construct_2d_line(a, b):
    """Build the unit-normal line through two 2D points

    Args:
        a: Start point (x, y)
        b: End point (x, y)

    Returns:
        Array (nx, ny, c) such that nx*x + ny*y + c is the signed distance of
        (x, y) from the line, positive to the left of a -> b
    """
    normal = np.array([a[1] - b[1], b[0] - a[0]], dtype=np.float64)
    length = math.hypot(normal[0], normal[1])
    if length > 0.0:
        normal /= length
    c = -(normal[0] * a[0] + normal[1] * a[1])
    return np.array([normal[0], normal[1], c])


def frustum_matrix(left, right, bottom, top, near, far):
    """OpenGL style projection matrix for an off-center frustum"""
    matrix = np.zeros((4, 4))
    matrix[0, 0] = 2.0 * near / (right - left)
    matrix[0, 2] = (right + left) / (right - left)
    matrix[1, 1] = 2.0 * near / (top - bottom)
    matrix[1, 2] = (top + bottom) / (top - bottom)
    matrix[2, 2] = -(far + near) / (far - near)
    matrix[2, 3] = -2.0 * far * near / (far - near)
    matrix[3, 2] = -1.0
    return matrix


def perspective_matrix(fovy, aspect, near, far):
    """Symmetric perspective projection with vertical field of view `fovy` radians"""
    top = near * math.tan(fovy / 2.0)
    right = top * aspect
    return frustum_matrix(-right, right, -top, top, near, far)


def translation_matrix(x, y, z):
    matrix = np.identity(4)
    matrix[:3, 3] = (x, y, z)
    return matrix


def rotation_matrix(axis, angle):
    """Rotation by `angle` radians around `axis` (right-handed)"""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    x, y, z = axis
    c = math.cos(angle)
    s = math.sin(angle)
    t = 1.0 - c

    matrix = np.identity(4)
    matrix[:3, :3] = [
        [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
        [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
        [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
    ]
    return matrix


def orbit_view_matrix(angle_x, angle_y, distance):
    """View matrix of a camera orbiting the origin at `distance`"""
    return (translation_matrix(0.0, 0.0, -distance)
            @ rotation_matrix((1.0, 0.0, 0.0), angle_x)
            @ rotation_matrix((0.0, 1.0, 0.0), angle_y))


def camera_position_from_view(view):
    """World-space eye position encoded in a view matrix"""
    position = np.linalg.inv(view) @ np.array([0.0, 0.0, 0.0, 1.0])
    return position[:3] / position[3]
