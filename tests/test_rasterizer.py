import math

import numpy as np
import pytest

from hardware.pipeline import Primitive
from hardware.program import (
    AttributeInterpolation, AttributeType, InterpolationType, FragmentShaderInput, FragmentShaderOutput,
)
from hardware.rasterizer import (
    perspective_division, viewport_transformation, round_down_pixel_coord, round_up_pixel_coord,
    restrict_line_borders, compute_line_borders, compute_triangle_lines, compute_screen_space_barycentrics,
    noperspective_interpolate, smooth_interpolate, create_fragment, per_fragment_operations, clamp_color,
)


def make_primitive(positions, declarations=None):
    interpolations = [AttributeInterpolation() for _ in range(8)]
    for slot, (attrib_type, interpolation) in (declarations or {}).items():
        interpolations[slot] = AttributeInterpolation(attrib_type, interpolation)

    primitive = Primitive(interpolations)
    for vertex, position in zip(primitive.vertices, positions):
        vertex.position = np.array(position, dtype=np.float64)
    primitive.used_vertices = 3
    return primitive


class TestDivideAndViewport:
    """Clip space to pixel space"""

    def test_division_keeps_w(self):
        primitive = make_primitive([(2, 4, 1, 2), (0, 0, 0, 1), (3, 3, 3, 3)])
        perspective_division(primitive)
        np.testing.assert_allclose(primitive.vertices[0].position, [1, 2, 0.5, 2])
        np.testing.assert_allclose(primitive.vertices[2].position, [1, 1, 1, 3])

    def test_viewport_mapping(self):
        primitive = make_primitive([(-1, -1, 0.5, 1), (1, 1, 0.5, 1), (0, 0, 0.5, 1)])
        viewport_transformation(primitive, 4, 2)
        np.testing.assert_allclose(primitive.vertices[0].position, [0, 0, 0.5, 1])
        np.testing.assert_allclose(primitive.vertices[1].position, [4, 2, 0.5, 1])
        np.testing.assert_allclose(primitive.vertices[2].position, [2, 1, 0.5, 1])


class TestPixelRounding:
    """Pixel ranges around the pixel center"""

    @pytest.mark.parametrize("coord,expected", [(0.0, 0), (0.5, 0), (0.6, 1), (1.4, 1), (2.5, 2)])
    def test_round_down(self, coord, expected):
        assert round_down_pixel_coord(coord) == expected

    @pytest.mark.parametrize("coord,expected", [(0.0, 0), (0.4, 0), (0.5, 1), (2.4, 2), (2.5, 3)])
    def test_round_up(self, coord, expected):
        assert round_up_pixel_coord(coord) == expected


class TestEdgeLines:
    """Half-planes of a screen-space triangle"""

    @pytest.mark.parametrize("points", [
        [(0, 0), (4, 0), (0, 4)],
        [(0, 0), (0, 4), (4, 0)],
    ])
    def test_lines_face_inward_for_both_windings(self, points):
        lines = compute_triangle_lines([np.array(p, dtype=float) for p in points])
        centroid = np.mean(points, axis=0)
        for a, b, c in lines:
            assert a * centroid[0] + b * centroid[1] + c > 0
            assert math.hypot(a, b) == pytest.approx(1.0)

    def test_degenerate_triangle_has_no_lines(self):
        assert compute_triangle_lines([np.array(p, dtype=float) for p in [(0, 0), (1, 1), (2, 2)]]) is None

    def test_horizontal_line_outside_row_is_empty(self):
        # y >= 2 never holds on row 1
        min_x, max_x = restrict_line_borders((0.0, 1.0, -2.0), 1.0, -math.inf, math.inf)
        assert min_x > max_x

    def test_row_interval(self):
        lines = compute_triangle_lines([np.array(p, dtype=float) for p in [(0, 0), (4, 0), (0, 4)]])
        min_x, max_x = compute_line_borders(lines, 1.0)
        assert min_x == pytest.approx(0.0)
        assert max_x == pytest.approx(3.0)


class TestBarycentrics:
    """Barycentric weights of pixel centers"""

    POINTS = [(0.5, 0.25), (3.5, 1.0), (1.0, 3.75)]

    def test_unit_weights_at_vertices(self):
        for i, point in enumerate(self.POINTS):
            weights = compute_screen_space_barycentrics(point, self.POINTS)
            np.testing.assert_allclose(weights, np.identity(3)[i], atol=1e-12)

    @pytest.mark.parametrize("pixel", [(1.5, 1.5), (2.0, 1.2), (1.1, 2.9)])
    def test_weights_sum_to_one_and_reproduce_point(self, pixel):
        weights = compute_screen_space_barycentrics(pixel, self.POINTS)
        assert weights.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(weights @ np.array(self.POINTS), pixel)


class TestInterpolation:
    """Flat, screen-linear and perspective-correct attributes"""

    def test_smooth_differs_from_noperspective_with_varying_w(self):
        values = np.array([[0.0], [1.0], [0.0]])
        weights = np.array([0.5, 0.5, 0.0])
        homogeneous = np.array([1.0, 3.0, 1.0])

        assert noperspective_interpolate(values, weights)[0] == pytest.approx(0.5)
        assert smooth_interpolate(values, weights, homogeneous)[0] == pytest.approx(0.25)

    def test_smooth_equals_noperspective_with_equal_w(self):
        values = np.array([[2.0], [4.0], [8.0]])
        weights = np.array([0.2, 0.3, 0.5])
        np.testing.assert_allclose(smooth_interpolate(values, weights, np.full(3, 2.0)),
                                   noperspective_interpolate(values, weights))

    def test_create_fragment_applies_qualifiers(self):
        primitive = make_primitive(
            [(0, 0, 0.1, 1), (4, 0, 0.3, 3), (0, 4, 0.5, 1)],
            {
                0: (AttributeType.FLOAT, InterpolationType.FLAT),
                1: (AttributeType.FLOAT, InterpolationType.NOPERSPECTIVE),
                2: (AttributeType.FLOAT, InterpolationType.SMOOTH),
            })
        for i, vertex in enumerate(primitive.vertices):
            vertex.attributes[0:3, 0] = (i + 1.0, 10.0 * i, 10.0 * i)

        weights = np.array([0.5, 0.5, 0.0])
        fragment = create_fragment(FragmentShaderInput(), primitive, weights, (2.0, 0.0))

        assert fragment.attributes[0, 0] == pytest.approx(1.0)
        assert fragment.attributes[1, 0] == pytest.approx(5.0)
        assert fragment.attributes[2, 0] == pytest.approx(2.5)
        # Depth uses the perspective-correct rule: (0.1/1 * .5 + 0.3/3 * .5) / (.5 + .5/3)
        assert fragment.depth == pytest.approx(0.15)
        np.testing.assert_allclose(fragment.coords, [2.0, 0.0])


class TestPerFragmentOperations:
    """Color clamp and strict-less depth test"""

    def fragment(self, depth, color=(0.5, 0.5, 0.5, 1.0)):
        output = FragmentShaderOutput()
        output.color[:] = color
        output.depth = depth
        return output

    def test_nearer_fragment_is_written(self, gpu):
        gpu.set_depth(1, 1, 0.5)
        assert per_fragment_operations(gpu, self.fragment(0.25), 1, 1)
        assert gpu.get_depth(1, 1) == 0.25
        np.testing.assert_allclose(gpu.get_color(1, 1), [0.5, 0.5, 0.5, 1.0])

    @pytest.mark.parametrize("depth", [0.5, 0.75])
    def test_equal_or_further_fragment_is_discarded(self, gpu, depth):
        gpu.set_depth(1, 1, 0.5)
        assert not per_fragment_operations(gpu, self.fragment(depth), 1, 1)
        assert gpu.get_depth(1, 1) == 0.5
        np.testing.assert_allclose(gpu.get_color(1, 1), [0.0, 0.0, 0.0, 1.0])

    @pytest.mark.parametrize("depth", [0.3, 0.1, 2.0 / 3.0])
    def test_equal_depth_is_discarded_at_storage_precision(self, gpu, depth):
        assert per_fragment_operations(gpu, self.fragment(depth, (0.2, 0.2, 0.2, 1.0)), 1, 1)
        assert not per_fragment_operations(gpu, self.fragment(depth), 1, 1)
        np.testing.assert_allclose(gpu.get_color(1, 1), [0.2, 0.2, 0.2, 1.0])
        assert gpu.get_depth(1, 1) == np.float32(depth)

    def test_color_is_clamped(self, gpu):
        per_fragment_operations(gpu, self.fragment(0.0, (2.0, -1.0, 0.5, 1.5)), 0, 0)
        np.testing.assert_allclose(gpu.get_color(0, 0), [1.0, 0.0, 0.5, 1.0])
        np.testing.assert_allclose(clamp_color((-0.5, 0.25, 3.0, 1.0)), [0.0, 0.25, 1.0, 1.0])
