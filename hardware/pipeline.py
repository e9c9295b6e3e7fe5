"""
SoftGPU - Pipeline Module
Vertex pulling, primitive assembly and the draw call that drives every stage.
"""

import logging

import numpy as np

from hardware.constants import MAX_ATTRIBUTES, VERTICES_PER_TRIANGLE
from hardware.clipper import init_triangle, run_triangle_clipping
from hardware.program import (
    AttributeType, AttributeInterpolation, VertexShaderInput, VertexShaderOutput,
)
from hardware.rasterizer import perspective_division, viewport_transformation, rasterize_triangle


logger = logging.getLogger("SoftGPU.Pipeline")


def compute_vertex_id(indices, invocation):
    """Vertex id of an invocation: the invocation itself, or its entry in `indices`"""
    if indices is None:
        return invocation
    return indices[invocation]


def compute_attribute_address(head, vertex_id):
    """Address of a vertex's attribute data, or None when the head is disabled"""
    if not head.enabled or head.buffer is None:
        return None
    return head.buffer + head.offset + head.stride * vertex_id


def run_vertex_puller(puller, invocation):
    """Run the vertex puller for one invocation

    Returns:
        (vertex id, list of per-slot addresses or None)
    """
    vertex_id = compute_vertex_id(puller.indices, invocation)
    addresses = [compute_attribute_address(head, vertex_id) for head in puller.heads]
    return vertex_id, addresses


class Primitive:
    """Assembled triangle: shaded vertices plus the program's slot declarations"""

    def __init__(self, interpolations):
        self.vertices = [VertexShaderOutput() for _ in range(VERTICES_PER_TRIANGLE)]
        self.used_vertices = 0
        # Snapshot so later program changes cannot affect this primitive
        self.interpolations = [AttributeInterpolation(declaration.type, declaration.interpolation)
                               for declaration in interpolations]


def init_primitive(gpu):
    """Empty primitive carrying the active program's attribute declarations"""
    return Primitive(gpu.active_program.interpolations)


def run_primitive_assembly(gpu, primitive, vertex_count, puller, base_invocation, vertex_shader):
    """Pull and shade `vertex_count` vertices starting at `base_invocation`"""
    for i in range(vertex_count):
        vertex_id, addresses = run_vertex_puller(puller, base_invocation + i)
        output = VertexShaderOutput()
        vertex_shader(output, VertexShaderInput(addresses, vertex_id), gpu)
        primitive.vertices[i] = output
    primitive.used_vertices = vertex_count


def create_sub_primitive(primitive, triangle):
    """Primitive whose vertices are rebuilt from a clip triangle's recipes

    Positions come from the clip triangle; attributes are blended linearly from
    the assembled vertices using the recipe weights.
    """
    sub = Primitive(primitive.interpolations)

    source = np.array([vertex.attributes for vertex in primitive.vertices[:VERTICES_PER_TRIANGLE]],
                      dtype=np.float64)

    for i in range(VERTICES_PER_TRIANGLE):
        vertex = sub.vertices[i]
        vertex.position = triangle.positions[i].copy()
        recipe = triangle.coords[i]
        blended = np.tensordot(recipe, source, axes=1)
        for index in range(MAX_ATTRIBUTES):
            if sub.interpolations[index].type != AttributeType.EMPTY:
                vertex.attributes[index] = blended[index]

    sub.used_vertices = VERTICES_PER_TRIANGLE
    return sub


def draw_triangles(gpu, vertex_count):
    """Draw `vertex_count` vertices as a list of independent triangles

    Trailing vertices that do not form a whole triangle are ignored.

    Returns:
        Number of fragments written to the framebuffer

    Raises:
        PipelineStateError: no puller, program or shader is bound
        AttributeAccessError, AttributeTypeError: raised by the shaders' accessors
    """
    puller = gpu.active_vertex_puller
    vertex_shader = gpu.active_vertex_shader
    fragment_shader = gpu.active_fragment_shader

    width = gpu.viewport_width
    height = gpu.viewport_height

    triangles = 0
    written = 0

    for base in range(0, vertex_count - VERTICES_PER_TRIANGLE + 1, VERTICES_PER_TRIANGLE):
        primitive = init_primitive(gpu)
        run_primitive_assembly(gpu, primitive, VERTICES_PER_TRIANGLE, puller, base, vertex_shader)

        for clipped in run_triangle_clipping(init_triangle(primitive)):
            sub = create_sub_primitive(primitive, clipped)
            perspective_division(sub)
            viewport_transformation(sub, width, height)
            written += rasterize_triangle(gpu, sub, width, height, fragment_shader)
            triangles += 1

    logger.debug(f"Drew {vertex_count} vertices: {triangles} triangles after clipping, {written} fragments written")
    return written
