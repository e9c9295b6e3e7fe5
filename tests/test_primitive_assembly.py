import numpy as np

from hardware.clipper import ClipTriangle
from hardware.pipeline import init_primitive, run_primitive_assembly, create_sub_primitive
from hardware.program import AttributeType, InterpolationType, vertex_output_attribute


def constant_fragment_shader(output, fragment_input, gpu):
    output.color[:] = (1.0, 1.0, 1.0, 1.0)


class TestPrimitiveAssembly:
    """One vertex shader invocation per primitive vertex"""

    def test_vertex_ids_follow_indices(self, gpu, position_puller, make_program):
        seen = []

        def recording_shader(output, vertex_input, gpu):
            seen.append(vertex_input.vertex_id)
            output.position[:] = (vertex_input.vertex_id, 0.0, 0.0, 1.0)

        positions = [(0.0, 0.0, 0.0, 1.0)] * 6
        puller_id = position_puller(positions, indices=[5, 2, 9, 4, 1, 0])
        make_program(constant_fragment_shader, vertex_shader=recording_shader)

        primitive = init_primitive(gpu)
        run_primitive_assembly(gpu, primitive, 3, gpu.get_vertex_puller(puller_id), 3, recording_shader)

        assert seen == [4, 1, 0]
        assert primitive.used_vertices == 3
        assert [vertex.position[0] for vertex in primitive.vertices] == [4.0, 1.0, 0.0]

    def test_each_vertex_gets_its_own_output(self, gpu, position_puller, make_program):
        puller_id = position_puller([(float(i), 0.0, 0.0, 1.0) for i in range(3)])
        make_program(constant_fragment_shader)

        primitive = init_primitive(gpu)
        run_primitive_assembly(gpu, primitive, 3, gpu.get_vertex_puller(puller_id), 0, gpu.active_vertex_shader)

        outputs = primitive.vertices
        assert len({id(vertex) for vertex in outputs}) == 3
        np.testing.assert_array_equal([vertex.position[0] for vertex in outputs], [0.0, 1.0, 2.0])

    def test_declarations_are_snapshotted(self, gpu, make_program):
        program_id = make_program(constant_fragment_shader,
                                  declarations={2: (AttributeType.VEC2, InterpolationType.FLAT)})
        primitive = init_primitive(gpu)

        gpu.set_attribute_interpolation(program_id, 2, AttributeType.VEC4, InterpolationType.SMOOTH)

        assert primitive.interpolations[2].type == AttributeType.VEC2
        assert primitive.interpolations[2].interpolation == InterpolationType.FLAT


class TestSubPrimitive:
    """Clipped vertices rebuilt from recipes"""

    def test_recipes_blend_attributes(self, gpu, make_program):
        make_program(constant_fragment_shader, declarations={1: (AttributeType.VEC2, InterpolationType.SMOOTH)})
        primitive = init_primitive(gpu)
        for i, vertex in enumerate(primitive.vertices):
            vertex_output_attribute(gpu, vertex, 1, AttributeType.VEC2)[:] = (10.0 * i, 1.0)
        primitive.used_vertices = 3

        positions = np.array([[0.0, 0.0, 0.0, 1.0], [1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 1.0]])
        recipes = np.array([[1.0, 0.0, 0.0], [0.5, 0.5, 0.0], [0.0, 0.25, 0.75]])

        sub = create_sub_primitive(primitive, ClipTriangle(positions, recipes))

        np.testing.assert_allclose([vertex.attributes[1, 0] for vertex in sub.vertices], [0.0, 5.0, 17.5])
        np.testing.assert_allclose([vertex.attributes[1, 1] for vertex in sub.vertices], [1.0, 1.0, 1.0])
        np.testing.assert_array_equal(sub.vertices[1].position, positions[1])
        # Undeclared slots stay empty
        assert not sub.vertices[1].attributes[0].any()
