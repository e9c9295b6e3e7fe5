import math
import struct

import pytest

from hardware.gpu import SoftwareGpu
from hardware.program import AttributeType, InterpolationType, read_vertex_attribute


@pytest.fixture
def gpu():
    """4x4 GPU cleared to opaque black with depth +inf"""
    gpu = SoftwareGpu(4, 4)
    gpu.clear_color(0.0, 0.0, 0.0, 1.0)
    gpu.clear_depth(math.inf)
    yield gpu
    gpu.destroy()


@pytest.fixture
def pack_floats():
    def pack(*values):
        return struct.pack(f"<{len(values)}f", *values)
    return pack


@pytest.fixture
def upload(gpu):
    """Create a buffer holding `data` and return its id"""
    def create(data):
        buffer_id = gpu.create_buffers(1)[0]
        assert gpu.buffer_data(buffer_id, len(data), data)
        return buffer_id
    return create


@pytest.fixture
def position_puller(gpu, upload, pack_floats):
    """Bind a puller reading vec4 clip-space positions from slot 0

    Takes a list of (x, y, z, w) tuples and returns the puller id.
    """
    def create(positions, indices=None):
        data = b"".join(pack_floats(*position) for position in positions)
        buffer_id = upload(data)

        puller_id = gpu.create_vertex_pullers(1)[0]
        assert gpu.set_vertex_puller_head(puller_id, 0, buffer_id, 0, 16)
        assert gpu.enable_vertex_puller_head(puller_id, 0)

        if indices is not None:
            index_id = upload(struct.pack(f"<{len(indices)}I", *indices))
            assert gpu.set_indexing(puller_id, index_id, 4)

        assert gpu.bind_vertex_puller(puller_id)
        return puller_id
    return create


def passthrough_vertex_shader(output, vertex_input, gpu):
    output.position[:] = read_vertex_attribute(gpu, vertex_input, 0, AttributeType.VEC4)


@pytest.fixture
def make_program(gpu):
    """Create and activate a program

    `declarations` maps attribute slot -> (AttributeType, InterpolationType).
    The vertex shader defaults to copying the vec4 in slot 0 to the position.
    """
    def create(fragment_shader, vertex_shader=passthrough_vertex_shader, declarations=None):
        if declarations is None:
            declarations = {0: (AttributeType.VEC4, InterpolationType.SMOOTH)}

        program_id = gpu.create_program()
        assert gpu.attach_vertex_shader(program_id, vertex_shader)
        assert gpu.attach_fragment_shader(program_id, fragment_shader)
        for slot, (attrib_type, interpolation) in declarations.items():
            assert gpu.set_attribute_interpolation(program_id, slot, attrib_type, interpolation)

        assert gpu.use_program(program_id)
        return program_id
    return create
