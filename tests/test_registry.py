import logging
import struct

import numpy as np
import pytest

from hardware.constants import MAX_ATTRIBUTES, EMPTY_BUFFER_ID
from hardware.errors import PipelineStateError, PixelRangeError
from hardware.gpu import SoftwareGpu
from hardware.pipeline import compute_attribute_address
from hardware.program import AttributeType, InterpolationType


class TestIdentifiers:
    """Resource ids come from counters starting at 1"""

    def test_buffers(self, gpu):
        first = gpu.create_buffers(3)
        second = gpu.create_buffers(2)
        assert first == [1, 2, 3]
        assert second == [4, 5]

    def test_pullers_and_programs(self, gpu):
        assert gpu.create_vertex_pullers(2) == [1, 2]
        assert gpu.create_program() == 1
        assert gpu.create_program() == 2

    def test_deleted_program_id_not_reused(self, gpu):
        program_id = gpu.create_program()
        assert gpu.delete_program(program_id)
        assert gpu.create_program() != program_id


class TestBufferReferences:
    """Uploads keep heads and index bindings pointing at live storage"""

    def test_reupload_relocates_heads(self, gpu, pack_floats):
        buffer_id = gpu.create_buffers(1)[0]
        gpu.buffer_data(buffer_id, 8, pack_floats(1.0, 2.0))

        puller_id = gpu.create_vertex_pullers(1)[0]
        gpu.set_vertex_puller_head(puller_id, 0, buffer_id, 4, 8)
        gpu.set_vertex_puller_head(puller_id, 3, buffer_id, 0, 8)
        gpu.enable_vertex_puller_head(puller_id, 0)
        gpu.enable_vertex_puller_head(puller_id, 3)

        new_data = pack_floats(5.0, 6.0, 7.0, 8.0)
        assert gpu.buffer_data(buffer_id, len(new_data), new_data)

        storage = gpu.memory.get(buffer_id).data
        puller = gpu.get_vertex_puller(puller_id)
        for slot in (0, 3):
            assert puller.heads[slot].buffer.storage is storage

        assert compute_attribute_address(puller.heads[0], 1).read_floats(1)[0] == 8.0
        assert compute_attribute_address(puller.heads[3], 1).read_floats(1)[0] == 7.0

    def test_reupload_relocates_index_binding(self, gpu):
        buffer_id = gpu.create_buffers(1)[0]
        gpu.buffer_data(buffer_id, 4, struct.pack("<2H", 1, 2))

        puller_id = gpu.create_vertex_pullers(1)[0]
        assert gpu.set_indexing(puller_id, buffer_id, 2)

        gpu.buffer_data(buffer_id, 6, struct.pack("<3H", 5, 2, 9))
        indices = gpu.get_vertex_puller(puller_id).indices
        assert indices.address.storage is gpu.memory.get(buffer_id).data
        assert indices[2] == 9

    def test_read_buffer_returns_uploaded_bytes(self, gpu):
        buffer_id = gpu.create_buffers(1)[0]
        gpu.buffer_data(buffer_id, 4, b"wxyz")
        assert gpu.read_buffer(buffer_id) == b"wxyz"
        assert gpu.read_buffer(42) is None

    def test_changing_head_source_moves_back_reference(self, gpu):
        old, new = gpu.create_buffers(2)
        puller_id = gpu.create_vertex_pullers(1)[0]

        gpu.set_vertex_puller_head(puller_id, 2, old, 0, 4)
        assert (puller_id, 2) in gpu.memory.get(old).attribute_heads

        gpu.set_vertex_puller_head(puller_id, 2, new, 0, 4)
        assert (puller_id, 2) not in gpu.memory.get(old).attribute_heads
        assert (puller_id, 2) in gpu.memory.get(new).attribute_heads
        assert gpu.get_vertex_puller(puller_id).heads[2].buffer_id == new

    def test_clearing_indexing_drops_back_reference(self, gpu):
        buffer_id = gpu.create_buffers(1)[0]
        puller_id = gpu.create_vertex_pullers(1)[0]

        gpu.set_indexing(puller_id, buffer_id, 4)
        assert puller_id in gpu.memory.get(buffer_id).indexing_pullers

        assert gpu.set_indexing(puller_id, EMPTY_BUFFER_ID, 4)
        assert puller_id not in gpu.memory.get(buffer_id).indexing_pullers
        assert gpu.get_vertex_puller(puller_id).indices is None


class TestConfigurationErrors:
    """Bad configuration is logged and leaves state unchanged"""

    def test_invalid_index_size(self, gpu, caplog):
        buffer_id = gpu.create_buffers(1)[0]
        puller_id = gpu.create_vertex_pullers(1)[0]

        with caplog.at_level(logging.ERROR, logger="SoftGPU.GPU"):
            assert not gpu.set_indexing(puller_id, buffer_id, 3)

        assert "invalid index size" in caplog.text
        assert gpu.get_vertex_puller(puller_id).indices is None
        assert not gpu.memory.get(buffer_id).indexing_pullers

    def test_attribute_index_out_of_range(self, gpu):
        buffer_id = gpu.create_buffers(1)[0]
        puller_id = gpu.create_vertex_pullers(1)[0]
        program_id = gpu.create_program()

        assert not gpu.set_vertex_puller_head(puller_id, MAX_ATTRIBUTES, buffer_id, 0, 4)
        assert not gpu.enable_vertex_puller_head(puller_id, -1)
        assert not gpu.set_attribute_interpolation(program_id, MAX_ATTRIBUTES, AttributeType.VEC2,
                                                   InterpolationType.FLAT)
        assert not gpu.memory.get(buffer_id).attribute_heads

    def test_unknown_ids(self, gpu):
        buffer_id = gpu.create_buffers(1)[0]
        puller_id = gpu.create_vertex_pullers(1)[0]

        assert not gpu.buffer_data(99, 1, b"a")
        assert not gpu.set_vertex_puller_head(99, 0, buffer_id, 0, 4)
        assert not gpu.set_vertex_puller_head(puller_id, 0, 99, 0, 4)
        assert not gpu.set_indexing(puller_id, 99, 2)
        assert not gpu.bind_vertex_puller(99)
        assert not gpu.use_program(99)
        assert not gpu.delete_program(99)
        assert not gpu.attach_vertex_shader(99, lambda output, vertex_input, gpu: None)

        assert gpu.get_vertex_puller(puller_id).heads[0].buffer_id == EMPTY_BUFFER_ID

    def test_default_slot_declarations(self, gpu):
        program_id = gpu.create_program()
        gpu.use_program(program_id)
        for declaration in gpu.active_program.interpolations:
            assert declaration.type == AttributeType.EMPTY
            assert declaration.interpolation == InterpolationType.SMOOTH


class TestBoundState:
    """Accessing missing pipeline state raises"""

    def test_no_puller_bound(self, gpu):
        with pytest.raises(PipelineStateError):
            gpu.active_vertex_puller

    def test_no_program_bound(self, gpu):
        with pytest.raises(PipelineStateError):
            gpu.active_program

    def test_program_without_fragment_shader(self, gpu):
        program_id = gpu.create_program()
        gpu.attach_vertex_shader(program_id, lambda output, vertex_input, gpu: None)
        gpu.use_program(program_id)

        assert gpu.active_vertex_shader is not None
        with pytest.raises(PipelineStateError):
            gpu.active_fragment_shader

    def test_deleting_active_program_unbinds_it(self, gpu):
        program_id = gpu.create_program()
        gpu.use_program(program_id)
        gpu.delete_program(program_id)
        with pytest.raises(PipelineStateError):
            gpu.active_program


class TestFramebuffer:
    """Viewport sizing and pixel access"""

    def test_resize(self):
        gpu = SoftwareGpu(2, 2)
        gpu.set_viewport_size(5, 3)
        assert (gpu.viewport_width, gpu.viewport_height) == (5, 3)
        assert gpu.render_target.color.shape == (3, 5, 4)
        assert gpu.render_target.depth.shape == (3, 5)

    def test_clear_and_access(self, gpu):
        gpu.clear_color(0.25, 0.5, 0.75, 1.0)
        gpu.clear_depth(2.0)
        np.testing.assert_allclose(gpu.get_color(3, 0), [0.25, 0.5, 0.75, 1.0])
        assert gpu.get_depth(0, 3) == 2.0

        gpu.set_color(1, 2, (1.0, 0.0, 0.0, 1.0))
        gpu.set_depth(1, 2, 0.5)
        np.testing.assert_allclose(gpu.get_color(1, 2), [1.0, 0.0, 0.0, 1.0])
        assert gpu.get_depth(1, 2) == 0.5

    @pytest.mark.parametrize("x,y", [(-1, 0), (4, 0), (0, 4), (0, -1)])
    def test_out_of_range(self, gpu, x, y):
        with pytest.raises(PixelRangeError):
            gpu.get_color(x, y)
        with pytest.raises(PixelRangeError):
            gpu.set_depth(x, y, 0.0)

    def test_destroy_releases_everything(self, gpu):
        gpu.create_buffers(2)
        gpu.create_vertex_pullers(1)
        gpu.create_program()
        gpu.destroy()

        state = gpu.get_state()
        assert state["buffers"]["buffer_count"] == 0
        assert state["puller_count"] == 0
        assert state["program_count"] == 0
        assert state["viewport"] == (0, 0)
