"""
SoftGPU - GPU Module
Resource registry of the software GPU: buffers, vertex pullers, programs,
uniforms and the color/depth framebuffer.
"""

import logging

import numpy as np

from hardware.constants import (
    MAX_ATTRIBUTES, INDEX_ELEMENT_SIZES,
    EMPTY_BUFFER_ID, EMPTY_PULLER_ID, EMPTY_PROGRAM_ID,
)
from hardware.errors import PipelineStateError, PixelRangeError
from hardware.memory import BufferMemory, IndexBinding
from hardware.pipeline import draw_triangles
from hardware.program import ProgramSettings, AttributeInterpolation
from hardware.uniforms import UniformStorage


class RenderTarget:
    """Float color and depth planes of the framebuffer, stored row by row"""

    def __init__(self, width, height):
        """Initialize a render target; contents are undefined until cleared"""
        self.width = 0
        self.height = 0
        self.color = np.zeros((0, 0, 4), dtype=np.float32)
        self.depth = np.zeros((0, 0), dtype=np.float32)
        self.resize(width, height)

    def resize(self, width, height):
        """Reallocate both planes for a new size"""
        self.width = width
        self.height = height
        self.color = np.empty((height, width, 4), dtype=np.float32)
        self.depth = np.empty((height, width), dtype=np.float32)

    def clear_color(self, color):
        self.color[:, :] = color

    def clear_depth(self, depth):
        self.depth[:, :] = depth

    def _check(self, x, y):
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            raise PixelRangeError(f"Pixel ({x}, {y}) outside of {self.width}x{self.height} viewport")

    def get_pixel(self, x, y):
        """Color of a pixel as a float32 vector of four channels"""
        self._check(x, y)
        return self.color[y, x].copy()

    def set_pixel(self, x, y, color):
        self._check(x, y)
        self.color[y, x] = color

    def get_depth(self, x, y):
        self._check(x, y)
        return float(self.depth[y, x])

    def set_depth(self, x, y, depth):
        self._check(x, y)
        self.depth[y, x] = depth


class VertexPullerHead:
    """One attribute source of a vertex puller"""

    def __init__(self):
        self.buffer_id = EMPTY_BUFFER_ID
        self.buffer = None  # Address of the buffer start
        self.enabled = False
        self.offset = 0
        self.stride = 0


class VertexPullerConfiguration:
    """Attribute heads and optional index binding of one vertex puller"""

    def __init__(self, puller_id):
        self.puller_id = puller_id
        self.heads = [VertexPullerHead() for _ in range(MAX_ATTRIBUTES)]
        self.indices = None  # IndexBinding or None

    @property
    def index_buffer_id(self):
        return EMPTY_BUFFER_ID if self.indices is None else self.indices.buffer_id


class SoftwareGpu:
    """Software GPU holding every rendering resource

    Configuration calls log and ignore bad input, returning False. Accessing
    pipeline state that is not bound raises PipelineStateError.
    """

    def __init__(self, width=0, height=0):
        """Initialize an empty GPU with a framebuffer of the given size

        Args:
            width: Viewport width in pixels
            height: Viewport height in pixels
        """
        self.logger = logging.getLogger("SoftGPU.GPU")

        self.memory = BufferMemory()
        self.uniforms = UniformStorage()

        # Vertex pullers
        self.pullers = {}
        self.next_puller_id = EMPTY_PULLER_ID + 1
        self.active_puller_id = EMPTY_PULLER_ID

        # Programs
        self.programs = {}
        self.next_program_id = EMPTY_PROGRAM_ID + 1
        self.active_program_id = EMPTY_PROGRAM_ID

        self.render_target = RenderTarget(width, height)

        # Statistics
        self.draw_count = 0
        self.fragment_count = 0

        self.logger.info(f"Initialized software GPU with a {width}x{height} viewport")

    def destroy(self):
        """Release every resource held by the GPU"""
        self.memory.clear()
        self.uniforms.clear()
        self.pullers.clear()
        self.programs.clear()
        self.active_puller_id = EMPTY_PULLER_ID
        self.active_program_id = EMPTY_PROGRAM_ID
        self.render_target.resize(0, 0)
        self.logger.info("Software GPU destroyed")

    # Framebuffer

    @property
    def viewport_width(self):
        return self.render_target.width

    @property
    def viewport_height(self):
        return self.render_target.height

    def set_viewport_size(self, width, height):
        """Resize the framebuffer; its contents are undefined until cleared"""
        self.render_target.resize(width, height)
        self.logger.info(f"Viewport size set to {width}x{height}")

    def clear_color(self, r, g, b, a):
        self.render_target.clear_color((r, g, b, a))

    def clear_depth(self, depth):
        self.render_target.clear_depth(depth)

    def get_color(self, x, y):
        return self.render_target.get_pixel(x, y)

    def set_color(self, x, y, color):
        self.render_target.set_pixel(x, y, color)

    def get_depth(self, x, y):
        return self.render_target.get_depth(x, y)

    def set_depth(self, x, y, depth):
        self.render_target.set_depth(x, y, depth)

    # Buffers

    def create_buffers(self, count):
        """Create `count` buffers and return their ids"""
        return self.memory.create(count)

    def buffer_data(self, buffer_id, size, data):
        """Upload data to a buffer and rebind every head and index binding using it

        Args:
            buffer_id: Target buffer
            size: Number of bytes to copy from `data`
            data: bytes-like object or numpy array

        Returns:
            True if the data was uploaded
        """
        buffer = self.memory.write(buffer_id, size, data)
        if buffer is None:
            return False

        for puller_id in buffer.indexing_pullers:
            self.pullers[puller_id].indices.rebind(buffer.base_address())

        for puller_id, attrib_index in buffer.attribute_heads:
            self.pullers[puller_id].heads[attrib_index].buffer = buffer.base_address()

        return True

    def read_buffer(self, buffer_id):
        """Current contents of a buffer as bytes, or None for unknown ids"""
        buffer = self.memory.get(buffer_id)
        if buffer is None:
            self.logger.error(f"Read buffer: unknown buffer {buffer_id}")
            return None
        return bytes(buffer.data)

    # Vertex pullers

    def create_vertex_pullers(self, count):
        """Create `count` vertex pullers and return their ids"""
        ids = []
        for _ in range(count):
            puller_id = self.next_puller_id
            self.next_puller_id += 1
            self.pullers[puller_id] = VertexPullerConfiguration(puller_id)
            ids.append(puller_id)

        self.logger.debug(f"Created vertex pullers {ids}")
        return ids

    def get_vertex_puller(self, puller_id):
        return self.pullers.get(puller_id)

    def _check_attribute_index(self, caller, attrib_index):
        if attrib_index < 0 or attrib_index >= MAX_ATTRIBUTES:
            self.logger.error(f"{caller}: attribute index {attrib_index} out of range [0, {MAX_ATTRIBUTES})")
            return False
        return True

    def _lookup_puller(self, caller, puller_id):
        puller = self.pullers.get(puller_id)
        if puller is None:
            self.logger.error(f"{caller}: unknown vertex puller {puller_id}")
        return puller

    def set_vertex_puller_head(self, puller_id, attrib_index, buffer_id, offset, stride):
        """Point one attribute head of a puller at a buffer

        Args:
            puller_id: Vertex puller to configure
            attrib_index: Attribute slot
            buffer_id: Source buffer
            offset: Byte offset of the first element
            stride: Byte distance between consecutive vertices

        Returns:
            True if the head was updated
        """
        caller = "Set vertex puller head"
        if not self._check_attribute_index(caller, attrib_index):
            return False

        puller = self._lookup_puller(caller, puller_id)
        if puller is None:
            return False

        buffer = self.memory.get(buffer_id)
        if buffer is None:
            self.logger.error(f"{caller}: unknown buffer {buffer_id}")
            return False

        head = puller.heads[attrib_index]

        # Replace the back reference held by the previous source buffer
        previous = self.memory.get(head.buffer_id)
        if previous is not None:
            previous.attribute_heads.discard((puller_id, attrib_index))
        buffer.attribute_heads.add((puller_id, attrib_index))

        head.buffer_id = buffer_id
        head.buffer = buffer.base_address()
        head.offset = offset
        head.stride = stride

        self.logger.debug(f"Puller {puller_id} head {attrib_index}: buffer {buffer_id}, offset {offset}, stride {stride}")
        return True

    def _set_head_enabled(self, caller, puller_id, attrib_index, enabled):
        if not self._check_attribute_index(caller, attrib_index):
            return False

        puller = self._lookup_puller(caller, puller_id)
        if puller is None:
            return False

        puller.heads[attrib_index].enabled = enabled
        return True

    def enable_vertex_puller_head(self, puller_id, attrib_index):
        return self._set_head_enabled("Enable vertex puller head", puller_id, attrib_index, True)

    def disable_vertex_puller_head(self, puller_id, attrib_index):
        return self._set_head_enabled("Disable vertex puller head", puller_id, attrib_index, False)

    def set_indexing(self, puller_id, buffer_id, index_size):
        """Attach an index buffer to a puller, or detach it with buffer id 0

        Args:
            puller_id: Vertex puller to configure
            buffer_id: Index buffer, EMPTY_BUFFER_ID to draw without indices
            index_size: Width of one index in bytes (1, 2 or 4)

        Returns:
            True if the binding was updated
        """
        caller = "Set indexing"
        if index_size not in INDEX_ELEMENT_SIZES:
            self.logger.error(f"{caller}: invalid index size {index_size}, expected one of {INDEX_ELEMENT_SIZES}")
            return False

        puller = self._lookup_puller(caller, puller_id)
        if puller is None:
            return False

        buffer = None
        if buffer_id != EMPTY_BUFFER_ID:
            buffer = self.memory.get(buffer_id)
            if buffer is None:
                self.logger.error(f"{caller}: unknown buffer {buffer_id}")
                return False

        previous = self.memory.get(puller.index_buffer_id)
        if previous is not None:
            previous.indexing_pullers.discard(puller_id)

        if buffer is None:
            puller.indices = None
            self.logger.debug(f"Puller {puller_id}: indexing cleared")
            return True

        buffer.indexing_pullers.add(puller_id)
        puller.indices = IndexBinding(buffer.base_address(), index_size)

        self.logger.debug(f"Puller {puller_id}: indexing from buffer {buffer_id}, {index_size} bytes per index")
        return True

    def bind_vertex_puller(self, puller_id):
        """Make a puller the active one; EMPTY_PULLER_ID unbinds"""
        if puller_id != EMPTY_PULLER_ID and puller_id not in self.pullers:
            self.logger.error(f"Bind vertex puller: unknown vertex puller {puller_id}")
            return False

        self.active_puller_id = puller_id
        return True

    @property
    def active_vertex_puller(self):
        """The bound VertexPullerConfiguration

        Raises:
            PipelineStateError: if no puller is bound
        """
        puller = self.pullers.get(self.active_puller_id)
        if puller is None:
            raise PipelineStateError("No vertex puller is bound")
        return puller

    # Programs

    def create_program(self):
        """Create an empty program and return its id"""
        program_id = self.next_program_id
        self.next_program_id += 1
        self.programs[program_id] = ProgramSettings(program_id)

        self.logger.debug(f"Created program {program_id}")
        return program_id

    def delete_program(self, program_id):
        if program_id not in self.programs:
            self.logger.error(f"Delete program: unknown program {program_id}")
            return False

        del self.programs[program_id]
        if self.active_program_id == program_id:
            self.active_program_id = EMPTY_PROGRAM_ID

        self.logger.debug(f"Deleted program {program_id}")
        return True

    def _lookup_program(self, caller, program_id):
        program = self.programs.get(program_id)
        if program is None:
            self.logger.error(f"{caller}: unknown program {program_id}")
        return program

    def attach_vertex_shader(self, program_id, shader):
        program = self._lookup_program("Attach vertex shader", program_id)
        if program is None:
            return False
        program.vertex_shader = shader
        return True

    def attach_fragment_shader(self, program_id, shader):
        program = self._lookup_program("Attach fragment shader", program_id)
        if program is None:
            return False
        program.fragment_shader = shader
        return True

    def set_attribute_interpolation(self, program_id, attrib_index, attrib_type, interpolation):
        """Declare the type and interpolation qualifier of one attribute slot

        Args:
            program_id: Program to configure
            attrib_index: Attribute slot
            attrib_type: AttributeType of the slot
            interpolation: InterpolationType of the slot

        Returns:
            True if the declaration was stored
        """
        caller = "Set attribute interpolation"
        if not self._check_attribute_index(caller, attrib_index):
            return False

        program = self._lookup_program(caller, program_id)
        if program is None:
            return False

        program.interpolations[attrib_index] = AttributeInterpolation(attrib_type, interpolation)
        return True

    def use_program(self, program_id):
        """Make a program the active one; EMPTY_PROGRAM_ID unbinds"""
        if program_id != EMPTY_PROGRAM_ID and program_id not in self.programs:
            self.logger.error(f"Use program: unknown program {program_id}")
            return False

        self.active_program_id = program_id
        return True

    @property
    def active_program(self):
        """The active ProgramSettings

        Raises:
            PipelineStateError: if no program is active
        """
        program = self.programs.get(self.active_program_id)
        if program is None:
            raise PipelineStateError("No program is active")
        return program

    @property
    def active_vertex_shader(self):
        shader = self.active_program.vertex_shader
        if shader is None:
            raise PipelineStateError(f"Program {self.active_program_id} has no vertex shader")
        return shader

    @property
    def active_fragment_shader(self):
        shader = self.active_program.fragment_shader
        if shader is None:
            raise PipelineStateError(f"Program {self.active_program_id} has no fragment shader")
        return shader

    # Uniforms

    def get_uniform_location(self, name):
        return self.uniforms.location(name)

    # Drawing

    def draw_triangles(self, vertex_count):
        """Draw `vertex_count` vertices of the bound puller as triangles

        Returns:
            Number of fragments written
        """
        written = draw_triangles(self, vertex_count)
        self.draw_count += 1
        self.fragment_count += written
        return written

    def get_state(self):
        """Get the current GPU state for debugging"""
        return {
            "viewport": (self.viewport_width, self.viewport_height),
            "buffers": self.memory.get_stats(),
            "puller_count": len(self.pullers),
            "program_count": len(self.programs),
            "uniform_count": len(self.uniforms),
            "active_puller": self.active_puller_id,
            "active_program": self.active_program_id,
            "draw_count": self.draw_count,
            "fragment_count": self.fragment_count,
        }
