"""
SoftGPU - Program Module
Shader programs, the records passed to shader callbacks and the typed
accessors shaders use to read and write attribute slots.
"""

from enum import Enum

import numpy as np

from hardware.constants import MAX_ATTRIBUTES, EMPTY_BUFFER_ID
from hardware.errors import AttributeAccessError, AttributeTypeError


class AttributeType(Enum):
    """Component layout of an attribute slot; the value is the float count"""
    FLOAT = 1
    VEC2 = 2
    VEC3 = 3
    VEC4 = 4
    EMPTY = 0

    @property
    def components(self):
        return self.value


class InterpolationType(Enum):
    """How an attribute is carried from the vertices to a fragment"""
    FLAT = 0
    NOPERSPECTIVE = 1
    SMOOTH = 2


class AttributeInterpolation:
    """Declared type and interpolation qualifier of one attribute slot"""

    def __init__(self, attrib_type=AttributeType.EMPTY, interpolation=InterpolationType.SMOOTH):
        self.type = attrib_type
        self.interpolation = interpolation

    def __repr__(self):
        return f"AttributeInterpolation({self.type.name}, {self.interpolation.name})"


class ProgramSettings:
    """A shader program: vertex and fragment callbacks plus per-slot declarations

    Shaders are plain callables taking ``(output, input, gpu)``.
    """

    def __init__(self, program_id):
        self.program_id = program_id
        self.vertex_shader = None
        self.fragment_shader = None
        self.interpolations = [AttributeInterpolation() for _ in range(MAX_ATTRIBUTES)]


class VertexShaderInput:
    """Input of one vertex shader invocation"""

    def __init__(self, attributes, vertex_id):
        self.attributes = attributes  # per-slot Address or None
        self.vertex_id = vertex_id


class VertexShaderOutput:
    """Clip-space position and attribute slots written by a vertex shader"""

    def __init__(self):
        self.position = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float32)
        self.attributes = np.zeros((MAX_ATTRIBUTES, 4), dtype=np.float32)


class FragmentShaderInput:
    """Interpolated attributes, pixel coordinate and depth of one fragment"""

    def __init__(self):
        self.attributes = np.zeros((MAX_ATTRIBUTES, 4), dtype=np.float32)
        self.coords = np.zeros(2, dtype=np.float32)
        self.depth = 0.0


class FragmentShaderOutput:
    """Color and depth written by a fragment shader"""

    def __init__(self):
        self.color = np.zeros(4, dtype=np.float32)
        self.depth = 0.0


def _check_index(index):
    if index < 0 or index >= MAX_ATTRIBUTES:
        raise AttributeAccessError(f"Attribute slot {index} out of range [0, {MAX_ATTRIBUTES})")


def _check_declared(gpu, index, attrib_type):
    declared = gpu.active_program.interpolations[index].type
    if attrib_type == AttributeType.EMPTY or declared != attrib_type:
        raise AttributeTypeError(f"Attribute slot {index} is declared {declared.name}, accessed as {attrib_type.name}")


def read_vertex_attribute(gpu, vertex_input, index, attrib_type):
    """Read one vertex attribute from buffer memory

    Args:
        gpu: The SoftwareGpu running the draw
        vertex_input: VertexShaderInput of the current invocation
        index: Attribute slot
        attrib_type: AttributeType to decode the data as

    Returns:
        float for FLOAT, float32 vector for VEC2-VEC4

    Raises:
        AttributeAccessError: slot out of range, no enabled head, empty buffer,
            stale address or read past the end of the buffer
        AttributeTypeError: the program declares the slot as another type
        PipelineStateError: no puller or program is bound
    """
    _check_index(index)

    puller = gpu.active_vertex_puller
    head = puller.heads[index]
    address = vertex_input.attributes[index]
    if address is None or head.buffer_id == EMPTY_BUFFER_ID:
        raise AttributeAccessError(f"Attribute slot {index} of puller {puller.puller_id} has no enabled buffer")

    buffer = gpu.memory.get(address.buffer_id)
    if buffer is None or buffer.size == 0:
        raise AttributeAccessError(f"Attribute slot {index} reads from empty buffer {address.buffer_id}")
    if address.storage is not buffer.data:
        raise AttributeAccessError(f"Attribute slot {index} holds a stale address into buffer {address.buffer_id}")

    declared = gpu.active_program.interpolations[index].type
    if attrib_type == AttributeType.EMPTY or (declared != AttributeType.EMPTY and declared != attrib_type):
        raise AttributeTypeError(f"Attribute slot {index} is declared {declared.name}, read as {attrib_type.name}")

    values = address.read_floats(attrib_type.components)
    if attrib_type == AttributeType.FLOAT:
        return float(values[0])
    return values


def vertex_output_attribute(gpu, vertex_output, index, attrib_type):
    """Writable view of an output attribute slot of a vertex shader

    The view has as many components as `attrib_type` (one for FLOAT), so a
    shader writes it with ``out[:] = value``.
    """
    _check_index(index)
    _check_declared(gpu, index, attrib_type)
    return vertex_output.attributes[index, :attrib_type.components]


def fragment_attribute(gpu, fragment_input, index, attrib_type):
    """Interpolated attribute of a fragment, float for FLOAT and a vector otherwise"""
    _check_index(index)
    _check_declared(gpu, index, attrib_type)
    if attrib_type == AttributeType.FLOAT:
        return float(fragment_input.attributes[index, 0])
    return fragment_input.attributes[index, :attrib_type.components]
