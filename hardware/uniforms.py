"""
SoftGPU - Uniforms Module
Named, typed uniform slots shared by the vertex and fragment shaders.
"""

import logging
from enum import Enum

import numpy as np


class UniformType(Enum):
    """Types a uniform can be reserved as"""
    FLOAT = 0
    VEC2 = 1
    VEC3 = 2
    VEC4 = 3
    UINT = 4
    MAT4 = 5


# (numpy dtype, component count) per uniform type
UNIFORM_LAYOUTS = {
    UniformType.FLOAT: ("<f4", 1),
    UniformType.VEC2: ("<f4", 2),
    UniformType.VEC3: ("<f4", 3),
    UniformType.VEC4: ("<f4", 4),
    UniformType.UINT: ("<u4", 1),
    UniformType.MAT4: ("<f4", 16),
}

UINT32_MAX = 0xFFFFFFFF


def uniform_size(uniform_type):
    """Size of a uniform of the given type in bytes"""
    dtype, count = UNIFORM_LAYOUTS[uniform_type]
    return np.dtype(dtype).itemsize * count


class Uniform:
    """One reserved uniform: its name, type and zero-initialized storage"""

    def __init__(self, name, uniform_type):
        self.name = name
        self.type = uniform_type
        self.data = bytearray(uniform_size(uniform_type))


class UniformStorage:
    """Append-only table of uniforms addressed by location

    Locations are handed out in reservation order starting at 0. Matrices are
    stored column-major.
    """

    def __init__(self):
        self.logger = logging.getLogger("SoftGPU.Uniforms")
        self.uniforms = []
        self.locations = {}

    def __len__(self):
        return len(self.uniforms)

    def reserve(self, name, uniform_type):
        """Reserve a new uniform

        Args:
            name: Unique uniform name
            uniform_type: UniformType of the value

        Returns:
            Location of the new uniform, or -1 if the name is already taken
        """
        if name in self.locations:
            self.logger.error(f"Uniform '{name}' is already reserved")
            return -1

        location = len(self.uniforms)
        self.uniforms.append(Uniform(name, uniform_type))
        self.locations[name] = location

        self.logger.debug(f"Reserved uniform '{name}' ({uniform_type.name}) at location {location}")
        return location

    def location(self, name):
        """Get the location of a uniform, or -1 if no uniform has that name"""
        return self.locations.get(name, -1)

    def _write(self, location, values, dtype, caller):
        if location < 0:
            self.logger.warning(f"{caller}: ignoring write to negative location {location}")
            return False

        if location >= len(self.uniforms):
            self.logger.error(f"{caller}: no uniform at location {location}")
            return False

        uniform = self.uniforms[location]
        layout_dtype, capacity = UNIFORM_LAYOUTS[uniform.type]
        try:
            values = np.asarray(values, dtype=dtype).ravel()
        except (OverflowError, ValueError, TypeError) as e:
            self.logger.error(f"{caller}: value does not fit uniform '{uniform.name}': {e}")
            return False

        if np.dtype(layout_dtype) != np.dtype(dtype) or values.size > capacity:
            self.logger.error(f"{caller}: {values.size} values do not fit uniform '{uniform.name}' of type {uniform.type.name}")
            return False

        raw = values.tobytes()
        uniform.data[:len(raw)] = raw
        return True

    def uniform_1f(self, location, v0):
        return self._write(location, [v0], "<f4", "uniform_1f")

    def uniform_2f(self, location, v0, v1):
        return self._write(location, [v0, v1], "<f4", "uniform_2f")

    def uniform_3f(self, location, v0, v1, v2):
        return self._write(location, [v0, v1, v2], "<f4", "uniform_3f")

    def uniform_4f(self, location, v0, v1, v2, v3):
        return self._write(location, [v0, v1, v2, v3], "<f4", "uniform_4f")

    def uniform_1ui(self, location, v0):
        if not 0 <= v0 <= UINT32_MAX:
            self.logger.error(f"uniform_1ui: value {v0} is outside the uint32 range")
            return False
        return self._write(location, [v0], "<u4", "uniform_1ui")

    def uniform_matrix_4fv(self, location, matrix):
        """Write a 4x4 matrix given in row/column math layout (matrix[row][col])"""
        matrix = np.asarray(matrix, dtype=np.float32)
        if matrix.shape != (4, 4):
            self.logger.error(f"uniform_matrix_4fv: expected a 4x4 matrix, got shape {matrix.shape}")
            return False

        return self._write(location, matrix.ravel(order="F"), "<f4", "uniform_matrix_4fv")

    def interpret(self, location, uniform_type):
        """Read a uniform as the given type

        Args:
            location: Uniform location
            uniform_type: Expected UniformType

        Returns:
            float or int for scalars, a float32 vector for VEC2-VEC4, a 4x4
            float32 matrix for MAT4, or None if the location is unreserved or
            holds a different type
        """
        if location < 0 or location >= len(self.uniforms):
            self.logger.error(f"Interpret uniform: no uniform at location {location}")
            return None

        uniform = self.uniforms[location]
        if uniform.type != uniform_type:
            self.logger.error(f"Interpret uniform: '{uniform.name}' is {uniform.type.name}, not {uniform_type.name}")
            return None

        dtype, count = UNIFORM_LAYOUTS[uniform_type]
        values = np.frombuffer(uniform.data, dtype=dtype, count=count).copy()

        if uniform_type == UniformType.FLOAT:
            return float(values[0])
        if uniform_type == UniformType.UINT:
            return int(values[0])
        if uniform_type == UniformType.MAT4:
            return values.reshape((4, 4), order="F")
        return values

    def clear(self):
        """Drop every uniform"""
        self.uniforms.clear()
        self.locations.clear()
