"""
SoftGPU - Phong Module
Demo scene: a lit mesh drawn with per-fragment Phong shading through the
software GPU.
"""

import logging
import math

import numpy as np

from hardware.constants import EMPTY_BUFFER_ID
from hardware.gpu import SoftwareGpu
from hardware.program import (
    AttributeType, InterpolationType,
    read_vertex_attribute, vertex_output_attribute, fragment_attribute,
)
from hardware.uniforms import UniformType
from input.camera import OrbitCamera
from system.mesh import make_mesh, VERTEX_STRIDE, NORMAL_OFFSET


SHININESS = 40.0
DIFFUSE_EPSILON = 0.001


def _normalize(vector):
    length = float(np.linalg.norm(vector))
    if length == 0.0:
        return vector
    return vector / length


def _reflect(incident, normal):
    return incident - 2.0 * float(np.dot(normal, incident)) * normal


def phong_vertex_shader(output, vertex_input, gpu):
    """Transform a world-space vertex to clip space, forwarding position and normal"""
    uniforms = gpu.uniforms
    view = uniforms.interpret(gpu.get_uniform_location("viewMatrix"), UniformType.MAT4)
    projection = uniforms.interpret(gpu.get_uniform_location("projectionMatrix"), UniformType.MAT4)

    position = read_vertex_attribute(gpu, vertex_input, 0, AttributeType.VEC3)
    normal = read_vertex_attribute(gpu, vertex_input, 1, AttributeType.VEC3)

    output.position[:] = projection @ view @ np.append(position, 1.0)

    vertex_output_attribute(gpu, output, 0, AttributeType.VEC3)[:] = position
    vertex_output_attribute(gpu, output, 1, AttributeType.VEC3)[:] = normal


def diffuse_color(normal_y):
    """Green for normals pointing sideways or down, white straight up, blended by y squared"""
    if abs(normal_y - 1.0) <= DIFFUSE_EPSILON:
        return np.array([1.0, 1.0, 1.0])
    if normal_y < 0.0 or abs(normal_y) <= DIFFUSE_EPSILON:
        return np.array([0.0, 1.0, 0.0])
    t = normal_y * normal_y
    return np.array([t, 1.0, t])


def phong_fragment_shader(output, fragment_input, gpu):
    """Phong lighting with a white point light, no ambient term"""
    uniforms = gpu.uniforms
    camera_position = uniforms.interpret(gpu.get_uniform_location("cameraPosition"), UniformType.VEC3)
    light_position = uniforms.interpret(gpu.get_uniform_location("lightPosition"), UniformType.VEC3)

    position = np.asarray(fragment_attribute(gpu, fragment_input, 0, AttributeType.VEC3), dtype=np.float64)
    # Interpolation shortens normals
    normal = _normalize(np.asarray(fragment_attribute(gpu, fragment_input, 1, AttributeType.VEC3), dtype=np.float64))

    light = _normalize(light_position - position)
    camera = _normalize(camera_position - position)
    reflected = _normalize(-_reflect(light, normal))

    diffuse = diffuse_color(normal[1]) * max(float(np.dot(normal, light)), 0.0)
    diffuse = np.clip(diffuse, 0.0, 1.0)

    specular = np.ones(3) * math.pow(max(float(np.dot(reflected, camera)), 0.0), SHININESS)
    specular = np.clip(specular, 0.0, 1.0)

    output.color[:3] = diffuse + specular
    output.color[3] = 1.0


class PhongScene:
    """Mesh lit with Phong shading, viewed through an orbit camera"""

    def __init__(self, config, gpu=None, camera=None, mesh=None):
        """Initialize the scene

        Args:
            config: Config with viewport, clear color, light and camera settings
            gpu: SoftwareGpu to render with (a new one by default)
            camera: OrbitCamera (built from the configuration by default)
            mesh: MeshData to draw (the configured mesh by default)
        """
        self.logger = logging.getLogger("SoftGPU.Phong")
        self.config = config

        self.gpu = gpu if gpu is not None else SoftwareGpu()
        self.camera = camera if camera is not None else OrbitCamera.from_config(config.camera)
        self.mesh = mesh if mesh is not None else make_mesh(config.mesh)

        self.program_id = None
        self.vertex_buffer_id = EMPTY_BUFFER_ID
        self.index_buffer_id = EMPTY_BUFFER_ID
        self.puller_id = None
        self.locations = {}

    def on_init(self, width, height):
        """Create every GPU resource of the scene

        Returns:
            True if all resources were configured
        """
        gpu = self.gpu
        gpu.set_viewport_size(width, height)

        for name, uniform_type in (("viewMatrix", UniformType.MAT4),
                                   ("projectionMatrix", UniformType.MAT4),
                                   ("cameraPosition", UniformType.VEC3),
                                   ("lightPosition", UniformType.VEC3)):
            location = gpu.get_uniform_location(name)
            if location < 0:
                location = gpu.uniforms.reserve(name, uniform_type)
            self.locations[name] = location

        self.program_id = gpu.create_program()
        ok = gpu.attach_vertex_shader(self.program_id, phong_vertex_shader)
        ok = gpu.attach_fragment_shader(self.program_id, phong_fragment_shader) and ok
        for slot in (0, 1):
            ok = gpu.set_attribute_interpolation(self.program_id, slot, AttributeType.VEC3, InterpolationType.SMOOTH) and ok

        self.vertex_buffer_id, self.index_buffer_id = gpu.create_buffers(2)
        vertex_bytes = self.mesh.vertex_bytes()
        index_bytes = self.mesh.index_bytes()
        ok = gpu.buffer_data(self.vertex_buffer_id, len(vertex_bytes), vertex_bytes) and ok
        ok = gpu.buffer_data(self.index_buffer_id, len(index_bytes), index_bytes) and ok

        self.puller_id = gpu.create_vertex_pullers(1)[0]
        ok = gpu.set_vertex_puller_head(self.puller_id, 0, self.vertex_buffer_id, 0, VERTEX_STRIDE) and ok
        ok = gpu.set_vertex_puller_head(self.puller_id, 1, self.vertex_buffer_id, NORMAL_OFFSET, VERTEX_STRIDE) and ok
        ok = gpu.enable_vertex_puller_head(self.puller_id, 0) and ok
        ok = gpu.enable_vertex_puller_head(self.puller_id, 1) and ok
        ok = gpu.set_indexing(self.puller_id, self.index_buffer_id, 4) and ok

        self.logger.info(f"Phong scene initialized with {self.mesh}")
        return ok

    def upload_uniforms(self):
        """Copy camera matrices, camera position and light position to the uniforms"""
        uniforms = self.gpu.uniforms
        width = self.gpu.viewport_width
        height = self.gpu.viewport_height

        uniforms.uniform_matrix_4fv(self.locations["viewMatrix"], self.camera.view_matrix)
        uniforms.uniform_matrix_4fv(self.locations["projectionMatrix"], self.camera.projection_matrix(width, height))
        uniforms.uniform_3f(self.locations["cameraPosition"], *self.camera.position)
        uniforms.uniform_3f(self.locations["lightPosition"], *self.config.light_position)

    def on_draw(self):
        """Render one frame

        Returns:
            Number of fragments written
        """
        gpu = self.gpu
        gpu.clear_depth(math.inf)
        gpu.clear_color(*self.config.clear_color)

        gpu.bind_vertex_puller(self.puller_id)
        gpu.use_program(self.program_id)
        self.upload_uniforms()

        return gpu.draw_triangles(self.mesh.index_count)

    def on_exit(self):
        """Release the scene's GPU resources"""
        self.gpu.destroy()
        self.logger.info("Phong scene released")
