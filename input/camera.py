"""
SoftGPU - Camera Module
Orbit camera driven by mouse drags: the left button rotates around the
origin, the right button moves closer or further away.
"""

import logging
import math

import numpy as np
import pygame

from hardware.linalg import perspective_matrix, orbit_view_matrix, camera_position_from_view


class OrbitCamera:
    """Camera orbiting the origin, controlled with the mouse"""

    LEFT_BUTTON = 0
    RIGHT_BUTTON = 2

    def __init__(self, fovy=math.pi / 2, near=0.1, far=10000.0, distance=3.0,
                 sensitivity=0.01, zoom_speed=0.04, min_distance=1.0, max_distance=100.0):
        """Initialize the camera looking at the origin from +z

        Args:
            fovy: Vertical field of view in radians
            near: Near clipping distance
            far: Far clipping distance
            distance: Initial distance from the origin
            sensitivity: Radians of rotation per pixel of mouse motion
            zoom_speed: Distance change per pixel of mouse motion
            min_distance: Closest allowed distance
            max_distance: Furthest allowed distance
        """
        self.logger = logging.getLogger("SoftGPU.Camera")

        self.fovy = fovy
        self.near = near
        self.far = far
        self.sensitivity = sensitivity
        self.zoom_speed = zoom_speed
        self.min_distance = min_distance
        self.max_distance = max_distance

        self.angle_x = 0.0
        self.angle_y = 0.0
        self.distance = min(max(distance, min_distance), max_distance)

        self.mouse_buttons = [False, False, False]  # Left, middle, right

    @classmethod
    def from_config(cls, camera_config):
        """Build a camera from the 'camera' section of the configuration"""
        return cls(**camera_config)

    def on_mouse_button_down(self, button):
        if 0 <= button < len(self.mouse_buttons):
            self.mouse_buttons[button] = True

    def on_mouse_button_up(self, button):
        if 0 <= button < len(self.mouse_buttons):
            self.mouse_buttons[button] = False

    def on_mouse_motion(self, xrel, yrel):
        """Apply a relative mouse movement"""
        if self.mouse_buttons[self.LEFT_BUTTON]:
            self.angle_y += xrel * self.sensitivity
            self.angle_x += yrel * self.sensitivity
            self.angle_x = min(max(self.angle_x, -math.pi / 2), math.pi / 2)

        if self.mouse_buttons[self.RIGHT_BUTTON]:
            self.distance += yrel * self.zoom_speed
            self.distance = min(max(self.distance, self.min_distance), self.max_distance)

    def handle_event(self, event):
        """Feed a pygame event to the camera

        Returns:
            True if the event was a mouse event
        """
        if event.type == pygame.MOUSEMOTION:
            self.on_mouse_motion(*event.rel)
        elif event.type == pygame.MOUSEBUTTONDOWN:
            self.on_mouse_button_down(event.button - 1)  # Pygame starts at 1
        elif event.type == pygame.MOUSEBUTTONUP:
            self.on_mouse_button_up(event.button - 1)
        else:
            return False
        return True

    @property
    def view_matrix(self):
        return orbit_view_matrix(self.angle_x, self.angle_y, self.distance)

    def projection_matrix(self, width, height):
        """Perspective projection for a viewport of the given size"""
        return perspective_matrix(self.fovy, width / height, self.near, self.far)

    @property
    def position(self):
        """World-space position of the eye"""
        return camera_position_from_view(self.view_matrix)

    def __repr__(self):
        return (f"OrbitCamera(angle_x={self.angle_x:.3f}, angle_y={self.angle_y:.3f}, "
                f"distance={self.distance:.3f}, position={np.round(self.position, 3).tolist()})")
