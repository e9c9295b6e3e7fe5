"""
SoftGPU - Configuration Module
Handles the settings of the software GPU demo: viewport and window sizes,
camera parameters and scene content.
"""

import os
import json
import logging
import math
from pathlib import Path


class Config:
    """Manages the demo configuration settings"""

    MESHES = ("sphere", "cube")

    # Camera parameters of the orbit camera
    DEFAULT_CAMERA = {
        "fovy": math.pi / 2,
        "near": 0.1,
        "far": 10000.0,
        "distance": 3.0,
        "sensitivity": 0.01,
        "zoom_speed": 0.04,
        "min_distance": 1.0,
        "max_distance": 100.0
    }

    def __init__(self, config_dir=None):
        """Initialize configuration with default values

        Args:
            config_dir: Directory holding config.json (default ~/.softgpu)
        """
        self.logger = logging.getLogger("SoftGPU.Config")

        # Default paths
        if config_dir is None:
            config_dir = os.path.expanduser("~/.softgpu")
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.json"

        # Default settings
        self.viewport_size = (320, 240)
        self.window_size = (640, 480)
        self.vsync = True
        self.clear_color = (0.1, 0.1, 0.1, 1.0)
        self.light_position = (1000.0, 1000.0, 1000.0)
        self.camera = dict(self.DEFAULT_CAMERA)
        self.mesh = "sphere"

        # Ensure config directory exists
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load_config(self):
        """Load configuration from file if it exists

        Settings are applied only when the whole file is valid, so a malformed
        file leaves every default in place.
        """
        if not self.config_file.exists():
            self.logger.info("Config file not found, creating default configuration")
            self.save_config()
            return

        try:
            with open(self.config_file, 'r') as f:
                config_data = json.load(f)

            viewport_size = tuple(config_data.get('viewport_size', self.viewport_size))
            window_size = tuple(config_data.get('window_size', self.window_size))
            vsync = config_data.get('vsync', self.vsync)
            clear_color = tuple(config_data.get('clear_color', self.clear_color))
            light_position = tuple(config_data.get('light_position', self.light_position))
            camera = self._parse_camera(config_data.get('camera', {}))
            mesh = config_data.get('mesh', self.mesh)

        except (OSError, ValueError, TypeError, AttributeError) as e:
            self.logger.error(f"Error loading configuration: {e}")
            self.logger.info("Using default configuration")
            return

        self.viewport_size = viewport_size
        self.window_size = window_size
        self.vsync = vsync
        self.clear_color = clear_color
        self.light_position = light_position
        self.camera = camera

        if mesh in self.MESHES:
            self.mesh = mesh
        else:
            self.logger.warning(f"Unknown mesh '{mesh}' in configuration, keeping '{self.mesh}'")

        self.logger.info("Configuration loaded successfully")

    def _parse_camera(self, camera_data):
        """Merge a 'camera' section over the current camera settings

        Raises:
            TypeError: If the section is not an object
        """
        if not isinstance(camera_data, dict):
            raise TypeError(f"'camera' must be an object, got {type(camera_data).__name__}")

        camera = dict(self.camera)
        for key, value in camera_data.items():
            if key in self.DEFAULT_CAMERA:
                camera[key] = value
            else:
                self.logger.warning(f"Ignoring unknown camera setting '{key}'")
        return camera

    def save_config(self):
        """Save current configuration to file"""
        config_data = {
            'viewport_size': list(self.viewport_size),
            'window_size': list(self.window_size),
            'vsync': self.vsync,
            'clear_color': list(self.clear_color),
            'light_position': list(self.light_position),
            'camera': self.camera,
            'mesh': self.mesh
        }

        try:
            with open(self.config_file, 'w') as f:
                json.dump(config_data, f, indent=4)
            self.logger.info("Configuration saved successfully")
        except OSError as e:
            self.logger.error(f"Error saving configuration: {e}")

    def set_viewport_size(self, width, height):
        """Change the size of the software framebuffer"""
        self.viewport_size = (width, height)
        self.logger.info(f"Viewport size set to {width}x{height}")
