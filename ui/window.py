"""
SoftGPU - Window Module
Shows frames rendered by the software GPU in a pygame OpenGL window.
"""

import logging
import time

import pygame
import OpenGL.GL as gl

from ui.swap_buffers import swap_buffers


class Window:
    """Window presenting the software framebuffer as a texture"""

    DEFAULT_TITLE = "SoftGPU"

    def __init__(self, config, camera=None):
        """Initialize the window with the given configuration

        Args:
            config: Config providing window size and vsync
            camera: OrbitCamera receiving mouse events, if any
        """
        self.logger = logging.getLogger("SoftGPU.Window")
        self.config = config
        self.camera = camera

        pygame.init()

        self.width, self.height = config.window_size
        self.vsync = config.vsync

        # UI state
        self.running = False
        self.clock = pygame.time.Clock()
        self.fps = 60
        self.frame_count = 0
        self.frame_time = 0
        self.title = self.DEFAULT_TITLE

        self.texture = None

        self._create_window()

        pygame.event.set_allowed([pygame.QUIT, pygame.KEYDOWN, pygame.MOUSEMOTION,
                                  pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP])

        self.logger.info(f"Window initialized: {self.width}x{self.height}")

    def _create_window(self):
        """Create the pygame window"""
        pygame.display.set_caption(self.title)

        flags = pygame.DOUBLEBUF | pygame.OPENGL
        self.surface = pygame.display.set_mode((self.width, self.height), flags, vsync=self.vsync)

        self._init_gl()

    def _init_gl(self):
        """Initialize OpenGL settings"""
        gl.glClearColor(0.0, 0.0, 0.0, 1.0)

        # Pixel coordinates with the origin at the top left
        gl.glMatrixMode(gl.GL_PROJECTION)
        gl.glLoadIdentity()
        gl.glOrtho(0, self.width, self.height, 0, -1, 1)

        gl.glMatrixMode(gl.GL_MODELVIEW)
        gl.glLoadIdentity()

        gl.glDisable(gl.GL_DEPTH_TEST)
        gl.glDisable(gl.GL_CULL_FACE)
        gl.glDisable(gl.GL_LIGHTING)

        self.texture = gl.glGenTextures(1)

    def handle_events(self):
        """Handle window events

        Returns:
            True if the window should continue running, False otherwise
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False

            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                return False

            if self.camera is not None:
                self.camera.handle_event(event)

        return True

    def _upload_texture(self, image):
        """Upload an RGBA8 image (first row at the top) into the window texture"""
        height, width = image.shape[:2]

        gl.glBindTexture(gl.GL_TEXTURE_2D, self.texture)

        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_NEAREST)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_NEAREST)
        gl.glPixelStorei(gl.GL_UNPACK_ALIGNMENT, 1)

        gl.glTexImage2D(gl.GL_TEXTURE_2D, 0, gl.GL_RGBA, width, height, 0,
                        gl.GL_RGBA, gl.GL_UNSIGNED_BYTE, image.tobytes())

    def _draw_texture(self, x, y, width, height):
        """Draw the window texture stretched over a rectangle"""
        gl.glEnable(gl.GL_TEXTURE_2D)
        gl.glBindTexture(gl.GL_TEXTURE_2D, self.texture)

        gl.glColor4f(1.0, 1.0, 1.0, 1.0)

        # Texture row 0 holds the top of the image
        gl.glBegin(gl.GL_QUADS)
        gl.glTexCoord2f(0, 0)
        gl.glVertex2f(x, y)
        gl.glTexCoord2f(1, 0)
        gl.glVertex2f(x + width, y)
        gl.glTexCoord2f(1, 1)
        gl.glVertex2f(x + width, y + height)
        gl.glTexCoord2f(0, 1)
        gl.glVertex2f(x, y + height)
        gl.glEnd()

        gl.glDisable(gl.GL_TEXTURE_2D)

    def present(self, image):
        """Show an RGBA8 frame scaled to the whole window"""
        gl.glClear(gl.GL_COLOR_BUFFER_BIT)
        gl.glLoadIdentity()

        self._upload_texture(image)
        self._draw_texture(0, 0, self.width, self.height)

        pygame.display.flip()

    def _update_title(self):
        """Show the frame rate in the title about once per second"""
        self.frame_count += 1
        now = time.time()
        elapsed = now - self.frame_time
        if elapsed >= 1.0:
            self.fps = self.frame_count / elapsed
            self.frame_count = 0
            self.frame_time = now
            pygame.display.set_caption(f"{self.title} - {self.fps:.1f} FPS")

    def run(self, scene):
        """Run the main window loop

        Args:
            scene: Initialized scene with on_draw() and a `gpu` attribute
        """
        self.running = True
        self.frame_time = time.time()

        try:
            while self.running:
                self.running = self.handle_events()
                if not self.running:
                    break

                scene.on_draw()
                self.present(swap_buffers(scene.gpu))
                self._update_title()

                self.clock.tick(60)

        finally:
            self.close()
            pygame.quit()
            self.logger.info("Window closed")

    def close(self):
        """Close the window"""
        if self.texture is not None:
            gl.glDeleteTextures(1, [self.texture])
            self.texture = None
