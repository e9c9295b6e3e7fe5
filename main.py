#!/usr/bin/env python3
"""
SoftGPU - Main Entry Point
Renders the Phong demo scene with the software GPU, either in a window or
headless into a PNG file.
"""

import sys
import logging
import argparse
from pathlib import Path

import pygame

# Internal modules
from config import Config
from hardware.errors import GpuError
from hardware.gpu import SoftwareGpu
from system.phong import PhongScene
from ui.swap_buffers import swap_buffers


def setup_logging(verbose=False):
    """Configure the logging system"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "softgpu.log"),
            logging.StreamHandler(sys.stdout)
        ]
    )
    return logging.getLogger("SoftGPU")


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="SoftGPU software rasterizer demo")
    parser.add_argument("--width", type=int, help="Framebuffer width in pixels")
    parser.add_argument("--height", type=int, help="Framebuffer height in pixels")
    parser.add_argument("--mesh", choices=Config.MESHES, help="Mesh to draw")
    parser.add_argument("--headless", action="store_true", help="Render one frame without opening a window")
    parser.add_argument("--output", type=str, default="frame.png", help="PNG file written in headless mode")
    parser.add_argument("--config-dir", type=str, help="Directory holding config.json")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def save_frame(gpu, path):
    """Write the current framebuffer to an image file"""
    image = swap_buffers(gpu)
    height, width = image.shape[:2]
    surface = pygame.image.frombuffer(image.tobytes(), (width, height), "RGBA")
    pygame.image.save(surface, str(path))


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)
    logger = setup_logging(args.verbose)
    logger.info("Starting SoftGPU")

    # Initialize configuration
    config = Config(args.config_dir)
    config.load_config()

    # Override config with command line arguments if provided
    width, height = config.viewport_size
    if args.width or args.height:
        config.set_viewport_size(args.width or width, args.height or height)
    if args.mesh:
        config.mesh = args.mesh

    scene = PhongScene(config, SoftwareGpu())

    try:
        if not scene.on_init(*config.viewport_size):
            logger.error("Scene setup failed")
            return 1

        if args.headless:
            fragments = scene.on_draw()
            save_frame(scene.gpu, args.output)
            logger.info(f"Rendered {fragments} fragments to {args.output}")
        else:
            # OpenGL is only needed for the windowed mode
            from ui.window import Window

            window = Window(config, scene.camera)
            logger.info("Entering main render loop")
            window.run(scene)

    except GpuError as e:
        logger.error(f"Error during rendering: {e}", exc_info=True)
        return 1

    finally:
        scene.on_exit()

    logger.info("SoftGPU shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
