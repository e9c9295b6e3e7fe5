"""
SoftGPU - Presentation Module
Converts the float framebuffer into an 8-bit image for display.
"""

import numpy as np


def float_to_byte(values):
    """Convert float channels in [0, 1] to bytes with round(value * 255)"""
    scaled = np.rint(np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0) * 255.0)
    return scaled.astype(np.uint8)


def swap_buffers(gpu):
    """RGBA8 image of the GPU's color buffer with the first row at the top

    The framebuffer stores row 0 at the bottom, so rows are flipped.

    Returns:
        uint8 array of shape (height, width, 4)
    """
    color = gpu.render_target.color
    return np.ascontiguousarray(float_to_byte(color[::-1]))
