"""
SoftGPU - Errors Module
Exceptions raised when a draw call cannot continue.

Configuration mistakes (unknown ids, bad slots, bad index widths) are logged and
ignored by the registry. The conditions below have no sensible way to continue
and are raised to the caller of the draw or accessor instead.
"""


class GpuError(Exception):
    """Base class for unrecoverable GPU errors"""


class PipelineStateError(GpuError):
    """Raised when the draw needs a bound puller, program or shader that is missing"""


class AttributeAccessError(GpuError):
    """Raised when attribute data is read outside of its buffer or through a stale address"""


class AttributeTypeError(GpuError):
    """Raised when an attribute is accessed as a different type than the program declares"""


class PixelRangeError(GpuError):
    """Raised when a pixel outside of the viewport is read or written"""
