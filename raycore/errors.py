"""Exceptions raised by the ray tracer outside of the render kernels."""


class RayTracerError(Exception):
    """Base class for all ray tracer errors."""


class ConfigError(RayTracerError):
    """Invalid or unrecognised render configuration."""


class SceneError(RayTracerError):
    """Malformed scene input: bad geometry, light, material or capacity."""


class BackendError(RayTracerError):
    """The Taichi backend is unavailable or was not initialised."""


class ImageError(RayTracerError):
    """A frame buffer that cannot be encoded."""


class ImageWriteError(ImageError):
    """The image file could not be opened or written."""

    def __init__(self, path, reason):
        super().__init__(f"Cannot write image to {path}: {reason}")
        self.path = path
        self.reason = reason
