"""Interactive preview of rendered frames."""

from .viewer import ImageViewer

__all__ = ["ImageViewer"]
