"""Python-side vector helpers, rays and the pinhole camera mapping."""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

from raycore.constants import DEGENERATE_LENGTH
from raycore.errors import SceneError

Vec3 = Tuple[float, float, float]


def as_vec3(value: Sequence[float], name: str = "vector") -> Vec3:
    """Coerce a 3-sequence of numbers into a tuple of floats."""
    try:
        x, y, z = (float(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise SceneError(f"{name} must be three numbers, got {value!r}") from exc
    if not all(math.isfinite(c) for c in (x, y, z)):
        raise SceneError(f"{name} must be finite, got {value!r}")
    return (x, y, z)


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def norm(v: Vec3) -> float:
    return math.sqrt(dot(v, v))


def normalize(v: Vec3) -> Vec3:
    """Unit vector along ``v``; the zero vector maps to itself."""
    length = norm(v)
    if length <= DEGENERATE_LENGTH:
        return (0.0, 0.0, 0.0)
    return (v[0] / length, v[1] / length, v[2] / length)


@dataclass(frozen=True)
class Ray:
    """A half-line. ``direction`` need not be unit length."""

    origin: Vec3
    direction: Vec3

    def __post_init__(self):
        object.__setattr__(self, "origin", as_vec3(self.origin, "ray origin"))
        object.__setattr__(self, "direction", as_vec3(self.direction, "ray direction"))

    @classmethod
    def towards(cls, origin, target) -> "Ray":
        """Unit-direction ray from ``origin`` through ``target``."""
        origin = as_vec3(origin, "ray origin")
        target = as_vec3(target, "ray target")
        return cls(origin, normalize((target[0] - origin[0], target[1] - origin[1], target[2] - origin[2])))

    def at(self, distance: float) -> Vec3:
        o, d = self.origin, self.direction
        return (o[0] + d[0] * distance, o[1] + d[1] * distance, o[2] + d[2] * distance)


def pixel_to_ray(origin, pixel_x: int, pixel_y: int, width: int, height: int, fov: float) -> Ray:
    """Primary ray through the centre of pixel ``(pixel_x, pixel_y)``.

    Row 0 is the top of the image and the camera looks down -z. Mirrors
    ``pixel_to_ray`` in :mod:`raycore.gpu_kernels`.
    """
    tan_half_fov = math.tan(fov / 2.0)
    aspect = width / height
    x = (2.0 * (pixel_x + 0.5) / width - 1.0) * tan_half_fov * aspect
    y = -(2.0 * (pixel_y + 0.5) / height - 1.0) * tan_half_fov
    return Ray(origin, normalize((x, y, -1.0)))


def project_point(point, origin, width: int, height: int, fov: float) -> Tuple[int, int]:
    """Pixel whose primary ray passes closest to ``point`` (inverse of :func:`pixel_to_ray`)."""
    point = as_vec3(point, "point")
    origin = as_vec3(origin, "origin")
    rel = (point[0] - origin[0], point[1] - origin[1], point[2] - origin[2])
    if rel[2] >= 0.0:
        raise ValueError("point is not in front of the camera")
    tan_half_fov = math.tan(fov / 2.0)
    x = rel[0] / -rel[2]
    y = rel[1] / -rel[2]
    pixel_x = ((x / (tan_half_fov * width / height)) + 1.0) * width / 2.0 - 0.5
    pixel_y = ((-y / tan_half_fov) + 1.0) * height / 2.0 - 0.5
    return (int(round(pixel_x)), int(round(pixel_y)))
