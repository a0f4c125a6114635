"""Frame assembly and single-ray queries on top of the Taichi kernels."""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import taichi as ti

from raycore.config import RenderConfig
from raycore.errors import SceneError
from raycore.geometry import Ray, Vec3
from raycore.gpu_kernels import cast_single_ray, intersect_single_ray, render_rows
from raycore.gpu_structs import vec3
from raycore.scene_manager import SceneManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Intersection:
    """Nearest hit along a ray.

    ``distance`` is the ray parameter t, so ``point == origin + t * direction``;
    it equals the travelled length only for unit directions.
    """

    distance: float
    point: Vec3
    normal: Vec3
    object_index: int
    material_index: int


@dataclass(frozen=True)
class RenderStats:
    rays_traced: int
    deepest_level: int
    seconds: float


class Renderer:
    """Renders a :class:`SceneManager` scene with a fixed :class:`RenderConfig`.

    The frame is traced in batches of ``config.rows_per_batch`` rows; every
    pixel of a batch gets its own slot in the work-stack fields, so pixels
    are traced in parallel without sharing mutable state.

    Taichi fields are never freed, so renderers with the same frame and
    stack shape share one set of buffers (see :func:`_frame_buffers`).
    A render reads the shared pixels back into a fresh numpy array
    before returning.
    """

    def __init__(self, scene: SceneManager, config: Optional[RenderConfig] = None):
        self.scene = scene
        self.config = config or RenderConfig()
        cfg = self.config

        rows = min(cfg.rows_per_batch, cfg.height)
        self._rows_per_batch = rows
        buffers = _frame_buffers(cfg.height, cfg.width, rows * cfg.width, cfg.stack_size)
        self.pixels = buffers.pixels
        self.stack_origin = buffers.stack_origin
        self.stack_dir = buffers.stack_dir
        self.stack_weight = buffers.stack_weight
        self.stack_depth = buffers.stack_depth

        queries = _query_fields()
        self.ray_count = queries.ray_count
        self.deepest = queries.deepest
        self._color = queries.color
        self._hit_found = queries.hit_found
        self._hit_distance = queries.hit_distance
        self._hit_point = queries.hit_point
        self._hit_normal = queries.hit_normal
        self._hit_object = queries.hit_object
        self._hit_material = queries.hit_material

        self.last_stats: Optional[RenderStats] = None

    def render(self) -> np.ndarray:
        """Trace every pixel and return a ``(height, width, 3)`` float array.

        Row 0 is the top of the image. Colours are not clamped.
        """
        cfg = self.config
        self._reset_stats()
        start = time.perf_counter()
        logger.info("Rendering %dx%d, %d objects, %d lights, max depth %d",
                    cfg.width, cfg.height, self.scene.object_count,
                    self.scene.light_count, cfg.max_depth)

        for row_start in range(0, cfg.height, self._rows_per_batch):
            row_end = min(row_start + self._rows_per_batch, cfg.height)
            render_rows(row_start, row_end, cfg.width, cfg.height, cfg.fov,
                        vec3(*cfg.camera_origin), vec3(*cfg.background_color),
                        cfg.max_depth, cfg.epsilon, cfg.max_distance,
                        self.pixels, self.scene.objects, self.scene.num_objects,
                        self.scene.materials, self.scene.lights, self.scene.num_lights,
                        self.stack_origin, self.stack_dir, self.stack_weight, self.stack_depth,
                        self.ray_count, self.deepest)
        ti.sync()

        image = self.pixels.to_numpy()
        self.last_stats = self._collect_stats(time.perf_counter() - start)
        logger.info("Rendered in %.2fs: %d rays, deepest level %d",
                    self.last_stats.seconds, self.last_stats.rays_traced,
                    self.last_stats.deepest_level)
        return image

    def cast_ray(self, ray: Ray, depth: int = 0) -> Tuple[float, float, float]:
        """Colour seen along ``ray``, starting the recursion at ``depth``"""
        if depth < 0:
            raise SceneError(f"depth must be >= 0, got {depth}")
        cfg = self.config
        self._reset_stats()
        start = time.perf_counter()
        cast_single_ray(vec3(*ray.origin), vec3(*ray.direction), depth,
                        vec3(*cfg.background_color), cfg.max_depth, cfg.epsilon,
                        cfg.max_distance, self._color,
                        self.scene.objects, self.scene.num_objects,
                        self.scene.materials, self.scene.lights, self.scene.num_lights,
                        self.stack_origin, self.stack_dir, self.stack_weight, self.stack_depth,
                        self.ray_count, self.deepest)
        color = self._color.to_numpy()
        self.last_stats = self._collect_stats(time.perf_counter() - start)
        return (float(color[0]), float(color[1]), float(color[2]))

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Nearest hit along ``ray``, or ``None``"""
        cfg = self.config
        intersect_single_ray(vec3(*ray.origin), vec3(*ray.direction), cfg.epsilon,
                             cfg.max_distance, self.scene.objects, self.scene.num_objects,
                             self._hit_found, self._hit_distance, self._hit_point,
                             self._hit_normal, self._hit_object, self._hit_material)
        if self._hit_found[None] == 0:
            return None
        return Intersection(
            distance=float(self._hit_distance[None]),
            point=tuple(float(c) for c in self._hit_point.to_numpy()),
            normal=tuple(float(c) for c in self._hit_normal.to_numpy()),
            object_index=int(self._hit_object[None]),
            material_index=int(self._hit_material[None]),
        )

    def _reset_stats(self):
        self.ray_count[None] = 0
        self.deepest[None] = 0

    def _collect_stats(self, seconds) -> RenderStats:
        return RenderStats(
            rays_traced=int(self.ray_count[None]),
            deepest_level=int(self.deepest[None]),
            seconds=seconds,
        )


class _FrameBuffers:
    """Pixel field plus one work stack per pixel of a row batch"""

    def __init__(self, height, width, slots, stack_size):
        self.pixels = ti.Vector.field(3, dtype=ti.f64, shape=(height, width))
        self.stack_origin = ti.Vector.field(3, dtype=ti.f64, shape=(slots, stack_size))
        self.stack_dir = ti.Vector.field(3, dtype=ti.f64, shape=(slots, stack_size))
        self.stack_weight = ti.field(dtype=ti.f64, shape=(slots, stack_size))
        self.stack_depth = ti.field(dtype=ti.i32, shape=(slots, stack_size))


class _QueryFields:
    """0-D fields for ray statistics and single-ray results"""

    def __init__(self):
        # Diagnostics, reset before every kernel launch
        self.ray_count = ti.field(dtype=ti.i64, shape=())
        self.deepest = ti.field(dtype=ti.i32, shape=())

        # Single-ray results
        self.color = ti.Vector.field(3, dtype=ti.f64, shape=())
        self.hit_found = ti.field(dtype=ti.i32, shape=())
        self.hit_distance = ti.field(dtype=ti.f64, shape=())
        self.hit_point = ti.Vector.field(3, dtype=ti.f64, shape=())
        self.hit_normal = ti.Vector.field(3, dtype=ti.f64, shape=())
        self.hit_object = ti.field(dtype=ti.i32, shape=())
        self.hit_material = ti.field(dtype=ti.i32, shape=())


_buffer_cache = {}
_queries = None


def _frame_buffers(height, width, slots, stack_size) -> _FrameBuffers:
    key = (height, width, slots, stack_size)
    if key not in _buffer_cache:
        logger.debug("Allocating frame buffers %dx%d, %d stacks of %d", width, height, slots, stack_size)
        _buffer_cache[key] = _FrameBuffers(height, width, slots, stack_size)
    return _buffer_cache[key]


def _query_fields() -> _QueryFields:
    global _queries
    if _queries is None:
        _queries = _QueryFields()
    return _queries
