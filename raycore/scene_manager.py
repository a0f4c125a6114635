import logging
import math

import taichi as ti

from raycore.backend import ensure_backend
from raycore.constants import (
    DEFAULT_OPACITY,
    DEFAULT_PHONG_EXP,
    DEFAULT_REFLEX_COEF,
    DEFAULT_REFRACT_COEF,
    DEFAULT_SPECULAR_COEF,
    MAX_LIGHTS,
    MAX_MATERIALS,
    MAX_OBJECTS,
    OBJ_CUBOID,
    OBJ_SPHERE,
)
from raycore.errors import SceneError
from raycore.geometry import as_vec3
from raycore.gpu_structs import Light, Material, SceneObject, vec3

logger = logging.getLogger(__name__)

_ZERO = (0.0, 0.0, 0.0)


class SceneManager:
    """Owns the scene on both Python and Taichi sides.

    Objects are kept in insertion order; that order decides ties in the
    nearest-hit query. Materials live in their own table and objects refer
    to them by index, so one material can be shared by many objects.
    """

    def __init__(self, max_objects=MAX_OBJECTS, max_lights=MAX_LIGHTS, max_materials=MAX_MATERIALS):
        ensure_backend()
        for name, value in (("max_objects", max_objects), ("max_lights", max_lights),
                            ("max_materials", max_materials)):
            if value < 1:
                raise SceneError(f"{name} must be at least 1, got {value}")
        self.max_objects = max_objects
        self.max_lights = max_lights
        self.max_materials = max_materials

        # Taichi storage
        self.objects = SceneObject.field(shape=max_objects)
        self.lights = Light.field(shape=max_lights)
        self.materials = Material.field(shape=max_materials)

        # Scene counters
        self.num_objects = ti.field(dtype=ti.i32, shape=())
        self.num_lights = ti.field(dtype=ti.i32, shape=())
        self.num_materials = ti.field(dtype=ti.i32, shape=())

        self.reset_scene()

    def reset_scene(self):
        """Reset the scene to initial state"""
        self.num_objects[None] = 0
        self.num_lights[None] = 0
        self.num_materials[None] = 0

    @property
    def object_count(self) -> int:
        return self.num_objects[None]

    @property
    def light_count(self) -> int:
        return self.num_lights[None]

    @property
    def material_count(self) -> int:
        return self.num_materials[None]

    def add_material(self, diffuse_color, diffuse_coef=1.0, *,
                     specular_coef=DEFAULT_SPECULAR_COEF, phong_exp=DEFAULT_PHONG_EXP,
                     reflex_coef=DEFAULT_REFLEX_COEF, refract_coef=DEFAULT_REFRACT_COEF,
                     opacity=DEFAULT_OPACITY) -> int:
        """Add a material and return its index.

        ``diffuse_coef``, ``reflex_coef`` and ``opacity`` are weights in
        [0, 1]. ``refract_coef`` feeds the simplified refraction blend
        directly and may be any finite number.
        """
        color = as_vec3(diffuse_color, "diffuse_color")
        _check_unit("diffuse_coef", diffuse_coef)
        _check_unit("reflex_coef", reflex_coef)
        _check_unit("opacity", opacity)
        _check_finite("refract_coef", refract_coef)
        if _check_finite("specular_coef", specular_coef) < 0.0:
            raise SceneError(f"specular_coef must be >= 0, got {specular_coef}")
        if _check_finite("phong_exp", phong_exp) < 0.0:
            raise SceneError(f"phong_exp must be >= 0, got {phong_exp}")

        idx = self._next_slot(self.num_materials, self.max_materials, "materials")
        self.materials[idx] = Material(
            diffuse_color=vec3(*color),
            diffuse_coef=diffuse_coef,
            specular_coef=specular_coef,
            phong_exp=phong_exp,
            reflex_coef=reflex_coef,
            refract_coef=refract_coef,
            opacity=opacity,
        )
        self.num_materials[None] += 1
        logger.debug("Material %d: color=%s diffuse=%s opacity=%s", idx, color, diffuse_coef, opacity)
        return idx

    def add_sphere(self, center, radius, material_idx) -> int:
        """Add a sphere and return its object index"""
        center = as_vec3(center, "sphere center")
        if _check_finite("radius", radius) <= 0.0:
            raise SceneError(f"Sphere radius must be positive, got {radius}")
        self._check_material(material_idx)

        idx = self._next_slot(self.num_objects, self.max_objects, "objects")
        self.objects[idx] = SceneObject(
            kind=OBJ_SPHERE,
            center=vec3(*center),
            radius=radius,
            box_min=vec3(*_ZERO),
            box_max=vec3(*_ZERO),
            material_idx=material_idx,
        )
        self.num_objects[None] += 1
        logger.debug("Object %d: sphere center=%s radius=%s material=%d", idx, center, radius, material_idx)
        return idx

    def add_cuboid(self, corner_a, corner_b, material_idx) -> int:
        """Add an axis-aligned box spanned by two opposite corners (any order)"""
        a = as_vec3(corner_a, "cuboid corner")
        b = as_vec3(corner_b, "cuboid corner")
        box_min = tuple(min(p, q) for p, q in zip(a, b))
        box_max = tuple(max(p, q) for p, q in zip(a, b))
        if any(hi - lo <= 0.0 for lo, hi in zip(box_min, box_max)):
            raise SceneError(f"Cuboid {a} - {b} has zero volume")
        self._check_material(material_idx)

        idx = self._next_slot(self.num_objects, self.max_objects, "objects")
        self.objects[idx] = SceneObject(
            kind=OBJ_CUBOID,
            center=vec3(*_ZERO),
            radius=0.0,
            box_min=vec3(*box_min),
            box_max=vec3(*box_max),
            material_idx=material_idx,
        )
        self.num_objects[None] += 1
        logger.debug("Object %d: cuboid %s - %s material=%d", idx, box_min, box_max, material_idx)
        return idx

    def add_ground_plane(self, height, material_idx, x_range=(-30.0, 30.0),
                         z_range=(-30.0, 9.0), thickness=0.5) -> int:
        """Ground as a thin slab whose top face lies at ``height``"""
        if _check_finite("thickness", thickness) <= 0.0:
            raise SceneError(f"Ground thickness must be positive, got {thickness}")
        return self.add_cuboid(
            (x_range[0], height - thickness, z_range[0]),
            (x_range[1], height, z_range[1]),
            material_idx,
        )

    def add_light(self, position, intensity=1.0) -> int:
        """Add a point light with inverse-square falloff"""
        position = as_vec3(position, "light position")
        if _check_finite("intensity", intensity) <= 0.0:
            raise SceneError(f"Light intensity must be positive, got {intensity}")

        idx = self._next_slot(self.num_lights, self.max_lights, "lights")
        self.lights[idx] = Light(position=vec3(*position), intensity=intensity)
        self.num_lights[None] += 1
        logger.debug("Light %d: position=%s intensity=%s", idx, position, intensity)
        return idx

    def setup_default_scene(self):
        """Ground slab, two spheres, two boxes and two lights"""
        # Materials
        red_mat = self.add_material((1.0, 0.0, 0.0), 1.0, specular_coef=1.0, phong_exp=50.0)
        green_mat = self.add_material((0.0, 0.5, 0.0), 0.5, specular_coef=1.0, phong_exp=1000.0)
        blue_mat = self.add_material((0.0, 0.0, 1.0), 0.5, specular_coef=1.0, phong_exp=300.0)
        grey_mat = self.add_material((0.5, 0.5, 0.5), 1.0)

        # Objects
        self.add_ground_plane(-4.5, grey_mat)
        self.add_sphere((0.0, -3.5, -12.0), 1.0, green_mat)
        self.add_sphere((3.0, -4.0, -11.0), 0.5, red_mat)
        self.add_cuboid((7.0, 0.0, -15.0), (10.0, -7.0, -10.0), green_mat)
        self.add_cuboid((-7.0, 0.0, -15.0), (-10.0, -7.0, -10.0), blue_mat)

        # Lights
        self.add_light((-20.0, 20.0, 20.0), 3000.0)
        self.add_light((20.0, 30.0, 20.0), 4000.0)

        logger.info("Default scene: %d objects, %d lights, %d materials",
                    self.object_count, self.light_count, self.material_count)

    def _check_material(self, material_idx):
        if isinstance(material_idx, bool) or not isinstance(material_idx, int):
            raise SceneError(f"Material index must be an integer, got {material_idx!r}")
        if not 0 <= material_idx < self.num_materials[None]:
            raise SceneError(f"Unknown material index {material_idx}")

    @staticmethod
    def _next_slot(counter, capacity, what):
        idx = counter[None]
        if idx >= capacity:
            raise SceneError(f"Scene is full: at most {capacity} {what}")
        return idx


def _check_finite(name, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise SceneError(f"{name} must be a finite number, got {value!r}")
    return float(value)


def _check_unit(name, value) -> float:
    value = _check_finite(name, value)
    if not 0.0 <= value <= 1.0:
        raise SceneError(f"{name} must lie in [0, 1], got {value}")
    return value
