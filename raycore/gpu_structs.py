import taichi as ti

vec3 = ti.types.vector(3, ti.f64)


@ti.dataclass
class Material:
    diffuse_color: vec3
    diffuse_coef: ti.f64
    specular_coef: ti.f64
    phong_exp: ti.f64
    reflex_coef: ti.f64
    refract_coef: ti.f64
    opacity: ti.f64


@ti.dataclass
class SceneObject:
    # kind selects which members are meaningful: OBJ_SPHERE uses
    # center/radius, OBJ_CUBOID uses box_min/box_max
    kind: ti.i32
    center: vec3
    radius: ti.f64
    box_min: vec3
    box_max: vec3
    material_idx: ti.i32


@ti.dataclass
class Light:
    position: vec3
    intensity: ti.f64


# Result of a single-object test: found is 0 or 1
ObjectHit = ti.types.struct(found=ti.i32, distance=ti.f64, normal=vec3)

# Result of a nearest-hit query over the whole scene
SceneHit = ti.types.struct(
    found=ti.i32,
    distance=ti.f64,
    point=vec3,
    normal=vec3,
    object_idx=ti.i32,
    material_idx=ti.i32,
)
