import taichi as ti

from raycore.constants import DEGENERATE_LENGTH, OBJ_CUBOID, OBJ_SPHERE
from raycore.gpu_structs import ObjectHit, SceneHit, vec3

# Finite stand-in for infinity in the slab test
FAR = 1e300


@ti.func
def normalize_vec(v: vec3) -> vec3:
    """Safe vector normalization; a zero vector stays zero"""
    length = ti.sqrt(v.dot(v))
    result = vec3(0.0, 0.0, 0.0)
    if length > DEGENERATE_LENGTH:
        result = v / length
    return result


@ti.func
def offset_origin(point: vec3, normal: vec3, direction: vec3, epsilon: ti.f64) -> vec3:
    """Nudge a secondary ray origin off the surface, to the side it travels into"""
    origin = point + normal * epsilon
    if direction.dot(normal) < 0.0:
        origin = point - normal * epsilon
    return origin


@ti.func
def ray_sphere_intersect(ray_origin: vec3, ray_dir: vec3, center: vec3,
                         radius: ti.f64, epsilon: ti.f64) -> ObjectHit:
    """Ray-sphere intersection, nearest root beyond epsilon"""
    hit = ObjectHit(found=0, distance=0.0, normal=vec3(0.0, 0.0, 0.0))
    oc = ray_origin - center
    a = ray_dir.dot(ray_dir)
    if a > DEGENERATE_LENGTH:
        half_b = oc.dot(ray_dir)
        c = oc.dot(oc) - radius * radius
        discriminant = half_b * half_b - a * c
        if discriminant >= 0.0:
            sqrt_disc = ti.sqrt(discriminant)
            t = (-half_b - sqrt_disc) / a
            if t <= epsilon:
                # Origin inside the sphere (or on it): take the far root
                t = (-half_b + sqrt_disc) / a
            if t > epsilon:
                hit.found = 1
                hit.distance = t
                hit.normal = normalize_vec(ray_origin + ray_dir * t - center)
    return hit


@ti.func
def ray_cuboid_intersect(ray_origin: vec3, ray_dir: vec3, box_min: vec3,
                         box_max: vec3, epsilon: ti.f64) -> ObjectHit:
    """Ray-box intersection using slab method"""
    hit = ObjectHit(found=0, distance=0.0, normal=vec3(0.0, 0.0, 0.0))
    if ray_dir.dot(ray_dir) > DEGENERATE_LENGTH:
        t_near = -FAR
        t_far = FAR
        near_normal = vec3(0.0, 0.0, 0.0)
        far_normal = vec3(0.0, 0.0, 0.0)
        inside_slabs = 1

        for axis in ti.static(range(3)):
            if ti.abs(ray_dir[axis]) <= DEGENERATE_LENGTH:
                # Parallel to this slab pair: the origin must lie between the planes
                if ray_origin[axis] < box_min[axis] or ray_origin[axis] > box_max[axis]:
                    inside_slabs = 0
            else:
                t_min_face = (box_min[axis] - ray_origin[axis]) / ray_dir[axis]
                t_max_face = (box_max[axis] - ray_origin[axis]) / ray_dir[axis]
                t_enter = t_min_face
                t_exit = t_max_face
                enter_normal = vec3(0.0, 0.0, 0.0)
                exit_normal = vec3(0.0, 0.0, 0.0)
                enter_normal[axis] = -1.0
                exit_normal[axis] = 1.0
                if ray_dir[axis] < 0.0:
                    t_enter = t_max_face
                    t_exit = t_min_face
                    enter_normal[axis] = 1.0
                    exit_normal[axis] = -1.0
                if t_enter > t_near:
                    t_near = t_enter
                    near_normal = enter_normal
                if t_exit < t_far:
                    t_far = t_exit
                    far_normal = exit_normal

        if inside_slabs == 1 and t_near <= t_far:
            if t_near > epsilon:
                hit.found = 1
                hit.distance = t_near
                hit.normal = near_normal
            elif t_far > epsilon:
                # Origin inside the box: leave through the far face
                hit.found = 1
                hit.distance = t_far
                hit.normal = far_normal
    return hit


@ti.func
def ray_object_intersect(objects, k: ti.i32, ray_origin: vec3, ray_dir: vec3,
                         epsilon: ti.f64) -> ObjectHit:
    """Dispatch on the object's variant tag"""
    hit = ObjectHit(found=0, distance=0.0, normal=vec3(0.0, 0.0, 0.0))
    kind = objects[k].kind
    if kind == OBJ_SPHERE:
        sphere_hit = ray_sphere_intersect(ray_origin, ray_dir, objects[k].center,
                                          objects[k].radius, epsilon)
        hit.found = sphere_hit.found
        hit.distance = sphere_hit.distance
        hit.normal = sphere_hit.normal
    elif kind == OBJ_CUBOID:
        box_hit = ray_cuboid_intersect(ray_origin, ray_dir, objects[k].box_min,
                                       objects[k].box_max, epsilon)
        hit.found = box_hit.found
        hit.distance = box_hit.distance
        hit.normal = box_hit.normal
    return hit


@ti.func
def scene_intersect(ray_origin: vec3, ray_dir: vec3, objects, num_objects,
                    epsilon: ti.f64, max_distance: ti.f64) -> SceneHit:
    """Nearest hit within max_distance of travel; ties keep the first object.

    Distances are ray parameters, so the travel cap is divided by the
    direction length.
    """
    t_max = max_distance
    dir_length = ti.sqrt(ray_dir.dot(ray_dir))
    if dir_length > DEGENERATE_LENGTH:
        t_max = max_distance / dir_length
    result = SceneHit(found=0, distance=t_max, point=vec3(0.0, 0.0, 0.0),
                      normal=vec3(0.0, 0.0, 0.0), object_idx=-1, material_idx=-1)
    for k in range(num_objects[None]):
        hit = ray_object_intersect(objects, k, ray_origin, ray_dir, epsilon)
        if hit.found == 1 and hit.distance < result.distance:
            result.found = 1
            result.distance = hit.distance
            result.normal = hit.normal
            result.object_idx = k
            result.material_idx = objects[k].material_idx
    if result.found == 1:
        result.point = ray_origin + ray_dir * result.distance
    return result


@ti.func
def shade_direct(hit_point: vec3, normal: vec3, view_origin: vec3, materials,
                 material_idx: ti.i32, lights, num_lights, objects, num_objects,
                 epsilon: ti.f64, max_distance: ti.f64) -> vec3:
    """Lambert + Blinn-Phong over every unoccluded point light"""
    diffuse_intensity = 0.0
    specular_intensity = 0.0
    diffuse_coef = materials[material_idx].diffuse_coef
    specular_coef = materials[material_idx].specular_coef
    phong_exp = materials[material_idx].phong_exp
    view_dir = normalize_vec(view_origin - hit_point)

    for i in range(num_lights[None]):
        to_light = lights[i].position - hit_point
        light_dist = ti.sqrt(to_light.dot(to_light))

        # A light sitting on the surface has no defined direction
        if light_dist > DEGENERATE_LENGTH:
            light_dir = to_light / light_dist

            shadow_origin = offset_origin(hit_point, normal, light_dir, epsilon)

            occluded = 0
            blocker = scene_intersect(shadow_origin, light_dir, objects, num_objects,
                                      epsilon, max_distance)
            if blocker.found == 1:
                offset = blocker.point - hit_point
                if ti.sqrt(offset.dot(offset)) < light_dist:
                    occluded = 1

            if occluded == 0:
                # I / r^2
                dist_factor = lights[i].intensity / (light_dist * light_dist)
                diffuse_intensity += diffuse_coef * dist_factor * ti.max(0.0, normal.dot(light_dir))
                half_vector = normalize_vec(view_dir + light_dir)
                specular_intensity += specular_coef * dist_factor * ti.pow(
                    ti.max(0.0, normal.dot(half_vector)), phong_exp)

    white = vec3(1.0, 1.0, 1.0)
    return materials[material_idx].diffuse_color * diffuse_intensity + white * specular_intensity


@ti.func
def reflect_dir(ray_dir: vec3, normal: vec3) -> vec3:
    return ray_dir - normal * (2.0 * ray_dir.dot(normal))


@ti.func
def refract_dir(ray_dir: vec3, normal: vec3, refract_coef: ti.f64) -> vec3:
    """Blend-style refraction; refract_coef is used directly, no critical angle"""
    cos_i = normal.dot(ray_dir)
    return ray_dir * refract_coef - normal * (-cos_i + refract_coef * cos_i)


@ti.func
def pixel_to_ray(pixel_x: ti.i32, pixel_y: ti.i32, width: ti.i32, height: ti.i32,
                 fov: ti.f64) -> vec3:
    """Pinhole camera looking down -z; row 0 is the top of the image"""
    tan_half_fov = ti.tan(fov / 2.0)
    w = ti.cast(width, ti.f64)
    h = ti.cast(height, ti.f64)
    x = (2.0 * (ti.cast(pixel_x, ti.f64) + 0.5) / w - 1.0) * tan_half_fov * (w / h)
    y = -(2.0 * (ti.cast(pixel_y, ti.f64) + 0.5) / h - 1.0) * tan_half_fov
    return normalize_vec(vec3(x, y, -1.0))


@ti.func
def trace_ray(ray_origin: vec3, ray_dir: vec3, start_depth: ti.i32, slot: ti.i32,
              objects, num_objects, materials, lights, num_lights,
              stack_origin, stack_dir, stack_weight, stack_depth,
              ray_count, deepest,
              max_depth: ti.i32, epsilon: ti.f64, max_distance: ti.f64,
              background: vec3) -> vec3:
    """Reflection/refraction tree evaluated with an explicit work stack.

    The colour of a node is linear in its children's colours, so every node
    carries the product of blend weights on its path and adds its own
    weighted contribution. Children with zero weight are never traced.
    """
    color = vec3(0.0, 0.0, 0.0)
    stack_origin[slot, 0] = ray_origin
    stack_dir[slot, 0] = ray_dir
    stack_weight[slot, 0] = 1.0
    stack_depth[slot, 0] = start_depth
    top = 1
    traced = 0
    local_deepest = start_depth

    while top > 0:
        top -= 1
        origin = stack_origin[slot, top]
        direction = stack_dir[slot, top]
        weight = stack_weight[slot, top]
        depth = stack_depth[slot, top]
        traced += 1
        local_deepest = ti.max(local_deepest, depth)

        if depth > max_depth:
            color += background * weight
        else:
            hit = scene_intersect(origin, direction, objects, num_objects, epsilon, max_distance)
            if hit.found == 0:
                color += background * weight
            else:
                idx = hit.material_idx
                opacity = materials[idx].opacity
                local = shade_direct(hit.point, hit.normal, origin, materials, idx,
                                     lights, num_lights, objects, num_objects,
                                     epsilon, max_distance)
                color += local * (weight * opacity)

                refracted_weight = weight * (1.0 - opacity)
                if refracted_weight != 0.0:
                    refracted = refract_dir(direction, hit.normal, materials[idx].refract_coef)
                    stack_origin[slot, top] = offset_origin(hit.point, hit.normal, refracted, epsilon)
                    stack_dir[slot, top] = refracted
                    stack_weight[slot, top] = refracted_weight
                    stack_depth[slot, top] = depth + 1
                    top += 1
                reflected_weight = weight * opacity * materials[idx].reflex_coef
                if reflected_weight != 0.0:
                    reflected = reflect_dir(direction, hit.normal)
                    stack_origin[slot, top] = offset_origin(hit.point, hit.normal, reflected, epsilon)
                    stack_dir[slot, top] = reflected
                    stack_weight[slot, top] = reflected_weight
                    stack_depth[slot, top] = depth + 1
                    top += 1

    ti.atomic_add(ray_count[None], traced)
    ti.atomic_max(deepest[None], local_deepest)
    return color


@ti.kernel
def render_rows(row_start: ti.i32, row_end: ti.i32, width: ti.i32, height: ti.i32,
                fov: ti.f64, camera_origin: vec3, background: vec3,
                max_depth: ti.i32, epsilon: ti.f64, max_distance: ti.f64,
                pixels: ti.template(), objects: ti.template(), num_objects: ti.template(),
                materials: ti.template(), lights: ti.template(), num_lights: ti.template(),
                stack_origin: ti.template(), stack_dir: ti.template(),
                stack_weight: ti.template(), stack_depth: ti.template(),
                ray_count: ti.template(), deepest: ti.template()):
    """Trace one primary ray per pixel for rows [row_start, row_end)"""
    for j, i in ti.ndrange((row_start, row_end), width):
        slot = (j - row_start) * width + i
        ray_dir = pixel_to_ray(i, j, width, height, fov)
        pixels[j, i] = trace_ray(camera_origin, ray_dir, 0, slot,
                                 objects, num_objects, materials, lights, num_lights,
                                 stack_origin, stack_dir, stack_weight, stack_depth,
                                 ray_count, deepest,
                                 max_depth, epsilon, max_distance, background)


@ti.kernel
def cast_single_ray(ray_origin: vec3, ray_dir: vec3, start_depth: ti.i32,
                    background: vec3, max_depth: ti.i32, epsilon: ti.f64,
                    max_distance: ti.f64, result: ti.template(),
                    objects: ti.template(), num_objects: ti.template(),
                    materials: ti.template(), lights: ti.template(), num_lights: ti.template(),
                    stack_origin: ti.template(), stack_dir: ti.template(),
                    stack_weight: ti.template(), stack_depth: ti.template(),
                    ray_count: ti.template(), deepest: ti.template()):
    """Shade a single ray using stack slot 0"""
    result[None] = trace_ray(ray_origin, ray_dir, start_depth, 0,
                             objects, num_objects, materials, lights, num_lights,
                             stack_origin, stack_dir, stack_weight, stack_depth,
                             ray_count, deepest,
                             max_depth, epsilon, max_distance, background)


@ti.kernel
def intersect_single_ray(ray_origin: vec3, ray_dir: vec3, epsilon: ti.f64,
                         max_distance: ti.f64, objects: ti.template(),
                         num_objects: ti.template(), found: ti.template(),
                         distance: ti.template(), point: ti.template(),
                         normal: ti.template(), object_idx: ti.template(),
                         material_idx: ti.template()):
    """Nearest-hit query for one ray, written to 0-D result fields"""
    hit = scene_intersect(ray_origin, ray_dir, objects, num_objects, epsilon, max_distance)
    found[None] = hit.found
    distance[None] = hit.distance
    point[None] = hit.point
    normal[None] = hit.normal
    object_idx[None] = hit.object_idx
    material_idx[None] = hit.material_idx
