"""Ray-object and nearest-hit queries."""

import pytest

from raycore.geometry import Ray, normalize


def _sub(a, b):
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


@pytest.fixture
def material(scene):
    return scene.add_material((0.5, 0.5, 0.5))


class TestSphere:
    def test_head_on_hit_distance_and_normal(self, scene, material, make_renderer):
        center = (0.0, 0.0, -10.0)
        scene.add_sphere(center, 2.0, material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1)))
        assert hit is not None
        assert hit.distance == pytest.approx(10.0 - 2.0)
        assert hit.point == pytest.approx((0.0, 0.0, -8.0))
        assert hit.normal == pytest.approx(normalize(_sub(hit.point, center)))
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0))

    @pytest.mark.parametrize("origin", [(5.0, 1.0, 3.0), (-7.0, -2.0, 4.0), (0.5, 12.0, -30.0)])
    def test_aimed_at_centre_from_outside(self, scene, material, make_renderer, origin):
        center = (1.0, 2.0, -6.0)
        radius = 1.5
        scene.add_sphere(center, radius, material)
        ray = Ray.towards(origin, center)
        hit = make_renderer(scene).intersect(ray)
        to_center = _sub(center, origin)
        center_distance = (to_center[0] ** 2 + to_center[1] ** 2 + to_center[2] ** 2) ** 0.5
        assert hit.distance == pytest.approx(center_distance - radius)
        assert hit.normal == pytest.approx(normalize(_sub(hit.point, center)))

    def test_non_unit_direction_is_parametric(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, -10), 2.0, material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -2)))
        assert hit.distance == pytest.approx(4.0)
        assert hit.point == pytest.approx((0.0, 0.0, -8.0))

    def test_from_inside_uses_far_root(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, 0), 3.0, material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (1, 0, 0)))
        assert hit.distance == pytest.approx(3.0)
        assert hit.normal == pytest.approx((1.0, 0.0, 0.0))

    def test_behind_origin_is_missed(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, 10), 2.0, material)
        assert make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1))) is None

    def test_miss_to_the_side(self, scene, material, make_renderer):
        scene.add_sphere((5, 0, -10), 1.0, material)
        assert make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1))) is None


class TestCuboid:
    def test_front_face(self, scene, material, make_renderer):
        scene.add_cuboid((-1, -1, -6), (1, 1, -4), material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1)))
        assert hit.distance == pytest.approx(4.0)
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0))

    @pytest.mark.parametrize("origin, direction, distance, normal", [
        ((-5.0, 0.0, -5.0), (1.0, 0.0, 0.0), 4.0, (-1.0, 0.0, 0.0)),
        ((5.0, 0.0, -5.0), (-1.0, 0.0, 0.0), 4.0, (1.0, 0.0, 0.0)),
        ((0.0, 6.0, -5.0), (0.0, -1.0, 0.0), 5.0, (0.0, 1.0, 0.0)),
        ((0.0, -3.0, -5.0), (0.0, 1.0, 0.0), 2.0, (0.0, -1.0, 0.0)),
        ((0.0, 0.0, -20.0), (0.0, 0.0, 1.0), 14.0, (0.0, 0.0, -1.0)),
    ])
    def test_normal_follows_entry_face(self, scene, material, make_renderer,
                                       origin, direction, distance, normal):
        scene.add_cuboid((-1, -1, -6), (1, 1, -4), material)
        hit = make_renderer(scene).intersect(Ray(origin, direction))
        assert hit.distance == pytest.approx(distance)
        assert hit.normal == pytest.approx(normal)

    def test_oblique_entry_picks_tightest_bound(self, scene, material, make_renderer):
        scene.add_cuboid((0, 0, 0), (2, 2, 2), material)
        # Crosses x = 0 at t = 1 and y = 0 at t = 0.5, so it enters through x
        hit = make_renderer(scene).intersect(Ray((-1.0, -1.0, 1.0), (1.0, 2.0, 0.0)))
        assert hit.distance == pytest.approx(1.0)
        assert hit.normal == pytest.approx((-1.0, 0.0, 0.0))

    @pytest.mark.parametrize("origin, direction", [
        ((0.0, 5.0, 0.0), (0.0, 0.0, -1.0)),
        ((3.0, 0.0, 0.0), (0.0, 0.0, -1.0)),
        ((0.0, 0.0, 5.0), (1.0, 0.0, 0.0)),
    ])
    def test_parallel_ray_outside_slab_misses(self, scene, material, make_renderer, origin, direction):
        scene.add_cuboid((-1, -1, -6), (1, 1, -4), material)
        assert make_renderer(scene).intersect(Ray(origin, direction)) is None

    def test_box_behind_origin_is_missed(self, scene, material, make_renderer):
        scene.add_cuboid((-1, -1, 4), (1, 1, 6), material)
        assert make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1))) is None

    def test_from_inside_exits_through_far_face(self, scene, material, make_renderer):
        scene.add_cuboid((-1, -1, -1), (1, 1, 1), material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 1, 0)))
        assert hit.distance == pytest.approx(1.0)
        assert hit.normal == pytest.approx((0.0, 1.0, 0.0))

    def test_corners_in_any_order(self, scene, material, make_renderer):
        scene.add_cuboid((1, 1, -4), (-1, -1, -6), material)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1)))
        assert hit.distance == pytest.approx(4.0)


class TestSceneIntersect:
    def test_empty_scene(self, scene, make_renderer):
        assert make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1))) is None

    def test_nearest_object_wins_regardless_of_order(self, scene, make_renderer):
        far_mat = scene.add_material((1, 0, 0))
        near_mat = scene.add_material((0, 1, 0))
        scene.add_sphere((0, 0, -20), 1.0, far_mat)
        near = scene.add_cuboid((-1, -1, -6), (1, 1, -4), near_mat)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1)))
        assert hit.object_index == near
        assert hit.material_index == near_mat
        assert hit.distance == pytest.approx(4.0)

    def test_exact_tie_keeps_first_object(self, scene, make_renderer):
        first_mat = scene.add_material((1, 0, 0))
        second_mat = scene.add_material((0, 0, 1))
        first = scene.add_sphere((0, 0, -10), 1.0, first_mat)
        scene.add_sphere((0, 0, -10), 1.0, second_mat)
        hit = make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, -1)))
        assert hit.object_index == first
        assert hit.material_index == first_mat

    def test_beyond_max_distance_is_no_hit(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, -2000), 10.0, material)
        ray = Ray((0, 0, 0), (0, 0, -1))
        assert make_renderer(scene).intersect(ray) is None
        assert make_renderer(scene, max_distance=5000.0).intersect(ray) is not None

    def test_travel_cap_is_euclidean_for_non_unit_directions(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, -1500), 1.0, material)
        renderer = make_renderer(scene, max_distance=1000.0)
        # Ray parameter 749.5 is under the cap, but the hit is 1499 units away
        assert renderer.intersect(Ray((0, 0, 0), (0, 0, -2))) is None
        hit = renderer.intersect(Ray((0, 0, -600), (0, 0, -2)))
        assert hit.distance == pytest.approx(449.5)
        assert hit.point == pytest.approx((0.0, 0.0, -1499.0))

    def test_hits_closer_than_epsilon_are_rejected(self, scene, material, make_renderer):
        scene.add_cuboid((-1, -1, -1.0005), (1, 1, -0.5), material)
        hit = make_renderer(scene).intersect(Ray((0, 0, -1.0), (0, 0, -1)))
        assert hit is None

    def test_zero_direction_never_hits(self, scene, material, make_renderer):
        scene.add_sphere((0, 0, 0), 5.0, material)
        scene.add_cuboid((-1, -1, -1), (1, 1, 1), material)
        assert make_renderer(scene).intersect(Ray((0, 0, 0), (0, 0, 0))) is None
