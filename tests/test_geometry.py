import math

import pytest

from raycore.errors import SceneError
from raycore.geometry import Ray, as_vec3, norm, normalize, pixel_to_ray, project_point


class TestVectors:
    def test_normalize_zero_vector_is_zero(self):
        assert normalize((0.0, 0.0, 0.0)) == (0.0, 0.0, 0.0)

    def test_normalize_unit_length(self):
        assert norm(normalize((3.0, -4.0, 12.0))) == pytest.approx(1.0)
        assert normalize((2.0, 0.0, 0.0)) == (1.0, 0.0, 0.0)

    @pytest.mark.parametrize("value", [(1.0, 2.0), "xyz", (1.0, float("inf"), 0.0), None])
    def test_as_vec3_rejects_bad_input(self, value):
        with pytest.raises(SceneError):
            as_vec3(value)


class TestRay:
    def test_towards_is_unit(self):
        ray = Ray.towards((1.0, 1.0, 1.0), (1.0, 1.0, -9.0))
        assert ray.direction == pytest.approx((0.0, 0.0, -1.0))
        assert ray.at(2.5) == pytest.approx((1.0, 1.0, -1.5))

    def test_direction_may_be_non_unit(self):
        ray = Ray((0, 0, 0), (0, 0, -2))
        assert ray.direction == (0.0, 0.0, -2.0)
        assert ray.at(1.0) == (0.0, 0.0, -2.0)


class TestPixelToRay:
    def test_centre_of_odd_image_looks_down_minus_z(self):
        ray = pixel_to_ray((0, 0, 0), 2, 2, 5, 5, 1.8)
        assert ray.direction == pytest.approx((0.0, 0.0, -1.0))

    def test_row_zero_is_top(self):
        top = pixel_to_ray((0, 0, 0), 0, 0, 64, 48, 1.8)
        bottom = pixel_to_ray((0, 0, 0), 0, 47, 64, 48, 1.8)
        assert top.direction[1] > 0.0 > bottom.direction[1]
        assert top.direction[0] < 0.0

    def test_corner_spans_aspect_scaled_field_of_view(self):
        width, height, fov = 64, 48, 1.8
        ray = pixel_to_ray((0, 0, 0), 0, 0, width, height, fov)
        x, y, z = ray.direction
        tan_half = math.tan(fov / 2.0)
        assert -x / -z == pytest.approx((1.0 - 1.0 / width) * tan_half * width / height)
        assert y / -z == pytest.approx((1.0 - 1.0 / height) * tan_half)
        assert norm(ray.direction) == pytest.approx(1.0)

    def test_is_deterministic(self):
        a = pixel_to_ray((1, 2, 3), 10, 7, 64, 48, 1.8)
        b = pixel_to_ray((1, 2, 3), 10, 7, 64, 48, 1.8)
        assert a == b
        assert a.origin == (1.0, 2.0, 3.0)

    def test_project_point_inverts_mapping(self):
        ray = pixel_to_ray((0, 0, 0), 13, 40, 64, 48, 1.8)
        point = ray.at(25.0)
        assert project_point(point, (0, 0, 0), 64, 48, 1.8) == (13, 40)

    def test_project_point_behind_camera(self):
        with pytest.raises(ValueError):
            project_point((0, 0, 5), (0, 0, 0), 64, 48, 1.8)
