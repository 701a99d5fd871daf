import unittest
import numpy as np
from ray import *
from color import color, BLACK, WHITE
from geometry import Sphere, Plane, Intersection
from materials import Material, Reflective, Refractive, Texture, TextureColor
from utils import normalize, vec


def assert_direction_matches(v, w):
    np.testing.assert_almost_equal(normalize(v), normalize(w))


def white(albedo=np.pi, surface=None):
    # albedo of pi cancels the 1/pi of the Lambertian term
    return Material(WHITE, albedo, surface)


def small_scene(elements, lights, **kwargs):
    return Scene(4, 3, 90.0, elements, lights, **kwargs)


class TestSphereIntersect(unittest.TestCase):

    def confirm_hit(self, sphere, ray):
        # make sure the hit lies on the sphere, then return its distance
        t = sphere.intersect(ray)
        self.assertIsNotNone(t)
        point = ray.origin + t * ray.direction
        self.assertAlmostEqual(np.linalg.norm(point - sphere.center), sphere.radius)
        return t

    def test_unitsphere_hits(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, None)
        # dead center hit
        self.assertAlmostEqual(self.confirm_hit(unit_sphere, Ray(vec([2.0, 0.0, 0.0]), vec([-1.0, 0.0, 0.0]))), 1.0)
        # off center hit
        self.assertAlmostEqual(self.confirm_hit(unit_sphere, Ray(vec([1.0, 0.5, 0.0]), vec([-1.0, 0.0, 0.0]))),
                               1 - np.sin(np.pi / 3))
        # center hit from off axis
        self.assertAlmostEqual(
            self.confirm_hit(unit_sphere, Ray(vec([2.0, 3.0, 4.0]), normalize(vec([-2.0, -3.0, -4.0])))),
            np.sqrt(29) - 1)

    def test_unitsphere_misses(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, None)
        # on axis miss
        self.assertIsNone(unit_sphere.intersect(Ray(vec([2.0, 3.0, 0.0]), vec([-1.0, 0.0, 0.0]))))
        # sphere entirely behind the ray
        self.assertIsNone(unit_sphere.intersect(Ray(vec([2.0, 0.0, 0.0]), vec([1.0, 0.0, 0.0]))))

    def test_origin_inside_reports_exit(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, None)
        self.assertAlmostEqual(unit_sphere.intersect(Ray(vec([0.0, 0.0, 0.0]), vec([0.0, 0.0, -1.0]))), 1.0)
        self.assertAlmostEqual(unit_sphere.intersect(Ray(vec([0.5, 0.0, 0.0]), vec([-1.0, 0.0, 0.0]))), 1.5)

    def test_nonunit_hits(self):
        # same as the first case, but scaled by 3 and shifted by (-1, -5, -7)
        sphere = Sphere(vec([-1, -5, -7]), 3.0, None)
        self.assertAlmostEqual(self.confirm_hit(sphere, Ray(vec([5.0, -5.0, -7.0]), vec([-1.0, 0.0, 0.0]))), 3.0)
        self.assertAlmostEqual(self.confirm_hit(sphere, Ray(vec([2.0, -3.5, -7.0]), vec([-1.0, 0.0, 0.0]))),
                               3 * (1 - np.sin(np.pi / 3)))

    def test_surface_normal(self):
        sphere = Sphere(vec([1, 2, 3]), 2.0, None)
        np.testing.assert_almost_equal(sphere.surface_normal(vec([1, 4, 3])), vec([0, 1, 0]))
        np.testing.assert_almost_equal(sphere.surface_normal(vec([1, 2, 1])), vec([0, 0, -1]))

    def test_texture_coords(self):
        sphere = Sphere(vec([0, 0, 0]), 1.0, None)
        np.testing.assert_almost_equal(sphere.texture_coords(vec([1, 0, 0])), (0.5, 0.5))
        np.testing.assert_almost_equal(sphere.texture_coords(vec([0, 0, 1])), (0.75, 0.5))
        np.testing.assert_almost_equal(sphere.texture_coords(vec([0, 1, 0])), (0.5, 0.0))

    def test_bad_radius(self):
        with self.assertRaises(ValueError):
            Sphere(vec([0, 0, 0]), 0.0, None)


class TestPlaneIntersect(unittest.TestCase):

    def setUp(self):
        # floor at y = -2; the normal points down, away from viewers above it
        self.plane = Plane(vec([0, -2, 0]), vec([0, -1, 0]), None)

    def test_hit_from_front(self):
        self.assertAlmostEqual(self.plane.intersect(Ray(vec([0, 0, 0]), vec([0, -1, 0]))), 2.0)
        t = self.plane.intersect(Ray(vec([0, 0, 0]), normalize(vec([0, -1, -1]))))
        self.assertAlmostEqual(t, 2 * np.sqrt(2))

    def test_back_face_is_invisible(self):
        self.assertIsNone(self.plane.intersect(Ray(vec([0, -5, 0]), vec([0, 1, 0]))))

    def test_pointing_away(self):
        self.assertIsNone(self.plane.intersect(Ray(vec([0, -5, 0]), vec([0, -1, 0]))))

    def test_parallel(self):
        self.assertIsNone(self.plane.intersect(Ray(vec([0, 0, 0]), vec([1, 0, 0]))))

    def test_surface_normal_faces_viewer(self):
        np.testing.assert_almost_equal(self.plane.surface_normal(vec([3, -2, 1])), vec([0, 1, 0]))

    def test_normal_is_normalized(self):
        plane = Plane(vec([0, 0, 0]), vec([0, 0, -5]), None)
        np.testing.assert_almost_equal(plane.normal, vec([0, 0, -1]))

    def test_texture_coords(self):
        np.testing.assert_almost_equal(self.plane.texture_coords(vec([3, -2, 4])), (-3.0, -4.0))
        # normal parallel to z falls back to the y axis for the first tangent
        plane = Plane(vec([0, 0, -3]), vec([0, 0, 1]), None)
        np.testing.assert_almost_equal(plane.texture_coords(vec([2, 0, -3])), (-2.0, 0.0))


class TestIntersection(unittest.TestCase):

    def test_non_finite_distance_rejected(self):
        with self.assertRaises(ValueError):
            Intersection(np.inf, 0)
        with self.assertRaises(ValueError):
            Intersection(np.nan, 0)

    def test_fields(self):
        i = Intersection(2.5, 3)
        self.assertEqual(i.distance, 2.5)
        self.assertEqual(i.index, 3)


class TestCamera(unittest.TestCase):

    def test_default_camera(self):
        cam = Camera(800, 600, 90.0)
        # center of the sensor is straight down the axis
        ray = cam.generate_ray(399.5, 299.5)
        np.testing.assert_almost_equal(ray.origin, vec([0, 0, 0]))
        assert_direction_matches(ray.direction, vec([0, 0, -1]))
        # FOV is 90 degrees vertically; x is stretched by the aspect ratio
        ray = cam.generate_ray(-0.5, -0.5)
        assert_direction_matches(ray.direction, vec([-4 / 3, 1, -1]))
        ray = cam.generate_ray(799.5, 599.5)
        assert_direction_matches(ray.direction, vec([4 / 3, -1, -1]))
        self.assertAlmostEqual(np.linalg.norm(ray.direction), 1.0)

    def test_pixel_centers(self):
        cam = Camera(4, 2, 90.0)
        ray = cam.generate_ray(0, 0)
        assert_direction_matches(ray.direction, vec([(0.125 * 2 - 1) * 2, 0.5, -1]))

    def test_fov(self):
        cam = Camera(800, 600, 60.0)
        s = np.tan(np.radians(30))
        ray = cam.generate_ray(-0.5, 299.5)
        assert_direction_matches(ray.direction, vec([-4 / 3 * s, 0, -1]))

    def test_width_must_exceed_height(self):
        with self.assertRaises(SceneConfigError):
            Camera(600, 600, 90.0)
        with self.assertRaises(SceneConfigError):
            Camera(600, 800, 90.0)


class TestLights(unittest.TestCase):

    def test_spherical_inverse_square(self):
        light = SphericalLight(vec([0, 0, 0]), WHITE, 100.0)
        p = vec([2, 0, 0])
        self.assertAlmostEqual(light.intensity(p), 100.0 / (4 * np.pi * 4))
        self.assertAlmostEqual(light.intensity(vec([0, 0, -4])), 100.0 / (4 * np.pi * 16))
        self.assertAlmostEqual(light.distance(p), 2.0)
        np.testing.assert_almost_equal(light.direction_from(p), vec([-1, 0, 0]))

    def test_directional_is_constant(self):
        light = DirectionalLight(vec([0, -2, 0]), color(1, 0.5, 0.25), 7.0)
        for p in (vec([0, 0, 0]), vec([10, -3, 4]), vec([-100, 50, 2])):
            self.assertEqual(light.intensity(p), 7.0)
            np.testing.assert_almost_equal(light.direction_from(p), vec([0, 1, 0]))
            self.assertEqual(light.distance(p), np.inf)
        np.testing.assert_almost_equal(light.color, color(1, 0.5, 0.25))


class TestSceneTrace(unittest.TestCase):

    def test_nearest_wins(self):
        far = Sphere(vec([0, 0, -10]), 1.0, white())
        near = Sphere(vec([0, 0, -5]), 1.0, white())
        scene = small_scene([far, near], [])
        hit = scene.trace(Ray(vec([0, 0, 0]), vec([0, 0, -1])))
        self.assertEqual(hit.index, 1)
        self.assertAlmostEqual(hit.distance, 4.0)
        self.assertIs(scene.element(hit), near)

    def test_tie_goes_to_first(self):
        a = Sphere(vec([0, 0, -5]), 1.0, white())
        b = Sphere(vec([0, 0, -5]), 1.0, white())
        scene = small_scene([a, b], [])
        self.assertEqual(scene.trace(Ray(vec([0, 0, 0]), vec([0, 0, -1]))).index, 0)

    def test_miss(self):
        scene = small_scene([Sphere(vec([0, 0, -5]), 1.0, white())], [])
        self.assertIsNone(scene.trace(Ray(vec([0, 0, 0]), vec([0, 0, 1]))))

    def test_config_errors(self):
        with self.assertRaises(SceneConfigError):
            Scene(3, 3, 90.0, [], [])
        with self.assertRaises(SceneConfigError):
            Scene(4, 3, 90.0, [], [], shadow_bias=0.0)
        with self.assertRaises(SceneConfigError):
            Scene(4, 3, 90.0, [], [], max_recursion_depth=-1)
        with self.assertRaises(SceneConfigError):
            Scene(4, 3, 0.0, [], [])

    def test_recursion_depth_is_capped(self):
        with self.assertLogs('ray', 'WARNING'):
            scene = Scene(4, 3, 90.0, [], [], max_recursion_depth=10000)
        self.assertEqual(scene.max_recursion_depth, MAX_RECURSION_DEPTH)

    def test_numpy_integer_sizes(self):
        scene = Scene(np.int64(4), np.int64(3), 90.0, [], [], max_recursion_depth=np.int32(2))
        self.assertEqual((scene.width, scene.height, scene.max_recursion_depth), (4, 3, 2))
        self.assertIs(type(scene.width), int)
        self.assertEqual(render_image(scene).shape, (3, 4, 4))


class TestDiffuseShading(unittest.TestCase):

    def setUp(self):
        self.floor = Plane(vec([0, -1, 0]), vec([0, -1, 0]), white())
        # hits the floor at (0, -1, -1), where the surface normal is +y
        self.ray = Ray(vec([0, 0, 0]), normalize(vec([0, -1, -1])))

    def test_depth_zero_is_background(self):
        scene = small_scene([Sphere(vec([0, 0, -5]), 1.0, white())],
                            [DirectionalLight(vec([0, 0, -1]), WHITE, 1.0)],
                            max_recursion_depth=0)
        np.testing.assert_array_equal(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1])), 0), BLACK)

    def test_miss_is_black(self):
        scene = small_scene([], [DirectionalLight(vec([0, 0, -1]), WHITE, 1.0)])
        np.testing.assert_array_equal(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1]))), BLACK)

    def test_directional(self):
        sphere = Sphere(vec([0, 0, -5]), 1.0, Material(color(0.4, 1.0, 0.4), np.pi))
        scene = small_scene([sphere], [DirectionalLight(vec([0, 0, -1]), WHITE, 0.5)])
        np.testing.assert_allclose(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1]))),
                                   color(0.2, 0.5, 0.2))

    def test_light_color_and_albedo(self):
        sphere = Sphere(vec([0, 0, -5]), 1.0, Material(WHITE, 0.18))
        scene = small_scene([sphere], [DirectionalLight(vec([0, 0, -1]), color(1.0, 0.5, 0.0), 2.0)])
        expected = color(1.0, 0.5, 0.0) * 2.0 * 0.18 / np.pi
        np.testing.assert_allclose(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1]))), expected)

    def test_spherical_overhead(self):
        # light 2 units straight above the hit point
        scene = small_scene([self.floor], [SphericalLight(vec([0, 1, -1]), WHITE, 8 * np.pi)])
        np.testing.assert_allclose(cast_ray(scene, self.ray), color(0.5, 0.5, 0.5))

    def test_lambert_cosine(self):
        # same distance, 60 degrees off the normal
        scene = small_scene([self.floor], [SphericalLight(vec([0, 0, -1 + np.sqrt(3)]), WHITE, 8 * np.pi)])
        np.testing.assert_allclose(cast_ray(scene, self.ray), color(0.25, 0.25, 0.25))

    def test_light_behind_surface(self):
        scene = small_scene([self.floor], [SphericalLight(vec([0, -3, -1]), WHITE, 8 * np.pi)])
        np.testing.assert_array_equal(cast_ray(scene, self.ray), BLACK)

    def test_contributions_sum_and_clamp(self):
        lights = [SphericalLight(vec([0, 1, -1]), WHITE, 8 * np.pi)] * 3
        scene = small_scene([self.floor], lights)
        np.testing.assert_allclose(cast_ray(scene, self.ray), WHITE)

    def test_shadow(self):
        light = SphericalLight(vec([0, 1, -1]), WHITE, 8 * np.pi)
        occluder = Sphere(vec([0, 0, -1]), 0.5, white())
        lit = cast_ray(small_scene([self.floor], [light]), self.ray)
        shadowed = cast_ray(small_scene([self.floor, occluder], [light]), self.ray)
        self.assertTrue(np.all(shadowed < lit))
        np.testing.assert_array_equal(shadowed, BLACK)

    def test_occluder_beyond_light_casts_no_shadow(self):
        light = SphericalLight(vec([0, 1, -1]), WHITE, 8 * np.pi)
        beyond = Sphere(vec([0, 3, -1]), 0.5, white())
        np.testing.assert_allclose(cast_ray(small_scene([self.floor, beyond], [light]), self.ray),
                                   color(0.5, 0.5, 0.5))

    def test_directional_shadow_at_any_distance(self):
        light = DirectionalLight(vec([0, -1, 0]), WHITE, 1.0)
        far_occluder = Sphere(vec([0, 100, -1]), 1.0, white())
        np.testing.assert_array_equal(cast_ray(small_scene([self.floor, far_occluder], [light]), self.ray), BLACK)

    def test_textured_plane(self):
        # one row, red texel then green; the floor maps x = -0.75 to u = 0.75
        texture = Texture(np.array([[[255, 0, 0], [0, 255, 0]]], np.uint8))
        floor = Plane(vec([0, -1, 0]), vec([0, -1, 0]), Material(TextureColor(texture), np.pi))
        scene = small_scene([floor], [DirectionalLight(vec([0, -1, 0]), WHITE, 1.0)])
        np.testing.assert_allclose(cast_ray(scene, self.ray), color(1, 0, 0))
        toward_green = Ray(vec([0, 0, 0]), normalize(vec([-0.75, -1, -1])))
        np.testing.assert_allclose(cast_ray(scene, toward_green), color(0, 1, 0))


class TestReflectionRefraction(unittest.TestCase):

    def test_create_reflection(self):
        r = create_reflection(vec([0, 1, 0]), normalize(vec([1, -1, 0])), vec([0, 0, 0]), 1e-3)
        np.testing.assert_almost_equal(r.origin, vec([0, 1e-3, 0]))
        assert_direction_matches(r.direction, vec([1, 1, 0]))

    def test_create_reflection_inside(self):
        # the ray reflects off the inside of the surface, so the origin stays inside
        r = create_reflection(vec([0, 0, 1]), normalize(vec([1, 0, 1])), vec([0, 0, 0]), 1e-3)
        np.testing.assert_almost_equal(r.origin, vec([0, 0, -1e-3]))
        assert_direction_matches(r.direction, vec([1, 0, -1]))

    def test_transmission_normal_incidence(self):
        t = create_transmission(vec([0, 0, 1]), vec([0, 0, -1]), vec([0, 0, 0]), 1e-3, 1.5)
        np.testing.assert_almost_equal(t.origin, vec([0, 0, -1e-3]))
        np.testing.assert_almost_equal(t.direction, vec([0, 0, -1]))

    def test_transmission_snell(self):
        t = create_transmission(vec([0, 0, 1]), normalize(vec([1, 0, -1])), vec([0, 0, 0]), 1e-3, 1.5)
        self.assertAlmostEqual(t.direction[0], np.sin(np.pi / 4) / 1.5)
        self.assertLess(t.direction[2], 0)
        self.assertAlmostEqual(np.linalg.norm(t.direction), 1.0)

    def test_total_internal_reflection(self):
        self.assertIsNone(create_transmission(vec([0, 0, 1]), normalize(vec([1, 0, 0.1])), vec([0, 0, 0]), 1e-3, 1.5))
        self.assertEqual(fresnel(normalize(vec([1, 0, 0.1])), vec([0, 0, 1]), 1.5), 1.0)

    def test_fresnel_normal_incidence(self):
        self.assertAlmostEqual(fresnel(vec([0, 0, -1]), vec([0, 0, 1]), 1.5), 0.04)
        self.assertAlmostEqual(fresnel(vec([0, 0, 1]), vec([0, 0, 1]), 1.5), 0.04)

    def mirror_scene(self, reflectivity, max_recursion_depth=10):
        floor = Plane(vec([0, -1, 0]), vec([0, -1, 0]), white(surface=Reflective(reflectivity)))
        ball = Sphere(vec([0, 1, -3]), 0.5, white())
        light = SphericalLight(vec([0, 0, -2]), WHITE, 4 * np.pi)
        return small_scene([floor, ball], [light], max_recursion_depth=max_recursion_depth)

    def test_mirror(self):
        ray = Ray(vec([0, 0, 0]), normalize(vec([0, -1, -1])))
        scene = self.mirror_scene(1.0)
        bias = scene.shadow_bias
        reflected = cast_ray(scene, Ray(vec([0, -1 + bias, -1]), normalize(vec([0, 1, -1]))), 1)
        self.assertTrue(np.all(reflected > 0))
        np.testing.assert_allclose(cast_ray(scene, ray), reflected)

    def test_partial_mirror(self):
        ray = Ray(vec([0, 0, 0]), normalize(vec([0, -1, -1])))
        scene = self.mirror_scene(0.5)
        hit_point = vec([0, -1, -1])
        diffuse = shade_diffuse(scene, scene.elements[0], hit_point, vec([0, 1, 0]))
        reflected = cast_ray(scene, Ray(hit_point + vec([0, scene.shadow_bias, 0]), normalize(vec([0, 1, -1]))), 1)
        np.testing.assert_allclose(cast_ray(scene, ray), 0.5 * diffuse + 0.5 * reflected)

    def test_reflection_respects_depth(self):
        ray = Ray(vec([0, 0, 0]), normalize(vec([0, -1, -1])))
        np.testing.assert_array_equal(cast_ray(self.mirror_scene(1.0, max_recursion_depth=1), ray), BLACK)

    def test_glass_sphere(self):
        glass = Sphere(vec([0, 0, -5]), 1.0, white(surface=Refractive(1.5, 1.0)))
        backdrop = Sphere(vec([0, 0, -20]), 5.0, white())
        light = SphericalLight(vec([0, 0, -10]), WHITE, 50 * np.pi)
        # deep enough for camera -> front -> back -> backdrop, but not for light bouncing inside the glass
        scene = small_scene([glass, backdrop], [light], max_recursion_depth=3)
        # the backdrop shades to 0.5; each of the two surfaces passes 96% of it
        np.testing.assert_allclose(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1]))),
                                   0.5 * 0.96 * 0.96 * WHITE, rtol=1e-6)

    def test_glass_with_nothing_behind_is_black(self):
        glass = Sphere(vec([0, 0, -5]), 1.0, white(surface=Refractive(1.5, 1.0)))
        scene = small_scene([glass], [DirectionalLight(vec([0, 0, -1]), WHITE, 1.0)])
        np.testing.assert_array_equal(cast_ray(scene, Ray(vec([0, 0, 0]), vec([0, 0, -1]))), BLACK)


class TestRender(unittest.TestCase):

    def scene(self, **kwargs):
        green = Material(color(0.4, 1.0, 0.4), 0.18)
        return Scene(16, 12, 90.0,
                     [Sphere(vec([0, 0, -5]), 2.0, green)],
                     [DirectionalLight(vec([0, 0, -1]), WHITE, 20.0)], **kwargs)

    def test_render_image(self):
        pix = render_image(self.scene())
        self.assertEqual(pix.shape, (12, 16, 4))
        self.assertEqual(pix.dtype, np.uint8)
        self.assertTrue(np.all(pix[:, :, 3] == 255))
        np.testing.assert_array_equal(pix[0, 0], [0, 0, 0, 255])
        self.assertGreater(pix[6, 8, 1], 0)

    def test_render_into_caller_buffer(self):
        scene = self.scene()
        buf = np.full((12, 16, 4), 7, np.uint8)
        out = render_into(scene, buf)
        self.assertIs(out, buf)
        np.testing.assert_array_equal(buf, render_image(scene))

    def test_render_into_wrong_shape(self):
        with self.assertRaises(ValueError):
            render_into(self.scene(), np.zeros((16, 12, 4), np.uint8))

    def test_depth_zero_renders_black(self):
        pix = render_image(self.scene(max_recursion_depth=0))
        self.assertTrue(np.all(pix[:, :, :3] == 0))

    def test_parallel_matches_sequential(self):
        scene = self.scene()
        np.testing.assert_array_equal(render_image(scene, workers=2), render_image(scene))


if __name__ == '__main__':
    unittest.main()
