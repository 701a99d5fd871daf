import json
import os
import tempfile
import unittest
import numpy as np
from PIL import Image

import cli
import ray
from color import BLACK
from geometry import Sphere, Plane
from materials import Diffuse, Reflective, Refractive, TextureColor
from scene_def import *
from utils import vec, normalize, save_image, ORIGIN


def sphere_dict(**overrides):
    d = {"type": "sphere", "center": [0, 0, -5], "radius": 1,
         "material": {"color": [0.4, 1.0, 0.4], "albedo": 0.18}}
    d.update(overrides)
    return d


def scene_dict(**overrides):
    d = {"width": 8, "height": 6, "fov": 90,
         "elements": [sphere_dict()],
         "lights": [{"type": "directional", "direction": [0, 0, -1], "color": [1, 1, 1], "intensity": 20}]}
    d.update(overrides)
    return d


SCENE_YAML = """\
width: 8
height: 6
fov: 90
shadow_bias: 1.0e-6
elements:
  - type: sphere
    center: [0, 0, -5]
    radius: 1
    material: {color: [0.4, 1.0, 0.4], albedo: 0.18}
lights:
  - {type: directional, direction: [0, 0, -1], color: [1, 1, 1], intensity: 20}
"""


class TestSceneFromDict(unittest.TestCase):

    def test_minimal(self):
        scene = scene_from_dict(scene_dict())
        self.assertEqual((scene.width, scene.height, scene.fov), (8, 6, 90.0))
        self.assertEqual(scene.shadow_bias, ray.DEFAULT_SHADOW_BIAS)
        self.assertEqual(scene.max_recursion_depth, ray.DEFAULT_MAX_RECURSION_DEPTH)
        self.assertIsInstance(scene.elements[0], Sphere)
        self.assertIsInstance(scene.elements[0].material.surface, Diffuse)
        self.assertIsInstance(scene.lights[0], ray.DirectionalLight)

    def test_full(self):
        data = scene_dict(
            shadow_bias=1e-6,
            max_recursion_depth=4,
            elements=[
                sphere_dict(material={"color": [1, 1, 1], "albedo": 0.2,
                                      "surface": {"type": "refractive", "index": 1.5, "transparency": 0.8}}),
                {"type": "plane", "origin": [0, -2, 0], "normal": [0, -2, 0],
                 "material": {"color": [1, 1, 1], "albedo": 0.18,
                              "surface": {"type": "reflective", "reflectivity": 0.3}}},
            ],
            lights=[{"type": "spherical", "position": [0, 5, -5], "color": [1, 0.5, 0.5], "intensity": 5000}],
        )
        scene = scene_from_dict(data)
        self.assertEqual(scene.shadow_bias, 1e-6)
        self.assertEqual(scene.max_recursion_depth, 4)
        glass, floor = scene.elements
        self.assertIsInstance(glass.material.surface, Refractive)
        self.assertEqual(glass.material.surface.transparency, 0.8)
        self.assertIsInstance(floor, Plane)
        np.testing.assert_almost_equal(floor.normal, vec([0, -1, 0]))
        self.assertIsInstance(floor.material.surface, Reflective)
        self.assertIsInstance(scene.lights[0], ray.SphericalLight)

    def test_texture_relative_to_base_dir(self):
        pixels = np.full((2, 4, 4), 255, np.uint8)
        with tempfile.TemporaryDirectory() as d:
            save_image(pixels, os.path.join(d, 'tex.png'))
            data = scene_dict(elements=[sphere_dict(material={"texture": "tex.png", "albedo": 0.18}),
                                        sphere_dict(center=[3, 0, -5], material={"texture": "tex.png", "albedo": 0.18})])
            scene = scene_from_dict(data, base_dir=d)
        a, b = scene.elements
        self.assertIsInstance(a.material.coloration, TextureColor)
        self.assertEqual((a.material.coloration.texture.width, a.material.coloration.texture.height), (4, 2))
        # both elements share one decoded texture
        self.assertIs(a.material.coloration.texture, b.material.coloration.texture)

    def test_config_errors(self):
        bad = [
            scene_dict(width=6, height=8),
            scene_dict(elements=[sphere_dict(type="cube")]),
            scene_dict(elements=[sphere_dict(radius=-1)]),
            scene_dict(elements=[sphere_dict(center=[0, 0])]),
            scene_dict(elements=[sphere_dict(material={"albedo": 0.18})]),
            scene_dict(elements=[sphere_dict(material={"color": [1, 1, 1], "albedo": "lots"})]),
            scene_dict(elements=[sphere_dict(material={"color": [1, 1, 1], "albedo": 0.1,
                                                       "surface": {"type": "metal"}})]),
            scene_dict(elements=[sphere_dict(material={"texture": "missing.png", "albedo": 0.18})]),
            scene_dict(lights=[{"type": "area", "color": [1, 1, 1], "intensity": 1}]),
            scene_dict(lights=[{"type": "directional", "direction": [0, 0, 0], "color": [1, 1, 1], "intensity": 1}]),
            {"height": 6, "fov": 90},
            [],
        ]
        with tempfile.TemporaryDirectory() as d:
            for data in bad:
                with self.subTest(data=data):
                    with self.assertRaises(ray.SceneConfigError):
                        scene_from_dict(data, base_dir=d)

    def test_load_scene(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'scene.json')
            with open(path, 'w') as f:
                json.dump(scene_dict(), f)
            scene = load_scene(path)
            self.assertEqual(len(scene.elements), 1)

            with open(path, 'w') as f:
                f.write('{"width": ')
            with self.assertRaises(ray.SceneConfigError):
                load_scene(path)

    def test_load_yaml_scene(self):
        with tempfile.TemporaryDirectory() as d:
            for name in ('scene.yaml', 'scene.yml'):
                with self.subTest(name=name):
                    path = os.path.join(d, name)
                    with open(path, 'w') as f:
                        f.write(SCENE_YAML)
                    scene = load_scene(path)
                    self.assertEqual((scene.width, scene.height), (8, 6))
                    self.assertEqual(scene.shadow_bias, 1e-6)
                    self.assertIsInstance(scene.elements[0], Sphere)
                    self.assertIsInstance(scene.lights[0], ray.DirectionalLight)

    def test_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'scene.yaml')
            with open(path, 'w') as f:
                f.write('width: [8\n')
            with self.assertRaises(ray.SceneConfigError):
                load_scene(path)

    def test_unsupported_extension(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'scene.toml')
            with open(path, 'w') as f:
                f.write('width = 8\n')
            with self.assertRaises(ray.SceneConfigError):
                load_scene(path)


class TestExamples(unittest.TestCase):

    def test_registry(self):
        for name, factory in EXAMPLES.items():
            with self.subTest(name=name):
                scene = factory().scene
                self.assertGreater(scene.width, scene.height)
                self.assertTrue(scene.elements)
                self.assertTrue(scene.lights)

    def test_shadow_example(self):
        scene = ShadowExample().scene
        # floor straight under the sphere is occluded from the overhead light
        under = ray.cast_ray(scene, ray.Ray(ORIGIN, normalize(vec([0, -2, -5]))))
        aside = ray.cast_ray(scene, ray.Ray(ORIGIN, normalize(vec([3, -2, -5]))))
        np.testing.assert_array_equal(under, BLACK)
        self.assertTrue(np.all(aside > 0))

    def test_single_sphere_render(self):
        pix = SingleSphereExample().render()
        self.assertEqual(pix.shape, (600, 800, 4))
        self.assertTrue(np.all(pix[:, :, 3] == 255))

        # the sphere subtends asin(1/5) around the view axis, about 61 pixels
        ys, xs = np.mgrid[0:600, 0:800]
        r = np.hypot(xs - 399.5, ys - 299.5)
        outside = pix[r > 64]
        inside = pix[r < 55]
        self.assertTrue(np.all(outside[:, :3] == 0))
        self.assertTrue(np.all(inside[:, 1] > 0))
        self.assertTrue(np.all(inside[:, 1] >= inside[:, 0]))

    def test_render_to_file(self):
        example = ExampleSceneDef(scene_from_dict(scene_dict()))
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'out.png')
            pix = example.render(path)
            with Image.open(path) as im:
                self.assertEqual(im.size, (8, 6))
                np.testing.assert_array_equal(np.array(im.convert('RGBA')), pix)


class TestCli(unittest.TestCase):

    def write_scene(self, d, data):
        path = os.path.join(d, 'scene.json')
        with open(path, 'w') as f:
            json.dump(data, f)
        return path

    def test_render(self):
        with tempfile.TemporaryDirectory() as d:
            out = os.path.join(d, 'out.png')
            self.assertEqual(cli.main([self.write_scene(d, scene_dict()), out]), 0)
            with Image.open(out) as im:
                self.assertEqual(im.size, (8, 6))

    def test_bad_scene(self):
        with tempfile.TemporaryDirectory() as d:
            out = os.path.join(d, 'out.png')
            self.assertEqual(cli.main([self.write_scene(d, scene_dict(width=6, height=8)), out]), 2)
            self.assertFalse(os.path.exists(out))

    def test_unknown_example(self):
        with tempfile.TemporaryDirectory() as d:
            self.assertEqual(cli.main(['example:nope', os.path.join(d, 'out.png')]), 2)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as d:
            self.assertEqual(cli.main([os.path.join(d, 'nope.json'), os.path.join(d, 'out.png')]), 1)

    def test_yaml_scene(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'scene.yaml')
            with open(path, 'w') as f:
                f.write(SCENE_YAML)
            out = os.path.join(d, 'out.png')
            self.assertEqual(cli.main([path, out]), 0)
            with Image.open(out) as im:
                self.assertEqual(im.size, (8, 6))


if __name__ == '__main__':
    unittest.main()
