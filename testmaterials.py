import unittest
import numpy as np
from color import color, from_rgba, WHITE
from materials import *


def gradient_texture(width=10, height=4):
    # every pixel has a distinct value so lookups can be told apart
    pixels = np.zeros((height, width, 4), np.uint8)
    for y in range(height):
        for x in range(width):
            pixels[y, x] = [x * 20, y * 50, 100, 255]
    return Texture(pixels)


class TestWrap(unittest.TestCase):

    def test_periodic(self):
        self.assertEqual(wrap(0.25, 10), 2)
        self.assertEqual(wrap(1.25, 10), 2)
        self.assertEqual(wrap(-0.25, 10), 7)
        self.assertEqual(wrap(0.75, 10), 7)

    def test_bounds(self):
        self.assertEqual(wrap(0.0, 10), 0)
        self.assertEqual(wrap(0.999, 10), 9)
        self.assertEqual(wrap(1.0, 10), 0)
        self.assertEqual(wrap(-1e-9, 10), 9)


class TestTexture(unittest.TestCase):

    def test_sample(self):
        tex = gradient_texture()
        np.testing.assert_allclose(tex.sample(3, 2), from_rgba(np.array([60, 100, 100, 255], np.uint8)))

    def test_wraparound(self):
        tex = gradient_texture()
        np.testing.assert_array_equal(tex.color_at(1.25, 0.0), tex.color_at(0.25, 0.0))
        np.testing.assert_array_equal(tex.color_at(-0.25, 0.0), tex.color_at(0.75, 0.0))
        np.testing.assert_array_equal(tex.color_at(0.25, -0.25), tex.sample(2, 3))

    def test_rgb_pixels(self):
        tex = Texture(np.full((2, 3, 3), 255, np.uint8))
        self.assertEqual((tex.width, tex.height), (3, 2))
        np.testing.assert_allclose(tex.color_at(0.5, 0.5), WHITE)

    def test_read_only(self):
        tex = gradient_texture()
        with self.assertRaises(ValueError):
            tex.pixels[0, 0, 0] = 1

    def test_bad_shape(self):
        with self.assertRaises(ValueError):
            Texture(np.zeros((4, 4), np.uint8))
        with self.assertRaises(ValueError):
            Texture(np.zeros((0, 4, 4), np.uint8))


class TestMaterial(unittest.TestCase):

    def test_bare_color_is_solid(self):
        m = Material(color(0.1, 0.2, 0.3), 0.18)
        self.assertIsInstance(m.coloration, SolidColor)
        self.assertIsInstance(m.surface, Diffuse)
        np.testing.assert_array_equal(m.color((0.3, 0.7)), color(0.1, 0.2, 0.3))

    def test_textured(self):
        tex = gradient_texture()
        m = Material(TextureColor(tex), 0.5, Reflective(0.25))
        np.testing.assert_array_equal(m.color((0.35, 0.5)), tex.sample(3, 2))
        self.assertEqual(m.surface.reflectivity, 0.25)

    def test_refractive(self):
        s = Refractive(1.33, 0.9)
        self.assertEqual((s.index, s.transparency), (1.33, 0.9))


if __name__ == '__main__':
    unittest.main()
