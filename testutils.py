import os
import tempfile
import unittest
import numpy as np
from utils import *


class TestVectors(unittest.TestCase):

    def test_normalize(self):
        np.testing.assert_almost_equal(normalize(vec([3, 0, 4])), vec([0.6, 0, 0.8]))

    def test_normalize_zero_rejected(self):
        with self.assertRaises(ValueError):
            normalize(vec([0, 0, 0]))
        with self.assertRaises(ValueError):
            normalize(vec([np.inf, 0, 0]))

    def test_point_arithmetic(self):
        p, q = vec([1, 2, 3]), vec([4, 6, 3])
        v = q - p
        self.assertAlmostEqual(length(v), 5.0)
        np.testing.assert_array_equal(p + v, q)
        self.assertEqual(dot(v, v), 25.0)
        np.testing.assert_array_equal(ORIGIN, vec([0, 0, 0]))

    def test_reflect(self):
        np.testing.assert_almost_equal(reflect(vec([1, -1, 0]), vec([0, 1, 0])), vec([1, 1, 0]))


class TestImages(unittest.TestCase):

    def test_save_and_load(self):
        pixels = np.zeros((3, 5, 4), np.uint8)
        pixels[..., 0] = np.arange(5) * 50
        pixels[..., 3] = 255
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'img.png')
            save_image(pixels, path)
            np.testing.assert_array_equal(load_image(path), pixels)

    def test_load_rgb_adds_alpha(self):
        from PIL import Image
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'rgb.png')
            Image.new('RGB', (2, 2), (10, 20, 30)).save(path)
            img = load_image(path)
        self.assertEqual(img.shape, (2, 2, 4))
        np.testing.assert_array_equal(img[0, 0], [10, 20, 30, 255])


if __name__ == '__main__':
    unittest.main()
