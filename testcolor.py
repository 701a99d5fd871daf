import unittest
import numpy as np
from color import *


class TestClamp(unittest.TestCase):

    def test_channels_in_unit_range(self):
        for c in (color(-3.0, 0.5, 7.0), color(1e9, -1e9, 0.0), color(0.2, 0.4, 0.6)):
            clamped = clamp(c)
            self.assertTrue(np.all(clamped >= 0.0))
            self.assertTrue(np.all(clamped <= 1.0))
        np.testing.assert_array_equal(clamp(color(-3.0, 0.5, 7.0)), color(0.0, 0.5, 1.0))

    def test_in_range_unchanged(self):
        np.testing.assert_array_equal(clamp(color(0.2, 0.4, 0.6)), color(0.2, 0.4, 0.6))

    def test_nan_rejected(self):
        with self.assertRaises(ValueError):
            clamp(color(np.nan, 0.0, 0.0))


class TestArithmetic(unittest.TestCase):

    def test_scalar_multiply_commutes(self):
        c = color(0.1, 0.2, 0.3)
        np.testing.assert_array_equal(c * 2.0, 2.0 * c)

    def test_componentwise(self):
        np.testing.assert_allclose(color(0.5, 1.0, 0.25) * color(0.5, 0.5, 4.0), color(0.25, 0.5, 1.0))
        np.testing.assert_allclose(color(0.5, 1.0, 0.25) + color(0.5, 0.5, 4.0), color(1.0, 1.5, 4.25))


class TestRGBA(unittest.TestCase):

    def test_black_and_white(self):
        np.testing.assert_array_equal(to_rgba(BLACK), [0, 0, 0, 255])
        np.testing.assert_array_equal(to_rgba(WHITE), [255, 255, 255, 255])
        self.assertEqual(to_rgba(WHITE).dtype, np.uint8)

    def test_gamma_encoding(self):
        # mid gray in linear light is well above half brightness once encoded
        np.testing.assert_array_equal(to_rgba(color(0.5, 0.5, 0.5)), [186, 186, 186, 255])
        np.testing.assert_allclose(from_rgba(np.array([186, 186, 186, 255], np.uint8)),
                                   color(0.5, 0.5, 0.5), atol=2e-3)

    def test_out_of_range_is_clamped(self):
        np.testing.assert_array_equal(to_rgba(color(-1.0, 2.0, 0.0)), [0, 255, 0, 255])

    def test_alpha_ignored(self):
        np.testing.assert_array_equal(from_rgba(np.array([10, 20, 30, 0], np.uint8)),
                                      from_rgba(np.array([10, 20, 30], np.uint8)))

    def test_round_trip(self):
        rng = np.random.default_rng(0)
        for c in rng.random((50, 3)):
            np.testing.assert_allclose(from_rgba(to_rgba(c)), c, atol=0.01)

    def test_gamma_inverse(self):
        x = np.linspace(0.0, 1.0, 11)
        np.testing.assert_allclose(gamma_decode(gamma_encode(x)), x)
        self.assertEqual(GAMMA, 2.2)


if __name__ == '__main__':
    unittest.main()
