import numpy as np

"""
Linear-light colors and conversion to and from gamma-encoded 8-bit pixels.

A color is a (3,) float64 array of red, green, blue in linear space.  Channels
are unconstrained while light is being accumulated; `clamp` produces a
displayable color.
"""

GAMMA = 2.2


def color(r, g, b):
    return np.array([r, g, b], dtype=np.float64)


BLACK = color(0.0, 0.0, 0.0)
WHITE = color(1.0, 1.0, 1.0)


def gamma_encode(linear):
    return np.power(linear, 1.0 / GAMMA)


def gamma_decode(encoded):
    return np.power(encoded, GAMMA)


def clamp(c):
    """Clip every channel of c to [0, 1]."""
    c = np.asarray(c, dtype=np.float64)
    if np.any(np.isnan(c)):
        raise ValueError(f"color has NaN channels: {c!r}")
    return np.clip(c, 0.0, 1.0)


def to_rgba(c):
    """Convert a linear color to a gamma-encoded (4,) uint8 pixel, alpha opaque."""
    rgb = np.round(255.0 * gamma_encode(clamp(c)))
    return np.append(rgb, 255.0).astype(np.uint8)


def from_rgba(pixel):
    """Convert a gamma-encoded uint8 pixel (RGB or RGBA) to a linear color.

    Alpha, if present, is ignored.
    """
    rgb = np.asarray(pixel[:3], dtype=np.float64)
    return gamma_decode(rgb / 255.0)
