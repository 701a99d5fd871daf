import numpy as np
from PIL import Image


def vec(list):
    """Handy shorthand to make a double-precision 3D point or vector."""
    return np.array(list, dtype=np.float64)


ORIGIN = vec([0, 0, 0])


def dot(a, b):
    return float(np.dot(a, b))


def length(v):
    """Return the Euclidean length of the vector v."""
    return float(np.linalg.norm(v))


def normalize(v):
    """Return a unit vector in the direction of the vector v.

    A zero-length or non-finite vector has no direction, so this raises
    ValueError instead of returning NaNs.
    """
    n = length(v)
    if n == 0 or not np.isfinite(n):
        raise ValueError(f"cannot normalize vector {v!r}")
    return v / n


def reflect(incident, normal):
    """Mirror the incident direction about the (unit) normal."""
    return incident - 2.0 * dot(incident, normal) * normal


def load_image(filename):
    """Decode an image file into a (h, w, 4) uint8 RGBA array."""
    with Image.open(filename) as pil_img:
        return np.array(pil_img.convert('RGBA'), dtype=np.uint8)


def save_image(pixels, filename):
    """Encode a (h, w, 4) uint8 RGBA array to an image file.

    The format follows the file extension (PNG for .png).
    """
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(filename)
