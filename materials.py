import numpy as np
from color import from_rgba


def wrap(coord, dimension):
    """Map a texture coordinate onto a pixel index in [0, dimension).

    Coordinates repeat with period 1, so 1.25 and 0.25 land on the same
    pixel, as do -0.25 and 0.75.
    """
    return int(np.floor(coord * dimension)) % dimension


class Texture:

    def __init__(self, pixels):
        """Create a texture over already-decoded image data.

        Parameters:
          pixels : (h, w, 3) or (h, w, 4) uint8 -- gamma-encoded pixel rows, top row first
        """
        pixels = np.array(pixels, dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4) or 0 in pixels.shape[:2]:
            raise ValueError(f"texture pixels must have shape (h, w, 3|4), got {pixels.shape}")
        pixels.flags.writeable = False
        self.pixels = pixels
        self.height, self.width = pixels.shape[:2]

    def sample(self, x, y):
        """Return the linear color of pixel (x, y)."""
        return from_rgba(self.pixels[y, x])

    def color_at(self, u, v):
        """Return the linear color at texture coordinates (u, v), wrapping both axes."""
        return self.sample(wrap(u, self.width), wrap(v, self.height))


class SolidColor:

    def __init__(self, color):
        self.value = np.array(color, dtype=np.float64)

    def color(self, tex_coords):
        return self.value


class TextureColor:

    def __init__(self, texture):
        self.texture = texture

    def color(self, tex_coords):
        return self.texture.color_at(*tex_coords)


class Diffuse:
    pass


class Reflective:

    def __init__(self, reflectivity):
        """A surface that mirrors `reflectivity` of the light and diffuses the rest."""
        self.reflectivity = reflectivity


class Refractive:

    def __init__(self, index, transparency):
        """A transparent surface.

        Parameters:
          index : float -- index of refraction (1.0 for air, 1.5 for glass)
          transparency : float -- fraction of light passed through
        """
        self.index = index
        self.transparency = transparency


class Material:

    def __init__(self, coloration, albedo=0.18, surface=None):
        """Create a new material with the given parameters.

        Parameters:
          coloration : SolidColor, TextureColor or (3,) -- the surface color; a bare color is made solid
          albedo : float -- fraction of incident light diffusely reflected
          surface : Diffuse, Reflective or Refractive -- defaults to Diffuse
        """
        if not isinstance(coloration, (SolidColor, TextureColor)):
            coloration = SolidColor(coloration)
        self.coloration = coloration
        self.albedo = albedo
        self.surface = surface if surface is not None else Diffuse()

    def color(self, tex_coords):
        return self.coloration.color(tex_coords)
