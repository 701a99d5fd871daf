import logging
import multiprocessing
import numbers
import time
from functools import partial

import numpy as np
from color import BLACK, clamp, to_rgba
from geometry import Intersection
from materials import Reflective, Refractive
from utils import vec, normalize, dot, length, reflect, ORIGIN

"""
Core implementation of the ray tracer.  This module contains the classes (Ray, Camera, lights,
Scene) used in the rendering algorithm, the shading functions, and the main entry points
`render_image` and `render_into`.

In the documentation of these classes, we indicate the expected types of arguments with a
colon, and use the convention that just writing a tuple means that the expected type is a
NumPy array of that shape.
"""

logger = logging.getLogger(__name__)

DEFAULT_SHADOW_BIAS = 1e-9
DEFAULT_MAX_RECURSION_DEPTH = 10
MAX_RECURSION_DEPTH = 32  # hard cap on reflection/refraction bounces


class SceneConfigError(ValueError):
    """The scene cannot be rendered as configured."""


class Ray:

    def __init__(self, origin, direction):
        """Create a ray with the given origin and direction.

        Parameters:
          origin : (3,) -- the start point of the ray, a 3D point
          direction : (3,) -- the direction of the ray, a 3D unit vector
        """
        self.origin = np.array(origin, np.float64)
        self.direction = np.array(direction, np.float64)

    def at(self, distance):
        return self.origin + self.direction * distance


class Camera:

    def __init__(self, width, height, fov):
        """Create a pinhole camera at the origin looking down -z.

        Parameters:
          width, height : int -- image size in pixels; width must exceed height
          fov : float -- vertical field of view in degrees
        """
        if width <= height:
            raise SceneConfigError(f"image width ({width}) must be greater than height ({height})")
        self.width = width
        self.height = height
        self.fov = fov
        self.fov_adjustment = np.tan(np.radians(fov) / 2.0)
        self.aspect_ratio = width / height

    def generate_ray(self, x, y):
        """Compute the primary ray through the center of pixel (x, y)."""
        sensor_x = ((((x + 0.5) / self.width) * 2.0 - 1.0) * self.aspect_ratio) * self.fov_adjustment
        sensor_y = (1.0 - ((y + 0.5) / self.height) * 2.0) * self.fov_adjustment
        return Ray(ORIGIN, normalize(vec([sensor_x, sensor_y, -1.0])))


def create_reflection(normal, incident, point, bias):
    if dot(incident, normal) > 0.0:
        # reflecting off the inside of the surface
        normal = -normal
    return Ray(point + normal * bias, reflect(incident, normal))


def create_transmission(normal, incident, point, bias, index):
    """Snell's-law refracted ray through a surface, or None on total internal reflection."""
    ref_n = normal
    eta_t = index
    eta_i = 1.0
    i_dot_n = dot(incident, normal)
    if i_dot_n < 0.0:
        # outside the surface
        i_dot_n = -i_dot_n
    else:
        # inside the surface; invert the normal and swap the indices
        ref_n = -normal
        eta_i, eta_t = eta_t, 1.0

    eta = eta_i / eta_t
    k = 1.0 - (eta * eta) * (1.0 - i_dot_n * i_dot_n)
    if k < 0.0:
        return None
    direction = (incident + i_dot_n * ref_n) * eta - ref_n * np.sqrt(k)
    return Ray(point + ref_n * -bias, normalize(direction))


def fresnel(incident, normal, index):
    """Fraction of light reflected (rather than transmitted) at a dielectric boundary."""
    i_dot_n = dot(incident, normal)
    eta_i = 1.0
    eta_t = index
    if i_dot_n > 0.0:
        eta_i, eta_t = eta_t, eta_i

    sin_t = eta_i / eta_t * np.sqrt(max(0.0, 1.0 - i_dot_n * i_dot_n))
    if sin_t > 1.0:
        return 1.0
    cos_t = np.sqrt(max(0.0, 1.0 - sin_t * sin_t))
    cos_i = abs(i_dot_n)
    r_s = ((eta_t * cos_i) - (eta_i * cos_t)) / ((eta_t * cos_i) + (eta_i * cos_t))
    r_p = ((eta_i * cos_i) - (eta_t * cos_t)) / ((eta_i * cos_i) + (eta_t * cos_t))
    return float((r_s * r_s + r_p * r_p) / 2.0)


class DirectionalLight:

    def __init__(self, direction, color, intensity):
        """Create a light infinitely far away shining along direction."""
        self.direction = normalize(vec(direction))
        self.color = np.array(color, dtype=np.float64)
        self.intensity_value = float(intensity)

    def direction_from(self, point):
        return -self.direction

    def intensity(self, point):
        return self.intensity_value

    def distance(self, point):
        return np.inf


class SphericalLight:

    def __init__(self, position, color, intensity):
        """Create a point light radiating equally in all directions from position."""
        self.position = vec(position)
        self.color = np.array(color, dtype=np.float64)
        self.intensity_value = float(intensity)

    def direction_from(self, point):
        return normalize(self.position - point)

    def intensity(self, point):
        """Inverse-square falloff spread over the sphere of radius r around the light."""
        r2 = dot(self.position - point, self.position - point)
        return self.intensity_value / (4.0 * np.pi * r2)

    def distance(self, point):
        return length(self.position - point)


class Scene:

    def __init__(self, width, height, fov, elements, lights,
                 shadow_bias=DEFAULT_SHADOW_BIAS, max_recursion_depth=DEFAULT_MAX_RECURSION_DEPTH):
        """Create a scene containing the given objects and lights.

        The scene is treated as read-only for the whole render.
        """
        if not (isinstance(width, numbers.Integral) and isinstance(height, numbers.Integral)) or width <= 0 or height <= 0:
            raise SceneConfigError(f"image size must be positive integers, got {width}x{height}")
        if not 0.0 < fov < 180.0:
            raise SceneConfigError(f"field of view must be in (0, 180) degrees, got {fov}")
        if not shadow_bias > 0.0:
            raise SceneConfigError(f"shadow bias must be positive, got {shadow_bias}")
        if not isinstance(max_recursion_depth, numbers.Integral) or max_recursion_depth < 0:
            raise SceneConfigError(f"max recursion depth must be a non-negative integer, got {max_recursion_depth}")
        if max_recursion_depth > MAX_RECURSION_DEPTH:
            logger.warning("max recursion depth %d clamped to %d", max_recursion_depth, MAX_RECURSION_DEPTH)
            max_recursion_depth = MAX_RECURSION_DEPTH
        width, height, max_recursion_depth = int(width), int(height), int(max_recursion_depth)

        self.camera = Camera(width, height, fov)
        self.width = width
        self.height = height
        self.fov = fov
        self.elements = tuple(elements)
        self.lights = tuple(lights)
        self.shadow_bias = shadow_bias
        self.max_recursion_depth = max_recursion_depth

    def trace(self, ray):
        """Computes the first (smallest distance) intersection between a ray and the scene.

        Elements at identical distances resolve to the one listed first.
        """
        closest = None
        for index, element in enumerate(self.elements):
            distance = element.intersect(ray)
            if distance is not None and (closest is None or distance < closest.distance):
                closest = Intersection(distance, index)
        return closest

    def element(self, intersection):
        return self.elements[intersection.index]


def shade_diffuse(scene, element, hit_point, surface_normal):
    """Sum the Lambertian contribution of every light that can see hit_point."""
    material = element.material
    object_color = material.color(element.texture_coords(hit_point))
    light_reflected = material.albedo / np.pi

    color = BLACK.copy()
    for light in scene.lights:
        direction_to_light = light.direction_from(hit_point)

        shadow_ray = Ray(hit_point + surface_normal * scene.shadow_bias, direction_to_light)
        shadow_hit = scene.trace(shadow_ray)
        in_light = shadow_hit is None or shadow_hit.distance > light.distance(hit_point)
        if not in_light:
            continue

        light_power = max(0.0, dot(surface_normal, direction_to_light)) * light.intensity(hit_point)
        color = color + object_color * light.color * light_power * light_reflected
    return clamp(color)


def get_color(scene, ray, intersection, depth):
    element = scene.element(intersection)
    hit_point = ray.at(intersection.distance)
    surface_normal = element.surface_normal(hit_point)
    surface = element.material.surface

    if isinstance(surface, Reflective):
        color = shade_diffuse(scene, element, hit_point, surface_normal) * (1.0 - surface.reflectivity)
        reflection_ray = create_reflection(surface_normal, ray.direction, hit_point, scene.shadow_bias)
        color = color + cast_ray(scene, reflection_ray, depth + 1) * surface.reflectivity
        return clamp(color)

    if isinstance(surface, Refractive):
        kr = fresnel(ray.direction, surface_normal, surface.index)
        surface_color = element.material.color(element.texture_coords(hit_point))

        refraction_color = BLACK
        if kr < 1.0:
            transmission_ray = create_transmission(
                surface_normal, ray.direction, hit_point, scene.shadow_bias, surface.index)
            if transmission_ray is not None:
                refraction_color = cast_ray(scene, transmission_ray, depth + 1)

        reflection_ray = create_reflection(surface_normal, ray.direction, hit_point, scene.shadow_bias)
        reflection_color = cast_ray(scene, reflection_ray, depth + 1)
        color = reflection_color * kr + refraction_color * (1.0 - kr)
        return clamp(color * surface.transparency * surface_color)

    return shade_diffuse(scene, element, hit_point, surface_normal)


def cast_ray(scene, ray, depth=0):
    """Compute the color seen along ray.

    The depth bound is checked before the ray is traced, so a scene whose
    max_recursion_depth is 0 renders entirely black.
    """
    if depth >= scene.max_recursion_depth:
        return BLACK.copy()

    intersection = scene.trace(ray)
    if intersection is None:
        return BLACK.copy()
    return get_color(scene, ray, intersection, depth)


def render_row(scene, y):
    """Render one row of pixels as a (width, 4) uint8 array."""
    row = np.empty((scene.width, 4), np.uint8)
    for x in range(scene.width):
        ray = scene.camera.generate_ray(x, y)
        row[x] = to_rgba(cast_ray(scene, ray, 0))
    return row


def render_into(scene, pixels, workers=None):
    """Render the scene into a caller-supplied (height, width, 4) uint8 array.

    With workers > 1 the rows are rendered by a process pool; each worker gets
    its own copy of the scene and returns a disjoint row.
    """
    if pixels.shape != (scene.height, scene.width, 4):
        raise ValueError(f"pixel buffer has shape {pixels.shape}, expected {(scene.height, scene.width, 4)}")

    logger.info("rendering %dx%d image (%d elements, %d lights)",
                scene.width, scene.height, len(scene.elements), len(scene.lights))
    start = time.time()

    if workers is not None and workers > 1:
        with multiprocessing.Pool(processes=workers) as pool:
            rows = pool.map(partial(render_row, scene), range(scene.height))
        for y, row in enumerate(rows):
            pixels[y] = row
    else:
        for y in range(scene.height):
            logger.debug("rendering row %d/%d", y + 1, scene.height)
            pixels[y] = render_row(scene, y)

    logger.info("render complete in %.2f seconds", time.time() - start)
    return pixels


def render_image(scene, workers=None):
    """Render a ray traced image as a new (height, width, 4) uint8 RGBA array."""
    pixels = np.zeros((scene.height, scene.width, 4), np.uint8)
    return render_into(scene, pixels, workers=workers)
