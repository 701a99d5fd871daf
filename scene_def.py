import json
import logging
import os

import yaml

import ray
from color import color
from geometry import Sphere, Plane
from materials import Material, Texture, TextureColor, Diffuse, Reflective, Refractive
from utils import vec, load_image, save_image

"""
Scene descriptions: building a `ray.Scene` from a dict or a JSON/YAML file, and a handful of
ready-made example scenes.

A scene document looks like

    {"width": 800, "height": 600, "fov": 90,
     "shadow_bias": 1e-9, "max_recursion_depth": 10,
     "elements": [{"type": "sphere", "center": [0, 0, -5], "radius": 1,
                   "material": {"color": [0.4, 1.0, 0.4], "albedo": 0.18}},
                  {"type": "plane", "origin": [0, -2, 0], "normal": [0, -1, 0],
                   "material": {"texture": "checker.png", "albedo": 0.18,
                                "surface": {"type": "reflective", "reflectivity": 0.3}}}],
     "lights": [{"type": "directional", "direction": [0, 0, -1], "color": [1, 1, 1], "intensity": 20},
                {"type": "spherical", "position": [0, 5, -5], "color": [1, 1, 1], "intensity": 5000}]}

Texture paths are resolved relative to the scene file and decoded before the scene is built.
"""

logger = logging.getLogger(__name__)


def _require(data, key, where):
    try:
        return data[key]
    except KeyError:
        raise ray.SceneConfigError(f"{where}: missing required key '{key}'") from None
    except TypeError:
        raise ray.SceneConfigError(f"{where}: expected an object, got {data!r}") from None


def _vector(data, key, where):
    value = _require(data, key, where)
    try:
        v = vec(value)
    except (TypeError, ValueError):
        raise ray.SceneConfigError(f"{where}: '{key}' must be a list of 3 numbers, got {value!r}") from None
    if v.shape != (3,):
        raise ray.SceneConfigError(f"{where}: '{key}' must be a list of 3 numbers, got {value!r}")
    return v


def _number(data, key, where, default=None):
    value = _require(data, key, where) if default is None else data.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ray.SceneConfigError(f"{where}: '{key}' must be a number, got {value!r}") from None


def _surface(data, where):
    if data is None:
        return Diffuse()
    kind = _require(data, "type", where)
    if kind == "diffuse":
        return Diffuse()
    if kind == "reflective":
        return Reflective(_number(data, "reflectivity", where))
    if kind == "refractive":
        return Refractive(_number(data, "index", where),
                          _number(data, "transparency", where))
    raise ray.SceneConfigError(f"{where}: unknown surface type '{kind}'")


def _material(data, base_dir, textures, where):
    if "texture" in data:
        path = os.path.join(base_dir, data["texture"])
        if path not in textures:
            try:
                textures[path] = Texture(load_image(path))
            except (OSError, ValueError) as e:
                raise ray.SceneConfigError(f"{where}: cannot load texture {path}: {e}") from e
            logger.debug("loaded texture %s (%dx%d)", path, textures[path].width, textures[path].height)
        coloration = TextureColor(textures[path])
    else:
        coloration = _vector(data, "color", where)
    albedo = _number(data, "albedo", where)
    return Material(coloration, albedo, _surface(data.get("surface"), where + ".surface"))


def _element(data, base_dir, textures, where):
    kind = _require(data, "type", where)
    material = _material(_require(data, "material", where), base_dir, textures, where + ".material")
    try:
        if kind == "sphere":
            return Sphere(_vector(data, "center", where), _number(data, "radius", where), material)
        if kind == "plane":
            return Plane(_vector(data, "origin", where), _vector(data, "normal", where), material)
    except ray.SceneConfigError:
        raise
    except ValueError as e:
        raise ray.SceneConfigError(f"{where}: {e}") from e
    raise ray.SceneConfigError(f"{where}: unknown element type '{kind}'")


def _light(data, where):
    kind = _require(data, "type", where)
    light_color = _vector(data, "color", where)
    intensity = _number(data, "intensity", where)
    try:
        if kind == "directional":
            return ray.DirectionalLight(_vector(data, "direction", where), light_color, intensity)
        if kind == "spherical":
            return ray.SphericalLight(_vector(data, "position", where), light_color, intensity)
    except ray.SceneConfigError:
        raise
    except ValueError as e:
        raise ray.SceneConfigError(f"{where}: {e}") from e
    raise ray.SceneConfigError(f"{where}: unknown light type '{kind}'")


def scene_from_dict(data, base_dir=None):
    """Build a Scene from a parsed scene document.

    Every configuration problem (missing keys, unknown types, unreadable
    textures, width not greater than height) raises ray.SceneConfigError.
    """
    if not isinstance(data, dict):
        raise ray.SceneConfigError(f"scene: expected an object, got {type(data).__name__}")
    base_dir = base_dir or os.getcwd()
    textures = {}
    elements = [_element(e, base_dir, textures, f"elements[{i}]")
                for i, e in enumerate(data.get("elements", []))]
    lights = [_light(l, f"lights[{i}]") for i, l in enumerate(data.get("lights", []))]
    return ray.Scene(
        _require(data, "width", "scene"),
        _require(data, "height", "scene"),
        _number(data, "fov", "scene"),
        elements,
        lights,
        shadow_bias=_number(data, "shadow_bias", "scene", default=ray.DEFAULT_SHADOW_BIAS),
        max_recursion_depth=data.get("max_recursion_depth", ray.DEFAULT_MAX_RECURSION_DEPTH),
    )


def _parse_json(f, path):
    try:
        return json.load(f)
    except json.JSONDecodeError as e:
        raise ray.SceneConfigError(f"{path}: invalid JSON: {e}") from e


def _parse_yaml(f, path):
    try:
        return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ray.SceneConfigError(f"{path}: invalid YAML: {e}") from e


PARSERS = {
    ".json": _parse_json,
    ".yml": _parse_yaml,
    ".yaml": _parse_yaml,
}


def load_scene(path):
    """Read a JSON or YAML scene file, chosen by extension; textures are looked up next to it."""
    ext = os.path.splitext(path)[1].lower()
    if ext not in PARSERS:
        raise ray.SceneConfigError(f"{path}: unsupported scene format '{ext}' (expected one of {', '.join(PARSERS)})")
    with open(path, encoding='utf-8') as f:
        data = PARSERS[ext](f, path)
    logger.info("loaded scene %s", path)
    return scene_from_dict(data, base_dir=os.path.dirname(os.path.abspath(path)))


class ExampleSceneDef(object):
    def __init__(self, scene):
        self.scene = scene

    def render(self, output_path=None, workers=None):
        pix = ray.render_image(self.scene, workers=workers)
        if output_path is None:
            return pix
        save_image(pix, output_path)
        logger.info("wrote %s", output_path)
        return pix


def SingleSphereExample():
    green = Material(color(0.4, 1.0, 0.4), albedo=0.18)
    scene = ray.Scene(
        800, 600, 90.0,
        [Sphere(vec([0.0, 0.0, -5.0]), 1.0, green)],
        [ray.DirectionalLight(vec([0, 0, -1]), color(1, 1, 1), 20.0)],
    )
    return ExampleSceneDef(scene)


def ShadowExample():
    red = Material(color(1.0, 0.3, 0.3), albedo=0.18)
    floor = Material(color(0.7, 0.7, 0.7), albedo=0.18)
    scene = ray.Scene(
        800, 600, 90.0,
        [
            Sphere(vec([0.0, 0.0, -5.0]), 1.0, red),
            Plane(vec([0.0, -2.0, 0.0]), vec([0, -1, 0]), floor),
        ],
        [ray.SphericalLight(vec([0.0, 6.0, -5.0]), color(1, 1, 1), 10000.0)],
    )
    return ExampleSceneDef(scene)


def ReflectionExample():
    mirror = Material(color(0.9, 0.9, 0.9), albedo=0.18, surface=Reflective(0.7))
    glass = Material(color(1.0, 1.0, 1.0), albedo=0.18, surface=Refractive(1.5, 1.0))
    blue = Material(color(0.2, 0.3, 1.0), albedo=0.18)
    floor = Material(color(0.6, 0.6, 0.6), albedo=0.18, surface=Reflective(0.2))
    scene = ray.Scene(
        800, 600, 90.0,
        [
            Sphere(vec([-2.0, 0.0, -6.0]), 1.5, mirror),
            Sphere(vec([1.5, -0.5, -4.0]), 1.0, glass),
            Sphere(vec([2.5, 1.0, -9.0]), 2.0, blue),
            Plane(vec([0.0, -2.0, 0.0]), vec([0, -1, 0]), floor),
        ],
        [
            ray.DirectionalLight(vec([-0.25, -1, -1]), color(1, 1, 1), 15.0),
            ray.SphericalLight(vec([3.0, 4.0, -3.0]), color(1.0, 0.8, 0.6), 8000.0),
        ],
    )
    return ExampleSceneDef(scene)


EXAMPLES = {
    "single_sphere": SingleSphereExample,
    "shadow": ShadowExample,
    "reflection": ReflectionExample,
}
