import argparse
import logging
import sys

import ray
import scene_def

logger = logging.getLogger(__name__)

EXAMPLE_PREFIX = "example:"


def cmdline_args(argv=None):
    '''Parse the command line arguments of the program.'''
    parser = argparse.ArgumentParser(description='Render a scene with the ray tracer')
    parser.add_argument('scene',
                        metavar='SCENE',
                        help='JSON or YAML scene file, or example:NAME for a built-in scene ({})'.format(
                            ', '.join(sorted(scene_def.EXAMPLES))))
    parser.add_argument('out',
                        metavar='OUT',
                        help='output image file, e.g. out.png')
    parser.add_argument('--workers',
                        type=int,
                        default=None,
                        help='render rows in this many processes (default: render in this process)')
    parser.add_argument('-v', '--verbose',
                        action='count',
                        default=0,
                        help='log progress (-vv for per-row detail)')
    return parser.parse_args(argv)


def load(scene_arg):
    if scene_arg.startswith(EXAMPLE_PREFIX):
        name = scene_arg[len(EXAMPLE_PREFIX):]
        if name not in scene_def.EXAMPLES:
            raise ray.SceneConfigError(f"unknown example scene '{name}'")
        return scene_def.EXAMPLES[name]()
    return scene_def.ExampleSceneDef(scene_def.load_scene(scene_arg))


def render(scene, output_path, workers=None):
    """Render an ExampleSceneDef to output_path."""
    return scene.render(output_path, workers=workers)


def main(argv=None):
    args = cmdline_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    try:
        scene = load(args.scene)
        render(scene, args.out, workers=args.workers)
    except ray.SceneConfigError as e:
        logger.error("invalid scene: %s", e)
        return 2
    except (OSError, ValueError) as e:
        logger.error("render failed: %s", e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
