import argparse
import logging
import sys
import time

from raycore.backend import init_backend
from raycore.config import SUPPORTED_ARCHS, RenderConfig, load_config
from raycore.errors import RayTracerError
from raycore.image_io import save_image
from raycore.logging_config import setup_logging
from raycore.renderer import Renderer
from raycore.scene_manager import SceneManager

logger = logging.getLogger("raycore.main")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Render the default scene with recursive ray tracing.")
    parser.add_argument("--config", help="TOML file with a [render] table")
    parser.add_argument("--width", type=int, help="image width in pixels")
    parser.add_argument("--height", type=int, help="image height in pixels")
    parser.add_argument("--fov", type=float, help="vertical field of view in radians")
    parser.add_argument("--max-depth", type=int, help="maximum reflection/refraction depth")
    parser.add_argument("--rows-per-batch", type=int, help="rows traced per kernel launch")
    parser.add_argument("--arch", choices=SUPPORTED_ARCHS, help="Taichi backend")
    parser.add_argument("-o", "--output", default="render.ppm",
                        help="output image (.ppm, or .png/.bmp/.tga/.jpg)")
    parser.add_argument("--preview", action="store_true", help="show the frame in a window")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--log-file", default=None, help="also log to this file")
    return parser


def resolve_config(args) -> RenderConfig:
    """Defaults, then the config file, then command-line flags"""
    config = RenderConfig()
    if args.config:
        config = load_config(args.config, config)
    return config.with_overrides(
        width=args.width,
        height=args.height,
        fov=args.fov,
        max_depth=args.max_depth,
        rows_per_batch=args.rows_per_batch,
        arch=args.arch,
    )


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging("raycore", level=args.log_level, log_file=args.log_file)

    try:
        config = resolve_config(args)
        init_backend(config.arch)

        start = time.perf_counter()
        scene = SceneManager()
        scene.setup_default_scene()
        renderer = Renderer(scene, config)
        image = renderer.render()
        save_image(image, args.output)
        logger.info("Done in %.2fs", time.perf_counter() - start)
    except RayTracerError as exc:
        logger.error("%s", exc)
        return 1

    if args.preview:
        from preview.viewer import ImageViewer

        ImageViewer(image, stats=renderer.last_stats).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
