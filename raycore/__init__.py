from .constants import *
from .errors import *
from .backend import init_backend
from .config import RenderConfig, load_config
from .geometry import Ray, normalize, pixel_to_ray
from .scene_manager import SceneManager
from .renderer import Intersection, Renderer, RenderStats
from .image_io import save_image, save_ppm

__version__ = "0.1.0"

__all__ = [
    'init_backend', 'RenderConfig', 'load_config',
    'Ray', 'normalize', 'pixel_to_ray',
    'SceneManager', 'Renderer', 'Intersection', 'RenderStats',
    'save_image', 'save_ppm',
    'WIDTH', 'HEIGHT', 'FOV', 'MAX_DEPTH', 'BACKGROUND_COLOR', 'EPSILON', 'MAX_DISTANCE',
    'MAX_OBJECTS', 'MAX_LIGHTS', 'MAX_MATERIALS', 'OBJ_SPHERE', 'OBJ_CUBOID',
    'RayTracerError', 'ConfigError', 'SceneError', 'BackendError', 'ImageError', 'ImageWriteError',
]
