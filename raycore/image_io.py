
# ------- Image output utils

import logging
from pathlib import Path

import numpy as np

from raycore.errors import ImageError, ImageWriteError

logger = logging.getLogger(__name__)

PPM_EXTENSIONS = (".ppm",)
PYGAME_EXTENSIONS = (".png", ".bmp", ".tga", ".jpg", ".jpeg")


def _check_buffer(image) -> np.ndarray:
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ImageError(f"Expected a (height, width, 3) buffer, got shape {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ImageError("Image buffer is empty")
    return image


def to_8bit(image) -> np.ndarray:
    """Clamp each channel to [0, 1] and scale to 0..255 (truncating)"""
    image = _check_buffer(image)
    # NaN would survive clip; treat it as black
    clamped = np.clip(np.nan_to_num(image, nan=0.0), 0.0, 1.0)
    return (clamped * 255.0).astype(np.uint8)


def encode_ppm(image) -> bytes:
    """Binary PPM (P6): text header then raw RGB triples in row-major order"""
    data = to_8bit(image)
    height, width = data.shape[:2]
    header = f"P6\n{width} {height}\n255\n".encode("ascii")
    return header + data.tobytes()


def save_ppm(image, path) -> Path:
    path = Path(path)
    payload = encode_ppm(image)
    try:
        with path.open("wb") as fh:
            fh.write(payload)
    except OSError as exc:
        raise ImageWriteError(path, exc.strerror or str(exc)) from exc
    logger.info("Saved %s (%d bytes)", path, len(payload))
    return path


def to_surface(image):
    """pygame Surface holding the 8-bit frame"""
    import pygame

    # surfarray is indexed [x, y]
    return pygame.surfarray.make_surface(to_8bit(image).transpose(1, 0, 2))


def save_image(image, path) -> Path:
    """Write ``image`` to ``path``; the format follows the file extension"""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in PPM_EXTENSIONS:
        return save_ppm(image, path)
    if suffix not in PYGAME_EXTENSIONS:
        raise ImageError(f"Unsupported image format {suffix or '(none)'!r} for {path}")

    import pygame

    surface = to_surface(image)
    try:
        pygame.image.save(surface, str(path))
    except (pygame.error, OSError) as exc:
        raise ImageWriteError(path, str(exc)) from exc
    logger.info("Saved %s", path)
    return path
