"""Render configuration: defaults, environment, TOML files and overrides."""

import math
import os
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from raycore.constants import (
    BACKGROUND_COLOR,
    CAMERA_ORIGIN,
    EPSILON,
    FOV,
    HEIGHT,
    MAX_DEPTH,
    MAX_DISTANCE,
    MAX_FOV,
    ROWS_PER_BATCH,
    WIDTH,
)
from raycore.errors import ConfigError

# Environment
DEFAULT_ARCH = os.getenv("RAYCORE_ARCH", "cpu")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Backends with double-precision kernels; "gpu" lets Taichi pick one
SUPPORTED_ARCHS = ("cpu", "gpu", "cuda")


@dataclass(frozen=True)
class RenderConfig:
    """Fixed parameters of a render pass.

    Every field is a recognised option in a TOML ``[render]`` table and
    in :meth:`from_dict`.
    """

    width: int = WIDTH
    height: int = HEIGHT
    fov: float = FOV
    max_depth: int = MAX_DEPTH
    background_color: Tuple[float, float, float] = BACKGROUND_COLOR
    epsilon: float = EPSILON
    max_distance: float = MAX_DISTANCE
    camera_origin: Tuple[float, float, float] = CAMERA_ORIGIN
    rows_per_batch: int = ROWS_PER_BATCH
    arch: str = DEFAULT_ARCH

    def __post_init__(self):
        # Normalise sequence options so configs compare and hash by value
        object.__setattr__(self, "background_color", _triple("background_color", self.background_color))
        object.__setattr__(self, "camera_origin", _triple("camera_origin", self.camera_origin))
        self.validate()

    def validate(self) -> None:
        for name in ("width", "height", "max_depth", "rows_per_batch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if self.width < 1 or self.height < 1:
            raise ConfigError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.rows_per_batch < 1:
            raise ConfigError(f"rows_per_batch must be >= 1, got {self.rows_per_batch}")
        if not 0.0 < _number("fov", self.fov) < MAX_FOV:
            raise ConfigError(f"fov must lie in (0, pi) radians, got {self.fov}")
        if _number("epsilon", self.epsilon) <= 0.0:
            raise ConfigError(f"epsilon must be positive, got {self.epsilon}")
        if _number("max_distance", self.max_distance) <= self.epsilon:
            raise ConfigError(f"max_distance must exceed epsilon, got {self.max_distance}")
        if self.arch not in SUPPORTED_ARCHS:
            raise ConfigError(f"Unknown arch {self.arch!r}, expected one of {', '.join(SUPPORTED_ARCHS)}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def stack_size(self) -> int:
        """Work-stack entries needed per ray for a depth-first trace."""
        return self.max_depth + 2

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "RenderConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unrecognised render option(s): {', '.join(unknown)}")
        try:
            return cls(**values)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    def with_overrides(self, **overrides: Any) -> "RenderConfig":
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return self.from_dict({**asdict(self), **changes})


def load_config(path, base: Optional[RenderConfig] = None) -> RenderConfig:
    """Read a TOML file and apply its ``[render]`` table on top of ``base``."""
    path = Path(path)
    try:
        with path.open("rb") as fh:
            document = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    section = document.get("render", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[render] in {path} must be a table")
    base = base or RenderConfig()
    return RenderConfig.from_dict({**asdict(base), **section})


def _number(name, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigError(f"{name} must be a finite number, got {value!r}")
    return float(value)


def _triple(name, value) -> Tuple[float, float, float]:
    try:
        items = tuple(value)
    except TypeError as exc:
        raise ConfigError(f"{name} must be a sequence of three numbers, got {value!r}") from exc
    if len(items) != 3:
        raise ConfigError(f"{name} must have three components, got {len(items)}")
    return tuple(_number(name, v) for v in items)


__all__ = [
    "DEFAULT_ARCH",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "SUPPORTED_ARCHS",
    "RenderConfig",
    "load_config",
]
