"""One-time Taichi initialisation shared by every scene and renderer."""

import logging

import taichi as ti

from raycore.config import DEFAULT_ARCH, SUPPORTED_ARCHS
from raycore.errors import BackendError

logger = logging.getLogger(__name__)

_ARCHS = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
}

# Backends that run the kernels in double precision; ti.cpu is the host arch
_F64_ARCH_NAMES = (
    (ti.cpu, "cpu"),
    (ti.cuda, "cuda"),
)

_active_arch = None


def arch_name(arch) -> str:
    """Name of a resolved Taichi arch; raises if it lacks f64 support"""
    for candidate, name in _F64_ARCH_NAMES:
        if arch == candidate:
            return name
    raise BackendError(f"Taichi backend {arch} has no double-precision support")


def init_backend(arch: str = DEFAULT_ARCH) -> str:
    """Initialise Taichi in double precision and return the backend in use.

    Taichi falls back to the CPU when the requested device is missing, so
    the returned name is the resolved backend rather than the request.
    Re-initialising would invalidate every field already allocated, so
    later calls keep the first backend and only warn on a mismatch.
    """
    global _active_arch
    if arch not in SUPPORTED_ARCHS:
        raise BackendError(f"Unknown arch {arch!r}, expected one of {', '.join(SUPPORTED_ARCHS)}")
    if _active_arch is not None:
        if arch != _active_arch:
            logger.warning("Taichi already running on %s, ignoring request for %s", _active_arch, arch)
        return _active_arch

    ti.init(arch=_ARCHS[arch], default_fp=ti.f64, default_ip=ti.i32)
    try:
        resolved = arch_name(ti.lang.impl.current_cfg().arch)
    except BackendError:
        ti.reset()
        raise
    if arch != "gpu" and resolved != arch:
        logger.warning("Taichi backend %s unavailable, fell back to %s", arch, resolved)
    _active_arch = resolved
    logger.info("Using Taichi backend: %s (double precision)", resolved)
    return resolved


def ensure_backend() -> None:
    if _active_arch is None:
        raise BackendError("Taichi backend not initialised; call raycore.init_backend() first")


def active_arch():
    return _active_arch
