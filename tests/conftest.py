"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from raycore.backend import init_backend  # noqa: E402
from raycore.config import RenderConfig  # noqa: E402
from raycore.renderer import Renderer  # noqa: E402
from raycore.scene_manager import SceneManager  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def taichi_backend():
    """Initialise Taichi once; re-initialising would drop live fields."""
    return init_backend("cpu")


@pytest.fixture
def scene():
    """An empty scene with small capacities."""
    return SceneManager(max_objects=16, max_lights=4, max_materials=8)


@pytest.fixture
def small_config():
    return RenderConfig(width=16, height=12, arch="cpu")


@pytest.fixture
def make_renderer(small_config):
    """Build a renderer for a scene, optionally overriding config options."""
    def _make(scene, **overrides):
        return Renderer(scene, small_config.with_overrides(**overrides))
    return _make


@pytest.fixture
def temp_output_dir(tmp_path):
    """Provide a temporary directory for test outputs."""
    path = tmp_path / "outputs"
    path.mkdir()
    return path
