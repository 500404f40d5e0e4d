"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture
def small_scene():
    """Scene buffers with small capacities for fast, isolated tests."""
    from pathtracer.scene.intersection import SceneBuffers

    return SceneBuffers(max_materials=16, max_spheres=16, max_triangles=64, max_mesh_groups=8)
