"""Taichi-based progressive Monte Carlo path tracer.

This package renders scenes of spheres and triangle meshes with a unified
diffuse/specular material model, an analytic sky and sun, and temporal
accumulation of per-frame estimates:
- Path tracing with a fixed bounce cap
- Deterministic per-pixel random streams seeded by pixel and frame
- Progressive rendering with a running-mean accumulator

Subpackages:
    core: Rays, random streams, the path integrator and accumulation
    geometry: Sphere, triangle and bounding-box intersection
    materials: Material parameters and the bounce model
    scene: Scene buffers, environment light and scene construction
    camera: Pinhole camera with lens and divergence jitter
    preview: Tone mapping and image export
"""

__version__ = "0.1.0"
