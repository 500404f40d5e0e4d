"""Unit tests for the material bounce model.

Tests cover:
- Mirror and diffuse directions
- Specular probability as a boolean branch
- Emission accumulation before the throughput tint
- Throughput tint by colour or specular colour
"""

import math

import numpy as np
import pytest
import taichi as ti


def _material(
    colour=(1.0, 1.0, 1.0),
    emission_colour=(0.0, 0.0, 0.0),
    emission_strength=0.0,
    specular_colour=(1.0, 1.0, 1.0),
    smoothness=0.0,
    specular_probability=0.0,
):
    return dict(
        colour=colour,
        emission_colour=emission_colour,
        emission_strength=emission_strength,
        specular_colour=specular_colour,
        smoothness=smoothness,
        specular_probability=specular_probability,
    )


def _make_bounce_kernel(n):
    """Kernel applying n independent bounces off a floor with the given material."""
    from pathtracer.core.random import seed_pixel
    from pathtracer.materials.material import Material, apply_bounce

    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    lights = ti.Vector.field(3, dtype=ti.f32, shape=n)
    throughputs = ti.Vector.field(3, dtype=ti.f32, shape=n)
    speculars = ti.field(dtype=ti.i32, shape=n)

    @ti.kernel
    def test_kernel(
        colour: ti.math.vec3,
        emission_colour: ti.math.vec3,
        emission_strength: ti.f32,
        specular_colour: ti.math.vec3,
        smoothness: ti.f32,
        specular_probability: ti.f32,
        incident: ti.math.vec3,
        throughput: ti.math.vec3,
    ):
        for i in range(n):
            material = Material(
                colour=colour,
                emission_colour=emission_colour,
                emission_strength=emission_strength,
                specular_colour=specular_colour,
                smoothness=smoothness,
                specular_probability=specular_probability,
                flag=0,
            )
            state = seed_pixel(i, 0)
            direction, light, tp, specular, _ = apply_bounce(
                material,
                incident,
                ti.math.vec3(0.0, 1.0, 0.0),
                ti.math.vec3(0.0, 0.0, 0.0),
                throughput,
                state,
            )
            directions[i] = direction
            lights[i] = light
            throughputs[i] = tp
            speculars[i] = specular

    def run(material, incident=(1.0, -1.0, 0.0), throughput=(1.0, 1.0, 1.0)):
        vec3 = ti.math.vec3
        length = math.sqrt(sum(c * c for c in incident))
        test_kernel(
            vec3(*material["colour"]),
            vec3(*material["emission_colour"]),
            material["emission_strength"],
            vec3(*material["specular_colour"]),
            material["smoothness"],
            material["specular_probability"],
            vec3(*[c / length for c in incident]),
            vec3(*throughput),
        )
        return (
            directions.to_numpy(),
            lights.to_numpy(),
            throughputs.to_numpy(),
            speculars.to_numpy(),
        )

    return run


class TestScatterDirection:
    """Tests for the outgoing direction."""

    def test_perfect_mirror(self):
        run = _make_bounce_kernel(64)
        directions, _, _, speculars = run(_material(smoothness=1.0, specular_probability=1.0))

        expected = np.array([1.0, 1.0, 0.0]) / math.sqrt(2.0)
        assert np.all(speculars == 1)
        np.testing.assert_allclose(directions, np.tile(expected, (64, 1)), atol=1e-5)

    def test_diffuse_stays_above_surface(self):
        run = _make_bounce_kernel(2000)
        directions, _, _, speculars = run(_material(smoothness=1.0, specular_probability=0.0))

        assert np.all(speculars == 0)
        assert np.all(directions[:, 1] >= -1e-5)
        np.testing.assert_allclose(np.linalg.norm(directions, axis=1), 1.0, atol=1e-5)
        # Diffuse directions spread out instead of following the mirror direction
        assert directions[:, 0].std() > 0.2

    def test_smoothness_ignored_on_diffuse_bounces(self):
        """With specular probability 0 the direction does not depend on smoothness."""
        run = _make_bounce_kernel(256)
        rough, *_ = run(_material(smoothness=0.0, specular_probability=0.0))
        smooth, *_ = run(_material(smoothness=1.0, specular_probability=0.0))

        np.testing.assert_allclose(rough, smooth, atol=1e-6)

    def test_rough_specular_matches_diffuse(self):
        """A specular bounce with smoothness 0 uses the diffuse candidate."""
        run = _make_bounce_kernel(256)
        diffuse, *_ = run(_material(smoothness=0.0, specular_probability=0.0))
        rough_specular, _, _, speculars = run(_material(smoothness=0.0, specular_probability=1.0))

        assert np.all(speculars == 1)
        np.testing.assert_allclose(diffuse, rough_specular, atol=1e-6)

    def test_specular_probability_fraction(self):
        run = _make_bounce_kernel(20000)
        *_, speculars = run(_material(specular_probability=0.3))

        assert abs(speculars.mean() - 0.3) < 0.02


class TestRadianceBookkeeping:
    """Tests for emission and throughput updates."""

    def test_emission_scaled_by_throughput(self):
        run = _make_bounce_kernel(4)
        material = _material(emission_colour=(1.0, 2.0, 3.0), emission_strength=2.0)
        _, lights, _, _ = run(material, throughput=(0.5, 0.5, 0.25))

        np.testing.assert_allclose(lights, np.tile([1.0, 2.0, 1.5], (4, 1)), atol=1e-6)

    def test_emission_uses_throughput_before_tint(self):
        """Emission is added with the incoming throughput, not the tinted one."""
        run = _make_bounce_kernel(4)
        material = _material(
            colour=(0.1, 0.1, 0.1),
            emission_colour=(1.0, 1.0, 1.0),
            emission_strength=1.0,
        )
        _, lights, throughputs, _ = run(material)

        np.testing.assert_allclose(lights, 1.0, atol=1e-6)
        np.testing.assert_allclose(throughputs, 0.1, atol=1e-6)

    @pytest.mark.parametrize(
        "probability,expected",
        [(0.0, (0.8, 0.2, 0.1)), (1.0, (0.3, 0.6, 0.9))],
    )
    def test_throughput_tint(self, probability, expected):
        run = _make_bounce_kernel(8)
        material = _material(
            colour=(0.8, 0.2, 0.1),
            specular_colour=(0.3, 0.6, 0.9),
            smoothness=1.0,
            specular_probability=probability,
        )
        _, _, throughputs, _ = run(material)

        np.testing.assert_allclose(throughputs, np.tile(expected, (8, 1)), atol=1e-6)
