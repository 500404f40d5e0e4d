"""Tests for the path integrator.

Tests cover:
- Settings and frame context validation
- Environment light on escaped camera rays
- Emission and the bounce cap
- Reproducibility of a frame from its index
"""

import numpy as np
import pytest
import taichi as ti


def _context(max_bounces=4, samples=1, frame_index=0, environment=None, camera=None):
    from pathtracer.camera.pinhole import PinholeCamera
    from pathtracer.core.integrator import FrameContext, IntegratorSettings
    from pathtracer.scene.environment import EnvironmentSettings

    return FrameContext(
        frame_index=frame_index,
        settings=IntegratorSettings(max_bounce_count=max_bounces, samples_per_pixel=samples),
        camera=camera if camera is not None else PinholeCamera(vfov=30.0),
        environment=environment if environment is not None else EnvironmentSettings(enabled=False),
    )


class TestFrameConfiguration:
    """Tests for IntegratorSettings and FrameContext."""

    def test_defaults(self):
        from pathtracer.core.integrator import FrameContext, IntegratorSettings

        settings = IntegratorSettings()
        assert settings.max_bounce_count == 4
        assert settings.samples_per_pixel == 2
        assert FrameContext().frame_index == 0

    def test_negative_bounces_rejected(self):
        from pathtracer.core.integrator import IntegratorSettings

        with pytest.raises(ValueError, match="max_bounce_count"):
            IntegratorSettings(max_bounce_count=-1)

    def test_zero_samples_rejected(self):
        from pathtracer.core.integrator import IntegratorSettings

        with pytest.raises(ValueError, match="samples_per_pixel"):
            IntegratorSettings(samples_per_pixel=0)

    def test_negative_frame_index_rejected(self):
        from pathtracer.core.integrator import FrameContext

        with pytest.raises(ValueError, match="frame_index"):
            FrameContext(frame_index=-1)

    def test_invalid_image_size(self):
        from pathtracer.core.integrator import PathIntegrator

        with pytest.raises(ValueError, match="positive"):
            PathIntegrator(0, 4)


class TestTraceRay:
    """Tests for single-path tracing."""

    @pytest.mark.parametrize("direction", [(0, 0, -1), (0, 1, 0), (0.3, -0.8, 0.5)])
    def test_zero_bounces_miss_disabled_environment_is_zero(self, small_scene, direction):
        from pathtracer.core.integrator import PathIntegrator

        integrator = PathIntegrator(2, 2)
        light = integrator.trace_ray(
            small_scene, (0, 0, 0), direction, _context(max_bounces=0), seed=17
        )

        assert light == (0.0, 0.0, 0.0)

    def test_white_emitter_zero_bounces(self, small_scene):
        """A white unit emitter seen directly returns exactly its emission."""
        from pathtracer.core.integrator import PathIntegrator

        white = small_scene.add_material(
            colour=(1.0, 1.0, 1.0),
            emission_colour=(1.0, 1.0, 1.0),
            emission_strength=1.0,
        )
        small_scene.add_sphere((0, 0, 0), 1.0, white)
        integrator = PathIntegrator(2, 2)

        light = integrator.trace_ray(small_scene, (0, 0, 5), (0, 0, -1), _context(max_bounces=0))

        assert light == (1.0, 1.0, 1.0)

    def test_miss_with_disabled_environment_is_black(self, small_scene):
        from pathtracer.core.integrator import PathIntegrator

        integrator = PathIntegrator(2, 2)
        light = integrator.trace_ray(small_scene, (0, 0, 0), (0, 0, -1), _context())

        assert light == (0.0, 0.0, 0.0)

    def test_miss_returns_sky(self, small_scene):
        from pathtracer.core.integrator import PathIntegrator
        from pathtracer.scene.environment import EnvironmentSettings

        environment = EnvironmentSettings()
        integrator = PathIntegrator(2, 2)
        light = integrator.trace_ray(
            small_scene, (0, 0, 0), (0, 1, 0), _context(environment=environment)
        )

        np.testing.assert_allclose(light, environment.sky_colour_zenith, atol=1e-4)

    def test_emissive_sphere_exact(self, small_scene):
        """A black emitter contributes its emission once and stops the path."""
        from pathtracer.core.integrator import PathIntegrator

        light_mat = small_scene.add_material(
            colour=(0.0, 0.0, 0.0),
            emission_colour=(1.0, 0.5, 0.25),
            emission_strength=2.0,
        )
        small_scene.add_sphere((0, 0, -5), 1.0, light_mat)
        integrator = PathIntegrator(2, 2)

        light = integrator.trace_ray(small_scene, (0, 0, 0), (0, 0, -1), _context())

        np.testing.assert_allclose(light, (2.0, 1.0, 0.5), atol=1e-6)

    def test_zero_bounces_ignores_environment_behind_hit(self, small_scene):
        """With no bounces a hit on a non-emissive surface carries no light."""
        from pathtracer.core.integrator import PathIntegrator
        from pathtracer.scene.environment import EnvironmentSettings

        m = small_scene.add_material(colour=(1.0, 1.0, 1.0))
        small_scene.add_sphere((0, 0, -5), 1.0, m)
        integrator = PathIntegrator(2, 2)
        context = _context(max_bounces=0, environment=EnvironmentSettings())

        light = integrator.trace_ray(small_scene, (0, 0, 0), (0, 0, -1), context)

        assert light == (0.0, 0.0, 0.0)

    def test_mirror_reflects_sky(self, small_scene):
        """One bounce off a perfect mirror sees the sky straight above."""
        from pathtracer.core.integrator import PathIntegrator
        from pathtracer.scene.environment import EnvironmentSettings

        mirror = small_scene.add_material(
            colour=(0.0, 0.0, 0.0),
            specular_colour=(1.0, 1.0, 1.0),
            smoothness=1.0,
            specular_probability=1.0,
        )
        small_scene.add_sphere((0, -2, 0), 1.0, mirror)
        environment = EnvironmentSettings()
        integrator = PathIntegrator(2, 2)

        light = integrator.trace_ray(
            small_scene, (0, 0, 0), (0, -1, 0), _context(max_bounces=1, environment=environment)
        )

        np.testing.assert_allclose(light, environment.sky_colour_zenith, atol=1e-4)


class TestRenderFrame:
    """Tests for whole-frame rendering."""

    def test_empty_scene_disabled_environment(self, small_scene):
        from pathtracer.core.integrator import PathIntegrator

        integrator = PathIntegrator(8, 6)
        integrator.render_frame(small_scene, _context(max_bounces=0))
        frame = integrator.frame_to_numpy()

        assert frame.shape == (6, 8, 3)
        np.testing.assert_array_equal(frame, 0.0)

    def test_emitter_filling_view(self, small_scene):
        from pathtracer.camera.pinhole import PinholeCamera
        from pathtracer.core.integrator import PathIntegrator

        light_mat = small_scene.add_material(
            colour=(0.0, 0.0, 0.0),
            emission_colour=(1.0, 1.0, 1.0),
            emission_strength=1.0,
        )
        small_scene.add_sphere((0, 0, -10), 9.0, light_mat)
        integrator = PathIntegrator(8, 8)
        camera = PinholeCamera(vfov=30.0, diverge_strength=1.0)

        integrator.render_frame(small_scene, _context(samples=3, camera=camera))

        np.testing.assert_allclose(integrator.frame_to_numpy(), 1.0, atol=1e-6)

    def test_same_frame_index_reproduces_frame(self, small_scene):
        from pathtracer.camera.pinhole import PinholeCamera
        from pathtracer.core.integrator import PathIntegrator
        from pathtracer.scene.environment import EnvironmentSettings

        m = small_scene.add_material(colour=(0.7, 0.6, 0.5), specular_probability=0.2)
        small_scene.add_sphere((0, 0, -4), 1.0, m)
        camera = PinholeCamera(diverge_strength=1.0)
        integrator = PathIntegrator(8, 8)

        def render(frame_index):
            context = _context(
                frame_index=frame_index,
                camera=camera,
                environment=EnvironmentSettings(),
            )
            integrator.render_frame(small_scene, context)
            return integrator.frame_to_numpy().copy()

        first = render(0)
        other = render(1)
        again = render(0)

        np.testing.assert_array_equal(first, again)
        assert not np.array_equal(first, other)
        assert np.all(np.isfinite(first))
