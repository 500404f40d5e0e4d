"""Tests for the progressive renderer.

Tests cover:
- Frame counting and progress reporting
- Reset on camera, environment, settings and scene changes
- Image conversion and saving
"""

import numpy as np
import pytest
import taichi as ti


def _emitter_scene():
    """Scene whose emitter fills a 30 degree view straight down -z."""
    from pathtracer.scene.manager import SceneManager

    scene = SceneManager(max_materials=4, max_spheres=4, max_triangles=8, max_mesh_groups=4)
    light = scene.add_material(
        colour=(0.0, 0.0, 0.0),
        emission_colour=(1.0, 1.0, 1.0),
        emission_strength=0.5,
    )
    scene.add_sphere((0, 0, -10), 9.0, light)
    return scene


def _renderer(scene=None, width=6, height=4):
    from pathtracer.camera.pinhole import PinholeCamera
    from pathtracer.core.integrator import IntegratorSettings
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.environment import EnvironmentSettings

    return ProgressiveRenderer(
        scene if scene is not None else _emitter_scene(),
        width,
        height,
        PinholeCamera(vfov=30.0, aspect_ratio=width / height),
        settings=IntegratorSettings(max_bounce_count=2, samples_per_pixel=1),
        environment=EnvironmentSettings(enabled=False),
    )


class TestFrameCounting:
    """Tests for render and render_progressive."""

    def test_render_counts_frames(self):
        renderer = _renderer()

        renderer.render(3)
        renderer.render(2)

        assert renderer.frame_index == 5

    def test_callback_batches(self):
        renderer = _renderer()
        calls = []

        def record(current, target):
            calls.append((current, target))

        renderer.render(5, batch_size=2, callback=record)

        assert calls == [(2, 5), (4, 5), (5, 5)]

    def test_generator_can_stop_early(self):
        renderer = _renderer()

        for current, _ in renderer.render_progressive(10, batch_size=3):
            if current >= 3:
                break

        assert renderer.frame_index == 3

    def test_zero_frames_is_noop(self):
        renderer = _renderer()

        assert list(renderer.render_progressive(0)) == []
        assert renderer.frame_index == 0

    def test_invalid_batch_size(self):
        renderer = _renderer()

        with pytest.raises(ValueError, match="batch_size"):
            list(renderer.render_progressive(2, batch_size=0))

    def test_accumulated_emitter(self):
        renderer = _renderer()

        renderer.render(4)

        np.testing.assert_allclose(renderer.get_radiance_numpy(), 0.5, atol=1e-6)
        np.testing.assert_allclose(renderer.get_frame_numpy(), 0.5, atol=1e-6)


class TestReset:
    """Tests for accumulation resets."""

    def test_camera_change_resets(self):
        import dataclasses

        renderer = _renderer()
        renderer.render(3)

        renderer.set_camera(renderer.camera)
        assert renderer.frame_index == 3

        renderer.set_camera(dataclasses.replace(renderer.camera, vfov=35.0))
        assert renderer.frame_index == 0
        np.testing.assert_array_equal(renderer.get_radiance_numpy(), 0.0)

    def test_environment_change_resets(self):
        from pathtracer.scene.environment import EnvironmentSettings

        renderer = _renderer()
        renderer.render(2)

        renderer.set_environment(EnvironmentSettings(enabled=True))

        assert renderer.frame_index == 0

    def test_settings_change_resets(self):
        from pathtracer.core.integrator import IntegratorSettings

        renderer = _renderer()
        renderer.render(2)

        renderer.set_settings(IntegratorSettings(max_bounce_count=1, samples_per_pixel=1))

        assert renderer.frame_index == 0

    def test_scene_change_restarts_accumulation(self):
        scene = _emitter_scene()
        renderer = _renderer(scene)
        renderer.render(3)

        # A nearer, brighter emitter replaces the view
        bright = scene.add_material(
            colour=(0.0, 0.0, 0.0),
            emission_colour=(1.0, 1.0, 1.0),
            emission_strength=2.0,
        )
        scene.add_sphere((0, 0, -3), 2.5, bright)
        renderer.render(1)

        assert renderer.frame_index == 1
        np.testing.assert_allclose(renderer.get_radiance_numpy(), 2.0, atol=1e-6)

    def test_resize(self):
        renderer = _renderer()
        renderer.render(2)

        renderer.resize(3, 5)

        assert (renderer.width, renderer.height) == (3, 5)
        assert renderer.frame_index == 0
        assert renderer.get_radiance_numpy().shape == (5, 3, 3)


class TestImageOutput:
    """Tests for image conversion and saving."""

    def test_image_clamped(self):
        scene = _emitter_scene()
        scene.clear()
        light = scene.add_material(emission_colour=(1.0, 1.0, 1.0), emission_strength=3.0)
        scene.add_sphere((0, 0, -10), 9.0, light)
        renderer = _renderer(scene)
        renderer.render(1)

        image = renderer.get_image_numpy()

        assert image.dtype == np.float32
        assert image.max() <= 1.0
        assert renderer.get_radiance_numpy().max() > 2.99

    def test_uint8_conversion(self):
        renderer = _renderer()
        renderer.render(1)

        image = renderer.get_image_uint8(gamma=1.0)

        assert image.dtype == np.uint8
        assert image.shape == (4, 6, 3)
        assert np.all(image == 128)

    def test_invalid_gamma(self):
        renderer = _renderer()

        with pytest.raises(ValueError, match="gamma"):
            renderer.get_image_numpy(gamma=0.0)

    def test_save_image(self, tmp_path):
        from PIL import Image

        renderer = _renderer()
        renderer.render(1)
        path = tmp_path / "frame.png"

        renderer.save_image(path)

        with Image.open(path) as saved:
            assert saved.size == (6, 4)

    @pytest.mark.parametrize("tone_map,expected", [("none", 128), ("reinhard", 85)])
    def test_save_image_tone_mapped(self, tmp_path, tone_map, expected):
        from pathtracer.preview.export import load_png

        renderer = _renderer()
        renderer.render(2)
        path = tmp_path / f"{tone_map}.png"

        renderer.save_image(path, gamma=1.0, tone_map=tone_map)

        loaded = np.round(load_png(path) * 255.0).astype(int)
        assert loaded.shape == (4, 6, 3)
        assert np.all(loaded == expected)

    def test_save_png_sees_unclamped_radiance(self, tmp_path):
        """Tone mapping is applied before any clamp."""
        from pathtracer.preview.export import load_png, save_png

        scene = _emitter_scene()
        scene.clear()
        light = scene.add_material(
            colour=(0.0, 0.0, 0.0),
            emission_colour=(1.0, 1.0, 1.0),
            emission_strength=3.0,
        )
        scene.add_sphere((0, 0, -10), 9.0, light)
        renderer = _renderer(scene)
        renderer.render(1)
        path = tmp_path / "bright.png"

        save_png(renderer, path, tone_map="reinhard", gamma=1.0)

        # 3 / (1 + 3) = 0.75
        loaded = np.round(load_png(path) * 255.0).astype(int)
        assert np.all(loaded == 191)
