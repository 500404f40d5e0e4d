#!/usr/bin/env python3
"""Render the Cornell box scene.

Builds the triangle-mesh Cornell box, accumulates a number of frames with the
progressive renderer and writes a tone-mapped PNG.

Usage:
    python examples/render_cornell_box.py [options]

Options:
    --width WIDTH           Image width in pixels (default: 256)
    --height HEIGHT         Image height in pixels (default: 256)
    --frames FRAMES         Number of frames to accumulate (default: 64)
    --spp SPP               Paths per pixel per frame (default: 2)
    --max-bounces N         Maximum bounce count (default: 4)
    --output OUTPUT         Output file path (default: cornell_box.png)
    --batch-size SIZE       Frames per progress update (default: 8)
    --cpu                   Force the CPU backend
    --quiet                 Suppress progress output

Example:
    python examples/render_cornell_box.py --width 128 --height 128 --frames 16
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Cornell box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=256, help="Image width in pixels (default: 256)")
    parser.add_argument("--height", type=int, default=256, help="Image height in pixels (default: 256)")
    parser.add_argument(
        "--frames",
        type=int,
        default=64,
        help="Number of frames to accumulate (default: 64)",
    )
    parser.add_argument("--spp", type=int, default=2, help="Paths per pixel per frame (default: 2)")
    parser.add_argument("--max-bounces", type=int, default=4, help="Maximum bounce count (default: 4)")
    parser.add_argument(
        "--output",
        type=str,
        default="cornell_box.png",
        help="Output file path (default: cornell_box.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=8,
        help="Frames per progress update (default: 8)",
    )
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_cornell_box(
    width: int = 256,
    height: int = 256,
    num_frames: int = 64,
    samples_per_pixel: int = 2,
    max_bounce_count: int = 4,
    output_path: str = "cornell_box.png",
    batch_size: int = 8,
    quiet: bool = False,
) -> Path:
    """Render the Cornell box scene and save to file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_frames: Number of frames to accumulate.
        samples_per_pixel: Paths per pixel per frame.
        max_bounce_count: Maximum bounce count per path.
        output_path: Output file path (PNG).
        batch_size: Number of frames to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so Taichi is initialised before any field is created
    from dataclasses import replace

    from pathtracer.core.integrator import IntegratorSettings
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.cornell_box import create_cornell_box_scene

    if not quiet:
        print(f"Creating Cornell box scene ({width}x{height})...")

    scene, camera, environment, _ = create_cornell_box_scene()
    camera = replace(camera, aspect_ratio=width / height)
    settings = IntegratorSettings(
        max_bounce_count=max_bounce_count,
        samples_per_pixel=samples_per_pixel,
    )

    renderer = ProgressiveRenderer(
        scene,
        width,
        height,
        camera,
        settings=settings,
        environment=environment,
    )

    if not quiet:
        print(f"Rendering {num_frames} frames at {samples_per_pixel} spp each...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            frames_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} frames "
                f"({progress_pct:.1f}%) - {frames_per_sec:.1f} frames/s",
                end="",
                flush=True,
            )

    renderer.render(num_frames=num_frames, batch_size=batch_size, callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    renderer.save_image(output_file, gamma=2.2, tone_map="reinhard")

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    ti.init(arch=ti.cpu if args.cpu else ti.gpu)

    try:
        render_cornell_box(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            samples_per_pixel=args.spp,
            max_bounce_count=args.max_bounces,
            output_path=args.output,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
