#!/usr/bin/env python3
"""Render a small demo scene of spheres, a floor, a mesh and a textured panel.

This script demonstrates end-to-end rendering with gridtracer. It builds the
scene through the SceneManager, builds the uniform grid, renders one frame
and saves it as a PNG.

Usage:
    python -m examples.render_spheres [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --aa AA             Anti-aliasing factor, AA x AA samples (default: 2)
    --threads N         Worker threads (default: all cores)
    --preview           Render the preview resolution instead
    --output OUTPUT     Output file path (default: spheres.png)
    --quiet             Suppress progress output

Example:
    python -m examples.render_spheres --width 320 --height 240 --aa 3
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import numpy as np

from src.gridtracer.config import RenderConfig, init_taichi


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a demo scene with gridtracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=480,
        help="Image height in pixels (default: 480)",
    )
    parser.add_argument(
        "--aa",
        type=int,
        default=2,
        help="Anti-aliasing factor, AA x AA samples per pixel (default: 2)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Worker threads (default: all cores)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Render the preview resolution (a quarter of each dimension)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def _checkerboard(size: int = 8) -> np.ndarray:
    """An 8x8 black and white checkerboard texture."""
    ys, xs = np.indices((size, size))
    board = ((xs + ys) % 2).astype(np.uint8) * 255
    return np.repeat(board[:, :, None], 3, axis=2)


def _octahedron() -> tuple[np.ndarray, np.ndarray]:
    """Vertices and outward-wound faces of a unit octahedron."""
    vertices = np.array(
        [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1)],
        dtype=np.float64,
    )
    faces = np.array(
        [
            (0, 2, 4), (2, 1, 4), (1, 3, 4), (3, 0, 4),
            (2, 0, 5), (1, 2, 5), (3, 1, 5), (0, 3, 5),
        ],
        dtype=np.int64,
    )
    return vertices, faces


def build_demo_scene(scene, width: int, height: int, antialiasing: int) -> None:
    """Populate a SceneManager with the demo scene."""
    from src.gridtracer.camera.pinhole import PinholeCamera

    white = scene.add_surface((0.9, 0.9, 0.9))
    red = scene.add_surface((0.9, 0.2, 0.2), lambert=0.8, specular=0.2)
    blue = scene.add_surface((0.2, 0.3, 0.9))
    gold = scene.add_surface((1.0, 0.8, 0.3), lambert=0.6, specular=0.4)
    mirror = scene.add_surface((1.0, 1.0, 1.0), lambert=0.05, specular=0.95)

    # Floor made of two large triangles at y = -1
    scene.add_triangle((-30, -1, 10), (30, -1, 10), (30, -1, -50), white)
    scene.add_triangle((-30, -1, 10), (30, -1, -50), (-30, -1, -50), white)

    # A row of spheres
    scene.add_sphere((0.0, 0.0, -8.0), 1.0, red)
    scene.add_sphere((-2.5, 0.0, -9.0), 1.0, mirror)
    scene.add_sphere((2.5, 0.0, -9.0), 1.0, blue)
    for i in range(7):
        scene.add_sphere((-6.0 + 2.0 * i, -0.7, -13.0), 0.3, white)

    # A gold octahedron model
    vertices, faces = _octahedron()
    scene.add_model(vertices, faces, gold, scale=0.8, location=(5.0, 0.0, -11.0))

    # A textured panel behind everything
    checker = scene.add_texture(_checkerboard())
    scene.add_textured_triangle((-4, -1, -16), (4, -1, -16), (4, 5, -16), white, checker, 0)
    scene.add_textured_triangle((-4, -1, -16), (4, 5, -16), (-4, 5, -16), white, checker, 1)

    scene.add_light((-5.0, 8.0, 0.0), (0.8, 0.8, 0.8))
    scene.add_light((6.0, 4.0, -4.0), (0.4, 0.35, 0.3))

    camera = PinholeCamera(
        origin=(0.0, 1.0, 0.0),
        direction=(0.0, -0.1, -1.0),
        vfov=50.0,
        width=width,
        height=height,
        preview_width=max(1, width // 4),
        preview_height=max(1, height // 4),
    )
    scene.set_camera(camera)
    scene.antialiasing = antialiasing


def render_spheres(
    width: int = 640,
    height: int = 480,
    antialiasing: int = 2,
    preview: bool = False,
    output_path: str = "spheres.png",
    quiet: bool = False,
) -> Path:
    """Render the demo scene and save to file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        antialiasing: Anti-aliasing factor AA.
        preview: If True, render the preview resolution.
        output_path: Output file path (PNG).
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.gridtracer.camera.pinhole import CameraMode
    from src.gridtracer.core.renderer import Renderer
    from src.gridtracer.preview.export import save_png
    from src.gridtracer.scene.manager import SceneManager

    if not quiet:
        print(f"Creating demo scene ({width}x{height})...")

    scene = SceneManager()
    build_demo_scene(scene, width, height, antialiasing)

    start_time = time.time()
    info = scene.build_grid()
    if not quiet:
        nx, ny, nz = info.resolution
        print(f"Built {nx}x{ny}x{nz} grid over {len(scene.shapes)} shapes")

    renderer = Renderer(scene)
    if preview:
        renderer.set_mode(CameraMode.PREVIEW)

    if not quiet:
        print(f"Rendering {renderer.width}x{renderer.height} with {antialiasing ** 2} spp...")

    pixels = renderer.render()

    output_file = Path(output_path)
    save_png(pixels, renderer.width, renderer.height, output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        init_taichi(RenderConfig(num_threads=args.threads))
        render_spheres(
            width=args.width,
            height=args.height,
            antialiasing=args.aa,
            preview=args.preview,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
