"""CLI entry point for heightmap generation."""

from __future__ import annotations

import argparse
from dataclasses import asdict
from datetime import datetime, timezone
import logging
import platform
import time
from typing import Any

import numpy as np
from heightgen.config import (
    DEFAULT_SEED,
    DEFAULT_SIZE,
    Algorithm,
    GenerationParameters,
    GeneratorConfig,
    ParameterError,
    validate_parameters,
)
from heightgen.derive import float_preview_u8, height_u8, height_u16
from heightgen.heightmap import HeightmapResult, generate_heightmap
from heightgen.io import run_directory, save_height, save_json, save_png, staged_output


def build_parser() -> argparse.ArgumentParser:
    defaults = GenerationParameters()
    parser = argparse.ArgumentParser(description="Deterministic seed-driven heightmap generator")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="32-bit integer seed")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Grid side length in cells")
    parser.add_argument(
        "--algorithm",
        choices=[a.value for a in Algorithm],
        default=defaults.algorithm.value,
        help="Base terrain generator",
    )
    parser.add_argument("--scale", type=float, default=defaults.scale, help="Noise scale (> 0)")
    parser.add_argument("--octaves", type=int, default=defaults.octaves, help="Noise octaves (>= 1)")
    parser.add_argument("--roughness", type=float, default=defaults.roughness, help="Noise ridging amount in [0, 1]")
    parser.add_argument(
        "--ds-roughness",
        type=float,
        default=defaults.displacement_roughness,
        help="Diamond-square roughness in [0, 1]",
    )
    parser.add_argument("--hybrid-weight", type=float, default=defaults.hybrid_weight, help="Displacement weight in [0, 1]")
    parser.add_argument("--erosion-iterations", type=int, default=defaults.erosion_iterations, help="Droplet count")
    parser.add_argument("--erosion-intensity", type=float, default=defaults.erosion_intensity, help="Erosion intensity in [0, 1]")
    parser.add_argument("--smoothing", type=float, default=defaults.smoothing_strength, help="Smoothing strength in [0, 1]")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument("--debug", action="store_true", help="Also write previews of intermediate grids")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def _params_from_args(args: argparse.Namespace) -> GenerationParameters:
    return GenerationParameters(
        seed=args.seed,
        size=args.size,
        algorithm=Algorithm(args.algorithm),
        scale=args.scale,
        octaves=args.octaves,
        roughness=args.roughness,
        displacement_roughness=args.ds_roughness,
        hybrid_weight=args.hybrid_weight,
        erosion_iterations=args.erosion_iterations,
        erosion_intensity=args.erosion_intensity,
        smoothing_strength=args.smoothing,
    )


def _deterministic_meta(
    params: GenerationParameters,
    config: GeneratorConfig,
    result: HeightmapResult,
) -> dict[str, Any]:
    """Metadata that depends only on parameters and config."""

    metrics = result.hydraulic_metrics
    return {
        "parameters": params.to_dict(),
        "size": result.heightmap.size,
        "config": config.to_dict(),
        "stats": asdict(result.stats),
        "erosion": {
            "iterations_applied": result.erosion_iterations_applied,
            "total_steps": metrics.total_steps,
            "total_eroded": metrics.total_eroded,
            "total_deposited": metrics.total_deposited,
            "max_step_erosion": metrics.max_step_erosion,
            "terminations": dict(metrics.terminations),
        },
        "wave_corrections": result.wave_corrections,
        "thermal_mass_delta": result.thermal_mass_delta,
    }


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    params = _params_from_args(args)
    try:
        validate_parameters(params)
    except ParameterError as exc:
        parser.error(str(exc))

    config = GeneratorConfig()
    started = time.perf_counter()
    result = generate_heightmap(params, config=config)
    elapsed = time.perf_counter() - started

    values = result.heightmap.values
    rasters: dict[str, np.ndarray] = {
        "height_16.png": height_u16(values),
        "height_8.png": height_u8(values),
    }
    if args.debug:
        rasters["debug_base.png"] = float_preview_u8(result.h_base)
        rasters["debug_pre_erosion.png"] = float_preview_u8(result.h_pre_erosion)
        rasters["debug_erosion_delta.png"] = float_preview_u8(
            result.h_eroded - result.h_pre_erosion,
            symmetric=True,
        )

    out_dir = run_directory(args.out, params, overwrite=args.overwrite)
    with staged_output(out_dir, out_root=args.out) as stage:
        save_height(stage / "height.npy", values)
        for name, raster in rasters.items():
            save_png(stage / name, raster)
        if args.json:
            deterministic = _deterministic_meta(params, config, result)
            save_json(stage / "deterministic_meta.json", deterministic)
            save_json(
                stage / "meta.json",
                {
                    **deterministic,
                    "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                    "generation_seconds": elapsed,
                    "python_version": platform.python_version(),
                    "numpy_version": np.__version__,
                },
            )

    stats = result.stats
    erosion = result.hydraulic_metrics
    print(f"Heightmap written to {out_dir}")
    print(f"  heights  min={stats.min_height:.3f} max={stats.max_height:.3f} mean={stats.mean_height:.3f}")
    print(f"  erosion  droplets={erosion.droplets} steps={erosion.total_steps} eroded={erosion.total_eroded:.4f}")
    print(f"  took {elapsed:.3f} s for {params.size}x{params.size}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
