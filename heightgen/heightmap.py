"""Heightmap composition pipeline."""

from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np

from heightgen.compose import apply_final_wave_correction, hybrid_blend, ridge_mix, shape_mountains
from heightgen.config import (
    Algorithm,
    GenerationParameters,
    GeneratorConfig,
    parameter_advisories,
    validate_parameters,
)
from heightgen.displacement import DiamondSquare
from heightgen.hydraulic import HydraulicErosion, HydraulicMetrics
from heightgen.metrics import HeightStats, height_stats
from heightgen.noise import PerlinNoise
from heightgen.rng import RngStream
from heightgen.smoothing import laplacian_relax, normalize, weighted_blend
from heightgen.thermal import ThermalErosion, total_mass


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Heightmap:
    """Finished square heightmap with every sample in [0, 1]."""

    size: int
    values: np.ndarray

    def __post_init__(self) -> None:
        if self.values.shape != (self.size, self.size):
            raise ValueError(f"values shape {self.values.shape} does not match size {self.size}")

    @property
    def buffer(self) -> np.ndarray:
        """Flat row-major view, addressed `[row * size + col]`."""

        return self.values.ravel()


@dataclass(frozen=True)
class HeightmapResult:
    """Finished heightmap plus intermediate grids and diagnostics."""

    heightmap: Heightmap
    h_base: np.ndarray
    h_shaped: np.ndarray
    h_thermal: np.ndarray
    h_pre_erosion: np.ndarray
    h_eroded: np.ndarray
    h_pre_normalize: np.ndarray
    wave_corrections: int
    thermal_mass_delta: float
    erosion_iterations_applied: int
    hydraulic_metrics: HydraulicMetrics
    stats: HeightStats


def generate(params: GenerationParameters, *, config: GeneratorConfig | None = None) -> Heightmap:
    """Generate a normalized heightmap for `params`."""

    return generate_heightmap(params, config=config).heightmap


def generate_heightmap(
    params: GenerationParameters,
    *,
    config: GeneratorConfig | None = None,
) -> HeightmapResult:
    """Run every stage for `params` and keep the intermediate grids."""

    validate_parameters(params)
    for note in parameter_advisories(params):
        logger.warning("Parameter advisory: %s", note)

    cfg = config or GeneratorConfig()
    algorithm = Algorithm(params.algorithm)
    size = params.size
    stream = RngStream(params.seed)
    smoothing = params.smoothing_strength

    logger.info("Generating %dx%d heightmap (%s, seed %d)", size, size, algorithm.value, params.seed)

    logger.info("Stage A: base terrain")
    h_base = _base_terrain(params, cfg, algorithm, stream)

    logger.info("Stage B: shaping mountains")
    h_shaped = h_base
    if cfg.composite.shape_mountains:
        h_shaped = shape_mountains(
            h_base,
            cfg.composite.mountain_threshold,
            cfg.composite.mountain_merge,
            lone_peak_pull=cfg.composite.lone_peak_pull,
        )

    logger.info("Stage C: thermal erosion")
    h_thermal = ThermalErosion(cfg.thermal).apply(h_shaped, cfg.thermal.iterations)
    thermal_mass_delta = total_mass(h_thermal) - total_mass(h_shaped)
    logger.debug("Thermal mass delta %.3e", thermal_mass_delta)

    logger.info("Stage D: wave correction and smoothing")
    grid, wave_corrections = apply_final_wave_correction(h_thermal, cfg.composite.wave_correction)
    if smoothing > 0:
        grid = weighted_blend(grid, smoothing)
        iterations = max(1, int(round(smoothing * cfg.smoothing.laplacian_max_iterations)))
        alpha = cfg.smoothing.laplacian_base_alpha + smoothing * cfg.smoothing.laplacian_alpha_gain
        grid = laplacian_relax(grid, iterations, alpha)
    h_pre_erosion = grid

    logger.info("Stage E: hydraulic erosion")
    erosion_iterations = params.erosion_iterations
    if erosion_iterations > cfg.erosion_iteration_cap:
        logger.warning(
            "Capping erosion iterations from %d to %d",
            erosion_iterations,
            cfg.erosion_iteration_cap,
        )
        erosion_iterations = cfg.erosion_iteration_cap
    h_eroded, hydraulic_metrics = HydraulicErosion(cfg.hydraulic).apply_erosion(
        h_pre_erosion,
        erosion_iterations,
        params.erosion_intensity,
        stream.fork("hydraulic").generator(),
    )

    logger.info("Stage F: final smoothing and normalization")
    grid = h_eroded
    if smoothing > 0:
        grid = weighted_blend(grid, cfg.smoothing.final_blend)
        alpha = cfg.smoothing.final_laplacian_base_alpha + smoothing * cfg.smoothing.laplacian_alpha_gain
        grid = laplacian_relax(grid, cfg.smoothing.final_laplacian_iterations, alpha)
    h_pre_normalize = grid

    ncfg = cfg.normalize
    final = normalize(
        h_pre_normalize,
        gamma=ncfg.gamma,
        peak_start=ncfg.peak_start,
        peak_softness=ncfg.peak_softness,
        sample_limit=ncfg.sample_limit,
    )
    stats = height_stats(final)
    logger.info(
        "Heightmap ready: min=%.3f max=%.3f mean=%.3f",
        stats.min_height,
        stats.max_height,
        stats.mean_height,
    )

    return HeightmapResult(
        heightmap=Heightmap(size=size, values=final),
        h_base=h_base,
        h_shaped=h_shaped,
        h_thermal=h_thermal,
        h_pre_erosion=h_pre_erosion,
        h_eroded=h_eroded,
        h_pre_normalize=h_pre_normalize,
        wave_corrections=wave_corrections,
        thermal_mass_delta=thermal_mass_delta,
        erosion_iterations_applied=erosion_iterations,
        hydraulic_metrics=hydraulic_metrics,
        stats=stats,
    )


def _base_terrain(
    params: GenerationParameters,
    cfg: GeneratorConfig,
    algorithm: Algorithm,
    stream: RngStream,
) -> np.ndarray:
    size = params.size
    ccfg = cfg.composite
    ncfg = cfg.noise
    if ccfg.hybrid_mode not in ("linear", "detail"):
        raise ValueError(f"unknown hybrid_mode {ccfg.hybrid_mode!r}; expected 'linear' or 'detail'")

    if algorithm is Algorithm.HYBRID and ccfg.hybrid_mode == "detail":
        displacement = DiamondSquare(params.seed, config=cfg.displacement)
        detailed = displacement.generate_hybrid(
            size,
            PerlinNoise(stream.generator()),
            weight=params.hybrid_weight,
            roughness=params.displacement_roughness,
            noise_config=ncfg,
        )
        return detailed[:size, :size].copy()

    noise_map = None
    if algorithm in (Algorithm.NOISE, Algorithm.HYBRID):
        noise_map = PerlinNoise(stream.generator()).generate_heightmap(
            size,
            size,
            params.scale,
            params.octaves,
            ncfg.persistence,
            ncfg.lacunarity,
        )

    ds_map = None
    if algorithm in (Algorithm.DISPLACEMENT, Algorithm.HYBRID):
        full = DiamondSquare(params.seed, config=cfg.displacement).generate(size, params.displacement_roughness)
        ds_map = full[:size, :size].copy()

    if algorithm is Algorithm.NOISE:
        return ridge_mix(noise_map, params.roughness, ccfg.ridge_power)
    if algorithm is Algorithm.DISPLACEMENT:
        return ds_map
    return hybrid_blend(
        noise_map,
        ds_map,
        params.hybrid_weight,
        ridged_amount=params.roughness,
        ridge_power=ccfg.ridge_power,
        noise_gain=ccfg.noise_gain,
    )
