"""Configuration models for heightmap generation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
import math
from typing import Any


DEFAULT_SEED = 12345
DEFAULT_SIZE = 257
MAX_SEED = (1 << 32) - 1


class Algorithm(str, Enum):
    """Base terrain generator selection."""

    NOISE = "noise"
    DISPLACEMENT = "displacement"
    HYBRID = "hybrid"


class ParameterError(ValueError):
    """Raised when generation parameters are rejected before any computation."""


@dataclass(frozen=True)
class GenerationParameters:
    """Per-request generation parameters."""

    seed: int = DEFAULT_SEED
    size: int = DEFAULT_SIZE
    algorithm: Algorithm = Algorithm.HYBRID
    scale: float = 120.0
    octaves: int = 4
    roughness: float = 0.35
    displacement_roughness: float = 0.5
    hybrid_weight: float = 0.4
    erosion_iterations: int = 3000
    erosion_intensity: float = 0.4
    smoothing_strength: float = 0.3

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["algorithm"] = Algorithm(self.algorithm).value
        return payload


@dataclass(frozen=True)
class NoiseConfig:
    """Fractal noise layer tunables."""

    persistence: float = 0.5
    lacunarity: float = 2.0
    detail_scale_factor: float = 2.8
    detail_amplitude: float = 0.15
    detail_blend: float = 0.15


@dataclass(frozen=True)
class DisplacementConfig:
    """Diamond-square tunables."""

    initial_height: float = 0.3
    initial_range: float = 0.7
    range_decay: float = 1.3
    pattern_tolerance: float = 0.05
    pattern_min_matches: int = 3
    pattern_boost: float = 1.5
    post_smoothing: float = 0.3
    wave_correction: float = 0.2
    wave_threshold: float = 0.08
    hybrid_noise_scale: float = 80.0


@dataclass(frozen=True)
class CompositeConfig:
    """Blend, mountain shaping and wave-correction tunables."""

    hybrid_mode: str = "linear"
    noise_gain: float = 0.85
    ridge_power: float = 1.5
    shape_mountains: bool = True
    mountain_threshold: float = 0.6
    mountain_merge: float = 0.35
    lone_peak_pull: float = 0.5
    wave_correction: float = 0.12


@dataclass(frozen=True)
class HydraulicConfig:
    """Droplet erosion tunables."""

    sediment_capacity_factor: float = 4.0
    min_sediment_capacity: float = 0.01
    evaporation: float = 0.02
    gravity: float = 4.0
    max_lifetime: int = 30
    erosion_speed: float = 0.3
    deposition_speed: float = 0.3
    max_erosion_per_step: float = 0.05
    inertia: float = 0.3
    gradient_epsilon: float = 0.5
    min_step: float = 0.25
    max_step: float = 1.5
    min_speed: float = 0.01
    min_water: float = 1e-4
    height_floor: float = -1.0
    height_ceiling: float = 2.0


@dataclass(frozen=True)
class ThermalConfig:
    """Talus diffusion tunables."""

    iterations: int = 2
    talus: float = 0.005
    strength: float = 0.25
    min_height: float = 0.35
    max_height: float = 0.85


@dataclass(frozen=True)
class SmoothingConfig:
    """Pre- and post-erosion smoothing schedule."""

    laplacian_base_alpha: float = 0.35
    laplacian_alpha_gain: float = 0.25
    laplacian_max_iterations: int = 3
    final_blend: float = 0.06
    final_laplacian_base_alpha: float = 0.25
    final_laplacian_iterations: int = 1


@dataclass(frozen=True)
class NormalizeConfig:
    """Final tone curve applied after min/max rescaling."""

    gamma: float = 1.25
    peak_start: float = 0.9
    peak_softness: float = 0.5
    sample_limit: int | None = None


@dataclass(frozen=True)
class GeneratorConfig:
    """Primary generation configuration."""

    erosion_iteration_cap: int = 4000
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    displacement: DisplacementConfig = field(default_factory=DisplacementConfig)
    composite: CompositeConfig = field(default_factory=CompositeConfig)
    hydraulic: HydraulicConfig = field(default_factory=HydraulicConfig)
    thermal: ThermalConfig = field(default_factory=ThermalConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    normalize: NormalizeConfig = field(default_factory=NormalizeConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_UNIT_FIELDS = (
    "roughness",
    "displacement_roughness",
    "hybrid_weight",
    "erosion_intensity",
    "smoothing_strength",
)


def validate_parameters(params: GenerationParameters) -> GenerationParameters:
    """Reject invalid parameters, listing every offending field."""

    problems: list[str] = []

    if not _is_int(params.seed) or not 0 <= params.seed <= MAX_SEED:
        problems.append(f"seed must be an integer in [0, {MAX_SEED}], got {params.seed!r}")
    if not _is_int(params.size) or params.size < 1:
        problems.append(f"size must be an integer >= 1, got {params.size!r}")
    try:
        Algorithm(params.algorithm)
    except ValueError:
        choices = ", ".join(a.value for a in Algorithm)
        problems.append(f"algorithm must be one of {choices}, got {params.algorithm!r}")
    if not _is_finite(params.scale) or params.scale <= 0:
        problems.append(f"scale must be a finite number > 0, got {params.scale!r}")
    if not _is_int(params.octaves) or params.octaves < 1:
        problems.append(f"octaves must be an integer >= 1, got {params.octaves!r}")
    if not _is_int(params.erosion_iterations) or params.erosion_iterations < 0:
        problems.append(f"erosion_iterations must be an integer >= 0, got {params.erosion_iterations!r}")
    for name in _UNIT_FIELDS:
        value = getattr(params, name)
        if not _is_finite(value) or not 0.0 <= value <= 1.0:
            problems.append(f"{name} must be in [0, 1], got {value!r}")

    if problems:
        raise ParameterError("Invalid generation parameters: " + "; ".join(problems))
    return params


def parameter_advisories(params: GenerationParameters) -> list[str]:
    """Return non-fatal recommendations for parameter combinations prone to artifacts."""

    notes: list[str] = []
    if params.scale >= 100 and params.scale % 50 == 0 and params.octaves >= 4:
        notes.append("scale is a multiple of 50 with 4+ octaves; octave lattices may align into visible waves")
    if params.roughness > 0.6 and params.octaves > 5:
        notes.append("high roughness with more than 5 octaves can produce high-frequency artifacts")
    if params.displacement_roughness > 0.7:
        notes.append("displacement roughness above 0.7 can create abrupt height steps")
    return notes


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
