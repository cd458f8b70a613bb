"""Deterministic heightmap generation package."""

from .config import DEFAULT_SEED, DEFAULT_SIZE, Algorithm, GenerationParameters, GeneratorConfig, ParameterError
from .heightmap import Heightmap, HeightmapResult, generate, generate_heightmap

__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_SIZE",
    "Algorithm",
    "GenerationParameters",
    "GeneratorConfig",
    "Heightmap",
    "HeightmapResult",
    "ParameterError",
    "generate",
    "generate_heightmap",
]
