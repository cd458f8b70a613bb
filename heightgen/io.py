"""Output files for generated heightmaps."""

from __future__ import annotations

from contextlib import contextmanager
import json
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Any, Iterator

import numpy as np
from PIL import Image

from heightgen.config import Algorithm, GenerationParameters


logger = logging.getLogger(__name__)


def run_directory(out_root: str | Path, params: GenerationParameters, *, overwrite: bool) -> Path:
    """Return `<out_root>/<algorithm>-<seed>/<size>x<size>`, creating it if needed."""

    name = f"{Algorithm(params.algorithm).value}-{params.seed}"
    target = Path(out_root) / name / f"{params.size}x{params.size}"
    if target.is_dir() and any(target.iterdir()) and not overwrite:
        raise FileExistsError(f"{target} already holds a heightmap; pass --overwrite to replace it")
    target.mkdir(parents=True, exist_ok=True)
    return target


@contextmanager
def staged_output(target: Path, *, out_root: str | Path) -> Iterator[Path]:
    """Yield a scratch directory whose files replace `target`'s contents on success.

    `target` must live under `out_root`. If the body raises, `target` is
    left as it was.
    """

    target = target.resolve()
    target.relative_to(Path(out_root).resolve())
    stage = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(target.parent)))
    try:
        yield stage
        for child in target.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        for child in stage.iterdir():
            shutil.move(str(child), str(target / child.name))
        logger.debug("Published outputs to %s", target)
    finally:
        shutil.rmtree(stage, ignore_errors=True)


def save_height(path: str | Path, values: np.ndarray) -> None:
    np.save(Path(path), values.astype(np.float32), allow_pickle=False)


def save_png(path: str | Path, raster: np.ndarray) -> None:
    """Write a 2D `uint8` or `uint16` raster as grayscale PNG."""

    if raster.ndim != 2:
        raise ValueError(f"expected a 2D raster, got shape {raster.shape}")
    if raster.dtype not in (np.uint8, np.uint16):
        raise ValueError(f"unsupported raster dtype {raster.dtype}")
    Image.fromarray(raster).save(Path(path))


def save_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
