"""Particle-based hydraulic erosion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import math

import numpy as np

from heightgen.config import HydraulicConfig
from heightgen.rng import Mulberry32


logger = logging.getLogger(__name__)


class DropletState(str, Enum):
    ALIVE = "alive"
    OUT_OF_BOUNDS = "out_of_bounds"
    LIFETIME_EXCEEDED = "lifetime_exceeded"
    WATER_DEPLETED = "water_depleted"


@dataclass
class Droplet:
    """One water particle; lives for a single descent."""

    x: float
    y: float
    dir_x: float = 0.0
    dir_y: float = 0.0
    speed: float = 1.0
    water: float = 1.0
    sediment: float = 0.0
    steps: int = 0
    state: DropletState = DropletState.ALIVE


@dataclass(frozen=True)
class HydraulicMetrics:
    droplets: int
    total_steps: int
    total_eroded: float
    total_deposited: float
    max_step_erosion: float
    terminations: dict[str, int] = field(default_factory=dict)


class HydraulicErosion:
    """Runs droplets serially against one shared grid.

    Later droplets see the changes of earlier ones, so results depend on the
    spawn order drawn from the generator.
    """

    def __init__(self, config: HydraulicConfig | None = None) -> None:
        self.config = config or HydraulicConfig()

    def apply_erosion(
        self,
        grid: np.ndarray,
        iterations: int,
        intensity: float,
        rng: Mulberry32,
    ) -> tuple[np.ndarray, HydraulicMetrics]:
        """Simulate `iterations` droplets on a copy of `grid`."""

        height, width = grid.shape
        out = grid.astype(np.float64, copy=True)
        counts = {state.value: 0 for state in DropletState if state is not DropletState.ALIVE}
        if iterations <= 0:
            return out, HydraulicMetrics(0, 0, 0.0, 0.0, 0.0, counts)

        flat = out.ravel()
        tally = _Tally()
        for _ in range(iterations):
            droplet = self.spawn(width, height, rng)
            self.simulate(droplet, flat, width, height, intensity, rng, tally)
            counts[droplet.state.value] += 1
            tally.steps += droplet.steps

        metrics = HydraulicMetrics(
            droplets=iterations,
            total_steps=tally.steps,
            total_eroded=tally.eroded,
            total_deposited=tally.deposited,
            max_step_erosion=tally.max_step,
            terminations=counts,
        )
        logger.debug(
            "Hydraulic erosion: %d droplets, %d steps, eroded=%.4f deposited=%.4f",
            metrics.droplets,
            metrics.total_steps,
            metrics.total_eroded,
            metrics.total_deposited,
        )
        return out, metrics

    def spawn(self, width: int, height: int, rng: Mulberry32) -> Droplet:
        x = rng.next() * (width - 2) + 1
        y = rng.next() * (height - 2) + 1
        return Droplet(x=x, y=y)

    def simulate(
        self,
        droplet: Droplet,
        flat: np.ndarray,
        width: int,
        height: int,
        intensity: float,
        rng: Mulberry32,
        tally: "_Tally | None" = None,
    ) -> DropletState:
        """Advance `droplet` until it terminates, writing into `flat` in place."""

        cfg = self.config
        tally = tally or _Tally()
        step_cap = cfg.max_erosion_per_step * intensity
        inertia = cfg.inertia

        while droplet.state is DropletState.ALIVE:
            if droplet.steps >= cfg.max_lifetime:
                droplet.state = DropletState.LIFETIME_EXCEEDED
                break

            pos_x = droplet.x
            pos_y = droplet.y
            if pos_x < 1 or pos_x >= width - 1 or pos_y < 1 or pos_y >= height - 1:
                droplet.state = DropletState.OUT_OF_BOUNDS
                break

            cur_height = _sample(flat, width, height, pos_x, pos_y)
            grad_x, grad_y, slope = self._gradient(flat, width, height, pos_x, pos_y)

            dir_x = droplet.dir_x * inertia - grad_x * (1.0 - inertia)
            dir_y = droplet.dir_y * inertia - grad_y * (1.0 - inertia)
            length = math.hypot(dir_x, dir_y)
            if length > 1e-6:
                dir_x /= length
                dir_y /= length
            else:
                angle = rng.next() * math.pi * 2.0
                dir_x = math.cos(angle) * 1e-3
                dir_y = math.sin(angle) * 1e-3
            droplet.dir_x = dir_x
            droplet.dir_y = dir_y

            step = max(cfg.min_step, min(cfg.max_step, droplet.speed))
            new_x = pos_x + dir_x * step
            new_y = pos_y + dir_y * step
            if new_x < 0 or new_x >= width or new_y < 0 or new_y >= height:
                droplet.state = DropletState.OUT_OF_BOUNDS
                break

            new_height = _sample(flat, width, height, new_x, new_y)
            diff = new_height - cur_height
            capacity = max(cfg.min_sediment_capacity, cfg.sediment_capacity_factor * droplet.speed * slope)

            if diff < 0:
                amount = min(
                    (capacity - droplet.sediment) * cfg.erosion_speed,
                    -diff * cfg.erosion_speed * 2.0,
                )
                amount = min(max(0.0, amount), step_cap)
                if amount > 1e-8:
                    self._scatter(flat, width, height, pos_x, pos_y, -amount)
                    droplet.sediment += amount
                    tally.eroded += amount
                    if amount > tally.max_step:
                        tally.max_step = amount
            else:
                deposit = min(droplet.sediment, diff * cfg.deposition_speed)
                if deposit > 1e-8:
                    self._scatter(flat, width, height, pos_x, pos_y, deposit)
                    droplet.sediment -= deposit
                    tally.deposited += deposit

            droplet.speed = max(cfg.min_speed, droplet.speed + diff * cfg.gravity)
            droplet.water *= 1.0 - cfg.evaporation * intensity

            if droplet.sediment > capacity:
                excess = (droplet.sediment - capacity) * cfg.deposition_speed
                self._scatter(flat, width, height, pos_x, pos_y, excess)
                droplet.sediment -= excess
                tally.deposited += excess

            droplet.x = new_x
            droplet.y = new_y
            droplet.steps += 1

            if droplet.water < cfg.min_water:
                droplet.state = DropletState.WATER_DEPLETED

        return droplet.state

    def _gradient(self, flat: np.ndarray, width: int, height: int, x: float, y: float) -> tuple[float, float, float]:
        eps = self.config.gradient_epsilon
        h_left = _sample(flat, width, height, x - eps, y)
        h_right = _sample(flat, width, height, x + eps, y)
        h_down = _sample(flat, width, height, x, y - eps)
        h_up = _sample(flat, width, height, x, y + eps)
        gx = (h_right - h_left) / (2.0 * eps)
        gy = (h_up - h_down) / (2.0 * eps)
        return gx, gy, math.sqrt(gx * gx + gy * gy)

    def _scatter(self, flat: np.ndarray, width: int, height: int, x: float, y: float, amount: float) -> None:
        """Distribute `amount` over the four surrounding cells with bilinear weights."""

        x0 = int(math.floor(x))
        y0 = int(math.floor(y))
        sx = x - x0
        sy = y - y0
        floor = self.config.height_floor
        ceiling = self.config.height_ceiling
        for ix, iy, weight in (
            (x0, y0, (1.0 - sx) * (1.0 - sy)),
            (x0 + 1, y0, sx * (1.0 - sy)),
            (x0, y0 + 1, (1.0 - sx) * sy),
            (x0 + 1, y0 + 1, sx * sy),
        ):
            if ix < 0 or ix >= width or iy < 0 or iy >= height:
                continue
            idx = iy * width + ix
            value = flat[idx] + amount * weight
            flat[idx] = min(ceiling, max(floor, value))


class _Tally:
    __slots__ = ("steps", "eroded", "deposited", "max_step")

    def __init__(self) -> None:
        self.steps = 0
        self.eroded = 0.0
        self.deposited = 0.0
        self.max_step = 0.0


def _sample(flat: np.ndarray, width: int, height: int, x: float, y: float) -> float:
    """Bilinear height at a fractional position, clamped to the grid."""

    x = min(max(x, 0.0), width - 1.0)
    y = min(max(y, 0.0), height - 1.0)
    x0 = int(x)
    y0 = int(y)
    x1 = min(width - 1, x0 + 1)
    y1 = min(height - 1, y0 + 1)
    sx = x - x0
    sy = y - y0

    v00 = flat[y0 * width + x0]
    v10 = flat[y0 * width + x1]
    v01 = flat[y1 * width + x0]
    v11 = flat[y1 * width + x1]
    top = v00 * (1.0 - sx) + v10 * sx
    bottom = v01 * (1.0 - sx) + v11 * sx
    return float(top * (1.0 - sy) + bottom * sy)
