from dataclasses import dataclass
from typing import Dict, Hashable, Optional

from geometry import lerp, wrap_angle
from landmark_types import Placement, Point3, Rotation


@dataclass
class SmoothingFactors:
    # Fraction of the remaining distance closed per frame.
    position: float = 0.3
    scale: float = 0.3
    rotation: float = 0.4


def smooth_angle(a: float, b: float, t: float) -> float:
    # Interpolate along the shorter arc, even across the +/-pi seam.
    delta = wrap_angle(b - a)
    if delta == 0.0:
        return a
    return wrap_angle(a + delta * t)


def _smooth_point(a: Optional[Point3], b: Optional[Point3], t: float) -> Optional[Point3]:
    if a is None or b is None:
        return b
    return lerp(a[0], b[0], t), lerp(a[1], b[1], t), lerp(a[2], b[2], t)


def smooth(previous: Optional[Placement], next_placement: Placement, factors: SmoothingFactors) -> Placement:
    if previous is None or not previous.visible or not next_placement.visible:
        return next_placement

    positions = None
    if next_placement.positions is not None:
        prev_positions = previous.positions or []
        positions = [
            _smooth_point(prev_positions[i] if i < len(prev_positions) else None, p, factors.position)
            for i, p in enumerate(next_placement.positions)
        ]

    rotation = Rotation(
        pitch=smooth_angle(previous.rotation.pitch, next_placement.rotation.pitch, factors.rotation),
        yaw=smooth_angle(previous.rotation.yaw, next_placement.rotation.yaw, factors.rotation),
        roll=smooth_angle(previous.rotation.roll, next_placement.rotation.roll, factors.rotation),
    )
    return Placement(
        position=_smooth_point(previous.position, next_placement.position, factors.position),
        rotation=rotation,
        scale=lerp(previous.scale, next_placement.scale, factors.scale),
        visible=True,
        positions=positions,
    )


class TemporalSmoother:
    # Per-instance state is dropped after `max_lost_frames` frames without a
    # visible placement; the next detection then starts fresh.
    def __init__(self, factors: Optional[SmoothingFactors] = None, max_lost_frames: int = 10):
        self.factors = factors or SmoothingFactors()
        self.max_lost_frames = max_lost_frames
        self._state: Dict[Hashable, Placement] = {}
        self._lost: Dict[Hashable, int] = {}

    def update(self, key: Hashable, candidate: Placement) -> Placement:
        if not candidate.visible:
            self.mark_lost(key)
            return candidate
        result = smooth(self._state.get(key), candidate, self.factors)
        self._state[key] = result
        self._lost[key] = 0
        return result

    def mark_lost(self, key: Hashable) -> None:
        if key not in self._state:
            return
        self._lost[key] = self._lost.get(key, 0) + 1
        if self._lost[key] > self.max_lost_frames:
            self._state.pop(key, None)
            self._lost.pop(key, None)

    def last(self, key: Hashable) -> Optional[Placement]:
        return self._state.get(key)

    def reset(self) -> None:
        self._state.clear()
        self._lost.clear()
