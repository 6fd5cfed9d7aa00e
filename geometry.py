import math
from typing import Sequence, Tuple

from landmark_types import Landmark


def _to_xy(lm: Landmark) -> Tuple[float, float]:
    return lm.x, lm.y


def distance_2d(a: Landmark, b: Landmark) -> float:
    ax, ay = _to_xy(a)
    bx, by = _to_xy(b)
    return math.hypot(ax - bx, ay - by)


def distance_3d(a: Landmark, b: Landmark) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    return Landmark((a.x + b.x) / 2.0, (a.y + b.y) / 2.0, (a.z + b.z) / 2.0)


def average(points: Sequence[Landmark]) -> Landmark:
    n = float(len(points))
    return Landmark(
        sum(p.x for p in points) / n,
        sum(p.y for p in points) / n,
        sum(p.z for p in points) / n,
    )


def blend(a: Landmark, b: Landmark, weight_a: float) -> Landmark:
    weight_b = 1.0 - weight_a
    return Landmark(
        a.x * weight_a + b.x * weight_b,
        a.y * weight_a + b.y * weight_b,
        a.z * weight_a + b.z * weight_b,
    )


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def wrap_angle(angle: float) -> float:
    # Result lies in (-pi, pi].
    if -math.pi < angle <= math.pi:
        return angle
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi
