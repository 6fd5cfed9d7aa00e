import math
from typing import Callable, Sequence, Tuple

import numpy as np

from landmark_types import Point3

Unprojector = Callable[[float, float, float], Point3]

_PARALLEL_EPS = 1e-9


class DegenerateRayError(ArithmeticError):
    pass


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(v))
    if norm < 1e-12:
        raise ValueError("cannot normalize a zero-length vector")
    return v / norm


def perspective_matrix(fov_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    # OpenGL-style clip space, camera looking down -Z.
    f = 1.0 / math.tan(math.radians(fov_deg) / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2.0 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m


def look_at_matrix(eye: np.ndarray, target: np.ndarray, up: np.ndarray) -> np.ndarray:
    forward = _normalize(target - eye)
    side = _normalize(np.cross(forward, up))
    true_up = np.cross(side, forward)
    m = np.identity(4, dtype=np.float64)
    m[0, :3] = side
    m[1, :3] = true_up
    m[2, :3] = -forward
    m[:3, 3] = -m[:3, :3] @ eye
    return m


class PerspectiveCamera:
    def __init__(
        self,
        fov_deg: float = 50.0,
        aspect: float = 640.0 / 480.0,
        near: float = 0.01,
        far: float = 100.0,
        position: Sequence[float] = (0.0, 0.0, 1.0),
        target: Sequence[float] = (0.0, 0.0, 0.0),
        up: Sequence[float] = (0.0, 1.0, 0.0),
    ):
        self.fov_deg = fov_deg
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = np.asarray(position, dtype=np.float64)
        self.target = np.asarray(target, dtype=np.float64)
        self.up = np.asarray(up, dtype=np.float64)
        self.update_matrices()

    def update_matrices(self) -> None:
        self.projection_matrix = perspective_matrix(self.fov_deg, self.aspect, self.near, self.far)
        self.view_matrix = look_at_matrix(self.position, self.target, self.up)
        self.view_projection = self.projection_matrix @ self.view_matrix
        self.inverse_view_projection = np.linalg.inv(self.view_projection)

    def project(self, point: Sequence[float]) -> Tuple[float, float]:
        # Screen UV has its origin top-left with v growing down.
        clip = self.view_projection @ np.array([point[0], point[1], point[2], 1.0])
        if abs(clip[3]) < 1e-12:
            raise DegenerateRayError("point lies on the camera plane")
        ndc = clip[:3] / clip[3]
        return (ndc[0] + 1.0) / 2.0, (1.0 - ndc[1]) / 2.0

    def view_depth(self, point: Sequence[float]) -> float:
        eye = self.view_matrix @ np.array([point[0], point[1], point[2], 1.0])
        return float(-eye[2])

    def is_in_view(self, point: Sequence[float]) -> bool:
        depth = self.view_depth(point)
        if depth < self.near or depth > self.far:
            return False
        u, v = self.project(point)
        return 0.0 <= u <= 1.0 and 0.0 <= v <= 1.0


def unproject(u: float, v: float, plane_depth: float, camera: PerspectiveCamera) -> Point3:
    # Screen v grows downward, NDC y grows upward.
    ndc = np.array([u * 2.0 - 1.0, 1.0 - v * 2.0, 0.5, 1.0])
    world = camera.inverse_view_projection @ ndc
    world = world[:3] / world[3]

    direction = _normalize(world - camera.position)
    if abs(direction[2]) < _PARALLEL_EPS:
        raise DegenerateRayError("view ray is parallel to the depth plane z=%.3f" % plane_depth)

    t = (plane_depth - camera.position[2]) / direction[2]
    if t < 0.0:
        raise DegenerateRayError("depth plane z=%.3f is behind the camera" % plane_depth)

    hit = camera.position + direction * t
    if not np.all(np.isfinite(hit)):
        raise DegenerateRayError("non-finite intersection")
    return float(hit[0]), float(hit[1]), float(hit[2])


def make_unprojector(camera: PerspectiveCamera) -> Unprojector:
    def _unproject(u: float, v: float, plane_depth: float) -> Point3:
        return unproject(u, v, plane_depth, camera)

    return _unproject

