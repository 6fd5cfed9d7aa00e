import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from landmark_types import Placement, Point3, Rotation


@dataclass
class MeshData:
    vertices: np.ndarray
    faces: np.ndarray
    color: Tuple[int, int, int] = (255, 255, 255)


def rotation_matrix(rotation: Rotation) -> np.ndarray:
    # Intrinsic X (pitch), then Y (yaw), then Z (roll).
    cx, sx = math.cos(rotation.pitch), math.sin(rotation.pitch)
    cy, sy = math.cos(rotation.yaw), math.sin(rotation.yaw)
    cz, sz = math.cos(rotation.roll), math.sin(rotation.roll)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]], dtype=np.float64)
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]], dtype=np.float64)
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]], dtype=np.float64)
    return rx @ ry @ rz


class SceneObject:
    def __init__(self, name: str, mesh: Optional[MeshData], depth_only: bool = False, placeholder: bool = False):
        self.name = name
        self.mesh = mesh
        self.depth_only = depth_only
        self.placeholder = placeholder
        self.position: Point3 = (0.0, 0.0, 0.0)
        self.rotation = Rotation()
        self.scale = 1.0
        self.visible = mesh is not None
        self.disposed = False

    def apply(self, placement: Placement, position: Optional[Point3] = None) -> None:
        target = position if position is not None else placement.position
        if not placement.visible or target is None:
            self.visible = False
            return
        self.position = target
        self.rotation = placement.rotation
        self.scale = placement.scale
        self.visible = True

    def model_matrix(self) -> np.ndarray:
        m = np.identity(4, dtype=np.float64)
        m[:3, :3] = rotation_matrix(self.rotation) * self.scale
        m[:3, 3] = self.position
        return m

    def world_vertices(self) -> np.ndarray:
        if self.mesh is None:
            return np.zeros((0, 3), dtype=np.float64)
        m = self.model_matrix()
        return self.mesh.vertices @ m[:3, :3].T + m[:3, 3]

    def dispose(self) -> None:
        self.mesh = None
        self.visible = False
        self.disposed = True


class Scene:
    def __init__(self):
        self._objects: List[SceneObject] = []

    @property
    def objects(self) -> List[SceneObject]:
        return list(self._objects)

    def add(self, obj: SceneObject) -> None:
        if obj.disposed:
            raise ValueError(f"Cannot add disposed object {obj.name!r}")
        self._objects.append(obj)

    def remove(self, obj: SceneObject) -> None:
        if obj in self._objects:
            self._objects.remove(obj)

    def find(self, name: str) -> Optional[SceneObject]:
        for obj in self._objects:
            if obj.name == name:
                return obj
        return None

    def dispose(self) -> None:
        for obj in self._objects:
            obj.dispose()
        self._objects.clear()
