import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

import mediapipe as mp
import numpy as np

from landmark_types import FACE_MESH_POINTS, NOSE_TIP, FrameLandmarks, LandmarkSet, LandmarkSpace
from projection import Unprojector

logger = logging.getLogger(__name__)

# Face oval, ordered around the contour starting at the forehead.
FACE_OVAL = [
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288,
    397, 365, 379, 378, 400, 377, 152, 148, 176, 149, 150, 136,
    172, 58, 132, 93, 234, 127, 162, 21, 54, 103, 67, 109,
]

TOPOLOGIES = ("canonical", "fan")


@dataclass
class OcclusionMesh:
    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    indices: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.uint32))

    @property
    def visible(self) -> bool:
        return len(self.vertices) > 0 and len(self.indices) > 0

    @property
    def triangles(self) -> np.ndarray:
        return self.indices.reshape(-1, 3)


def triangles_from_edges(edges: Iterable[Tuple[int, int]]) -> np.ndarray:
    # Every 3-cycle of the edge graph, as sorted index triples.
    adjacency = {}
    for a, b in edges:
        if a == b:
            continue
        adjacency.setdefault(a, set()).add(b)
        adjacency.setdefault(b, set()).add(a)

    triangles: List[Tuple[int, int, int]] = []
    for a in sorted(adjacency):
        for b in sorted(n for n in adjacency[a] if n > a):
            for c in sorted(adjacency[a] & adjacency[b]):
                if c > b:
                    triangles.append((a, b, c))
    return np.asarray(triangles, dtype=np.uint32).reshape(-1, 3)


def _tessellation_edges() -> List[Tuple[int, int]]:
    solutions = getattr(mp, "solutions", None)
    if solutions is not None:
        return [tuple(edge) for edge in solutions.face_mesh.FACEMESH_TESSELATION]
    from mediapipe.tasks.python.vision import FaceLandmarksConnections

    return [(c.start, c.end) for c in FaceLandmarksConnections.FACE_LANDMARKS_TESSELATION]


@lru_cache(maxsize=1)
def canonical_triangles() -> np.ndarray:
    triangles = triangles_from_edges(_tessellation_edges())
    triangles = triangles[np.all(triangles < FACE_MESH_POINTS, axis=1)]
    logger.debug("Canonical face topology: %d triangles", len(triangles))
    return triangles


def fan_triangles(contour_length: int) -> np.ndarray:
    # Vertex 0 is the hub, 1..n the closed contour.
    n = contour_length
    triangles = [(0, 1 + i, 1 + (i + 1) % n) for i in range(n)]
    return np.asarray(triangles, dtype=np.uint32).reshape(-1, 3)


class OcclusionMeshBuilder:
    def __init__(self, topology: str = "canonical", base_depth: float = 0.0, depth_scale: float = 1.0):
        if topology not in TOPOLOGIES:
            raise ValueError(f"Unknown occlusion topology {topology!r}, expected one of {TOPOLOGIES}")
        self.topology = topology
        self.base_depth = base_depth
        self.depth_scale = depth_scale

    def build(self, landmarks: FrameLandmarks, unproject: Unprojector) -> OcclusionMesh:
        face = landmarks.face
        if face is None or len(face) < FACE_MESH_POINTS:
            return OcclusionMesh()

        if self.topology == "canonical":
            point_ids = list(range(FACE_MESH_POINTS))
            triangles = canonical_triangles()
        else:
            point_ids = [NOSE_TIP] + FACE_OVAL
            triangles = fan_triangles(len(FACE_OVAL))

        vertices = self._unproject_points(landmarks, face, point_ids, unproject)
        if vertices is None:
            return OcclusionMesh()
        return OcclusionMesh(vertices=vertices, indices=triangles.reshape(-1).astype(np.uint32))

    def _unproject_points(
        self,
        landmarks: FrameLandmarks,
        face: LandmarkSet,
        point_ids: Sequence[int],
        unproject: Unprojector,
    ) -> Optional[np.ndarray]:
        width = float(landmarks.image_size[0])
        vertices = np.zeros((len(point_ids), 3), dtype=np.float32)
        for row, idx in enumerate(point_ids):
            lm = face.get(idx)
            if lm is None:
                return None
            u, v = landmarks.to_uv(lm, face.space)
            # Detector z is negative toward the camera; world +z points at it.
            z = lm.z if face.space is LandmarkSpace.NORMALIZED else lm.z / width
            depth = self.base_depth - z * self.depth_scale
            vertices[row] = unproject(u, v, depth)
        return vertices
