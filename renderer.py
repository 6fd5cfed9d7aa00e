from typing import Tuple

import cv2
import numpy as np

from projection import PerspectiveCamera
from scene import Scene, SceneObject

_LIGHT_DIR = np.array([0.0, 1.0, 0.5]) / np.linalg.norm([0.0, 1.0, 0.5])
_AMBIENT = 0.55
_DIFFUSE = 0.45


class OverlayRenderer:
    def __init__(self, camera: PerspectiveCamera, width: int, height: int, depth_bias: float = 1e-3):
        self.camera = camera
        self.width = width
        self.height = height
        self.depth_bias = depth_bias
        self.show_occluder = False

    def _project(self, world: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        ones = np.ones((len(world), 1), dtype=np.float64)
        clip = np.hstack([world, ones]) @ self.camera.view_projection.T
        w = clip[:, 3]
        safe_w = np.where(np.abs(w) < 1e-9, 1e-9, w)
        ndc = clip[:, :3] / safe_w[:, None]
        px = np.empty((len(world), 2), dtype=np.float64)
        px[:, 0] = (ndc[:, 0] + 1.0) * 0.5 * self.width
        px[:, 1] = (1.0 - ndc[:, 1]) * 0.5 * self.height
        # Clip-space w equals the eye-space distance along the view axis.
        return px, w

    def _rasterize_depth(self, world: np.ndarray, faces: np.ndarray, depth: np.ndarray) -> None:
        px, w = self._project(world)
        for tri in faces:
            if np.any(w[tri] < self.camera.near):
                continue
            pts = px[tri]
            x0, y0 = np.floor(pts.min(axis=0)).astype(int)
            x1, y1 = np.ceil(pts.max(axis=0)).astype(int)
            x0, y0 = max(x0, 0), max(y0, 0)
            x1, y1 = min(x1, self.width - 1), min(y1, self.height - 1)
            if x1 < x0 or y1 < y0:
                continue
            mask = np.zeros((y1 - y0 + 1, x1 - x0 + 1), dtype=np.uint8)
            cv2.fillConvexPoly(mask, np.round(pts - (x0, y0)).astype(np.int32), 1)
            roi = depth[y0:y1 + 1, x0:x1 + 1]
            tri_depth = float(w[tri].mean())
            roi[(mask > 0) & (roi > tri_depth)] = tri_depth

    def _draw_object(self, obj: SceneObject, canvas: np.ndarray, depth: np.ndarray) -> None:
        world = obj.world_vertices()
        faces = obj.mesh.faces
        px, w = self._project(world)

        tri_w = w[faces]
        keep = np.all(tri_w >= self.camera.near, axis=1)
        faces = faces[keep]
        if len(faces) == 0:
            return
        tri_depth = w[faces].mean(axis=1)

        a, b, c = world[faces[:, 0]], world[faces[:, 1]], world[faces[:, 2]]
        normals = np.cross(b - a, c - a)
        lengths = np.linalg.norm(normals, axis=1)
        lengths[lengths < 1e-12] = 1.0
        lambert = np.abs(normals @ _LIGHT_DIR) / lengths
        shade = np.clip(_AMBIENT + _DIFFUSE * lambert, 0.0, 1.0)

        centroids = px[faces].mean(axis=1)
        cx = np.clip(centroids[:, 0].astype(int), 0, self.width - 1)
        cy = np.clip(centroids[:, 1].astype(int), 0, self.height - 1)
        in_front = tri_depth <= depth[cy, cx] + self.depth_bias

        base = np.asarray(obj.mesh.color, dtype=np.float64)
        for i in np.argsort(-tri_depth):
            if not in_front[i]:
                continue
            color = tuple(int(v) for v in base * shade[i])
            cv2.fillConvexPoly(canvas, np.round(px[faces[i]]).astype(np.int32), color, lineType=cv2.LINE_AA)

    def render(self, frame_bgr: np.ndarray, scene: Scene) -> np.ndarray:
        canvas = frame_bgr.copy()
        depth = np.full((self.height, self.width), np.inf, dtype=np.float32)

        # Occluders first so every accessory is depth-tested against them.
        for obj in scene.objects:
            if obj.depth_only and obj.visible and obj.mesh is not None:
                world = obj.world_vertices()
                self._rasterize_depth(world, obj.mesh.faces, depth)
                if self.show_occluder:
                    self._draw_wireframe(canvas, world, obj.mesh.faces)

        for obj in scene.objects:
            if obj.depth_only or not obj.visible or obj.mesh is None:
                continue
            self._draw_object(obj, canvas, depth)
        return canvas

    def _draw_wireframe(self, canvas: np.ndarray, world: np.ndarray, faces: np.ndarray) -> None:
        px, _ = self._project(world)
        polys = [np.round(px[tri]).astype(np.int32) for tri in faces]
        cv2.polylines(canvas, polys, True, (90, 90, 90), 1)
