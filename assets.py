import logging
from typing import Tuple

import numpy as np
import trimesh

from scene import MeshData

logger = logging.getLogger(__name__)

PLACEHOLDER_COLOR = (0, 255, 0)


def _main_color_bgr(mesh: trimesh.Trimesh) -> Tuple[int, int, int]:
    visual = mesh.visual
    material = getattr(visual, "material", None)
    rgba = material.main_color if material is not None else visual.main_color
    r, g, b = (int(c) for c in np.asarray(rgba)[:3])
    return b, g, r


def normalize_mesh(vertices: np.ndarray, extent: float) -> np.ndarray:
    lo = vertices.min(axis=0)
    hi = vertices.max(axis=0)
    centered = vertices - (lo + hi) / 2.0
    max_extent = float(np.max(hi - lo))
    if max_extent > 0:
        centered = centered / max_extent * extent
    return centered


def load_mesh(path: str, extent: float) -> MeshData:
    mesh = trimesh.load(path, force="mesh")
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise ValueError(f"{path}: no triangle geometry found")

    vertices = normalize_mesh(np.asarray(mesh.vertices, dtype=np.float64), extent)
    logger.info("Loaded %s: %d vertices, %d faces", path, len(mesh.vertices), len(mesh.faces))
    return MeshData(
        vertices=vertices,
        faces=np.asarray(mesh.faces, dtype=np.int32),
        color=_main_color_bgr(mesh),
    )


def placeholder_mesh(extent: float) -> MeshData:
    box = trimesh.creation.box(extents=(extent, extent, extent))
    return MeshData(
        vertices=np.asarray(box.vertices, dtype=np.float64),
        faces=np.asarray(box.faces, dtype=np.int32),
        color=PLACEHOLDER_COLOR,
    )


def load_or_placeholder(path: str, extent: float) -> Tuple[MeshData, bool]:
    # Returns (mesh, is_placeholder).
    try:
        return load_mesh(path, extent), False
    except Exception as exc:  # loader errors vary by file format
        logger.warning("Failed to load %s (%s); using placeholder box", path, exc)
        return placeholder_mesh(extent), True
