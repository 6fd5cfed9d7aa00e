import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from landmark_types import (
    FACE_MESH_POINTS,
    POSE_POINTS,
    FrameLandmarks,
    Landmark,
    LandmarkSet,
    LandmarkSpace,
)

logger = logging.getLogger(__name__)


@dataclass
class RawDetection:
    face: Optional[Sequence[Any]] = None
    pose: Optional[Sequence[Any]] = None
    space: LandmarkSpace = LandmarkSpace.NORMALIZED


def _coerce(point: Any) -> Landmark:
    if isinstance(point, Landmark):
        return point
    if isinstance(point, dict):
        return Landmark(
            float(point["x"]),
            float(point["y"]),
            float(point.get("z", 0.0)),
            float(point.get("visibility", 1.0)),
        )
    if isinstance(point, (tuple, list)):
        visibility = float(point[3]) if len(point) > 3 else 1.0
        z = float(point[2]) if len(point) > 2 else 0.0
        return Landmark(float(point[0]), float(point[1]), z, visibility)
    # MediaPipe NormalizedLandmark and similar attribute-style objects.
    # Tasks face landmarks leave visibility unset.
    visibility = getattr(point, "visibility", None)
    return Landmark(
        float(point.x),
        float(point.y),
        float(getattr(point, "z", 0.0)),
        1.0 if visibility is None else float(visibility),
    )


class LandmarkAdapter:
    def __init__(
        self,
        image_size: Tuple[int, int],
        visibility_threshold: float = 0.5,
        min_face_points: int = FACE_MESH_POINTS,
        min_pose_points: int = POSE_POINTS,
    ):
        self.image_size = image_size
        self.visibility_threshold = visibility_threshold
        self.min_face_points = min_face_points
        self.min_pose_points = min_pose_points

    def adapt(self, raw: Optional[RawDetection], timestamp: float) -> FrameLandmarks:
        if raw is None:
            return FrameLandmarks(timestamp=timestamp, image_size=self.image_size)
        return FrameLandmarks(
            timestamp=timestamp,
            image_size=self.image_size,
            face=self._adapt_face(raw.face, raw.space),
            pose=self._adapt_pose(raw.pose, raw.space),
        )

    def adapt_keypoints(self, keypoints: Sequence[Dict[str, Any]], timestamp: float) -> FrameLandmarks:
        # Legacy face-only input: a list of pixel-space keypoint dicts.
        return self.adapt(RawDetection(face=keypoints, space=LandmarkSpace.PIXEL), timestamp)

    def _adapt_face(self, points: Optional[Sequence[Any]], space: LandmarkSpace) -> Optional[LandmarkSet]:
        if points is None:
            return None
        if len(points) < self.min_face_points:
            logger.debug("Rejecting face with %d landmarks (need %d)", len(points), self.min_face_points)
            return None

        width, height = self.image_size
        adapted: List[Optional[Landmark]] = []
        for point in points:
            lm = _coerce(point)
            if space is LandmarkSpace.NORMALIZED:
                lm = Landmark(lm.x * width, lm.y * height, lm.z * width, lm.visibility)
            adapted.append(lm)
        return LandmarkSet(adapted, LandmarkSpace.PIXEL)

    def _adapt_pose(self, points: Optional[Sequence[Any]], space: LandmarkSpace) -> Optional[LandmarkSet]:
        if points is None:
            return None
        if len(points) < self.min_pose_points:
            logger.debug("Rejecting pose with %d landmarks (need %d)", len(points), self.min_pose_points)
            return None

        width, height = self.image_size
        adapted: List[Optional[Landmark]] = []
        for point in points:
            lm = _coerce(point)
            if lm.visibility < self.visibility_threshold:
                adapted.append(None)
                continue
            if space is LandmarkSpace.PIXEL:
                lm = Landmark(lm.x / width, lm.y / height, lm.z / width, lm.visibility)
            adapted.append(lm)
        return LandmarkSet(adapted, LandmarkSpace.NORMALIZED)
