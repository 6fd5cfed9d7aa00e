from enum import Enum
from typing import Optional, Sequence, Tuple

from geometry import clamp
from landmark_types import FrameLandmarks, LandmarkSet, Placement
from projection import Unprojector


class AccessoryCategory(Enum):
    GLASSES = "glasses"
    EARRINGS = "earrings"
    NECKLACE = "necklace"
    SHIRT = "shirt"


class AlignmentBase:
    category: Optional[AccessoryCategory] = None
    required_face_indices: Sequence[int] = ()
    required_pose_indices: Sequence[int] = ()
    scale_range: Tuple[float, float] = (0.0, float("inf"))

    def align(self, landmarks: FrameLandmarks, unproject: Unprojector) -> Placement:
        raise NotImplementedError

    def clamp_scale(self, scale: float) -> float:
        lo, hi = self.scale_range
        return clamp(scale, lo, hi)

    def _face(self, landmarks: FrameLandmarks) -> Optional[LandmarkSet]:
        face = landmarks.face
        if face is None or not face.has_all(self.required_face_indices):
            return None
        return face

    def _pose(self, landmarks: FrameLandmarks) -> Optional[LandmarkSet]:
        pose = landmarks.pose
        if pose is None or not pose.has_all(self.required_pose_indices):
            return None
        return pose
