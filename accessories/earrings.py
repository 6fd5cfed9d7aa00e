import math

from accessories.base import AccessoryCategory, AlignmentBase
from geometry import average, distance_2d
from landmark_types import (
    LEFT_EAR_CLUSTER,
    LEFT_EYE_CENTER,
    RIGHT_EAR_CLUSTER,
    RIGHT_EYE_CENTER,
    FrameLandmarks,
    Placement,
    Rotation,
)
from projection import Unprojector


class EarringsAligner(AlignmentBase):
    category = AccessoryCategory.EARRINGS
    required_face_indices = [LEFT_EYE_CENTER, RIGHT_EYE_CENTER, *LEFT_EAR_CLUSTER, *RIGHT_EAR_CLUSTER]

    def __init__(
        self,
        depth: float = -0.25,
        left_offset=(-0.01, 0.03),
        right_offset=(0.01, 0.03),
        scale_factor: float = 12.0,
        scale_range=(0.3, 3.0),
    ):
        self.depth = depth
        self.left_offset = tuple(left_offset)
        self.right_offset = tuple(right_offset)
        self.scale_factor = scale_factor
        self.scale_range = tuple(scale_range)

    def align(self, landmarks: FrameLandmarks, unproject: Unprojector) -> Placement:
        face = self._face(landmarks)
        if face is None:
            return Placement.hidden()

        left_eye = face.get(LEFT_EYE_CENTER)
        right_eye = face.get(RIGHT_EYE_CENTER)
        width = float(landmarks.image_size[0])

        positions = []
        for cluster, (du, dv) in ((LEFT_EAR_CLUSTER, self.left_offset), (RIGHT_EAR_CLUSTER, self.right_offset)):
            anchor = average([face.get(i) for i in cluster])
            u, v = landmarks.to_uv(anchor, face.space)
            positions.append(unproject(u + du, v + dv, self.depth))

        eye_dist = distance_2d(left_eye, right_eye)
        scale = self.clamp_scale(eye_dist / width * self.scale_factor)
        roll = -math.atan2(right_eye.y - left_eye.y, right_eye.x - left_eye.x)

        return Placement(
            position=None,
            rotation=Rotation(pitch=0.0, yaw=0.0, roll=roll),
            scale=scale,
            visible=True,
            positions=positions,
        )
