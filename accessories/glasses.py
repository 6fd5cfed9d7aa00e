import math

from accessories.base import AccessoryCategory, AlignmentBase
from geometry import distance_3d, midpoint
from landmark_types import (
    LEFT_EYE_CENTER,
    NOSE_TIP,
    RIGHT_EYE_CENTER,
    FrameLandmarks,
    Placement,
    Rotation,
)
from projection import Unprojector


class GlassesAligner(AlignmentBase):
    category = AccessoryCategory.GLASSES
    required_face_indices = [LEFT_EYE_CENTER, RIGHT_EYE_CENTER, NOSE_TIP]

    def __init__(
        self,
        depth: float = 0.05,
        v_offset: float = -0.02,
        scale_factor: float = 20.0,
        yaw_gain: float = 0.8,
        pitch_distance_factor: float = 0.8,
        pitch_bias: float = 0.8,
        scale_range=(0.5, 4.0),
    ):
        self.depth = depth
        self.v_offset = v_offset
        self.scale_factor = scale_factor
        self.yaw_gain = yaw_gain
        self.pitch_distance_factor = pitch_distance_factor
        self.pitch_bias = pitch_bias
        self.scale_range = tuple(scale_range)

    def align(self, landmarks: FrameLandmarks, unproject: Unprojector) -> Placement:
        face = self._face(landmarks)
        if face is None:
            return Placement.hidden()

        left_eye = face.get(LEFT_EYE_CENTER)
        right_eye = face.get(RIGHT_EYE_CENTER)
        nose_tip = face.get(NOSE_TIP)
        width = float(landmarks.image_size[0])

        center = midpoint(left_eye, right_eye)
        u, v = landmarks.to_uv(center, face.space)
        position = unproject(u, v + self.v_offset, self.depth)

        eye_dist = distance_3d(left_eye, right_eye)
        scale = self.clamp_scale(eye_dist / width * self.scale_factor)

        # Pixel y grows downward, so the roll sign is flipped for world space.
        roll = -math.atan2(right_eye.y - left_eye.y, right_eye.x - left_eye.x)
        yaw = math.atan2(nose_tip.x - center.x, eye_dist) * self.yaw_gain
        pitch = math.atan2(nose_tip.y - center.y, eye_dist * self.pitch_distance_factor) - self.pitch_bias

        return Placement(
            position=position,
            rotation=Rotation(pitch=pitch, yaw=yaw, roll=roll),
            scale=scale,
            visible=True,
        )
