import math

from accessories.base import AccessoryCategory, AlignmentBase
from geometry import blend, distance_2d, midpoint, wrap_angle
from landmark_types import (
    LEFT_HIP,
    LEFT_SHOULDER,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    FrameLandmarks,
    Placement,
    Rotation,
)
from projection import Unprojector


class ShirtAligner(AlignmentBase):
    category = AccessoryCategory.SHIRT
    required_pose_indices = [LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP]

    def __init__(
        self,
        depth: float = -0.3,
        forward_pull: float = 0.05,
        shoulder_weight: float = 0.6,
        width_factor: float = 4.0,
        height_factor: float = 1.8,
        facing_correction: float = math.pi,
        scale_range=(0.2, 6.0),
    ):
        self.depth = depth
        self.forward_pull = forward_pull
        self.shoulder_weight = shoulder_weight
        self.width_factor = width_factor
        self.height_factor = height_factor
        self.facing_correction = facing_correction
        self.scale_range = tuple(scale_range)

    def align(self, landmarks: FrameLandmarks, unproject: Unprojector) -> Placement:
        pose = self._pose(landmarks)
        if pose is None:
            return Placement.hidden()

        left_shoulder = pose.get(LEFT_SHOULDER)
        right_shoulder = pose.get(RIGHT_SHOULDER)
        shoulder_center = midpoint(left_shoulder, right_shoulder)
        hip_center = midpoint(pose.get(LEFT_HIP), pose.get(RIGHT_HIP))

        torso_center = blend(shoulder_center, hip_center, self.shoulder_weight)
        u, v = landmarks.to_uv(torso_center, pose.space)
        position = unproject(u, v, self.depth + self.forward_pull)

        shoulder_width = distance_2d(left_shoulder, right_shoulder)
        torso_height = distance_2d(shoulder_center, hip_center)
        scale = self.clamp_scale(max(shoulder_width * self.width_factor, torso_height * self.height_factor))

        # Shoulder line on the horizontal/depth plane; the model faces away by default.
        dx = right_shoulder.x - left_shoulder.x
        dz = right_shoulder.z - left_shoulder.z
        yaw = wrap_angle(math.atan2(dz, dx) + self.facing_correction)

        return Placement(position=position, rotation=Rotation(yaw=yaw), scale=scale, visible=True)
