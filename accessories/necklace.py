from accessories.base import AccessoryCategory, AlignmentBase
from geometry import distance_2d, midpoint
from landmark_types import LEFT_SHOULDER, RIGHT_SHOULDER, FrameLandmarks, Placement, Rotation
from projection import Unprojector


class NecklaceAligner(AlignmentBase):
    category = AccessoryCategory.NECKLACE
    required_pose_indices = [LEFT_SHOULDER, RIGHT_SHOULDER]

    def __init__(
        self,
        depth: float = -0.2,
        v_offset: float = -0.04,
        scale_factor: float = 5.0,
        scale_range=(0.1, 4.0),
    ):
        self.depth = depth
        self.v_offset = v_offset
        self.scale_factor = scale_factor
        self.scale_range = tuple(scale_range)

    def align(self, landmarks: FrameLandmarks, unproject: Unprojector) -> Placement:
        pose = self._pose(landmarks)
        if pose is None:
            return Placement.hidden()

        left_shoulder = pose.get(LEFT_SHOULDER)
        right_shoulder = pose.get(RIGHT_SHOULDER)

        # Pose landmarks are already normalized, so they map straight to UV.
        u, v = landmarks.to_uv(midpoint(left_shoulder, right_shoulder), pose.space)
        position = unproject(u, v + self.v_offset, self.depth)
        scale = self.clamp_scale(distance_2d(left_shoulder, right_shoulder) * self.scale_factor)

        return Placement(position=position, rotation=Rotation(), scale=scale, visible=True)
