from typing import Dict, Optional, Tuple
from PIL import Image
import structlog

from ...schemas.fit import Landmark, PoseDetection


logger = structlog.get_logger("fitrec.pose.mock")


# Front-facing, arms-down skeleton in normalized image coordinates
SYNTHETIC_POSE: Dict[str, Tuple[float, float]] = {
    "nose": (0.50, 0.10),
    "left_shoulder": (0.63, 0.24),
    "right_shoulder": (0.37, 0.24),
    "left_hip": (0.58, 0.55),
    "right_hip": (0.42, 0.55),
    "left_ankle": (0.55, 0.92),
    "right_ankle": (0.45, 0.92),
}


class MockPoseProvider:
    """Deterministic stand-in for a pose model, sized to the real image."""

    def __init__(self, pose: Optional[Dict[str, Tuple[float, float]]] = None, confidence: Optional[float] = None) -> None:
        self.pose = pose if pose is not None else SYNTHETIC_POSE
        self.confidence = confidence
        self.loaded = False

    async def load(self) -> None:
        self.loaded = True

    async def close(self) -> None:
        self.loaded = False

    async def detect(self, image_path: str) -> Optional[PoseDetection]:
        try:
            with Image.open(image_path) as img:
                width, height = img.size
        except OSError as e:
            logger.warning("mock_pose_unreadable_image", path=image_path, error=str(e))
            return None

        if not self.pose:
            return None
        return PoseDetection(
            landmarks={name: Landmark(x=x, y=y) for name, (x, y) in self.pose.items()},
            image_width=width,
            image_height=height,
            normalized=True,
            confidence=self.confidence,
        )
