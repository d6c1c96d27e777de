import asyncio
from typing import Any, Optional
from PIL import Image

from ...schemas.fit import Landmark, PoseDetection
from ..measurement import REQUIRED_LANDMARKS


class MediaPipePoseProvider:
    """MediaPipe Pose in static-image mode.

    The model is built in ``load()`` and reused for every image until
    ``close()``; building it per request costs far more than inference.
    """

    def __init__(self, model_complexity: int = 1, min_detection_confidence: float = 0.5) -> None:
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self._pose: Any = None
        self._names: dict = {}

    async def load(self) -> None:
        if self._pose is not None:
            return
        import mediapipe as mp

        mp_pose = mp.solutions.pose
        self._names = {lm.value: lm.name.lower() for lm in mp_pose.PoseLandmark}
        self._pose = mp_pose.Pose(
            static_image_mode=True,
            model_complexity=self.model_complexity,
            enable_segmentation=False,
            min_detection_confidence=self.min_detection_confidence,
        )

    async def close(self) -> None:
        if self._pose is not None:
            self._pose.close()
            self._pose = None

    def _detect_sync(self, image_path: str) -> Optional[PoseDetection]:
        import numpy as np

        with Image.open(image_path) as img:
            rgb = img.convert("RGB")
            width, height = rgb.size
            results = self._pose.process(np.asarray(rgb))

        if results.pose_landmarks is None:
            return None

        landmarks = {
            self._names[idx]: Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=lm.visibility)
            for idx, lm in enumerate(results.pose_landmarks.landmark)
        }
        visible = [landmarks[n].visibility for n in REQUIRED_LANDMARKS if n in landmarks]
        confidence = sum(visible) / len(visible) if visible else None
        return PoseDetection(
            landmarks=landmarks,
            image_width=width,
            image_height=height,
            normalized=True,
            confidence=None if confidence is None else max(0.0, min(1.0, confidence)),
        )

    async def detect(self, image_path: str) -> Optional[PoseDetection]:
        await self.load()
        return await asyncio.to_thread(self._detect_sync, image_path)
