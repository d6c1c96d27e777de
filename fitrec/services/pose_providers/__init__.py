from .base import PoseProvider
from .mock import MockPoseProvider


def get_provider(name: str) -> PoseProvider:
    name = (name or "mock").lower()
    if name == "mock":
        return MockPoseProvider()
    if name in ("remote", "http"):
        from .remote import RemotePoseProvider
        return RemotePoseProvider()
    if name in ("mediapipe", "mp"):
        # mediapipe is an optional extra; only import it when asked for
        from .mediapipe_pose import MediaPipePoseProvider
        return MediaPipePoseProvider()
    return MockPoseProvider()
