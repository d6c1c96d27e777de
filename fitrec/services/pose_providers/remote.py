import os
import mimetypes
from typing import Optional
import httpx

from ...config import settings
from ...schemas.fit import Landmark, PoseDetection


class RemotePoseProvider:
    """Pose estimation hosted as a separate HTTP service."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 120.0) -> None:
        self.base = (base_url or settings.pose_api_base).rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def load(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def detect(self, image_path: str) -> Optional[PoseDetection]:
        await self.load()
        with open(image_path, "rb") as f:
            guessed, _ = mimetypes.guess_type(image_path)
            content_type = guessed or "image/jpeg"
            files = {"image": (os.path.basename(image_path), f, content_type)}
            resp = await self._client.post(f"{self.base}/pose/detect", files=files)
            resp.raise_for_status()
            payload = resp.json()

        raw = payload.get("landmarks") or {}
        if not raw:
            return None
        landmarks = {
            name: Landmark(
                x=float(p["x"]),
                y=float(p["y"]),
                z=float(p.get("z") or 0.0),
                visibility=p.get("visibility"),
            )
            for name, p in raw.items()
        }
        return PoseDetection(
            landmarks=landmarks,
            image_width=int(payload["image_width"]),
            image_height=int(payload["image_height"]),
            normalized=bool(payload.get("normalized", True)),
            confidence=payload.get("confidence"),
        )
