from typing import Optional, Protocol
from ...schemas.fit import PoseDetection


class PoseProvider(Protocol):
    async def load(self) -> None:  # acquire model / client once
        ...

    async def detect(self, image_path: str) -> Optional[PoseDetection]:  # None when no person is found
        ...

    async def close(self) -> None:
        ...
