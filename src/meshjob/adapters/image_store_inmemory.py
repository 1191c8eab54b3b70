"""In-memory implementation of ImageStorePort.

Async-safe using an asyncio.Lock. Contents are lost on restart; suitable for
a single process and for tests.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

from meshjob.core.interfaces.image_store import ImageStorePort
from meshjob.core.models.image import StoredImage


class InMemoryImageStore(ImageStorePort):
    def __init__(self) -> None:
        self._images: Dict[str, StoredImage] = {}
        self._lock = asyncio.Lock()

    async def put(self, image_id: str, payload: str, mime_type: str) -> None:
        async with self._lock:
            self._images[image_id] = StoredImage(payload=payload, mime_type=mime_type)

    async def get(self, image_id: str) -> Optional[StoredImage]:
        async with self._lock:
            return self._images.get(image_id)

    async def delete(self, image_id: str) -> None:
        async with self._lock:
            self._images.pop(image_id, None)
