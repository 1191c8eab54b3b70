"""ImageStorePort: keyed storage for staged upload payloads.

Implementations must tolerate concurrent put/get/delete calls. There is no
ordering guarantee across distinct keys and no multi-key transaction.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from meshjob.core.models.image import StoredImage


class ImageStorePort(ABC):

    @abstractmethod
    async def put(self, image_id: str, payload: str, mime_type: str) -> None:
        """Store (or replace) the payload under image_id."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, image_id: str) -> Optional[StoredImage]:
        """Return the stored image or None if absent."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, image_id: str) -> None:
        """Remove image_id. Deleting an absent key is not an error."""
        raise NotImplementedError
