"""UploadStager: keeps uploaded images reachable by URL until the provider fetched them.

The provider only accepts an image URL (or inline data URL). Uploaded files are
stored as base64 data URLs in the image store and exposed under
`<public base>/api/image/<id>`.
"""

import base64
import binascii
import random
import string
import time
from typing import Optional, Tuple

from meshjob.core.exceptions import ValidationError
from meshjob.core.interfaces.image_store import ImageStorePort
from meshjob.core.models.image import StagedImage
from meshjob.core.settings import logger

DEFAULT_MIME_TYPE = "image/jpeg"
_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_image_id() -> str:
    """img_<epoch ms>_<7 random base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"img_{int(time.time() * 1000)}_{suffix}"


def encode_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> bytes:
    _, sep, encoded = data_url.partition(",")
    if not sep:
        raise ValueError("data URL has no payload section")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"data URL payload is not valid base64: {exc}") from exc


class UploadStager:
    def __init__(self, store: ImageStorePort, public_base_url: str):
        self._store = store
        self._base_url = public_base_url.rstrip("/")

    def image_url(self, image_id: str) -> str:
        return f"{self._base_url}/api/image/{image_id}"

    async def stage(
        self,
        data: bytes,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> StagedImage:
        if not data:
            raise ValidationError("Uploaded file is empty")
        mime_type = (mime_type or DEFAULT_MIME_TYPE).lower()
        if not mime_type.startswith("image/"):
            raise ValidationError(f"Unsupported media type {mime_type}, expected an image")

        image_id = new_image_id()
        data_url = encode_data_url(data, mime_type)
        await self._store.put(image_id, data_url, mime_type)

        staged = StagedImage(
            id=image_id,
            url=self.image_url(image_id),
            data_url=data_url,
            filename=filename,
            size=len(data),
            mime_type=mime_type,
        )
        logger.info(f"[store] staged upload id={image_id} mime_type={mime_type} size={staged.size}")
        return staged

    async def load(self, image_id: str) -> Tuple[bytes, str]:
        stored = await self._store.get(image_id)
        if stored is None:
            logger.warning(f"[store] image not found id={image_id}")
            raise KeyError(image_id)
        return decode_data_url(stored.payload), stored.mime_type

    async def discard(self, image_id: str) -> None:
        await self._store.delete(image_id)
        logger.debug(f"[store] discarded id={image_id}")
