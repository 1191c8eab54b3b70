import re

import pytest

from meshjob.adapters.image_store_inmemory import InMemoryImageStore
from meshjob.core.exceptions import ValidationError
from meshjob.core.managers.upload_staging import (
    UploadStager,
    decode_data_url,
    encode_data_url,
    new_image_id,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


@pytest.fixture
def store():
    return InMemoryImageStore()


@pytest.fixture
def stager(store):
    return UploadStager(store, "http://localhost:8000/")


def test_image_id_format():
    assert re.fullmatch(r"img_\d{13}_[0-9a-z]{7}", new_image_id())
    assert new_image_id() != new_image_id()


def test_data_url_encoding():
    data_url = encode_data_url(b"hi", "image/png")
    assert data_url == "data:image/png;base64,aGk="
    assert decode_data_url(data_url) == b"hi"


@pytest.mark.parametrize("bad", ["data:image/png;base64", "data:image/png;base64,***"])
def test_decode_rejects_malformed(bad):
    with pytest.raises(ValueError):
        decode_data_url(bad)


async def test_stage_and_load(stager, store):
    staged = await stager.stage(PNG_BYTES, "IMAGE/PNG", "cat.png")

    assert staged.url == f"http://localhost:8000/api/image/{staged.id}"
    assert staged.mime_type == "image/png"
    assert staged.size == len(PNG_BYTES)
    assert staged.filename == "cat.png"
    assert staged.data_url.startswith("data:image/png;base64,")
    assert (await store.get(staged.id)).mime_type == "image/png"

    data, mime_type = await stager.load(staged.id)
    assert data == PNG_BYTES
    assert mime_type == "image/png"


async def test_default_mime_type(stager):
    staged = await stager.stage(PNG_BYTES)
    assert staged.mime_type == "image/jpeg"


async def test_rejects_empty_and_non_images(stager):
    with pytest.raises(ValidationError):
        await stager.stage(b"", "image/png")
    with pytest.raises(ValidationError):
        await stager.stage(b"%PDF", "application/pdf")


async def test_load_unknown_raises_key_error(stager):
    with pytest.raises(KeyError):
        await stager.load("img_0_missing")


async def test_discard(stager):
    staged = await stager.stage(PNG_BYTES, "image/png")
    await stager.discard(staged.id)
    with pytest.raises(KeyError):
        await stager.load(staged.id)
