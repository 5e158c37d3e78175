import asyncio

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from quickstage.errors import UpstreamError
from quickstage.objectstorage import ObjectNotFound, S3ObjectStore


def client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class StubBody:
    def __init__(self, data: bytes):
        self.data = data

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def read(self) -> bytes:
        return self.data


class StubS3Client:
    """Just enough of the aiobotocore S3 client to exercise S3ObjectStore"""

    def __init__(self, error: Exception | None = None, delay: float = 0):
        self.objects: dict[str, dict] = {}
        self.error = error
        self.delay = delay

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error

    async def put_object(self, Bucket, Key, Body, ContentType, **kargs):
        await self._maybe_fail()
        self.objects[Key] = dict(Body=Body, ContentType=ContentType, **kargs)

    async def get_object(self, Bucket, Key):
        await self._maybe_fail()
        if Key not in self.objects:
            raise client_error("NoSuchKey")
        obj = self.objects[Key]
        return dict(Body=StubBody(obj["Body"]), ContentType=obj["ContentType"], CacheControl=obj.get("CacheControl"))

    async def head_object(self, Bucket, Key):
        await self._maybe_fail()
        if Key not in self.objects:
            raise client_error("404", "HeadObject")
        return {}


@pytest.mark.anyio
async def test_put_get_head():
    client = StubS3Client()
    store = S3ObjectStore(client, "bucket")
    assert not await store.head("sites/demo/index.html")
    await store.put("sites/demo/index.html", b"home", "text/html; charset=utf-8", cache_control="no-cache")
    assert client.objects["sites/demo/index.html"]["CacheControl"] == "no-cache"
    assert await store.head("sites/demo/index.html")
    obj = await store.get("sites/demo/index.html")
    assert obj.body == b"home"
    assert obj.content_type == "text/html; charset=utf-8"
    assert obj.cache_control == "no-cache"


@pytest.mark.anyio
async def test_put_without_cache_control():
    client = StubS3Client()
    await S3ObjectStore(client, "bucket").put("key", b"x", "text/plain")
    assert "CacheControl" not in client.objects["key"]


@pytest.mark.anyio
async def test_missing():
    store = S3ObjectStore(StubS3Client(), "bucket")
    with pytest.raises(ObjectNotFound):
        await store.get("nope")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "error",
    [client_error("AccessDenied"), client_error("InternalError"), EndpointConnectionError(endpoint_url="http://s3")],
)
async def test_errors_are_upstream(error):
    store = S3ObjectStore(StubS3Client(error=error), "bucket")
    with pytest.raises(UpstreamError):
        await store.get("key")
    with pytest.raises(UpstreamError):
        await store.head("key")
    with pytest.raises(UpstreamError):
        await store.put("key", b"x", "text/plain")


@pytest.mark.anyio
async def test_timeout_is_upstream():
    store = S3ObjectStore(StubS3Client(delay=1), "bucket", timeout=0.01)
    with pytest.raises(UpstreamError, match="timed out"):
        await store.get("key")
    with pytest.raises(UpstreamError, match="timed out"):
        await store.head("key", timeout=0.01)
