"""
Interact with S3-compatible object storage (e.g., AWS S3, MinIO, SeaweedFS, Cloudflare R2).

The rest of the code only sees the small ObjectStore interface (put/get/head). A missing key raises
ObjectNotFound, anything else that goes wrong (connection errors, access denied, timeouts) raises
UpstreamError, so callers can tell "not there" from "storage is down".
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Protocol, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from types_aiobotocore_s3.client import S3Client

from quickstage.errors import NotFoundError, UpstreamError

logger = logging.getLogger("quickstage.objectstorage")

MISSING_CODES = {"404", "NoSuchKey", "NotFound"}

T = TypeVar("T")


class ObjectNotFound(NotFoundError):
    pass


@dataclass(frozen=True)
class StoredObject:
    body: bytes
    content_type: str | None = None
    cache_control: str | None = None


class ObjectStore(Protocol):
    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        cache_control: str | None = None,
        timeout: float | None = None,
    ) -> None: ...

    async def get(self, key: str, timeout: float | None = None) -> StoredObject: ...

    async def head(self, key: str, timeout: float | None = None) -> bool: ...


def is_missing(e: ClientError) -> bool:
    error = e.response.get("Error", {})
    return str(error.get("Code")) in MISSING_CODES


class S3ObjectStore:
    """ObjectStore on top of a (long lived, shared) aiobotocore S3 client"""

    def __init__(self, client: S3Client, bucket: str, timeout: float = 30.0):
        self.client = client
        self.bucket = bucket
        self.timeout = timeout

    async def _call(self, action: str, key: str, call: Awaitable[T], timeout: float | None) -> T:
        try:
            return await asyncio.wait_for(call, timeout=timeout or self.timeout)
        except ClientError as e:
            if is_missing(e):
                raise ObjectNotFound(f"Object {key} not found in bucket") from e
            logger.error(f"s3.{action}.error key={key} code={e.response.get('Error', {}).get('Code')}")
            raise UpstreamError(f"Object storage {action} failed for {key}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"s3.{action}.timeout key={key}")
            raise UpstreamError(f"Object storage {action} timed out for {key}") from e
        except (BotoCoreError, OSError) as e:
            logger.error(f"s3.{action}.error key={key} err={type(e).__name__}")
            raise UpstreamError(f"Object storage {action} failed for {key}") from e

    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        cache_control: str | None = None,
        timeout: float | None = None,
    ) -> None:
        params = dict(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)
        if cache_control:
            params["CacheControl"] = cache_control
        await self._call("put", key, self.client.put_object(**params), timeout)

    async def get(self, key: str, timeout: float | None = None) -> StoredObject:
        async def _read() -> StoredObject:
            res = await self.client.get_object(Bucket=self.bucket, Key=key)
            async with res["Body"] as stream:
                body = await stream.read()
            return StoredObject(body=body, content_type=res.get("ContentType"), cache_control=res.get("CacheControl"))

        return await self._call("get", key, _read(), timeout)

    async def head(self, key: str, timeout: float | None = None) -> bool:
        try:
            await self._call("head", key, self.client.head_object(Bucket=self.bucket, Key=key), timeout)
        except ObjectNotFound:
            return False
        return True
