import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator

from aiobotocore.config import AioConfig
from aiobotocore.session import get_session
from types_aiobotocore_s3.client import S3Client

from quickstage.config import Settings, get_settings
from quickstage.objectstorage.store import S3ObjectStore


class QuickstageConnections:
    s3_client: S3Client | None
    s3_context_stack: AsyncExitStack | None

    def __init__(self, s3_client: S3Client | None = None, s3_context_stack: AsyncExitStack | None = None):
        self.s3_client = s3_client
        self.s3_context_stack = s3_context_stack


CONNECTIONS = QuickstageConnections()


@asynccontextmanager
async def quickstage_connections() -> AsyncGenerator[None, None]:
    """
    The main context manager to start and stop connections used by quickstage.
    Always use this once (and only once):
        - For running the server: in the FastAPI lifespan
        - For CLI commands: within the CLI command
    """
    try:
        await start_quickstage_connections()
        yield
    finally:
        await close_quickstage_connections()


async def start_quickstage_connections():
    await _start_s3(get_settings())


async def close_quickstage_connections():
    await _close_s3()


def s3() -> S3Client:
    """
    Use this function to access the s3 client.
    """
    if CONNECTIONS.s3_client is None:
        raise ConnectionError("S3 client not started")
    return CONNECTIONS.s3_client


def s3_enabled(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return all([settings.s3_endpoint, settings.s3_access_key, settings.s3_secret_key, settings.s3_bucket])


def object_store(settings: Settings | None = None) -> S3ObjectStore:
    """The object store for the configured bucket, sharing the one s3 client"""
    settings = settings or get_settings()
    if settings.s3_bucket is None:
        raise ConnectionError("s3_bucket not specified")
    return S3ObjectStore(s3(), settings.s3_bucket, timeout=settings.s3_timeout)


async def _start_s3(settings: Settings) -> None:
    if s3_enabled(settings) is False:
        logging.warning("Object storage is not configured, site serving and uploads will fail")
        return None

    logging.debug(f"Connecting with object storage at {settings.s3_endpoint}, bucket {settings.s3_bucket}")
    session = get_session()
    client = session.create_client(
        service_name="s3",
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        config=AioConfig(
            signature_version="s3v4",
            connect_timeout=settings.s3_timeout,
            read_timeout=settings.s3_timeout,
        ),
    )

    # client is an async context manager, so we use an AsyncExitStack to manage its lifetime
    CONNECTIONS.s3_context_stack = AsyncExitStack()
    CONNECTIONS.s3_client = await CONNECTIONS.s3_context_stack.enter_async_context(client)


async def _close_s3():
    if CONNECTIONS.s3_context_stack is not None:
        await CONNECTIONS.s3_context_stack.aclose()
        CONNECTIONS.s3_client = None
        CONNECTIONS.s3_context_stack = None
