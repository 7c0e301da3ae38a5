import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from catcache import __version__
from catcache.cache_store import CacheStore
from catcache.exceptions import (
    CatCacheError,
    ClientInputError,
    FetchError,
    InternalError,
    NotFoundError,
    UnsupportedMethodError,
    WriteError,
)
from catcache.settings import ProxySettings
from catcache.upstream_client import UpstreamClient

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPE = "image/jpeg"
EMPTY_KEY_BODY = "Bad Request: HTTP status code required"


def _image_response(data: bytes) -> Response:
    return Response(
        content=data,
        media_type=IMAGE_MEDIA_TYPE,
        headers={"Content-Length": str(len(data))},
    )


def _text_response(body: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(body, status_code=status_code)


class RequestHandler:
    """
    Maps GET/PUT/DELETE on /<key> to cache store operations.

    GET falls back to the upstream service on a miss and stores what it
    gets. Same-key writes, deletes and fetch-then-write sequences run under
    the store's per-key lock.
    """

    def __init__(self, store: CacheStore, upstream: UpstreamClient):
        self.store = store
        self.upstream = upstream

    async def _read_cached(self, key: str) -> bytes:
        """
        Read a cache entry, treating missing and unreadable entries as empty.
        """
        try:
            return await self.store.read(key)
        except NotFoundError:
            return b""
        except InternalError as e:
            logger.warning(f"[Proxy] GET {key}: {e}")
            return b""

    async def get(self, key: str) -> Response:
        """
        Serve an image from cache, fetching it from upstream on a miss.

        Zero-length cache files count as a miss.

        Raises:
            NotFoundError: If the image is not cached and cannot be fetched
        """
        data = await self._read_cached(key)
        if data:
            logger.info(f"[Proxy] GET {key}: Served from cache ({len(data)} bytes)")
            return _image_response(data)

        async with self.store.locks.get(key):
            # Another request may have filled the entry while we waited
            data = await self._read_cached(key)
            if data:
                logger.info(f"[Proxy] GET {key}: Served from cache ({len(data)} bytes)")
                return _image_response(data)

            logger.info(f"[Proxy] GET {key}: Not in cache, fetching from upstream...")
            try:
                data = await self.upstream.fetch(key)
                await self.store.write(key, data)
            except (FetchError, WriteError) as e:
                raise NotFoundError(f"Not found - {e}")

        logger.info(f"[Proxy] GET {key}: Saved to cache ({len(data)} bytes)")
        return _image_response(data)

    async def put(self, key: str, request: Request) -> Response:
        """
        Store the request body as the image for a key.

        Raises:
            WriteError: If the entry cannot be written
        """
        data = await request.body()
        async with self.store.locks.get(key):
            await self.store.write(key, data)

        logger.info(f"[Proxy] PUT {key}: Saved to cache ({len(data)} bytes)")
        return _text_response("Created", 201)

    async def delete(self, key: str) -> Response:
        """
        Remove the cached image for a key.

        Raises:
            NotFoundError: If nothing is cached for the key
        """
        async with self.store.locks.get(key):
            await self.store.delete(key)

        logger.info(f"[Proxy] DELETE {key}: Removed from cache")
        return _text_response("OK", 200)

    async def dispatch(self, request: Request) -> Response:
        """
        Handle any request on /<key>, whatever its method.

        The empty-key check comes first, so it wins over the 405 for
        unsupported methods.

        Every failure is turned into a plain-text response here; nothing
        escapes to the server.
        """
        method = request.method
        key = request.path_params.get("key", "")
        try:
            if not key:
                raise ClientInputError("Empty cache key", body=EMPTY_KEY_BODY)

            if method == "GET":
                return await self.get(key)
            if method == "PUT":
                return await self.put(key, request)
            if method == "DELETE":
                return await self.delete(key)

            raise UnsupportedMethodError("Method not allowed")

        except CatCacheError as e:
            log = logger.error if e.status_code >= 500 else logger.info
            log(f"[Proxy] {method} {key}: {e}")
            return _text_response(e.body, e.status_code)
        except Exception as e:
            logger.exception(f"[Proxy] {method} {key}: Error - {e}")
            return _text_response(InternalError.body, InternalError.status_code)


def create_app(
    settings: ProxySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        settings: Resolved proxy settings
        transport: Optional httpx transport for the upstream client

    Returns:
        FastAPI application serving /<key>
    """
    store = CacheStore(settings.cache_dir)
    upstream = UpstreamClient(settings.upstream_url, transport=transport)
    handler = RequestHandler(store, upstream)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Lifespan event handler - runs on startup and shutdown."""
        logger.info(f"[Proxy] Proxy server running at http://{settings.host}:{settings.port}/")
        logger.info(f"[Proxy] Cache directory: {store.root}")

        yield

        await upstream.close()

    app = FastAPI(
        title="catcache",
        description="Caching proxy for http.cat status code images",
        version=__version__,
        lifespan=lifespan,
        # Every path is a cache key, so the docs routes are disabled
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.upstream = upstream

    # No method filter: every verb reaches dispatch
    app.add_route("/{key:path}", handler.dispatch, include_in_schema=False)

    return app
