"""IPFS HTTP API client for metadata and schema bundles."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Union

import aiohttp
import structlog

from shared.utils.errors import ContentFetchError

from ..models import NUL


logger = structlog.get_logger(__name__)

IPFS_SCHEME = "ipfs://"


class ContentStore(Protocol):
    """Content-addressed storage. Failures raise."""

    async def get_file(self, locator: Union[str, bytes]) -> bytes:
        ...


def normalize_locator(locator: Union[str, bytes]) -> str:
    """Strip NUL padding and the ``ipfs://`` scheme from an on-chain or metadata locator."""
    if isinstance(locator, (bytes, bytearray)):
        locator = bytes(locator).decode("utf-8", errors="replace")
    locator = locator.replace(NUL, "").strip()
    if locator.startswith(IPFS_SCHEME):
        locator = locator[len(IPFS_SCHEME):]
    return locator


class IpfsClient:
    """Fetches files through the ``/api/v0/cat`` endpoint of an IPFS node."""

    def __init__(self, api_url: str, timeout: float = 30.0):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        if self.session:
            return
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        logger.info("IPFS client started", api_url=self.api_url)

    async def stop(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("IPFS client stopped")

    async def get_file(self, locator: Union[str, bytes]) -> bytes:
        cid = normalize_locator(locator)
        if not cid:
            raise ContentFetchError("Empty content locator", locator=cid)

        if not self.session:
            await self.start()

        url = f"{self.api_url}/api/v0/cat"
        try:
            # The IPFS RPC API only accepts POST
            async with self.session.post(url, params={"arg": cid}) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ContentFetchError(
                        f"IPFS cat failed: {error_text.strip()}",
                        locator=cid,
                        status=response.status,
                    )
                return await response.read()
        except aiohttp.ClientError as e:
            raise ContentFetchError(f"IPFS request failed: {e}", locator=cid) from e
        except asyncio.TimeoutError as e:
            raise ContentFetchError("IPFS request timed out", locator=cid) from e

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
