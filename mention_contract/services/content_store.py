from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from mention_contract.core.config import Settings
from mention_contract.core.errors import MalformedBlock, StoreUnavailable
from mention_contract.schemas.mentions import StoredBlock

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_HOST_PROTOCOLS = {"ip4", "ip6", "dns", "dns4", "dns6"}
MAX_TCP_PORT = 65535


class ContentStore(Protocol):
    async def get(self, cid: str, api_multiaddr: str = "", timeout_sec: int = 0) -> str: ...


def get_timeout_string(timeout_sec: int) -> str:
    return f"{timeout_sec}s"


def make_cmd_args(args: list[str], api_multiaddr: str, timeout_sec: int) -> list[str]:
    return [*args, "--timeout", get_timeout_string(timeout_sec), "--api", api_multiaddr]


def multiaddr_to_url(multiaddr: str) -> str:
    """Translate an IPFS API multiaddr such as ``/ip4/127.0.0.1/tcp/5001`` to a base URL.

    Plain ``http(s)://`` addresses are passed through unchanged.
    """
    if multiaddr.startswith(("http://", "https://")):
        try:
            url_port = httpx.URL(multiaddr).port
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid store url: {multiaddr!r}") from exc
        if url_port is not None and url_port > MAX_TCP_PORT:
            raise ValueError(f"invalid tcp port in store url: {multiaddr!r}")
        return multiaddr.rstrip("/")

    parts = [part for part in multiaddr.split("/") if part]
    if len(parts) < 4 or parts[0] not in _HOST_PROTOCOLS or parts[2] != "tcp":
        raise ValueError(f"unsupported multiaddr: {multiaddr!r}")

    host = parts[1]
    port = parts[3]
    if not port.isdigit() or not 0 <= int(port) <= MAX_TCP_PORT:
        raise ValueError(f"invalid tcp port in multiaddr: {multiaddr!r}")
    if parts[0] == "ip6":
        host = f"[{host}]"
    scheme = "https" if "https" in parts[4:] else "http"
    return f"{scheme}://{host}:{port}"


class IpfsHttpStore:
    """Runs ``dag get`` through the IPFS node's HTTP RPC API."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        self.default_multiaddr = settings.ipfs_multiaddr
        self.default_timeout_sec = settings.ipfs_timeout_seconds
        self._client = client

    async def get(self, cid: str, api_multiaddr: str = "", timeout_sec: int = 0) -> str:
        address = api_multiaddr or self.default_multiaddr
        timeout = timeout_sec or self.default_timeout_sec
        try:
            base_url = multiaddr_to_url(address)
        except ValueError as exc:
            raise StoreUnavailable(str(exc)) from exc

        url = f"{base_url}/api/v0/dag/get"
        params = {"arg": cid, "timeout": get_timeout_string(timeout)}
        try:
            if self._client is not None:
                response = await self._client.post(url, params=params)
            else:
                # leave headroom over the node-side timeout so the node reports it first
                async with httpx.AsyncClient(timeout=float(timeout) + 1.0) as client:
                    response = await client.post(url, params=params)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise StoreUnavailable(f"ipfs dag get failed for {cid}: {exc}") from exc
        return response.text


class IpfsCliStore:
    """Runs ``ipfs dag get`` through a locally mounted ``ipfs`` binary."""

    def __init__(self, settings: Settings) -> None:
        self.binary = settings.ipfs_binary
        self.default_multiaddr = settings.ipfs_multiaddr
        self.default_timeout_sec = settings.ipfs_timeout_seconds

    async def get(self, cid: str, api_multiaddr: str = "", timeout_sec: int = 0) -> str:
        address = api_multiaddr or self.default_multiaddr
        timeout = timeout_sec or self.default_timeout_sec
        cmd = make_cmd_args(["dag", "get", cid], address, timeout)
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as exc:
            raise StoreUnavailable(f"unable to run {self.binary}: {exc}") from exc

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise StoreUnavailable(f"ipfs dag get exited with {process.returncode}: {detail}")
        try:
            return stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedBlock(f"block {cid} is not valid utf-8") from exc


async def fetch_block(store: ContentStore, cid: str, api_multiaddr: str = "", timeout_sec: int = 0) -> StoredBlock:
    with tracer.start_as_current_span("mentions.store_get") as span:
        span.set_attribute("mention.cid", cid)
        try:
            raw = await store.get(cid, api_multiaddr, timeout_sec)
        except StoreUnavailable:
            logger.warning("content store unavailable for cid=%s", cid)
            raise

    try:
        return StoredBlock.model_validate_json(raw)
    except PydanticValidationError as exc:
        logger.warning("malformed block for cid=%s", cid)
        raise MalformedBlock(f"malformed block for {cid}") from exc
