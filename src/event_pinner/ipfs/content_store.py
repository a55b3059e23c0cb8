"""Kubo content store - pins/unpins content via the Kubo HTTP RPC."""

from __future__ import annotations

import logging

import httpx

from event_pinner.errors import ContentStoreError

log = logging.getLogger(__name__)


def _kubo_message(resp: httpx.Response) -> str:
    """Kubo reports errors as {"Message": ..., "Code": ..., "Type": "error"}."""
    try:
        return str(resp.json().get("Message", "")) or resp.text[:200]
    except ValueError:
        return resp.text[:200]


class KuboContentStore:
    """ContentStore backed by a Kubo node's /api/v0/ RPC.

    - add: store bytes, returns the CIDv0 multihash
    - pin/add: pin a multihash (a pinned hash is re-pinned without error)
    - pin/rm: remove a pin ("not pinned" counts as success)
    - pin/ls: check a recursive pin

    Timeouts, connection errors and HTTP 5xx raise a retryable
    ContentStoreError; malformed hashes and 4xx do not.
    """

    def __init__(
        self,
        kubo_rpc_url: str = "http://127.0.0.1:5001",
        request_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = kubo_rpc_url.rstrip("/")
        self._timeout = request_timeout
        self._transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/api/v0/{endpoint}"

    async def _post(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        files: dict | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10),
                transport=self._transport,
            ) as client:
                return await client.post(self._url(endpoint), params=params, files=files)
        except httpx.TimeoutException as exc:
            raise ContentStoreError(f"{endpoint}: timeout after {self._timeout}s") from exc
        except httpx.TransportError as exc:
            raise ContentStoreError(f"{endpoint}: {exc}") from exc

    def _raise_for_status(self, endpoint: str, resp: httpx.Response) -> None:
        if resp.status_code == 200:
            return
        message = _kubo_message(resp)
        retryable = resp.status_code >= 500 and "invalid" not in message.lower()
        raise ContentStoreError(
            f"{endpoint}: HTTP {resp.status_code}: {message}", retryable=retryable,
        )

    async def add(self, data: bytes) -> str:
        resp = await self._post(
            "add",
            params={"cid-version": "0", "hash": "sha2-256", "pin": "false"},
            files={"file": ("data", data)},
        )
        self._raise_for_status("add", resp)
        multihash = resp.json().get("Hash", "")
        if not multihash:
            raise ContentStoreError("add: Kubo returned no hash", retryable=False)
        log.debug("Added %d bytes as %s", len(data), multihash)
        return multihash

    async def pin(self, multihash: str) -> None:
        resp = await self._post("pin/add", params={"arg": multihash})
        self._raise_for_status("pin/add", resp)
        log.info("Pinned %s", multihash)

    async def unpin(self, multihash: str) -> None:
        resp = await self._post("pin/rm", params={"arg": multihash})
        if resp.status_code != 200 and "not pinned" in _kubo_message(resp).lower():
            log.debug("%s was not pinned", multihash)
            return
        self._raise_for_status("pin/rm", resp)
        log.info("Unpinned %s", multihash)

    async def is_pinned(self, multihash: str) -> bool:
        resp = await self._post("pin/ls", params={"arg": multihash, "type": "recursive"})
        if resp.status_code == 200:
            return multihash in resp.json().get("Keys", {})
        if "not pinned" in _kubo_message(resp).lower():
            return False
        self._raise_for_status("pin/ls", resp)
        return False
