"""Jito block-engine relay — sendBundle and bundle outcome polling.

sendBundle takes base58-encoded signed transactions and returns a bundle id.
The outcome is observed via getInflightBundleStatuses:
  Landed  -> accepted
  Failed  -> rejected
  Pending / Invalid (not indexed yet) -> keep waiting until the deadline
"""

from __future__ import annotations

import asyncio
from enum import Enum

import httpx
from loguru import logger

from pumpbundler.protocol.exceptions import SubmissionRejectedError, TransportError

DEFAULT_RESULT_TIMEOUT = 30.0  # seconds
DEFAULT_POLL_INTERVAL = 1.0  # seconds


class BundleStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


class RelayClient:
    """Async JSON-RPC client for a block-engine bundle endpoint."""

    def __init__(self, block_engine_url: str, *, timeout: float = 15.0) -> None:
        if not block_engine_url:
            raise ValueError("Block engine URL is empty")
        self._url = block_engine_url
        self._http = httpx.AsyncClient(
            timeout=timeout, headers={"Content-Type": "application/json"}
        )

    async def _call(self, method: str, params: list) -> object:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = await self._http.post(self._url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {type(e).__name__}: {e}") from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransportError(f"{method} HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(f"{method} HTTP {resp.status_code}: non-JSON body") from e

        if "error" in data:
            error = data["error"]
            msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise SubmissionRejectedError(f"{method}: {msg}")
        if resp.status_code != 200:
            raise TransportError(f"{method} unexpected HTTP {resp.status_code}")
        return data.get("result")

    async def send_bundle(self, encoded_txs: list[str]) -> str:
        """Submit one atomic bundle. Returns the relay's bundle id."""
        result = await self._call("sendBundle", [encoded_txs])
        if not result:
            raise TransportError("sendBundle returned no bundle id")
        logger.info(f"[RELAY] Bundle accepted for processing: {result}")
        return str(result)

    async def get_bundle_status(self, bundle_id: str) -> str | None:
        """Raw inflight status string ("Pending", "Landed", ...) or None."""
        result = await self._call("getInflightBundleStatuses", [[bundle_id]])
        values = (result or {}).get("value") or []
        for entry in values:
            if entry and entry.get("bundle_id") == bundle_id:
                return entry.get("status")
        return None

    async def wait_for_result(
        self,
        bundle_id: str,
        *,
        timeout: float = DEFAULT_RESULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> BundleStatus:
        """Wait for an accept/reject signal. No signal before the deadline is TIMEOUT."""
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        elapsed = 0.0
        while elapsed < timeout:
            try:
                status = await self.get_bundle_status(bundle_id)
            except (TransportError, SubmissionRejectedError) as e:
                logger.debug(f"[RELAY] Status poll failed for {bundle_id[:16]}: {e}")
                status = None

            if status == "Landed":
                logger.info(f"[RELAY] Bundle {bundle_id[:16]} landed in {elapsed:.1f}s")
                return BundleStatus.ACCEPTED
            if status == "Failed":
                logger.warning(f"[RELAY] Bundle {bundle_id[:16]} rejected")
                return BundleStatus.REJECTED

            await asyncio.sleep(poll_interval)
            elapsed += poll_interval

        logger.warning(f"[RELAY] Bundle {bundle_id[:16]} no result after {timeout}s")
        return BundleStatus.TIMEOUT

    async def close(self) -> None:
        await self._http.aclose()
