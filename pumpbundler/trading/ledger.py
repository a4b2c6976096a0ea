"""Solana JSON-RPC ledger client — account reads, submission, confirmation.

Idempotent reads retry 429/5xx/timeouts a bounded number of times and then
raise TransportError. Submission does not retry: resubmission policy belongs
to the caller.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumpbundler.protocol.exceptions import (
    ErrorKind,
    SubmissionError,
    SubmissionRejectedError,
    TransportError,
)

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# Confirmation polling
CONFIRM_POLL_INTERVAL = 2.0  # seconds
CONFIRM_TIMEOUT = 60.0  # seconds


class Commitment(str, Enum):
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _COMMITMENT_RANK[self]

    def satisfies(self, required: Commitment) -> bool:
        """True if a status at this level meets `required`."""
        return self.rank >= required.rank


_COMMITMENT_RANK = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}


@dataclass
class TransactionOutcome:
    """Result of submitting (and confirming) one transaction."""

    success: bool
    signature: str | None = None
    error: ErrorKind | None = None
    error_message: str | None = None
    confirmed_details: dict | None = None


class LedgerClient:
    """Async Solana RPC client over httpx."""

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: Commitment = Commitment.FINALIZED,
        timeout: float = 30.0,
    ) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._http = httpx.AsyncClient(timeout=timeout)

    @property
    def commitment(self) -> Commitment:
        return self._commitment

    # ─── JSON-RPC plumbing ───────────────────────────────────────────

    async def _rpc(self, method: str, params: list, *, retry: bool = True) -> Any:
        """POST one JSON-RPC call and return its `result`.

        RPC-level errors raise SubmissionRejectedError; HTTP/transport
        failures raise TransportError once retries are spent.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        attempts = MAX_RETRIES + 1 if retry else 1
        last_error = ""

        for attempt in range(attempts):
            try:
                resp = await self._http.post(self._rpc_url, json=payload)
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt < attempts - 1:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[LEDGER] {method} {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                break

            if resp.status_code == 429 or resp.status_code >= 500:
                last_error = f"HTTP {resp.status_code}"
                if attempt < attempts - 1:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[LEDGER] {method} HTTP {resp.status_code}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                break

            if resp.status_code != 200:
                raise TransportError(f"{method} unexpected HTTP {resp.status_code}")

            try:
                data = resp.json()
            except ValueError as e:
                raise TransportError(f"{method} HTTP 200: non-JSON body") from e
            if "error" in data:
                error = data["error"]
                code = error.get("code", "?")
                msg = error.get("message", str(error))
                logger.warning(f"[LEDGER] {method} RPC error {code}: {msg}")
                raise SubmissionRejectedError(f"{method} RPC error {code}: {msg}")
            return data.get("result")

        logger.warning(f"[LEDGER] {method} failed: {last_error}")
        raise TransportError(f"{method} failed: {last_error}")

    # ─── Reads ───────────────────────────────────────────────────────

    async def fetch_account(
        self,
        address: Pubkey | str,
        commitment: Commitment | None = None,
    ) -> bytes | None:
        """Raw account data, or None if the account does not exist."""
        result = await self._rpc(
            "getAccountInfo",
            [
                str(address),
                {"encoding": "base64", "commitment": (commitment or self._commitment).value},
            ],
        )
        value = (result or {}).get("value")
        if not value:
            return None
        return base64.b64decode(value["data"][0])

    async def get_latest_blockhash(
        self,
        commitment: Commitment | None = None,
    ) -> tuple[Hash, int]:
        """(blockhash, last_valid_block_height)."""
        result = await self._rpc(
            "getLatestBlockhash",
            [{"commitment": (commitment or self._commitment).value}],
        )
        value = result["value"]
        return Hash.from_string(value["blockhash"]), int(value["lastValidBlockHeight"])

    async def get_signature_status(self, signature: str) -> dict | None:
        result = await self._rpc(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        statuses = (result or {}).get("value") or []
        return statuses[0] if statuses else None

    async def get_transaction(
        self,
        signature: str,
        commitment: Commitment | None = None,
    ) -> dict | None:
        level = commitment or self._commitment
        if level == Commitment.PROCESSED:
            # getTransaction does not accept "processed"
            level = Commitment.CONFIRMED
        return await self._rpc(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": level.value,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    # ─── Submission ──────────────────────────────────────────────────

    async def simulate_transaction(self, tx_bytes: bytes) -> dict | None:
        result = await self._rpc(
            "simulateTransaction",
            [
                base64.b64encode(tx_bytes).decode("ascii"),
                {"encoding": "base64", "commitment": self._commitment.value},
            ],
        )
        return (result or {}).get("value")

    async def submit_transaction(self, tx_bytes: bytes, *, skip_preflight: bool = False) -> str:
        """sendTransaction. Returns the signature; never retried here."""
        result = await self._rpc(
            "sendTransaction",
            [
                base64.b64encode(tx_bytes).decode("ascii"),
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": self._commitment.value,
                },
            ],
            retry=False,
        )
        if not result:
            raise TransportError("sendTransaction returned no signature")
        logger.debug(f"[LEDGER] TX sent: {result}")
        return str(result)

    async def confirm_signature(
        self,
        signature: str,
        commitment: Commitment | None = None,
        *,
        timeout: float = CONFIRM_TIMEOUT,
        poll_interval: float = CONFIRM_POLL_INTERVAL,
    ) -> TransactionOutcome:
        """Poll getSignatureStatuses until `commitment` is reached or timeout."""
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        required = commitment or self._commitment
        elapsed = 0.0
        while elapsed < timeout:
            try:
                status = await self.get_signature_status(signature)
            except SubmissionError as e:
                logger.debug(f"[LEDGER] Status poll failed for {signature[:16]}: {e}")
                status = None

            if status is not None:
                err = status.get("err")
                if err:
                    logger.warning(f"[LEDGER] TX {signature[:16]} error on-chain: {err}")
                    return TransactionOutcome(
                        success=False,
                        signature=signature,
                        error=ErrorKind.SUBMISSION_REJECTED,
                        error_message=str(err),
                    )
                level = status.get("confirmationStatus")
                if level and Commitment(level).satisfies(required):
                    logger.debug(f"[LEDGER] TX {signature[:16]} {level} in {elapsed:.1f}s")
                    return TransactionOutcome(success=True, signature=signature)

            await asyncio.sleep(poll_interval)
            elapsed += poll_interval

        logger.warning(f"[LEDGER] TX {signature[:16]} confirmation timeout after {timeout}s")
        return TransactionOutcome(
            success=False,
            signature=signature,
            error=ErrorKind.SUBMISSION_TIMEOUT,
            error_message=f"Confirmation timeout ({timeout}s)",
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self._http.aclose()
