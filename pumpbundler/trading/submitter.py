"""Bundle submission — one relay round-trip per chunk, confirmed on the ledger.

Pipeline per chunk:
  1. Fresh blockhash for the tip transaction
  2. sendBundle (tip first, then payload)
  3. Wait for accept/reject (bounded; silence counts as failure)
  4. Confirm the tip signature on the ledger

Nothing is retried here: every failure becomes a BundleResult with its
ErrorKind and the top-level RetryDriver decides what happens next.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from pumpbundler.protocol.exceptions import ErrorKind, SubmissionError
from pumpbundler.trading.bundle import BundleBuilder
from pumpbundler.trading.ledger import Commitment, LedgerClient
from pumpbundler.trading.relay import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RESULT_TIMEOUT,
    BundleStatus,
    RelayClient,
)


@dataclass
class BundleResult:
    """Outcome of submitting one chunk, or the aggregate over all chunks."""

    success: bool
    bundle_id: str | None = None
    tip_signature: str | None = None
    error: ErrorKind | None = None
    error_message: str | None = None
    chunk_results: list[BundleResult] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.success


@dataclass
class BundleJob:
    """A logical bundle split into relay-sized chunks, tracked per chunk.

    Confirmed chunks are never resubmitted: their signatures would be
    rejected as duplicates on every later attempt.
    """

    chunks: list[list[VersionedTransaction]]
    confirmed: list[bool] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.confirmed:
            self.confirmed = [False] * len(self.chunks)

    @classmethod
    def from_transactions(cls, txs: list[VersionedTransaction], builder: BundleBuilder) -> BundleJob:
        return cls(chunks=builder.chunk(txs))

    @property
    def pending(self) -> list[int]:
        return [i for i, done in enumerate(self.confirmed) if not done]

    @property
    def done(self) -> bool:
        return all(self.confirmed)

    def mark_confirmed(self, index: int) -> None:
        self.confirmed[index] = True

    def mark_landed(self, signature: str) -> bool:
        """Drop a transaction that already landed through another path.

        A chunk left empty counts as confirmed. Returns True if found.
        """
        for index, chunk in enumerate(self.chunks):
            for tx in chunk:
                if str(tx.signatures[0]) == signature:
                    chunk.remove(tx)
                    if not chunk:
                        self.confirmed[index] = True
                    return True
        return False


class BundleSubmitter:
    """Submits chunks to the relay and confirms them on the ledger."""

    def __init__(
        self,
        ledger: LedgerClient,
        relay: RelayClient,
        builder: BundleBuilder,
        *,
        commitment: Commitment | None = None,
        result_timeout: float = DEFAULT_RESULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._ledger = ledger
        self._relay = relay
        self._builder = builder
        self._commitment = commitment or ledger.commitment
        self._result_timeout = result_timeout
        self._poll_interval = poll_interval

    @property
    def builder(self) -> BundleBuilder:
        return self._builder

    async def submit_chunk(self, txs: list[VersionedTransaction]) -> BundleResult:
        """One atomic submission of up to builder.chunk_size payload transactions."""
        try:
            blockhash, _ = await self._ledger.get_latest_blockhash(Commitment.PROCESSED)
            bundle = self._builder.build_one(txs, blockhash)
            bundle_id = await self._relay.send_bundle(bundle.encoded())
        except SubmissionError as e:
            logger.warning(f"[BUNDLE] Submission failed: {e}")
            return BundleResult(
                success=False,
                error=e.kind or ErrorKind.TRANSPORT,
                error_message=str(e),
            )

        status = await self._relay.wait_for_result(
            bundle_id,
            timeout=self._result_timeout,
            poll_interval=self._poll_interval,
        )
        if status is BundleStatus.REJECTED:
            return BundleResult(
                success=False,
                bundle_id=bundle_id,
                tip_signature=bundle.tip_signature,
                error=ErrorKind.SUBMISSION_REJECTED,
                error_message="Bundle rejected by relay",
            )
        if status is BundleStatus.TIMEOUT:
            return BundleResult(
                success=False,
                bundle_id=bundle_id,
                tip_signature=bundle.tip_signature,
                error=ErrorKind.SUBMISSION_TIMEOUT,
                error_message=f"No bundle result within {self._result_timeout}s",
            )

        try:
            outcome = await self._ledger.confirm_signature(bundle.tip_signature, self._commitment)
        except SubmissionError as e:
            logger.warning(f"[BUNDLE] Confirmation of {bundle_id[:16]} failed: {e}")
            return BundleResult(
                success=False,
                bundle_id=bundle_id,
                tip_signature=bundle.tip_signature,
                error=e.kind or ErrorKind.TRANSPORT,
                error_message=str(e),
            )
        if outcome.success:
            logger.info(f"[BUNDLE] Confirmed bundle {bundle_id[:16]} tip={bundle.tip_signature[:16]}")
        return BundleResult(
            success=outcome.success,
            bundle_id=bundle_id,
            tip_signature=bundle.tip_signature,
            error=outcome.error,
            error_message=outcome.error_message,
        )

    async def submit_pending(self, job: BundleJob) -> BundleResult:
        """Submit every unconfirmed chunk once. Success iff all chunks are confirmed."""
        results: list[BundleResult] = []
        for index in job.pending:
            result = await self.submit_chunk(job.chunks[index])
            if result.success:
                job.mark_confirmed(index)
            results.append(result)

        failed = next((r for r in results if not r.success), None)
        last = results[-1] if results else None
        logger.info(
            f"[BUNDLE] {sum(job.confirmed)}/{len(job.chunks)} chunks confirmed "
            f"({len(results)} submitted this round)"
        )
        return BundleResult(
            success=job.done,
            bundle_id=last.bundle_id if last else None,
            tip_signature=last.tip_signature if last else None,
            error=failed.error if failed else None,
            error_message=failed.error_message if failed else None,
            chunk_results=results,
        )

    async def bundle(self, txs: list[VersionedTransaction]) -> BundleResult:
        """Split into chunks and submit each as an independent atomic group."""
        return await self.submit_pending(BundleJob.from_transactions(txs, self._builder))
