"""Bundle assembly — tip transaction, chunking to the relay cap, buy randomization."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

import base58
from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import JITO_TIP_ACCOUNTS, LAMPORTS_PER_SOL

# Relay hard cap per submission, tip transaction included
MAX_BUNDLE_SIZE = 4
TIP_ACCOUNT_WINDOW = 4

BUY_JITTER_MIN_PCT = 10
BUY_JITTER_MAX_PCT = 25


def randomize_buy_amount(amount: int, rng: random.Random) -> int:
    """Skew a per-buyer amount by 10–25% so bundled buys are not identical.

    Odd percentages scale up, even ones scale down. The amount is divided by
    100 before scaling, matching the reference integer order.
    """
    pct = rng.randint(BUY_JITTER_MIN_PCT, BUY_JITTER_MAX_PCT)
    factor = 100 + pct if pct % 2 else 100 - pct
    return (amount // 100) * factor


def select_tip_account(
    rng: random.Random,
    window: int = TIP_ACCOUNT_WINDOW,
    pool: tuple[str, ...] = JITO_TIP_ACCOUNTS,
) -> Pubkey:
    """Pick a tip account uniformly from the first `window` entries of the pool."""
    if not pool:
        raise ValueError("No tip account available")
    bounded = pool[: max(1, min(window, len(pool)))]
    return Pubkey.from_string(bounded[rng.randrange(len(bounded))])


@dataclass
class Bundle:
    """One atomic relay submission: tip transaction first, then payload."""

    tip_transaction: VersionedTransaction
    transactions: list[VersionedTransaction] = field(default_factory=list)
    capacity: int = MAX_BUNDLE_SIZE

    def __post_init__(self) -> None:
        if len(self) > self.capacity:
            raise ValueError(f"Bundle of {len(self)} exceeds relay cap {self.capacity}")

    def __len__(self) -> int:
        return 1 + len(self.transactions)

    @property
    def tip_signature(self) -> str:
        return str(self.tip_transaction.signatures[0])

    @property
    def signatures(self) -> list[str]:
        return [self.tip_signature] + [str(tx.signatures[0]) for tx in self.transactions]

    def encoded(self) -> list[str]:
        """Base58-encoded signed transactions in submission order."""
        return [
            base58.b58encode(bytes(tx)).decode("ascii")
            for tx in [self.tip_transaction, *self.transactions]
        ]


class BundleBuilder:
    """Splits payload transactions into relay-sized bundles, each with a tip."""

    def __init__(
        self,
        payer: Keypair,
        tip_lamports: int,
        *,
        max_bundle_size: int = MAX_BUNDLE_SIZE,
        tip_account_window: int = TIP_ACCOUNT_WINDOW,
        rng: random.Random | None = None,
    ) -> None:
        if max_bundle_size < 2:
            raise ValueError("max_bundle_size must leave room for a tip and one payload")
        self._payer = payer
        self._tip_lamports = tip_lamports
        self._max_bundle_size = max_bundle_size
        self._tip_account_window = tip_account_window
        self._rng = rng or random.Random()

    @property
    def chunk_size(self) -> int:
        """Payload transactions per bundle (one slot is the tip)."""
        return self._max_bundle_size - 1

    def chunk(self, txs: list[VersionedTransaction]) -> list[list[VersionedTransaction]]:
        size = self.chunk_size
        return [txs[i : i + size] for i in range(0, len(txs), size)]

    def build_tip_transaction(self, blockhash: Hash) -> VersionedTransaction:
        tip_account = select_tip_account(self._rng, self._tip_account_window)
        logger.debug(
            f"[BUNDLE] Tip {self._tip_lamports / LAMPORTS_PER_SOL:.6f} SOL -> {tip_account}"
        )
        msg = MessageV0.try_compile(
            payer=self._payer.pubkey(),
            instructions=[
                transfer(
                    TransferParams(
                        from_pubkey=self._payer.pubkey(),
                        to_pubkey=tip_account,
                        lamports=self._tip_lamports,
                    )
                )
            ],
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        return VersionedTransaction(msg, [self._payer])

    def build_one(self, txs: list[VersionedTransaction], blockhash: Hash) -> Bundle:
        return Bundle(
            tip_transaction=self.build_tip_transaction(blockhash),
            transactions=list(txs),
            capacity=self._max_bundle_size,
        )

    def build(self, txs: list[VersionedTransaction], blockhash: Hash) -> list[Bundle]:
        """One bundle per chunk; every chunk carries its own tip."""
        return [self.build_one(chunk, blockhash) for chunk in self.chunk(txs)]
