"""Client fee derivation, slippage bounds and priority-fee instructions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from solders.compute_budget import (  # type: ignore[import-untyped]
    set_compute_unit_limit,
    set_compute_unit_price,
)
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import (
    BASIS_POINTS_DENOMINATOR,
    DEFAULT_FEE_RECIPIENT,
    TRANSACTION_FEE_PERCENT,
)


def calculate_with_slippage_buy(amount: int, basis_points: int) -> int:
    """Widen a spend ceiling by `basis_points`."""
    return amount + (amount * basis_points) // BASIS_POINTS_DENOMINATOR


def calculate_with_slippage_sell(amount: int, basis_points: int) -> int:
    """Narrow a minimum acceptable output by `basis_points`."""
    return amount - (amount * basis_points) // BASIS_POINTS_DENOMINATOR


@dataclass(frozen=True)
class PriorityFee:
    """Compute-unit limit and price (micro-lamports per CU)."""

    unit_limit: int
    unit_price: int

    def instructions(self) -> list[Instruction]:
        return [
            set_compute_unit_limit(self.unit_limit),
            set_compute_unit_price(self.unit_price),
        ]


@dataclass(frozen=True)
class FeeCalculator:
    """Client fee charged on every transaction this toolkit builds.

    The fee is a fraction of the first payload instruction's data size and is
    paid to `fee_recipient` by a transfer placed ahead of the payload.
    """

    fee_recipient: Pubkey = DEFAULT_FEE_RECIPIENT
    fee_percent: Decimal = TRANSACTION_FEE_PERCENT

    def calculate_transaction_fee(self, size: int | None) -> int:
        if size is None:
            return 0
        return int(Decimal(size) * self.fee_percent)

    def create_fee_instruction(self, payer: Pubkey, amount: int) -> Instruction:
        return transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=self.fee_recipient,
                lamports=amount,
            )
        )
