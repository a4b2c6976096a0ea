"""Tests for slippage bounds, the client fee and priority-fee instructions."""

from __future__ import annotations

from decimal import Decimal

from solders.compute_budget import ID as COMPUTE_BUDGET_ID  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.system_program import ID as SYSTEM_PROGRAM_ID  # type: ignore[import-untyped]
from solders.system_program import decode_transfer  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import DEFAULT_FEE_RECIPIENT
from pumpbundler.protocol.fees import (
    FeeCalculator,
    PriorityFee,
    calculate_with_slippage_buy,
    calculate_with_slippage_sell,
)


class TestSlippage:
    """Integer slippage helpers."""

    def test_buy_widens(self):
        assert calculate_with_slippage_buy(1000, 500) == 1050

    def test_sell_narrows(self):
        assert calculate_with_slippage_sell(1000, 500) == 950

    def test_zero_bps_is_noop(self):
        assert calculate_with_slippage_buy(123_456, 0) == 123_456
        assert calculate_with_slippage_sell(123_456, 0) == 123_456

    def test_truncates(self):
        # 999 * 300 // 10000 = 29
        assert calculate_with_slippage_buy(999, 300) == 1028
        assert calculate_with_slippage_sell(999, 300) == 970


class TestFeeCalculator:
    """Client fee derivation and transfer instruction."""

    def test_defaults(self):
        calc = FeeCalculator()
        assert calc.fee_recipient == DEFAULT_FEE_RECIPIENT
        assert calc.fee_percent == Decimal("0.01")

    def test_fee_of_absent_size_is_zero(self):
        assert FeeCalculator().calculate_transaction_fee(None) == 0

    def test_fee_floors(self):
        calc = FeeCalculator()
        assert calc.calculate_transaction_fee(100) == 1
        assert calc.calculate_transaction_fee(99) == 0
        assert calc.calculate_transaction_fee(250) == 2

    def test_custom_rate(self):
        calc = FeeCalculator(fee_percent=Decimal("0.5"))
        assert calc.calculate_transaction_fee(25) == 12

    def test_fee_instruction_pays_recipient(self):
        payer = Keypair().pubkey()
        recipient = Keypair().pubkey()
        ix = FeeCalculator(fee_recipient=recipient).create_fee_instruction(payer, 7)
        assert ix.program_id == SYSTEM_PROGRAM_ID
        params = decode_transfer(ix)
        assert params["from_pubkey"] == payer
        assert params["to_pubkey"] == recipient
        assert params["lamports"] == 7


class TestPriorityFee:
    """Compute-budget instructions."""

    def test_two_compute_budget_instructions(self):
        ixs = PriorityFee(unit_limit=200_000, unit_price=5_000).instructions()
        assert len(ixs) == 2
        assert all(ix.program_id == COMPUTE_BUDGET_ID for ix in ixs)
