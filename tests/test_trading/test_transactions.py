"""Tests for build_tx (fee-annotated V0 transactions) and send_tx."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from solders.compute_budget import ID as COMPUTE_BUDGET_ID  # type: ignore[import-untyped]
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.system_program import ID as SYSTEM_PROGRAM_ID  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import PUMP_PROGRAM_ID
from pumpbundler.protocol.exceptions import ErrorKind, SubmissionRejectedError, TransportError
from pumpbundler.protocol.fees import FeeCalculator, PriorityFee
from pumpbundler.protocol.instructions import buy_instruction
from pumpbundler.trading.ledger import LedgerClient, TransactionOutcome
from pumpbundler.trading.transactions import build_tx, send_tx, tx_signature


def _program_ids(tx) -> list:
    msg = tx.message
    return [msg.account_keys[ix.program_id_index] for ix in msg.instructions]


def _buy_ix(buyer: Keypair) -> Instruction:
    return buy_instruction(buyer.pubkey(), Keypair().pubkey(), Keypair().pubkey(), 1_000, 2_000)


@pytest.fixture
def mock_ledger() -> AsyncMock:
    return AsyncMock(spec=LedgerClient)


class TestBuildTx:
    """Instruction ordering and signing."""

    def test_fee_prepended(self, keypair: Keypair, blockhash: Hash):
        tx = build_tx([_buy_ix(keypair)], keypair.pubkey(), [keypair], blockhash, FeeCalculator())
        assert _program_ids(tx) == [SYSTEM_PROGRAM_ID, PUMP_PROGRAM_ID]
        assert tx.message.recent_blockhash == blockhash

    def test_priority_fees_first(self, keypair: Keypair, blockhash: Hash):
        tx = build_tx(
            [_buy_ix(keypair)],
            keypair.pubkey(),
            [keypair],
            blockhash,
            FeeCalculator(),
            PriorityFee(unit_limit=100_000, unit_price=1_000),
        )
        assert _program_ids(tx) == [
            COMPUTE_BUDGET_ID,
            COMPUTE_BUDGET_ID,
            SYSTEM_PROGRAM_ID,
            PUMP_PROGRAM_ID,
        ]

    def test_empty_payload_has_no_fee(self, keypair: Keypair, blockhash: Hash):
        tx = build_tx([], keypair.pubkey(), [keypair], blockhash, FeeCalculator())
        assert len(tx.message.instructions) == 0

    def test_signed_by_payer(self, keypair: Keypair, blockhash: Hash):
        tx = build_tx([_buy_ix(keypair)], keypair.pubkey(), [keypair], blockhash, FeeCalculator())
        assert tx.message.account_keys[0] == keypair.pubkey()
        assert tx_signature(tx) == str(tx.signatures[0])

    def test_same_inputs_same_bytes(self, keypair: Keypair, blockhash: Hash):
        ix = _buy_ix(keypair)
        a = build_tx([ix], keypair.pubkey(), [keypair], blockhash, FeeCalculator())
        b = build_tx([ix], keypair.pubkey(), [keypair], blockhash, FeeCalculator())
        assert bytes(a) == bytes(b)


class TestSendTx:
    """send_tx pipeline: simulate -> submit -> confirm -> details."""

    def _tx(self, keypair: Keypair, blockhash: Hash):
        return build_tx([_buy_ix(keypair)], keypair.pubkey(), [keypair], blockhash, FeeCalculator())

    async def test_success_with_details(self, mock_ledger, keypair, blockhash):
        tx = self._tx(keypair, blockhash)
        sig = tx_signature(tx)
        mock_ledger.simulate_transaction.return_value = {"err": None}
        mock_ledger.submit_transaction.return_value = sig
        mock_ledger.confirm_signature.return_value = TransactionOutcome(success=True, signature=sig)
        mock_ledger.get_transaction.return_value = {"slot": 5}

        outcome = await send_tx(mock_ledger, tx)

        assert outcome.success is True
        assert outcome.confirmed_details == {"slot": 5}
        mock_ledger.submit_transaction.assert_awaited_once_with(bytes(tx))

    async def test_rejected_submission(self, mock_ledger, keypair, blockhash):
        tx = self._tx(keypair, blockhash)
        mock_ledger.simulate_transaction.return_value = {}
        mock_ledger.submit_transaction.side_effect = SubmissionRejectedError("blockhash not found")

        outcome = await send_tx(mock_ledger, tx)

        assert outcome.success is False
        assert outcome.error == ErrorKind.SUBMISSION_REJECTED
        assert outcome.signature == tx_signature(tx)

    async def test_transport_failure(self, mock_ledger, keypair, blockhash):
        tx = self._tx(keypair, blockhash)
        mock_ledger.simulate_transaction.side_effect = TransportError("down")

        outcome = await send_tx(mock_ledger, tx)

        assert outcome.error == ErrorKind.TRANSPORT
        mock_ledger.submit_transaction.assert_not_awaited()

    async def test_unconfirmed_returned_as_is(self, mock_ledger, keypair, blockhash):
        tx = self._tx(keypair, blockhash)
        mock_ledger.submit_transaction.return_value = "sig"
        timeout = TransactionOutcome(success=False, signature="sig", error=ErrorKind.SUBMISSION_TIMEOUT)
        mock_ledger.confirm_signature.return_value = timeout

        outcome = await send_tx(mock_ledger, tx, simulate=False)

        assert outcome is timeout
        mock_ledger.simulate_transaction.assert_not_awaited()
        mock_ledger.get_transaction.assert_not_awaited()

    async def test_details_failure_keeps_success(self, mock_ledger, keypair, blockhash):
        tx = self._tx(keypair, blockhash)
        mock_ledger.submit_transaction.return_value = "sig"
        mock_ledger.confirm_signature.return_value = TransactionOutcome(success=True, signature="sig")
        mock_ledger.get_transaction.side_effect = TransportError("flaky")

        outcome = await send_tx(mock_ledger, tx)

        assert outcome.success is True
        assert outcome.confirmed_details is None
