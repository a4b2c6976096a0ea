"""Fee-annotated transaction building and the direct send path.

Every transaction this toolkit signs has the same shape:
  [compute budget ixs] + client fee transfer + payload ixs
"""

from __future__ import annotations

from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from pumpbundler.protocol.exceptions import ErrorKind, SubmissionError
from pumpbundler.protocol.fees import FeeCalculator, PriorityFee
from pumpbundler.trading.ledger import Commitment, LedgerClient, TransactionOutcome


def build_tx(
    instructions: list[Instruction],
    payer: Pubkey,
    signers: list[Keypair],
    blockhash: Hash,
    fee_calculator: FeeCalculator,
    priority_fees: PriorityFee | None = None,
) -> VersionedTransaction:
    """Compile and sign a V0 transaction with the client fee prepended."""
    all_ixs: list[Instruction] = []

    if priority_fees:
        all_ixs.extend(priority_fees.instructions())

    if instructions:
        fee = fee_calculator.calculate_transaction_fee(len(bytes(instructions[0].data)))
        all_ixs.append(fee_calculator.create_fee_instruction(payer, fee))
    else:
        logger.warning("[TX] Transaction has no instructions, skipping fee calculation")

    all_ixs.extend(instructions)

    msg = MessageV0.try_compile(
        payer=payer,
        instructions=all_ixs,
        address_lookup_table_accounts=[],
        recent_blockhash=blockhash,
    )
    tx = VersionedTransaction(msg, signers)

    logger.debug(
        f"[TX] Built {len(all_ixs)} instructions, payer={str(payer)[:12]}, "
        f"blockhash={str(blockhash)[:16]}..."
    )
    return tx


def tx_signature(tx: VersionedTransaction) -> str:
    return str(tx.signatures[0])


async def send_tx(
    ledger: LedgerClient,
    tx: VersionedTransaction,
    commitment: Commitment | None = None,
    finality: Commitment | None = None,
    *,
    simulate: bool = True,
) -> TransactionOutcome:
    """Simulate, submit and confirm one signed transaction.

    Never raises on transport or rejection; the outcome carries the error.
    """
    raw = bytes(tx)
    try:
        if simulate:
            simulation = await ledger.simulate_transaction(raw)
            logger.debug(f"[TX] Simulation: {simulation}")

        signature = await ledger.submit_transaction(raw)
        logger.info(f"[TX] Sent https://solscan.io/tx/{signature}")

        outcome = await ledger.confirm_signature(signature, commitment)
        if not outcome.success:
            return outcome

    except SubmissionError as e:
        logger.warning(f"[TX] Send failed: {e}")
        return TransactionOutcome(
            success=False,
            signature=tx_signature(tx),
            error=e.kind or ErrorKind.TRANSPORT,
            error_message=str(e),
        )

    # Landed either way; details are best-effort
    try:
        outcome.confirmed_details = await ledger.get_transaction(signature, finality)
    except SubmissionError as e:
        logger.warning(f"[TX] getTransaction failed for {signature[:16]}: {e}")
    return outcome
