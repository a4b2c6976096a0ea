"""PumpFunClient — account getters, buy/sell, and the bundled launch.

create_and_buy flow:
  1. Upload metadata (unless a URI is given)
  2. Fetch GlobalParameters once, one blockhash for every payload tx
  3. Sign the create tx once, sign one buy tx per buyer
  4. Send the create tx directly
  5. Bundle [create, *buys] through the RetryDriver until confirmed
"""

from __future__ import annotations

import asyncio
import random
from decimal import Decimal
from typing import TYPE_CHECKING

from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from pumpbundler.protocol.accounts import BondingCurveState, GlobalParameters
from pumpbundler.protocol.constants import LAMPORTS_PER_SOL, PUMP_PROGRAM_ID
from pumpbundler.protocol.events import EventCallback, EventKind, EventRegistry
from pumpbundler.protocol.exceptions import AccountNotFoundError, SubmissionError
from pumpbundler.protocol.fees import (
    FeeCalculator,
    PriorityFee,
    calculate_with_slippage_buy,
    calculate_with_slippage_sell,
)
from pumpbundler.protocol.instructions import (
    buy_instruction,
    create_ata_idempotent_instruction,
    create_instruction,
    derive_bonding_curve_address,
    derive_global_address,
    sell_instruction,
)
from pumpbundler.trading.bundle import (
    MAX_BUNDLE_SIZE,
    TIP_ACCOUNT_WINDOW,
    BundleBuilder,
    randomize_buy_amount,
)
from pumpbundler.trading.ledger import Commitment, LedgerClient, TransactionOutcome
from pumpbundler.trading.metadata import CreateTokenMetadata, MetadataUploader
from pumpbundler.trading.relay import DEFAULT_POLL_INTERVAL, DEFAULT_RESULT_TIMEOUT, RelayClient
from pumpbundler.trading.retry import RetryDriver, RetryPolicy
from pumpbundler.trading.submitter import BundleJob, BundleResult, BundleSubmitter
from pumpbundler.trading.subscriber import LogSubscriber
from pumpbundler.trading.transactions import build_tx, send_tx, tx_signature

if TYPE_CHECKING:
    from config.settings import Settings

DEFAULT_BUY_SLIPPAGE_BPS = 500
DEFAULT_SELL_SLIPPAGE_BPS = 500
DEFAULT_CREATE_SLIPPAGE_BPS = 300
DEFAULT_TIP_LAMPORTS = 1_000_000


class PumpFunClient:
    """High-level client over the ledger, the relay and the metadata endpoint."""

    def __init__(
        self,
        ledger: LedgerClient,
        relay: RelayClient,
        *,
        fee_calculator: FeeCalculator | None = None,
        metadata_uploader: MetadataUploader | None = None,
        program_id: Pubkey = PUMP_PROGRAM_ID,
        tip_lamports: int = DEFAULT_TIP_LAMPORTS,
        max_bundle_size: int = MAX_BUNDLE_SIZE,
        tip_account_window: int = TIP_ACCOUNT_WINDOW,
        result_timeout: float = DEFAULT_RESULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        retry_policy: RetryPolicy | None = None,
        ws_url: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._ledger = ledger
        self._relay = relay
        self._fees = fee_calculator or FeeCalculator()
        self._metadata = metadata_uploader or MetadataUploader()
        self._program_id = program_id
        self._tip_lamports = tip_lamports
        self._max_bundle_size = max_bundle_size
        self._tip_account_window = tip_account_window
        self._result_timeout = result_timeout
        self._poll_interval = poll_interval
        self._retry_policy = retry_policy or RetryPolicy()
        self._ws_url = ws_url
        self._rng = rng or random.Random()
        self._events = EventRegistry()

    @classmethod
    def from_settings(cls, settings: Settings) -> PumpFunClient:
        ledger = LedgerClient(settings.rpc_url, commitment=Commitment(settings.commitment))
        return cls(
            ledger,
            RelayClient(settings.block_engine_url),
            fee_calculator=FeeCalculator(
                fee_recipient=Pubkey.from_string(settings.fee_recipient),
                fee_percent=Decimal(str(settings.transaction_fee_percent)),
            ),
            metadata_uploader=MetadataUploader(settings.metadata_upload_url),
            program_id=Pubkey.from_string(settings.program_id),
            tip_lamports=settings.jito_tip_lamports,
            max_bundle_size=settings.max_bundle_size,
            tip_account_window=settings.tip_account_window,
            result_timeout=settings.bundle_result_timeout_sec,
            poll_interval=settings.bundle_status_poll_sec,
            retry_policy=RetryPolicy.from_settings(settings),
            ws_url=settings.ws_url,
        )

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    @property
    def events(self) -> EventRegistry:
        return self._events

    # ─── Accounts ────────────────────────────────────────────────────

    async def get_global_parameters(self, commitment: Commitment | None = None) -> GlobalParameters:
        address = derive_global_address(self._program_id)
        data = await self._ledger.fetch_account(address, commitment)
        if data is None:
            raise AccountNotFoundError(f"Global account not found: {address}")
        return GlobalParameters.from_bytes(data)

    async def get_bonding_curve_state(
        self,
        mint: Pubkey,
        commitment: Commitment | None = None,
    ) -> BondingCurveState | None:
        data = await self._ledger.fetch_account(
            derive_bonding_curve_address(mint, self._program_id), commitment
        )
        if data is None:
            return None
        return BondingCurveState.from_bytes(data)

    # ─── Instruction sets ────────────────────────────────────────────

    async def get_buy_instructions_by_sol_amount(
        self,
        buyer: Pubkey,
        mint: Pubkey,
        buy_amount_sol: int,
        slippage_bps: int = DEFAULT_BUY_SLIPPAGE_BPS,
        commitment: Commitment | None = None,
    ) -> list[Instruction]:
        curve = await self.get_bonding_curve_state(mint, commitment)
        if curve is None:
            raise AccountNotFoundError(f"Bonding curve account not found: {mint}")

        token_amount = curve.get_buy_price(buy_amount_sol)
        max_sol_cost = calculate_with_slippage_buy(buy_amount_sol, slippage_bps)
        global_params = await self.get_global_parameters(commitment)
        return self._buy_instructions(
            buyer, mint, global_params.fee_recipient, token_amount, max_sol_cost
        )

    async def get_sell_instructions_by_token_amount(
        self,
        seller: Pubkey,
        mint: Pubkey,
        sell_token_amount: int,
        slippage_bps: int = DEFAULT_SELL_SLIPPAGE_BPS,
        commitment: Commitment | None = None,
    ) -> list[Instruction]:
        curve = await self.get_bonding_curve_state(mint, commitment)
        if curve is None:
            raise AccountNotFoundError(f"Bonding curve account not found: {mint}")

        global_params = await self.get_global_parameters(commitment)
        min_sol_output = calculate_with_slippage_sell(
            curve.get_sell_price(sell_token_amount, global_params.fee_basis_points),
            slippage_bps,
        )
        return [
            sell_instruction(
                seller,
                mint,
                global_params.fee_recipient,
                sell_token_amount,
                min_sol_output,
                self._program_id,
            )
        ]

    def _buy_instructions(
        self,
        buyer: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        token_amount: int,
        max_sol_cost: int,
    ) -> list[Instruction]:
        return [
            create_ata_idempotent_instruction(buyer, buyer, mint),
            buy_instruction(buyer, mint, fee_recipient, token_amount, max_sol_cost, self._program_id),
        ]

    # ─── Single-transaction trades ───────────────────────────────────

    async def _send(
        self,
        instructions: list[Instruction],
        payer: Keypair,
        signers: list[Keypair],
        priority_fees: PriorityFee | None,
        commitment: Commitment | None,
        finality: Commitment | None,
    ) -> TransactionOutcome:
        blockhash, _ = await self._ledger.get_latest_blockhash(commitment)
        tx = build_tx(instructions, payer.pubkey(), signers, blockhash, self._fees, priority_fees)
        return await send_tx(self._ledger, tx, commitment, finality)

    async def buy(
        self,
        buyer: Keypair,
        mint: Pubkey,
        buy_amount_sol: int,
        slippage_bps: int = DEFAULT_BUY_SLIPPAGE_BPS,
        priority_fees: PriorityFee | None = None,
        commitment: Commitment | None = None,
        finality: Commitment | None = None,
    ) -> TransactionOutcome:
        ixs = await self.get_buy_instructions_by_sol_amount(
            buyer.pubkey(), mint, buy_amount_sol, slippage_bps, commitment
        )
        logger.info(
            f"[SDK] Buy {buy_amount_sol / LAMPORTS_PER_SOL:.4f} SOL of {str(mint)[:12]} "
            f"by {str(buyer.pubkey())[:12]}"
        )
        return await self._send(ixs, buyer, [buyer], priority_fees, commitment, finality)

    async def sell(
        self,
        seller: Keypair,
        mint: Pubkey,
        sell_token_amount: int,
        slippage_bps: int = DEFAULT_SELL_SLIPPAGE_BPS,
        priority_fees: PriorityFee | None = None,
        commitment: Commitment | None = None,
        finality: Commitment | None = None,
    ) -> TransactionOutcome:
        ixs = await self.get_sell_instructions_by_token_amount(
            seller.pubkey(), mint, sell_token_amount, slippage_bps, commitment
        )
        logger.info(
            f"[SDK] Sell {sell_token_amount} tokens of {str(mint)[:12]} by {str(seller.pubkey())[:12]}"
        )
        return await self._send(ixs, seller, [seller], priority_fees, commitment, finality)

    # ─── Bundled launch ──────────────────────────────────────────────

    def _build_launch_transactions(
        self,
        creator: Keypair,
        mint: Keypair,
        buyers: list[Keypair],
        name: str,
        symbol: str,
        uri: str,
        global_params: GlobalParameters,
        buy_amount_sol: int,
        slippage_bps: int,
        blockhash: Hash,
        priority_fees: PriorityFee | None,
    ) -> tuple[VersionedTransaction, list[VersionedTransaction]]:
        create_ix = create_instruction(
            creator.pubkey(), mint.pubkey(), name, symbol, uri, self._program_id
        )
        create_tx = build_tx(
            [create_ix], creator.pubkey(), [creator, mint], blockhash, self._fees, priority_fees
        )

        buy_txs: list[VersionedTransaction] = []
        if buy_amount_sol <= 0:
            return create_tx, buy_txs

        for buyer in buyers:
            amount = randomize_buy_amount(buy_amount_sol, self._rng)
            # The curve does not exist yet: price against the launch parameters
            token_amount = global_params.get_initial_buy_price(amount)
            max_sol_cost = calculate_with_slippage_buy(amount, slippage_bps)
            ixs = self._buy_instructions(
                buyer.pubkey(), mint.pubkey(), global_params.fee_recipient, token_amount, max_sol_cost
            )
            buy_txs.append(
                build_tx(ixs, buyer.pubkey(), [buyer], blockhash, self._fees, priority_fees)
            )
            logger.debug(
                f"[BUNDLE] Buyer {str(buyer.pubkey())[:12]}: {amount} lamports -> {token_amount} tokens"
            )
        return create_tx, buy_txs

    async def _create_landed(self, signature: str) -> bool:
        try:
            status = await self._ledger.get_signature_status(signature)
        except SubmissionError as e:
            logger.debug(f"[SDK] Create status check failed: {e}")
            return False
        return status is not None and status.get("err") is None

    async def create_and_buy(
        self,
        creator: Keypair,
        mint: Keypair,
        buyers: list[Keypair],
        metadata: CreateTokenMetadata,
        buy_amount_sol: int,
        slippage_bps: int = DEFAULT_CREATE_SLIPPAGE_BPS,
        priority_fees: PriorityFee | None = None,
        cancel: asyncio.Event | None = None,
        metadata_uri: str | None = None,
        commitment: Commitment | None = None,
    ) -> BundleResult:
        """Launch a token and bundle the buyers' purchases behind it.

        Retries per the client's RetryPolicy (unbounded by default) until
        every chunk is confirmed. Raises RetryExhaustedError or
        RetryCancelledError when a bounded policy or the cancel signal stops it.
        """
        if metadata_uri is None:
            uploaded = await self._metadata.upload(metadata)
            metadata_uri = uploaded.metadata_uri

        global_params = await self.get_global_parameters(commitment)
        blockhash, _ = await self._ledger.get_latest_blockhash(commitment)
        create_tx, buy_txs = self._build_launch_transactions(
            creator,
            mint,
            buyers,
            metadata.name,
            metadata.symbol,
            metadata_uri,
            global_params,
            buy_amount_sol,
            slippage_bps,
            blockhash,
            priority_fees,
        )
        create_sig = tx_signature(create_tx)
        logger.info(
            f"[SDK] Launching {metadata.symbol} mint={mint.pubkey()} "
            f"with {len(buy_txs)} buyers, create={create_sig[:16]}"
        )

        direct = await send_tx(self._ledger, create_tx, commitment)
        if not direct.success:
            logger.warning(f"[SDK] Direct create send not confirmed: {direct.error_message}")

        builder = BundleBuilder(
            creator,
            self._tip_lamports,
            max_bundle_size=self._max_bundle_size,
            tip_account_window=self._tip_account_window,
            rng=self._rng,
        )
        submitter = BundleSubmitter(
            self._ledger,
            self._relay,
            builder,
            commitment=commitment,
            result_timeout=self._result_timeout,
            poll_interval=self._poll_interval,
        )
        job = BundleJob.from_transactions([create_tx, *buy_txs], builder)
        create_done = False

        async def attempt() -> BundleResult:
            nonlocal create_done
            if not create_done and (direct.success or await self._create_landed(create_sig)):
                create_done = job.mark_landed(create_sig)
                if job.done:
                    return BundleResult(success=True)
            return await submitter.submit_pending(job)

        return await RetryDriver(self._retry_policy).run(attempt, cancel=cancel)

    # ─── Events ──────────────────────────────────────────────────────

    def add_event_listener(self, kind: EventKind, callback: EventCallback) -> int:
        return self._events.subscribe(kind, callback)

    def remove_event_listener(self, listener_id: int) -> bool:
        return self._events.unsubscribe(listener_id)

    def subscriber(self) -> LogSubscriber:
        if not self._ws_url:
            raise ValueError("WebSocket URL is not configured")
        return LogSubscriber(self._ws_url, self._events, program_id=self._program_id)

    async def close(self) -> None:
        await self._ledger.close()
        await self._relay.close()
        await self._metadata.close()
