from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_COMMITMENTS = ("processed", "confirmed", "finalized")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Solana RPC + WebSocket
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    ws_url: str = "wss://api.mainnet-beta.solana.com"
    commitment: str = "finalized"

    # Jito block engine
    block_engine_url: str = "https://mainnet.block-engine.jito.wtf/api/v1/bundles"
    jito_tip_lamports: int = 1_000_000  # 0.001 SOL per bundle chunk
    tip_account_window: int = 4  # Only the first N tip accounts are used
    max_bundle_size: int = 4  # Relay cap, tip tx included
    bundle_result_timeout_sec: float = 30.0
    bundle_status_poll_sec: float = 1.0

    # Bundle resubmission (0 = retry until confirmed)
    bundle_max_attempts: int = 0
    bundle_retry_delay_sec: float = 0.0
    bundle_retry_backoff: float = 2.0
    bundle_retry_max_delay_sec: float = 30.0

    # Slippage (basis points)
    buy_slippage_bps: int = 500
    sell_slippage_bps: int = 500
    create_slippage_bps: int = 300

    # Compute budget (0 = no compute-budget instructions)
    priority_unit_limit: int = 0
    priority_unit_price: int = 0  # micro-lamports per CU

    # Client fee
    fee_recipient: str = "HnE7hxHwj6J49rhvrPGZfyfYw8YEWhV3BPV2X7yDXRdv"
    transaction_fee_percent: float = 0.01

    # Pump.fun
    program_id: str = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
    metadata_upload_url: str = "https://pump.fun/api/ipfs"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    json_logs: bool = False

    @field_validator("commitment")
    @classmethod
    def _check_commitment(cls, v: str) -> str:
        v = v.lower()
        if v not in _COMMITMENTS:
            raise ValueError(f"commitment must be one of {_COMMITMENTS}")
        return v

    @field_validator("buy_slippage_bps", "sell_slippage_bps", "create_slippage_bps")
    @classmethod
    def _check_bps(cls, v: int) -> int:
        if not 0 <= v <= 10_000:
            raise ValueError("slippage must be within 0..10000 bps")
        return v

    @field_validator("bundle_status_poll_sec", "bundle_result_timeout_sec")
    @classmethod
    def _check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @property
    def priority_fees_enabled(self) -> bool:
        return self.priority_unit_limit > 0 or self.priority_unit_price > 0


settings = Settings()
