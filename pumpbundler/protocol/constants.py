"""Pump.fun program constants — ids, PDA seeds, Anchor discriminators, tip pool."""

import hashlib
from decimal import Decimal

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

# Pump.fun bonding-curve program
PUMP_PROGRAM_ID = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
MPL_TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string(
    "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
)

# SPL / sysvar ids
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)
RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

# PDA seeds
GLOBAL_ACCOUNT_SEED = b"global"
MINT_AUTHORITY_SEED = b"mint-authority"
BONDING_CURVE_SEED = b"bonding-curve"
METADATA_SEED = b"metadata"
EVENT_AUTHORITY_SEED = b"__event_authority"

DEFAULT_DECIMALS = 6
LAMPORTS_PER_SOL = 1_000_000_000
BASIS_POINTS_DENOMINATOR = 10_000


def _anchor_discriminator(namespace: str, name: str) -> bytes:
    """First 8 bytes of sha256("<namespace>:<name>") — Anchor's type tag."""
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


# 8-byte Anchor instruction discriminators
CREATE_DISCRIMINATOR = _anchor_discriminator("global", "create")
BUY_DISCRIMINATOR = _anchor_discriminator("global", "buy")
SELL_DISCRIMINATOR = _anchor_discriminator("global", "sell")

# 8-byte Anchor account discriminators
GLOBAL_ACCOUNT_DISCRIMINATOR = _anchor_discriminator("account", "Global")
BONDING_CURVE_DISCRIMINATOR = _anchor_discriminator("account", "BondingCurve")

# 8-byte Anchor event discriminators
CREATE_EVENT_DISCRIMINATOR = _anchor_discriminator("event", "CreateEvent")
TRADE_EVENT_DISCRIMINATOR = _anchor_discriminator("event", "TradeEvent")
COMPLETE_EVENT_DISCRIMINATOR = _anchor_discriminator("event", "CompleteEvent")
SET_PARAMS_EVENT_DISCRIMINATOR = _anchor_discriminator("event", "SetParamsEvent")

# Client-side fee (separate from the program's own fee_basis_points)
DEFAULT_FEE_RECIPIENT = Pubkey.from_string("HnE7hxHwj6J49rhvrPGZfyfYw8YEWhV3BPV2X7yDXRdv")
TRANSACTION_FEE_PERCENT = Decimal("0.01")
CREATION_FEE = LAMPORTS_PER_SOL // 100  # 0.01 SOL

# Static Jito tip accounts
JITO_TIP_ACCOUNTS: tuple[str, ...] = (
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
)
