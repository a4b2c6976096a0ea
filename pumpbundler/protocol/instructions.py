"""Pump.fun instruction builders and PDA derivation.

Instruction data is the 8-byte Anchor discriminator followed by borsh args:
  create: string name | string symbol | string uri   (u32 length + utf-8)
  buy:    u64 token_amount | u64 max_sol_cost
  sell:   u64 token_amount | u64 min_sol_output
"""

import struct

from solders.instruction import AccountMeta, Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import ID as SYSTEM_PROGRAM_ID  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BONDING_CURVE_SEED,
    BUY_DISCRIMINATOR,
    CREATE_DISCRIMINATOR,
    EVENT_AUTHORITY_SEED,
    GLOBAL_ACCOUNT_SEED,
    METADATA_SEED,
    MINT_AUTHORITY_SEED,
    MPL_TOKEN_METADATA_PROGRAM_ID,
    PUMP_PROGRAM_ID,
    RENT_SYSVAR_ID,
    SELL_DISCRIMINATOR,
    TOKEN_PROGRAM_ID,
)

# ─── PDA derivation ──────────────────────────────────────────────────


def derive_global_address(program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return Pubkey.find_program_address([GLOBAL_ACCOUNT_SEED], program_id)[0]


def derive_bonding_curve_address(mint: Pubkey, program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return Pubkey.find_program_address([BONDING_CURVE_SEED, bytes(mint)], program_id)[0]


def derive_mint_authority(program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return Pubkey.find_program_address([MINT_AUTHORITY_SEED], program_id)[0]


def derive_event_authority(program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return Pubkey.find_program_address([EVENT_AUTHORITY_SEED], program_id)[0]


def derive_metadata_address(mint: Pubkey) -> Pubkey:
    return Pubkey.find_program_address(
        [METADATA_SEED, bytes(MPL_TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        MPL_TOKEN_METADATA_PROGRAM_ID,
    )[0]


def get_associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Derive Associated Token Account address for a mint."""
    ata, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return ata


def derive_associated_bonding_curve(mint: Pubkey, program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    """The bonding curve's own token account (owner is an off-curve PDA)."""
    return get_associated_token_address(derive_bonding_curve_address(mint, program_id), mint)


# ─── Instructions ────────────────────────────────────────────────────


def _borsh_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def create_ata_idempotent_instruction(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    """createAssociatedTokenAccountIdempotent — no-op if the ATA exists."""
    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(get_associated_token_address(owner, mint), is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    # createIdempotent = instruction index 1 in ATA program
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([1]), accounts)


def create_instruction(
    creator: Pubkey,
    mint: Pubkey,
    name: str,
    symbol: str,
    uri: str,
    program_id: Pubkey = PUMP_PROGRAM_ID,
) -> Instruction:
    """Launch a token: mint + bonding curve + metadata in one instruction.

    The mint keypair must co-sign the transaction.
    """
    data = CREATE_DISCRIMINATOR + _borsh_string(name) + _borsh_string(symbol) + _borsh_string(uri)
    bonding_curve = derive_bonding_curve_address(mint, program_id)

    accounts = [
        AccountMeta(mint, is_signer=True, is_writable=True),
        AccountMeta(derive_mint_authority(program_id), is_signer=False, is_writable=False),
        AccountMeta(bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True),
        AccountMeta(derive_global_address(program_id), is_signer=False, is_writable=False),
        AccountMeta(MPL_TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(derive_metadata_address(mint), is_signer=False, is_writable=True),
        AccountMeta(creator, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        AccountMeta(derive_event_authority(program_id), is_signer=False, is_writable=False),
        AccountMeta(program_id, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def buy_instruction(
    buyer: Pubkey,
    mint: Pubkey,
    fee_recipient: Pubkey,
    token_amount: int,
    max_sol_cost: int,
    program_id: Pubkey = PUMP_PROGRAM_ID,
) -> Instruction:
    """Buy exactly `token_amount` tokens, spending at most `max_sol_cost` lamports."""
    data = BUY_DISCRIMINATOR + struct.pack("<QQ", token_amount, max_sol_cost)
    bonding_curve = derive_bonding_curve_address(mint, program_id)

    # 12 accounts in order (from IDL)
    accounts = [
        AccountMeta(derive_global_address(program_id), is_signer=False, is_writable=False),
        AccountMeta(fee_recipient, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(buyer, mint), is_signer=False, is_writable=True),
        AccountMeta(buyer, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
        AccountMeta(derive_event_authority(program_id), is_signer=False, is_writable=False),
        AccountMeta(program_id, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def sell_instruction(
    seller: Pubkey,
    mint: Pubkey,
    fee_recipient: Pubkey,
    token_amount: int,
    min_sol_output: int,
    program_id: Pubkey = PUMP_PROGRAM_ID,
) -> Instruction:
    """Sell `token_amount` tokens for at least `min_sol_output` lamports."""
    data = SELL_DISCRIMINATOR + struct.pack("<QQ", token_amount, min_sol_output)
    bonding_curve = derive_bonding_curve_address(mint, program_id)

    accounts = [
        AccountMeta(derive_global_address(program_id), is_signer=False, is_writable=False),
        AccountMeta(fee_recipient, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(bonding_curve, is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(bonding_curve, mint), is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(seller, mint), is_signer=False, is_writable=True),
        AccountMeta(seller, is_signer=True, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(derive_event_authority(program_id), is_signer=False, is_writable=False),
        AccountMeta(program_id, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)
