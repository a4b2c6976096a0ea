"""Shared test fixtures: throwaway signers and account blob builders."""

import struct

import pytest
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumpbundler.protocol.accounts import (
    BONDING_CURVE_LAYOUT,
    GLOBAL_ACCOUNT_LAYOUT,
)
from pumpbundler.protocol.constants import (
    BONDING_CURVE_DISCRIMINATOR,
    GLOBAL_ACCOUNT_DISCRIMINATOR,
)

# Mainnet launch parameters
INITIAL_VIRTUAL_TOKEN_RESERVES = 1_073_000_000_000_000
INITIAL_VIRTUAL_SOL_RESERVES = 30_000_000_000
INITIAL_REAL_TOKEN_RESERVES = 793_100_000_000_000
TOKEN_TOTAL_SUPPLY = 1_000_000_000_000_000
FEE_BASIS_POINTS = 100


def make_global_blob(
    *,
    initialized: bool = True,
    authority: Pubkey | None = None,
    fee_recipient: Pubkey | None = None,
    initial_virtual_token_reserves: int = INITIAL_VIRTUAL_TOKEN_RESERVES,
    initial_virtual_sol_reserves: int = INITIAL_VIRTUAL_SOL_RESERVES,
    initial_real_token_reserves: int = INITIAL_REAL_TOKEN_RESERVES,
    token_total_supply: int = TOKEN_TOTAL_SUPPLY,
    fee_basis_points: int = FEE_BASIS_POINTS,
) -> bytes:
    """Serialize a Global account the way the program lays it out."""
    return GLOBAL_ACCOUNT_LAYOUT.pack(
        struct.unpack("<Q", GLOBAL_ACCOUNT_DISCRIMINATOR)[0],
        initialized,
        bytes(authority or Pubkey.default()),
        bytes(fee_recipient or Keypair().pubkey()),
        initial_virtual_token_reserves,
        initial_virtual_sol_reserves,
        initial_real_token_reserves,
        token_total_supply,
        fee_basis_points,
    )


def make_curve_blob(
    *,
    virtual_token_reserves: int = INITIAL_VIRTUAL_TOKEN_RESERVES,
    virtual_sol_reserves: int = INITIAL_VIRTUAL_SOL_RESERVES,
    real_token_reserves: int = INITIAL_REAL_TOKEN_RESERVES,
    real_sol_reserves: int = 0,
    token_total_supply: int = TOKEN_TOTAL_SUPPLY,
    complete: bool = False,
) -> bytes:
    return BONDING_CURVE_LAYOUT.pack(
        struct.unpack("<Q", BONDING_CURVE_DISCRIMINATOR)[0],
        virtual_token_reserves,
        virtual_sol_reserves,
        real_token_reserves,
        real_sol_reserves,
        token_total_supply,
        complete,
    )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def mint() -> Keypair:
    return Keypair()


@pytest.fixture
def blockhash() -> Hash:
    return Hash.new_unique()


@pytest.fixture
def global_blob():
    """Factory for serialized Global accounts."""
    return make_global_blob


@pytest.fixture
def curve_blob():
    """Factory for serialized BondingCurve accounts."""
    return make_curve_blob
