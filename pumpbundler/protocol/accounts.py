"""Pump.fun on-chain account decoding and bonding-curve pricing.

Layouts are fixed-offset little-endian (Anchor/borsh, no padding):

  Global:       u64 discriminator | bool initialized | 32B authority |
                32B fee_recipient | u64 initial_virtual_token_reserves |
                u64 initial_virtual_sol_reserves | u64 initial_real_token_reserves |
                u64 token_total_supply | u64 fee_basis_points          (113 bytes)
  BondingCurve: u64 discriminator | u64 virtual_token_reserves |
                u64 virtual_sol_reserves | u64 real_token_reserves |
                u64 real_sol_reserves | u64 token_total_supply | bool complete (49 bytes)

All arithmetic is integer and must agree with the program bit-for-bit:
`//` truncates exactly like the program's u64 division for the
non-negative operands used here.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import (
    BASIS_POINTS_DENOMINATOR,
    BONDING_CURVE_DISCRIMINATOR,
    DEFAULT_DECIMALS,
    GLOBAL_ACCOUNT_DISCRIMINATOR,
    LAMPORTS_PER_SOL,
)
from pumpbundler.protocol.exceptions import (
    AccountDecodeError,
    CurveArithmeticError,
    CurveCompleteError,
)

GLOBAL_ACCOUNT_LAYOUT = struct.Struct("<Q?32s32sQQQQQ")
BONDING_CURVE_LAYOUT = struct.Struct("<QQQQQQ?")


@dataclass(frozen=True)
class GlobalParameters:
    """Protocol-wide launch constants. Read-only snapshot per fetch."""

    discriminator: int
    initialized: bool
    authority: Pubkey
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int

    @classmethod
    def from_bytes(cls, data: bytes, *, strict: bool = False) -> GlobalParameters:
        """Decode a Global account blob.

        Trailing bytes are ignored (newer program versions append fields).
        With strict=True the Anchor discriminator must match.
        """
        if len(data) < GLOBAL_ACCOUNT_LAYOUT.size:
            raise AccountDecodeError(
                f"Global account too short: {len(data)} < {GLOBAL_ACCOUNT_LAYOUT.size} bytes"
            )
        (
            discriminator,
            initialized,
            authority,
            fee_recipient,
            initial_virtual_token_reserves,
            initial_virtual_sol_reserves,
            initial_real_token_reserves,
            token_total_supply,
            fee_basis_points,
        ) = GLOBAL_ACCOUNT_LAYOUT.unpack_from(data, 0)

        if strict and data[:8] != GLOBAL_ACCOUNT_DISCRIMINATOR:
            raise AccountDecodeError("Not a Global account (discriminator mismatch)")
        if fee_basis_points > BASIS_POINTS_DENOMINATOR:
            raise AccountDecodeError(f"fee_basis_points out of range: {fee_basis_points}")

        return cls(
            discriminator=discriminator,
            initialized=initialized,
            authority=Pubkey.from_bytes(authority),
            fee_recipient=Pubkey.from_bytes(fee_recipient),
            initial_virtual_token_reserves=initial_virtual_token_reserves,
            initial_virtual_sol_reserves=initial_virtual_sol_reserves,
            initial_real_token_reserves=initial_real_token_reserves,
            token_total_supply=token_total_supply,
            fee_basis_points=fee_basis_points,
        )

    def get_initial_buy_price(self, amount: int) -> int:
        """Tokens received for `amount` lamports on a curve that does not exist yet."""
        if amount <= 0:
            return 0

        n = self.initial_virtual_sol_reserves * self.initial_virtual_token_reserves
        i = self.initial_virtual_sol_reserves + amount
        r = n // i + 1
        s = self.initial_virtual_token_reserves - r
        return min(s, self.initial_real_token_reserves)


@dataclass(frozen=True)
class BondingCurveState:
    """Point-in-time reserve snapshot of one token's bonding curve.

    Not a live handle: re-fetch for every quote.
    """

    discriminator: int
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool

    @classmethod
    def from_bytes(cls, data: bytes, *, strict: bool = False) -> BondingCurveState:
        if len(data) < BONDING_CURVE_LAYOUT.size:
            raise AccountDecodeError(
                f"Bonding curve account too short: {len(data)} < {BONDING_CURVE_LAYOUT.size} bytes"
            )
        if strict and data[:8] != BONDING_CURVE_DISCRIMINATOR:
            raise AccountDecodeError("Not a BondingCurve account (discriminator mismatch)")

        return cls(*BONDING_CURVE_LAYOUT.unpack_from(data, 0))

    def _ensure_open(self) -> None:
        if self.complete:
            raise CurveCompleteError()

    def get_buy_price(self, amount: int) -> int:
        """Tokens received for spending `amount` lamports.

        The +1 on the new token reserve biases rounding in the pool's favour.
        """
        self._ensure_open()
        if amount <= 0:
            return 0

        n = self.virtual_sol_reserves * self.virtual_token_reserves
        i = self.virtual_sol_reserves + amount
        r = n // i + 1
        s = self.virtual_token_reserves - r
        return min(s, self.real_token_reserves)

    def get_sell_price(self, amount: int, fee_basis_points: int) -> int:
        """Net lamports received for selling `amount` tokens, after the program fee."""
        self._ensure_open()
        if amount <= 0:
            return 0

        n = (amount * self.virtual_sol_reserves) // (self.virtual_token_reserves + amount)
        a = (n * fee_basis_points) // BASIS_POINTS_DENOMINATOR
        return n - a

    def get_market_cap_sol(self) -> int:
        """Current market cap in lamports."""
        if self.virtual_token_reserves == 0:
            return 0
        return (self.token_total_supply * self.virtual_sol_reserves) // self.virtual_token_reserves

    def get_final_market_cap_sol(self, fee_basis_points: int) -> int:
        """Projected market cap in lamports once every real token is bought out."""
        total_sell_value = self.get_buy_out_price(self.real_token_reserves, fee_basis_points)
        total_virtual_value = self.virtual_sol_reserves + total_sell_value
        total_virtual_tokens = self.virtual_token_reserves - self.real_token_reserves

        if total_virtual_tokens == 0:
            return 0
        return (self.token_total_supply * total_virtual_value) // total_virtual_tokens

    def get_buy_out_price(self, amount: int, fee_basis_points: int) -> int:
        """Lamports needed to buy out `amount` tokens, fee included.

        NOTE: the floor compares a token amount against real_sol_reserves.
        The program does the same, so the unit mix is kept as-is.
        """
        sol_tokens = max(amount, self.real_sol_reserves)
        remaining = self.virtual_token_reserves - sol_tokens
        if remaining <= 0:
            raise CurveArithmeticError(
                f"Buy-out of {sol_tokens} exhausts virtual token reserves {self.virtual_token_reserves}"
            )
        total_sell_value = (sol_tokens * self.virtual_sol_reserves) // remaining + 1
        fee = (total_sell_value * fee_basis_points) // BASIS_POINTS_DENOMINATOR
        return total_sell_value + fee

    def price_per_token_sol(self, decimals: int = DEFAULT_DECIMALS) -> float:
        """Instantaneous virtual price in SOL per whole token. Display only."""
        if self.virtual_token_reserves == 0:
            return 0.0
        lamports_per_raw = self.virtual_sol_reserves / self.virtual_token_reserves
        return lamports_per_raw * (10**decimals) / LAMPORTS_PER_SOL
