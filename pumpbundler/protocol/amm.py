"""Constant-product reserve simulator for sequences of buys and sells.

Mirrors the program's accounting so a caller can price several trades
against one snapshot without re-fetching between them. Instances are
mutable and must not be shared between concurrent simulations — derive a
private copy per simulation with copy().
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from pumpbundler.protocol.accounts import BondingCurveState, GlobalParameters
from pumpbundler.protocol.exceptions import CurveArithmeticError


@dataclass(frozen=True)
class BuyResult:
    """What a simulated buy executed (after clamping to real reserves)."""

    token_amount: int
    sol_amount: int


@dataclass(frozen=True)
class SellResult:
    """What a simulated sell executed."""

    token_amount: int
    sol_amount: int


@dataclass
class AmmSimulator:
    virtual_sol_reserves: int
    virtual_token_reserves: int
    real_sol_reserves: int
    real_token_reserves: int
    initial_virtual_token_reserves: int

    @classmethod
    def from_global_parameters(cls, global_params: GlobalParameters) -> AmmSimulator:
        """Seed a fresh curve for a token that has not been created yet."""
        return cls(
            virtual_sol_reserves=global_params.initial_virtual_sol_reserves,
            virtual_token_reserves=global_params.initial_virtual_token_reserves,
            real_sol_reserves=0,
            real_token_reserves=global_params.initial_real_token_reserves,
            initial_virtual_token_reserves=global_params.initial_virtual_token_reserves,
        )

    @classmethod
    def from_bonding_curve_state(
        cls,
        curve: BondingCurveState,
        initial_virtual_token_reserves: int,
    ) -> AmmSimulator:
        """Seed from a live curve.

        initial_virtual_token_reserves is the launch constant (from
        GlobalParameters), not the curve's current virtual token reserves:
        sell pricing scales by it.
        """
        return cls(
            virtual_sol_reserves=curve.virtual_sol_reserves,
            virtual_token_reserves=curve.virtual_token_reserves,
            real_sol_reserves=curve.real_sol_reserves,
            real_token_reserves=curve.real_token_reserves,
            initial_virtual_token_reserves=initial_virtual_token_reserves,
        )

    @property
    def product(self) -> int:
        return self.virtual_sol_reserves * self.virtual_token_reserves

    def copy(self) -> AmmSimulator:
        return replace(self)

    def get_buy_price(self, tokens: int) -> int:
        """Lamports needed to take `tokens` out of the pool."""
        new_virtual_token_reserves = self.virtual_token_reserves - tokens
        if new_virtual_token_reserves <= 0:
            raise CurveArithmeticError(
                f"Cannot buy {tokens} tokens from {self.virtual_token_reserves} virtual reserves"
            )
        new_virtual_sol_reserves = self.product // new_virtual_token_reserves + 1
        return max(new_virtual_sol_reserves - self.virtual_sol_reserves, 0)

    def apply_buy(self, token_amount: int) -> BuyResult:
        final_token_amount = min(token_amount, self.real_token_reserves)
        # A failed quote must leave reserves untouched
        sol_amount = self.get_buy_price(final_token_amount)

        self.virtual_token_reserves -= final_token_amount
        self.real_token_reserves -= final_token_amount
        self.virtual_sol_reserves += sol_amount
        self.real_sol_reserves += sol_amount

        return BuyResult(token_amount=final_token_amount, sol_amount=sol_amount)

    def get_sell_price(self, tokens: int) -> int:
        """Lamports received for `tokens`, clamped to real SOL reserves."""
        if self.virtual_token_reserves <= 0 or self.initial_virtual_token_reserves <= 0:
            raise CurveArithmeticError("Sell price undefined with empty reserves")
        scaling_factor = self.initial_virtual_token_reserves
        token_sell_proportion = (tokens * scaling_factor) // self.virtual_token_reserves
        sol_received = (self.virtual_sol_reserves * token_sell_proportion) // scaling_factor
        return min(sol_received, self.real_sol_reserves)

    def apply_sell(self, token_amount: int) -> SellResult:
        # Token reserves grow first: the price is taken against post-sell reserves
        self.virtual_token_reserves += token_amount
        self.real_token_reserves += token_amount

        sell_price = self.get_sell_price(token_amount)

        self.virtual_sol_reserves -= sell_price
        self.real_sol_reserves -= sell_price

        return SellResult(token_amount=token_amount, sol_amount=sell_price)
