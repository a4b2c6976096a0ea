"""Tests for GlobalParameters / BondingCurveState — decoding and bit-exact pricing."""

from __future__ import annotations

import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]

from pumpbundler.protocol.accounts import (
    BONDING_CURVE_LAYOUT,
    GLOBAL_ACCOUNT_LAYOUT,
    BondingCurveState,
    GlobalParameters,
)
from pumpbundler.protocol.exceptions import (
    AccountDecodeError,
    CurveArithmeticError,
    CurveCompleteError,
    ErrorKind,
)


def _curve(
    *,
    vtr: int = 1000,
    vsr: int = 1000,
    rtr: int = 500,
    rsr: int = 0,
    supply: int = 1000,
    complete: bool = False,
) -> BondingCurveState:
    return BondingCurveState(
        discriminator=0,
        virtual_token_reserves=vtr,
        virtual_sol_reserves=vsr,
        real_token_reserves=rtr,
        real_sol_reserves=rsr,
        token_total_supply=supply,
        complete=complete,
    )


# ── Decoding ───────────────────────────────────────────────────────────


class TestLayouts:
    """Fixed account sizes from the program layout."""

    def test_global_layout_size(self):
        assert GLOBAL_ACCOUNT_LAYOUT.size == 113

    def test_curve_layout_size(self):
        assert BONDING_CURVE_LAYOUT.size == 49


class TestGlobalParametersDecode:
    """GlobalParameters.from_bytes()."""

    def test_decodes_all_fields(self, global_blob):
        fee_recipient = Keypair().pubkey()
        g = GlobalParameters.from_bytes(global_blob(fee_recipient=fee_recipient), strict=True)
        assert g.initialized is True
        assert g.fee_recipient == fee_recipient
        assert g.initial_virtual_token_reserves == 1_073_000_000_000_000
        assert g.initial_virtual_sol_reserves == 30_000_000_000
        assert g.initial_real_token_reserves == 793_100_000_000_000
        assert g.token_total_supply == 1_000_000_000_000_000
        assert g.fee_basis_points == 100

    def test_trailing_bytes_ignored(self, global_blob):
        g = GlobalParameters.from_bytes(global_blob() + b"\x00" * 64)
        assert g.fee_basis_points == 100

    def test_short_blob_raises(self, global_blob):
        with pytest.raises(AccountDecodeError) as exc:
            GlobalParameters.from_bytes(global_blob()[:100])
        assert exc.value.kind == ErrorKind.DECODE

    def test_fee_bps_out_of_range(self, global_blob):
        with pytest.raises(AccountDecodeError):
            GlobalParameters.from_bytes(global_blob(fee_basis_points=10_001))

    def test_strict_rejects_wrong_discriminator(self, global_blob):
        blob = b"\x01" * 8 + global_blob()[8:]
        assert GlobalParameters.from_bytes(blob).initialized is True
        with pytest.raises(AccountDecodeError):
            GlobalParameters.from_bytes(blob, strict=True)


class TestBondingCurveDecode:
    """BondingCurveState.from_bytes()."""

    def test_decodes_all_fields(self, curve_blob):
        c = BondingCurveState.from_bytes(
            curve_blob(real_sol_reserves=5_000, complete=True), strict=True
        )
        assert c.virtual_token_reserves == 1_073_000_000_000_000
        assert c.virtual_sol_reserves == 30_000_000_000
        assert c.real_sol_reserves == 5_000
        assert c.complete is True

    def test_short_blob_raises(self, curve_blob):
        with pytest.raises(AccountDecodeError):
            BondingCurveState.from_bytes(curve_blob()[:48])

    def test_decode_is_a_value_error(self):
        with pytest.raises(ValueError):
            BondingCurveState.from_bytes(b"")


# ── Pricing ────────────────────────────────────────────────────────────


class TestBuyPrice:
    """BondingCurveState.get_buy_price()."""

    def test_zero_and_negative_amounts(self):
        c = _curve()
        assert c.get_buy_price(0) == 0
        assert c.get_buy_price(-5) == 0

    def test_small_curve(self):
        # n = 1_000_000, i = 1100, r = 909 + 1, s = 1000 - 910
        assert _curve().get_buy_price(100) == 90

    def test_clamped_to_real_token_reserves(self):
        assert _curve(rtr=50).get_buy_price(100) == 50

    def test_complete_curve_raises(self):
        with pytest.raises(CurveCompleteError) as exc:
            _curve(complete=True).get_buy_price(100)
        assert exc.value.kind == ErrorKind.CURVE_COMPLETE


class TestSellPrice:
    """BondingCurveState.get_sell_price()."""

    def test_matches_program_formula(self):
        n = 100 * 1000 // 1100
        expected = n - (n * 100 // 10_000)
        assert _curve().get_sell_price(100, 100) == expected == 90

    def test_fee_applied(self):
        # n = 1000 * 1000 // 2000 = 500, fee = 500 * 250 // 10000 = 12
        assert _curve().get_sell_price(1000, 250) == 488

    def test_zero_amount(self):
        assert _curve().get_sell_price(0, 100) == 0

    def test_complete_curve_raises(self):
        with pytest.raises(CurveCompleteError):
            _curve(complete=True).get_sell_price(100, 100)


class TestMarketCap:
    """Market cap and projected final market cap."""

    def test_market_cap(self):
        assert _curve(vtr=2000, vsr=1000, supply=10_000).get_market_cap_sol() == 5000

    def test_market_cap_empty_reserves(self):
        assert _curve(vtr=0).get_market_cap_sol() == 0

    def test_final_market_cap(self):
        c = _curve(vtr=1000, vsr=1000, rtr=500, rsr=0, supply=1000)
        # buy-out of 500: 500 * 1000 // 500 + 1 = 1001, fee 1001 * 100 // 10000 = 10
        assert c.get_buy_out_price(500, 100) == 1011
        # (1000 * (1000 + 1011)) // (1000 - 500)
        assert c.get_final_market_cap_sol(100) == 4022

    def test_buy_out_uses_real_sol_floor(self):
        c = _curve(vtr=1000, vsr=1000, rsr=200)
        # max(100, 200) = 200: 200 * 1000 // 800 + 1 = 251
        assert c.get_buy_out_price(100, 0) == 251

    def test_buy_out_exhausting_reserves_raises(self):
        with pytest.raises(CurveArithmeticError):
            _curve(vtr=500).get_buy_out_price(500, 100)

    def test_price_per_token(self):
        c = _curve(vtr=1_000_000, vsr=30_000)
        assert c.price_per_token_sol(6) == pytest.approx(30_000 / 1_000_000 * 1e6 / 1e9)


class TestInitialBuyPrice:
    """GlobalParameters.get_initial_buy_price() on mainnet launch parameters."""

    def test_one_sol(self, global_blob):
        g = GlobalParameters.from_bytes(global_blob())
        assert g.get_initial_buy_price(1_000_000_000) == 34_612_903_225_806

    def test_matches_fresh_curve(self, global_blob, curve_blob):
        g = GlobalParameters.from_bytes(global_blob())
        c = BondingCurveState.from_bytes(curve_blob())
        for amount in (1, 10_000, 1_000_000_000, 85_000_000_000):
            assert g.get_initial_buy_price(amount) == c.get_buy_price(amount)

    def test_clamped_to_initial_real_reserves(self, global_blob):
        g = GlobalParameters.from_bytes(global_blob())
        assert g.get_initial_buy_price(10**18) == 793_100_000_000_000

    def test_zero_amount(self, global_blob):
        assert GlobalParameters.from_bytes(global_blob()).get_initial_buy_price(0) == 0
