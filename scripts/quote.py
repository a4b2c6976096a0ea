"""Read-only quote for a pump.fun token.

Fetches the Global and BondingCurve accounts and prints market cap,
graduation market cap, and buy/sell quotes. Sends nothing.

Usage:
    python scripts/quote.py <MINT>
    python scripts/quote.py <MINT> --amount-sol 0.5 --sell-tokens 1000000000
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402
from solders.pubkey import Pubkey  # noqa: E402

from config.settings import settings  # noqa: E402
from pumpbundler.protocol.constants import DEFAULT_DECIMALS, LAMPORTS_PER_SOL  # noqa: E402
from pumpbundler.protocol.exceptions import PumpFunError  # noqa: E402
from pumpbundler.trading.ledger import Commitment, LedgerClient  # noqa: E402
from pumpbundler.trading.relay import RelayClient  # noqa: E402
from pumpbundler.trading.sdk import PumpFunClient  # noqa: E402
from pumpbundler.utils.logger import setup_logger  # noqa: E402


def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:,.6f} SOL"


async def quote(mint: Pubkey, amount_sol: float, sell_tokens: int) -> int:
    ledger = LedgerClient(settings.rpc_url, commitment=Commitment(settings.commitment))
    client = PumpFunClient(ledger, RelayClient(settings.block_engine_url))
    try:
        global_params = await client.get_global_parameters()
        curve = await client.get_bonding_curve_state(mint)
        if curve is None:
            print(f"No bonding curve for {mint}")
            return 1

        fee_bps = global_params.fee_basis_points
        buy_lamports = int(amount_sol * LAMPORTS_PER_SOL)

        print(f"\n=== {mint} ===")
        print(f"  Complete:          {curve.complete}")
        print(f"  Price per token:   {curve.price_per_token_sol():.10f} SOL")
        print(f"  Market cap:        {_sol(curve.get_market_cap_sol())}")
        print(f"  Final market cap:  {_sol(curve.get_final_market_cap_sol(fee_bps))}")
        print(f"  Real SOL reserves: {_sol(curve.real_sol_reserves)}")

        if curve.complete:
            print("  Curve is complete: trading has moved off the bonding curve")
            return 0

        tokens = curve.get_buy_price(buy_lamports)
        proceeds = curve.get_sell_price(sell_tokens, fee_bps)
        print(f"  Buy {amount_sol} SOL  -> {tokens / 10**DEFAULT_DECIMALS:,.2f} tokens")
        print(f"  Sell {sell_tokens / 10**DEFAULT_DECIMALS:,.2f} tokens -> {_sol(proceeds)}")
        return 0
    except PumpFunError as e:
        logger.error(f"Quote failed: {e}")
        return 1
    finally:
        await client.close()


async def main() -> int:
    parser = argparse.ArgumentParser(description="Quote a pump.fun bonding curve")
    parser.add_argument("mint", help="Token mint address")
    parser.add_argument("--amount-sol", type=float, default=0.1, help="SOL to quote a buy for")
    parser.add_argument(
        "--sell-tokens",
        type=int,
        default=1_000_000 * 10**DEFAULT_DECIMALS,
        help="Raw token amount (6 decimals) to quote a sell for",
    )
    args = parser.parse_args()

    setup_logger(json_logs=settings.json_logs, level=settings.log_level, log_dir=settings.log_dir)
    return await quote(Pubkey.from_string(args.mint), args.amount_sol, args.sell_tokens)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
