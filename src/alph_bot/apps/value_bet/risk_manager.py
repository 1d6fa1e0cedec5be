"""Risk gate and fractional-Kelly position sizer.

Every trade request is checked against a fixed sequence of gates, first
failure wins:

1. edge floor
2. confidence floor
3. account balance floor
4. daily trade count
5. daily realised loss
6. total open exposure
7. single-market share of open exposure

Requests that pass are sized with fractional Kelly, capped at the maximum
position size, and rejected if the size buys no contracts. Statistics are
re-read from the exchange and the order table on every call; the manager
holds no state between calls and never writes orders.
"""

import logging
import math

from alph_bot.apps.value_bet.config import ValueBetConfig
from alph_bot.apps.value_bet.models import TradeDecision, TradeRequest, TradingStats
from alph_bot.core.models import CENTS_PER_DOLLAR
from alph_bot.core.protocols import ExchangeClient
from alph_bot.core.timestamps import start_of_local_day_ms
from alph_bot.storage.repository import TradingRepository

logger = logging.getLogger(__name__)

_PERCENT = 100


def _usd(cents: int) -> str:
    return f"{cents / CENTS_PER_DOLLAR:.2f}"


def kelly_position_size(
    probability: float,
    price_cents: int,
    balance_cents: int,
    kelly_fraction: float,
) -> tuple[float, int]:
    """Return the fractional-Kelly allocation and the uncapped position size.

    With net odds ``b = 100 / price - 1``, the raw Kelly fraction is
    ``(b * p - q) / b``. It is scaled by ``kelly_fraction`` and floored at
    zero. The fraction is computed in floating point and the position size
    is truncated to whole cents, so p=0.70 at 50c on a 50000c balance with
    quarter-Kelly gives 4999c rather than 5000c.

    Args:
        probability: Probability that the bought side wins.
        price_cents: Price per contract in cents (1-99).
        balance_cents: Account balance in cents.
        kelly_fraction: Fractional Kelly multiplier.

    Returns:
        ``(adjusted_fraction, position_size_cents)``.

    """
    q = 1 - probability
    b = _PERCENT / price_cents - 1
    if b <= 0:
        return 0.0, 0
    raw_kelly = (b * probability - q) / b
    adjusted = max(0.0, raw_kelly * kelly_fraction)
    return adjusted, math.floor(balance_cents * adjusted)


class RiskManager:
    """Approve or reject trade requests and size approved ones.

    Args:
        config: Risk limits.
        exchange: Source of the live account balance.
        repository: Source of open and daily orders.

    """

    def __init__(
        self,
        config: ValueBetConfig,
        exchange: ExchangeClient,
        repository: TradingRepository,
    ) -> None:
        """Initialize the risk manager.

        Args:
            config: Risk limits.
            exchange: Source of the live account balance.
            repository: Source of open and daily orders.

        """
        self._config = config
        self._exchange = exchange
        self._repository = repository

    async def check_trade(self, request: TradeRequest) -> TradeDecision:  # noqa: PLR0911
        """Run the gate sequence and size the position.

        Args:
            request: The trade to evaluate.

        Returns:
            An approved decision with a positive contract count, or a
            rejection carrying the first failing gate's reason.

        """
        cfg = self._config
        stats = await self.get_stats()

        edge = (request.estimated_probability - request.market_price_cents / _PERCENT) * _PERCENT
        if edge < cfg.min_edge_pct:
            return self._reject(f"Edge {edge:.1f}% below minimum {cfg.min_edge_pct:g}%", stats)

        if request.confidence.rank < cfg.min_confidence.rank:
            return self._reject(
                f"Confidence '{request.confidence.value}' below minimum "
                f"'{cfg.min_confidence.value}'",
                stats,
            )

        if stats.balance_cents < cfg.min_account_balance_cents:
            return self._reject(
                f"Balance ${_usd(stats.balance_cents)} below minimum "
                f"${cfg.min_account_balance_usd:g}",
                stats,
            )

        if stats.daily_trade_count >= cfg.max_daily_trades:
            return self._reject(
                f"Daily trade limit reached ({stats.daily_trade_count}/{cfg.max_daily_trades})",
                stats,
            )

        if stats.daily_pnl_cents < 0 and abs(stats.daily_pnl_cents) >= cfg.max_daily_loss_cents:
            return self._reject(
                f"Daily loss ${_usd(abs(stats.daily_pnl_cents))} exceeds limit "
                f"${cfg.max_daily_loss_usd:g}",
                stats,
            )

        if stats.total_exposure_cents >= cfg.max_total_exposure_cents:
            return self._reject(
                f"Total exposure ${_usd(stats.total_exposure_cents)} exceeds limit "
                f"${cfg.max_total_exposure_usd:g}",
                stats,
            )

        if stats.total_exposure_cents > 0:
            market_exposure = await self._get_market_exposure(request.market_id)
            market_pct = market_exposure / stats.total_exposure_cents * _PERCENT
            if market_pct >= cfg.max_single_market_percent:
                return self._reject(
                    f"Market exposure {market_pct:.1f}% exceeds limit "
                    f"{cfg.max_single_market_percent:g}%",
                    stats,
                )

        adjusted_kelly, position_size = kelly_position_size(
            request.estimated_probability,
            request.market_price_cents,
            stats.balance_cents,
            cfg.kelly_fraction,
        )
        position_size = min(position_size, cfg.max_position_size_cents)
        contract_count = position_size // request.market_price_cents

        if contract_count <= 0:
            return self._reject("Position size too small for any contracts", stats)

        logger.info(
            "Trade approved: %d contracts @ %dc, kelly=%.1f%%",
            contract_count,
            request.market_price_cents,
            adjusted_kelly * _PERCENT,
        )
        return TradeDecision(
            approved=True,
            position_size_cents=position_size,
            contract_count=contract_count,
            stats=stats,
        )

    async def get_stats(self) -> TradingStats:
        """Derive current account statistics.

        Open positions are orders with status ``open``; paper orders are
        not counted as exposure. The daily window starts at local midnight.

        Returns:
            Fresh statistics.

        """
        balance_cents = await self._exchange.get_balance()
        open_orders = await self._repository.get_open_orders()
        daily_orders = await self._repository.get_orders_opened_since(start_of_local_day_ms())
        return TradingStats(
            balance_cents=balance_cents,
            open_position_count=len(open_orders),
            total_exposure_cents=sum(order.size for order in open_orders),
            daily_trade_count=len(daily_orders),
            daily_pnl_cents=sum(order.pnl or 0 for order in daily_orders),
        )

    async def _get_market_exposure(self, market_id: str) -> int:
        """Return the summed size of open orders on one market."""
        orders = await self._repository.get_open_orders_for_market(market_id)
        return sum(order.size for order in orders)

    @staticmethod
    def _reject(reason: str, stats: TradingStats) -> TradeDecision:
        """Log and build a rejection."""
        logger.info("Trade rejected: %s", reason)
        return TradeDecision(
            approved=False,
            position_size_cents=0,
            contract_count=0,
            stats=stats,
            rejection_reason=reason,
        )
