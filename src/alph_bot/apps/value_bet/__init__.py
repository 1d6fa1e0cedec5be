"""Value-bet trading engine: edge evaluation, risk gate and polling loop."""

from alph_bot.apps.value_bet.config import ValueBetConfig
from alph_bot.apps.value_bet.edge import evaluate_edge, evaluate_market
from alph_bot.apps.value_bet.loop import (
    LoopExit,
    TradingDeps,
    TradingLoop,
    TradingLoopResult,
)
from alph_bot.apps.value_bet.models import TradeDecision, TradeRequest, TradingStats
from alph_bot.apps.value_bet.risk_manager import RiskManager, kelly_position_size

__all__ = [
    "LoopExit",
    "RiskManager",
    "TradeDecision",
    "TradeRequest",
    "TradingDeps",
    "TradingLoop",
    "TradingLoopResult",
    "TradingStats",
    "ValueBetConfig",
    "evaluate_edge",
    "evaluate_market",
    "kelly_position_size",
]
