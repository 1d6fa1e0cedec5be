"""Persistence layer: ORM models and the async trading repository."""

from alph_bot.storage.models import Base, Connection, Game, Order
from alph_bot.storage.repository import TradingRepository

__all__ = ["Base", "Connection", "Game", "Order", "TradingRepository"]
