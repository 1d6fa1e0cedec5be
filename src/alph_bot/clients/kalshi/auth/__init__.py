"""Authentication module for the Kalshi API."""

from alph_bot.clients.kalshi.auth.signer import RsaPssSigner

__all__ = ["RsaPssSigner"]
