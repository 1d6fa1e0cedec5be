"""Configuration dataclass for the value-bet trading loop.

Hold the risk limits and execution mode for one run. Monetary limits are
given in US dollars, as they are on the command line and in
``settings.yaml``, and exposed in cents for the risk manager.
"""

from dataclasses import dataclass, fields
from typing import Any

from alph_bot.core.config import ConfigLoader
from alph_bot.core.models import CENTS_PER_DOLLAR, Confidence

_DEFAULT_MIN_EDGE_PCT = 5.0
_DEFAULT_KELLY_FRACTION = 0.25
_DEFAULT_MAX_TOTAL_EXPOSURE_USD = 10000.0
_DEFAULT_MAX_POSITION_SIZE_USD = 1000.0
_DEFAULT_MAX_SINGLE_MARKET_PERCENT = 20.0
_DEFAULT_MAX_DAILY_LOSS_USD = 500.0
_DEFAULT_MAX_DAILY_TRADES = 50
_DEFAULT_MIN_ACCOUNT_BALANCE_USD = 100.0
_DEFAULT_POLL_INTERVAL_SECONDS = 10.0
_MAX_PERCENT = 100.0


def _to_cents(usd: float) -> int:
    return round(usd * CENTS_PER_DOLLAR)


@dataclass(frozen=True)
class ValueBetConfig:
    """Immutable configuration for a value-bet session.

    Attributes:
        min_edge_pct: Minimum edge, in percentage points, to accept a trade.
        min_confidence: Lowest forecaster confidence tier accepted.
        kelly_fraction: Fractional Kelly multiplier (0.25 = quarter-Kelly).
        max_total_exposure_usd: Cap on the notional of all open orders.
        max_position_size_usd: Cap on a single position.
        max_single_market_percent: Cap on one market's share of open notional.
        max_daily_loss_usd: Stop trading once today's loss reaches this.
        max_daily_trades: Stop trading once this many orders opened today.
        min_account_balance_usd: Stop trading below this balance.
        poll_interval_seconds: Seconds between poll ticks.
        paper: Record orders without submitting them to the exchange.
        demo: Use the exchange's demo environment.

    Raises:
        ValueError: If a limit is out of range.

    """

    min_edge_pct: float = _DEFAULT_MIN_EDGE_PCT
    min_confidence: Confidence = Confidence.MEDIUM
    kelly_fraction: float = _DEFAULT_KELLY_FRACTION
    max_total_exposure_usd: float = _DEFAULT_MAX_TOTAL_EXPOSURE_USD
    max_position_size_usd: float = _DEFAULT_MAX_POSITION_SIZE_USD
    max_single_market_percent: float = _DEFAULT_MAX_SINGLE_MARKET_PERCENT
    max_daily_loss_usd: float = _DEFAULT_MAX_DAILY_LOSS_USD
    max_daily_trades: int = _DEFAULT_MAX_DAILY_TRADES
    min_account_balance_usd: float = _DEFAULT_MIN_ACCOUNT_BALANCE_USD
    poll_interval_seconds: float = _DEFAULT_POLL_INTERVAL_SECONDS
    paper: bool = False
    demo: bool = False

    def __post_init__(self) -> None:
        """Validate limits."""
        if not 0 < self.kelly_fraction <= 1:
            msg = f"kelly_fraction must be in (0, 1], got {self.kelly_fraction}"
            raise ValueError(msg)
        if not 0 < self.max_single_market_percent <= _MAX_PERCENT:
            msg = (
                "max_single_market_percent must be in (0, 100], "
                f"got {self.max_single_market_percent}"
            )
            raise ValueError(msg)
        if self.poll_interval_seconds <= 0:
            msg = f"poll_interval_seconds must be positive, got {self.poll_interval_seconds}"
            raise ValueError(msg)
        for name in (
            "min_edge_pct",
            "max_total_exposure_usd",
            "max_position_size_usd",
            "max_daily_loss_usd",
            "max_daily_trades",
            "min_account_balance_usd",
        ):
            if getattr(self, name) < 0:
                msg = f"{name} must not be negative, got {getattr(self, name)}"
                raise ValueError(msg)

    @property
    def max_total_exposure_cents(self) -> int:
        """Return the total exposure cap in cents."""
        return _to_cents(self.max_total_exposure_usd)

    @property
    def max_position_size_cents(self) -> int:
        """Return the position size cap in cents."""
        return _to_cents(self.max_position_size_usd)

    @property
    def max_daily_loss_cents(self) -> int:
        """Return the daily loss cap in cents."""
        return _to_cents(self.max_daily_loss_usd)

    @property
    def min_account_balance_cents(self) -> int:
        """Return the balance floor in cents."""
        return _to_cents(self.min_account_balance_usd)

    @classmethod
    def from_loader(cls, loader: ConfigLoader, **overrides: Any) -> "ValueBetConfig":
        """Build a config from the ``value_bet`` section plus explicit overrides.

        Overrides whose value is ``None`` are ignored, so unset CLI options
        fall through to ``settings.yaml`` and then to the defaults.

        Args:
            loader: Configuration source.
            **overrides: Field values that take precedence over the file.

        Returns:
            The merged configuration.

        """
        known = {f.name: f.type for f in fields(cls)}
        section = loader.get_section("value_bet")
        values: dict[str, Any] = {k: v for k, v in section.items() if k in known}
        values.update({k: v for k, v in overrides.items() if v is not None})

        kwargs: dict[str, Any] = {}
        for name, value in values.items():
            if name == "min_confidence":
                kwargs[name] = value if isinstance(value, Confidence) else Confidence(str(value))
            elif name in ("paper", "demo"):
                kwargs[name] = value if isinstance(value, bool) else str(value).lower() == "true"
            elif name == "max_daily_trades":
                kwargs[name] = int(value)
            else:
                kwargs[name] = float(value)
        return cls(**kwargs)
