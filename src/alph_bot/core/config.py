"""Configuration management for alph-bot.

Settings come from ``settings.yaml`` in the package config directory,
deep-merged with an optional ``settings.local.yaml``. String values may
reference environment variables as ``${VAR}`` or ``${VAR:default}``,
anywhere in the string; a ``.env`` file is loaded first.

Raw values are read by dot-notation key with ``ConfigLoader.get``. The
sections the clients need (``kalshi``, ``shipp``, ``ai`` and ``database``)
are also exposed as validated, typed settings objects that accept explicit
overrides, so a CLI option always beats the environment and the YAML.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

_PACKAGE_CONFIG_DIR = Path(__file__).parent.parent / "config"
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")

PROD_KALSHI_URL = "https://api.elections.kalshi.com/trade-api/v2"
DEMO_KALSHI_URL = "https://demo-api.kalshi.co/trade-api/v2"
SHIPP_URL = "https://api.shipp.ai/api/v1"
DEFAULT_DB_URL = "sqlite+aiosqlite:///db.sqlite"
DEFAULT_AI_PROVIDER = "anthropic"
DEFAULT_AI_MODEL = "claude-opus-4-6"
DEFAULT_AI_TEMPERATURE = 0.2
_MAX_AI_TEMPERATURE = 2.0


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


@dataclass(frozen=True)
class KalshiSettings:
    """Credentials and endpoint for the Kalshi trade API.

    Args:
        api_key_id: Kalshi API key id.
        private_key_path: PEM file holding the RSA key registered with the key id.
        base_url: Production or demo API root.

    """

    api_key_id: str
    private_key_path: Path
    base_url: str

    def read_private_key(self) -> bytes:
        """Return the PEM bytes of the private key.

        Raises:
            FileNotFoundError: If the key file does not exist.

        """
        if not self.private_key_path.exists():
            raise FileNotFoundError(f"Private key not found at {self.private_key_path}")
        return self.private_key_path.read_bytes()


@dataclass(frozen=True)
class ShippSettings:
    """Endpoint and key for the Shipp feed.

    The key is optional here; the client refuses to make requests without one.
    """

    api_key: str | None
    base_url: str


@dataclass(frozen=True)
class AiSettings:
    """Forecaster provider, model and sampling settings."""

    provider: str
    model: str
    temperature: float
    api_key: str | None


@dataclass(frozen=True)
class DatabaseSettings:
    """SQLAlchemy async connection string for the trading database."""

    url: str


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Merge ``override`` into ``base`` in place, recursing into nested dicts."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge(cast("dict[str, Any]", current), cast("dict[str, Any]", value))
        else:
            base[key] = value


def _expand_string(value: str) -> str:
    """Replace every ``${VAR}``/``${VAR:default}`` reference in ``value``.

    Raises:
        ConfigError: If a referenced variable is unset and has no default.

    """

    def replace(match: re.Match[str]) -> str:
        name = match.group("name")
        resolved = os.environ.get(name, match.group("default"))
        if resolved is None:
            msg = f"Required environment variable ${{{name}}} is not set and has no default"
            raise ConfigError(msg)
        return resolved

    return _ENV_REFERENCE.sub(replace, value)


def _expand(value: Any) -> Any:
    """Expand environment references throughout a parsed YAML tree."""
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in cast("dict[str, Any]", value).items()}
    if isinstance(value, list):
        return [_expand(item) for item in cast("list[Any]", value)]
    if isinstance(value, str):
        return _expand_string(value)
    return value


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, treating a missing or empty file as ``{}``."""
    if not path.exists():
        return {}
    with path.open() as f:
        data: Any = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return cast("dict[str, Any]", data)


def _text(section: dict[str, Any], key: str) -> str | None:
    """Return a section value as a string, treating blanks as unset."""
    value = section.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _first(*values: str | None) -> str | None:
    """Return the first non-empty value."""
    for value in values:
        if value:
            return value
    return None


class ConfigLoader:
    """Layered YAML settings with environment substitution and typed sections."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Load ``.env`` and then the YAML settings from ``config_dir``.

        Args:
            config_dir: Directory containing config files. Defaults to src/alph_bot/config.

        """
        load_dotenv()
        self.config_dir = Path(config_dir) if config_dir is not None else _PACKAGE_CONFIG_DIR
        settings = _read_yaml(self.config_dir / "settings.yaml")
        _merge(settings, _read_yaml(self.config_dir / "settings.local.yaml"))
        self._config: dict[str, Any] = _expand(settings)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation (e.g., 'kalshi.api_key_id').
            default: Default value if key not found.

        Returns:
            Configuration value.

        """
        current: Any = self._config
        for part in key.split("."):
            if not isinstance(current, dict):
                return default
            current = cast("dict[str, Any]", current).get(part)
            if current is None:
                return default
        return current

    def get_section(self, name: str) -> dict[str, Any]:
        """Get a top-level configuration section as a dictionary.

        Args:
            name: Section name (e.g. ``"value_bet"``).

        Returns:
            The section's settings, or an empty dict when absent.

        Raises:
            ConfigError: If the section is present but not a dictionary.

        """
        result: Any = self.get(name, {})
        if isinstance(result, dict):
            return cast("dict[str, Any]", result)
        msg = f"{name} config must be a dict, got {type(result).__name__}"
        raise ConfigError(msg)

    def kalshi_settings(
        self,
        *,
        demo: bool = False,
        api_key_id: str | None = None,
        private_key_path: str | None = None,
    ) -> KalshiSettings:
        """Resolve Kalshi credentials, preferring the explicit arguments.

        Args:
            demo: Use ``kalshi.demo_base_url`` instead of ``kalshi.base_url``.
            api_key_id: Overrides ``kalshi.api_key_id``.
            private_key_path: Overrides ``kalshi.private_key_path``.

        Returns:
            Validated Kalshi settings.

        Raises:
            ConfigError: If the key id or the private key path is missing.

        """
        section = self.get_section("kalshi")
        key_id = _first(api_key_id, _text(section, "api_key_id"))
        if key_id is None:
            raise ConfigError(
                "kalshi.api_key_id not configured (set ALPH_BOT_KALSHI_API_KEY_ID "
                "or pass --kalshi-api-key-id)"
            )
        key_path = _first(private_key_path, _text(section, "private_key_path"))
        if key_path is None:
            raise ConfigError(
                "kalshi.private_key_path not configured (set ALPH_BOT_KALSHI_PRIVATE_KEY_PATH "
                "or pass --kalshi-private-key-path)"
            )
        if demo:
            base_url = _text(section, "demo_base_url") or DEMO_KALSHI_URL
        else:
            base_url = _text(section, "base_url") or PROD_KALSHI_URL
        return KalshiSettings(
            api_key_id=key_id, private_key_path=Path(key_path).expanduser(), base_url=base_url
        )

    def shipp_settings(self, *, api_key: str | None = None) -> ShippSettings:
        """Resolve the Shipp endpoint and key, preferring ``api_key`` when given."""
        section = self.get_section("shipp")
        return ShippSettings(
            api_key=_first(api_key, _text(section, "api_key")),
            base_url=_text(section, "base_url") or SHIPP_URL,
        )

    def ai_settings(
        self,
        *,
        provider: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        api_key: str | None = None,
    ) -> AiSettings:
        """Resolve forecaster settings, preferring the explicit arguments.

        Raises:
            ConfigError: If the temperature is not a number in [0, 2].

        """
        section = self.get_section("ai")
        if temperature is None:
            raw = section.get("temperature", DEFAULT_AI_TEMPERATURE)
            try:
                temperature = float(raw)
            except (TypeError, ValueError) as exc:
                msg = f"ai.temperature must be a number, got {raw!r}"
                raise ConfigError(msg) from exc
        if not 0 <= temperature <= _MAX_AI_TEMPERATURE:
            msg = f"ai.temperature must be between 0 and {_MAX_AI_TEMPERATURE:g}, got {temperature}"
            raise ConfigError(msg)
        return AiSettings(
            provider=_first(provider, _text(section, "provider"))
            or DEFAULT_AI_PROVIDER,
            model=_first(model, _text(section, "model")) or DEFAULT_AI_MODEL,
            temperature=temperature,
            api_key=_first(api_key, _text(section, "api_key")),
        )

    def database_settings(self, *, url: str | None = None) -> DatabaseSettings:
        """Resolve the database URL, preferring ``url`` when given."""
        section = self.get_section("database")
        return DatabaseSettings(
            url=_first(url, _text(section, "url")) or DEFAULT_DB_URL
        )


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the global ``ConfigLoader`` singleton, creating it on first use.

    Returns:
        The shared ``ConfigLoader`` instance.

    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
