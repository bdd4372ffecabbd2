"""Payment gateway configuration and validation."""
import os
from dataclasses import dataclass

from gigpay.constants import (
    DEFAULT_API_VERSION,
    DEFAULT_CURRENCY,
    DEFAULT_SITE_URL,
    GATEWAY_BASE_URLS,
    GatewayMode,
    normalize_mode,
)
from gigpay.errors import ConfigurationError
from gigpay.logging import get_logger

logger = get_logger(__name__)


# Environment variables read for each setting, first match wins
GATEWAY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "app_id": ("CASHFREE_APP_ID", "VITE_CASHFREE_APP_ID"),
    "secret_key": ("CASHFREE_SECRET_KEY",),
    "api_version": ("CASHFREE_API_VERSION",),
    "mode": ("CASHFREE_MODE", "VITE_CASHFREE_MODE"),
    "site_url": ("SITE_URL", "VITE_SITE_URL"),
    "timeout": ("CASHFREE_TIMEOUT_SECONDS",),
}

DEFAULT_TIMEOUT_SECONDS = 10.0


def _read_env(setting: str) -> str | None:
    for name in GATEWAY_ENV_VARS[setting]:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


@dataclass(frozen=True)
class GatewaySettings:
    """
    Process-wide gateway settings.

    Built once at startup (see ``gigpay.routers.deps.get_settings``) and passed
    to the gateway client; request handling code never reads the environment.
    """

    app_id: str
    secret_key: str
    api_version: str = DEFAULT_API_VERSION
    mode: str = GatewayMode.PRODUCTION.value
    site_url: str = DEFAULT_SITE_URL
    currency: str = DEFAULT_CURRENCY
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    mode_defaulted: bool = False

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        """
        Read settings from the environment.

        An unset mode falls back to production, matching the deployed
        behavior; a warning is logged so a misconfigured deployment is visible.

        Raises:
            ConfigurationError: If the mode or timeout values are malformed
        """
        raw_mode = _read_env("mode")
        if raw_mode is None:
            mode = GatewayMode.PRODUCTION.value
            mode_defaulted = True
        else:
            mode = normalize_mode(raw_mode)
            mode_defaulted = False
            if mode is None:
                raise ConfigurationError(
                    f"Unknown CASHFREE_MODE '{raw_mode}', expected production or sandbox"
                )

        raw_timeout = _read_env("timeout")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ConfigurationError(f"CASHFREE_TIMEOUT_SECONDS must be a number, got '{raw_timeout}'")
        if timeout <= 0:
            raise ConfigurationError("CASHFREE_TIMEOUT_SECONDS must be positive")

        return cls(
            app_id=_read_env("app_id") or "",
            secret_key=_read_env("secret_key") or "",
            api_version=_read_env("api_version") or DEFAULT_API_VERSION,
            mode=mode,
            site_url=(_read_env("site_url") or DEFAULT_SITE_URL).rstrip("/"),
            timeout_seconds=timeout,
            mode_defaulted=mode_defaulted,
        )

    @property
    def base_url(self) -> str:
        """Gateway base URL for the configured mode (used by create and fetch alike)."""
        return GATEWAY_BASE_URLS[self.mode]

    @property
    def is_production(self) -> bool:
        return self.mode == GatewayMode.PRODUCTION.value

    def missing(self) -> list[str]:
        """Names of the environment variables that still need a value."""
        missing = []
        if not self.app_id:
            missing.append(GATEWAY_ENV_VARS["app_id"][0])
        if not self.secret_key:
            missing.append(GATEWAY_ENV_VARS["secret_key"][0])
        if not self.api_version:
            missing.append(GATEWAY_ENV_VARS["api_version"][0])
        return missing

    def validate(self) -> "GatewaySettings":
        """
        Check that every credential is present.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: If a credential is missing
        """
        missing = self.missing()
        if missing:
            logger.error("Cashfree not configured. Missing: %s", missing)
            raise ConfigurationError(f"Cashfree not configured. Set: {', '.join(missing)}")
        return self


def load_settings() -> GatewaySettings:
    """Read and validate gateway settings from the environment."""
    settings = GatewaySettings.from_env().validate()
    if settings.mode_defaulted:
        logger.warning(
            "CASHFREE_MODE is not set; defaulting to production. "
            "Orders will charge real money."
        )
    logger.info("Cashfree configured: mode=%s, api_version=%s", settings.mode, settings.api_version)
    return settings


def is_gateway_configured() -> bool:
    """Check whether credentials are present without raising."""
    try:
        return not GatewaySettings.from_env().missing()
    except ConfigurationError:
        return False
