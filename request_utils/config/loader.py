"""Env var config loading with pydantic-settings, plus the YAML header policy."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

_HEADER_POLICY_PATH = Path(__file__).parent / "header_policy.yaml"

# Fallback when the policy file is missing. Order matters: it is the trust order.
_DEFAULT_HEADER_POLICY: dict[str, Any] = {
    "api_headers": ["x-api-key", "authorization", "x-auth-token", "x-access-token"],
    "cloudflare_headers": ["cf-ray", "cf-connecting-ip"],
    "proxy_headers": [
        "x-real-ip",
        "x-forwarded-for",
        "client-ip",
        "x-client-ip",
        "x-cluster-client-ip",
    ],
    "special_headers": {
        "content_type": "CONTENT_TYPE",
        "content_length": "CONTENT_LENGTH",
    },
}


class RequestUtilsSettings(BaseSettings):
    """Library configuration, overridden by REQUEST_UTILS_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_UTILS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "info"
    log_json: bool = True

    # Env var whose presence marks a CLI run (WP-CLI defines WP_CLI)
    cli_marker_env: str = "WP_CLI"

    # Query parameter used for pagination
    page_param: str = "paged"

    # WordPress URL layout used when deriving flags from a live request
    admin_path: str = "/wp-admin/"
    ajax_path: str = "/wp-admin/admin-ajax.php"
    cron_path: str = "/wp-cron.php"
    rest_prefix: str = "/wp-json/"

    header_policy_file: str = str(_HEADER_POLICY_PATH)


_settings: RequestUtilsSettings | None = None
_header_policy: dict[str, Any] | None = None


def get_settings() -> RequestUtilsSettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> RequestUtilsSettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = RequestUtilsSettings()
    logger.debug("config_loaded", page_param=_settings.page_param, cli_marker_env=_settings.cli_marker_env)
    return _settings


def get_header_policy() -> dict[str, Any]:
    """Load the ordered header lists from YAML, caching after first load.

    Keys missing from the file keep their built-in defaults.
    """
    global _header_policy
    if _header_policy is not None:
        return _header_policy

    path = Path(get_settings().header_policy_file)
    policy = dict(_DEFAULT_HEADER_POLICY)
    if not path.exists():
        logger.error("header_policy_not_found", path=str(path))
        _header_policy = policy
        return _header_policy

    with open(path) as f:
        loaded = yaml.safe_load(f) or {}
    for key in _DEFAULT_HEADER_POLICY:
        if key in loaded:
            policy[key] = loaded[key]
    _header_policy = policy
    return _header_policy


def reset_header_policy_cache() -> None:
    """Reset the header policy cache (for testing)."""
    global _header_policy
    _header_policy = None
