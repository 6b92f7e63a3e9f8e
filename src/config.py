"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

REQUIRED_ENV_VARS = ("VERIFY_TOKEN", "PAGE_ACCESS_TOKEN", "GEMINI_API_KEY")

APP_VERSION = "1.0.0"
DEFAULT_GRAPH_API_BASE = "https://graph.facebook.com/v18.0"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-lite"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, missing: list[str], message: str | None = None) -> None:
        self.missing = missing
        super().__init__(
            message or f"Missing required environment variables: {', '.join(missing)}"
        )


def clean_token(token: str) -> str:
    """Strip characters that cannot appear in a Graph API access token.

    Tokens pasted into hosting dashboards tend to pick up quotes, newlines
    and stray spaces.
    """
    return _NON_ALNUM.sub("", token)


def mask_secret(value: str | None, visible: int = 6) -> str | None:
    if not value:
        return None
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"


class RelaySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    verify_token: str = Field(min_length=1)
    page_access_token: str = Field(min_length=1)
    gemini_api_key: str = Field(min_length=1)
    serp_api_key: str | None = None
    app_secret: str | None = None
    admin_token: str | None = None
    graph_api_base: str = DEFAULT_GRAPH_API_BASE
    gemini_model: str = DEFAULT_GEMINI_MODEL
    log_max_entries: int = Field(default=1000, ge=1)
    log_level: str = "INFO"

    @property
    def search_enabled(self) -> bool:
        return bool(self.serp_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelaySettings:
        """Build settings from the process environment, failing fast.

        Every missing required variable is reported at once so a
        misconfigured deployment can be fixed in a single pass.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_ENV_VARS if not env.get(name, "").strip()]
        if missing:
            raise ConfigurationError(missing)

        raw_max = env.get("LOG_MAX_ENTRIES", "1000")
        try:
            log_max_entries = int(raw_max)
        except ValueError as exc:
            raise ConfigurationError(
                ["LOG_MAX_ENTRIES"], f"LOG_MAX_ENTRIES must be an integer, got {raw_max!r}",
            ) from exc

        token = clean_token(env["PAGE_ACCESS_TOKEN"])
        if not token:
            raise ConfigurationError(
                ["PAGE_ACCESS_TOKEN"], "PAGE_ACCESS_TOKEN is empty after sanitisation",
            )

        log_level = env.get("LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(
                ["LOG_LEVEL"],
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}",
            )

        try:
            return cls(
                verify_token=env["VERIFY_TOKEN"].strip(),
                page_access_token=token,
                gemini_api_key=env["GEMINI_API_KEY"].strip(),
                serp_api_key=env.get("SERP_API_KEY", "").strip() or None,
                app_secret=env.get("APP_SECRET", "").strip() or None,
                admin_token=env.get("ADMIN_TOKEN", "").strip() or None,
                graph_api_base=env.get("GRAPH_API_BASE", DEFAULT_GRAPH_API_BASE),
                gemini_model=env.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
                log_max_entries=log_max_entries,
                log_level=log_level,
            )
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err["loc"]})
            details = "; ".join(
                f"{str(err['loc'][0]).upper() if err['loc'] else 'settings'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(fields, f"Invalid configuration: {details}") from exc

    def masked_summary(self) -> dict[str, object]:
        """Configuration report safe to expose over diagnostics."""
        return {
            "VERIFY_TOKEN": {"exists": True, "length": len(self.verify_token)},
            "PAGE_ACCESS_TOKEN": {
                "exists": True,
                "length": len(self.page_access_token),
                "preview": mask_secret(self.page_access_token),
            },
            "GEMINI_API_KEY": {
                "exists": True,
                "length": len(self.gemini_api_key),
                "preview": mask_secret(self.gemini_api_key, visible=4),
            },
            "SERP_API_KEY": {"exists": self.serp_api_key is not None},
            "APP_SECRET": {"exists": self.app_secret is not None},
            "ADMIN_TOKEN": {"exists": self.admin_token is not None},
            "GRAPH_API_BASE": self.graph_api_base,
            "GEMINI_MODEL": self.gemini_model,
            "LOG_MAX_ENTRIES": self.log_max_entries,
            "LOG_LEVEL": self.log_level,
        }
