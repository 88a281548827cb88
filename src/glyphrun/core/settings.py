"""Runtime settings for glyphrun.

Settings are read from ``GLYPHRUN_*`` environment variables and an optional
``.env`` file.  Structured values (``languages``, ``call_aliases``) are given
as JSON, e.g. ``GLYPHRUN_LANGUAGES='["wasm"]'``.

Fields
──────
log_level      : Structlog log level
json_logs      : Force JSON (true) or console (false) logs; unset = auto
languages      : Languages the bootstrap runs, in order
diagnostic_x   : Anchor x of inserted diagnostic elements
diagnostic_y   : Anchor y of inserted diagnostic elements
fetch_timeout  : Seconds before an HTTP retrieval gives up; unset = wait forever
allow_network  : Permit http(s) references
call_aliases   : Call rewrite applied to evaluation fragments (name → name)
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlyphSettings(BaseSettings):
    """Settings shared by the coordinator, strategies and CLI."""

    model_config = SettingsConfigDict(
        env_prefix="GLYPHRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Bootstrap ────────────────────────────────────────────────
    languages: list[str] = Field(default_factory=lambda: ["python", "wasm"])

    # ── Diagnostics ──────────────────────────────────────────────
    diagnostic_x: float = 20
    diagnostic_y: float = 20

    # ── Retrieval ────────────────────────────────────────────────
    fetch_timeout: float | None = None
    allow_network: bool = True

    # ── Evaluation ───────────────────────────────────────────────
    call_aliases: dict[str, str] = Field(
        default_factory=lambda: {"execute_script": "regenerate_data"},
        description="Fixed call rewrite applied before interpreting a fragment",
    )


_settings: GlyphSettings | None = None


def get_settings() -> GlyphSettings:
    """Get the process-wide settings, loading them on first access."""
    global _settings
    if _settings is None:
        _settings = GlyphSettings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (for testing)."""
    global _settings
    _settings = None
