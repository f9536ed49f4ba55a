"""Core constants used across stagefs modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

BASE_DIR_ENV_VAR = "STAGEFS_BASE_DIR"
CHANGE_EVENT_NAME = "change"
DEFAULT_LOG_LEVEL = "info"
