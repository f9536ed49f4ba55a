"""Runtime configuration model for stagefs.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import BASE_DIR_ENV_VAR
from core.errors import StageConfigError


@dataclass(frozen=True)
class StageConfig:
    """Validated runtime configuration.

    Attributes:
        base_dir: Absolute directory that relative store paths resolve against.
    """

    base_dir: Path

    @classmethod
    def from_env(cls) -> "StageConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            StageConfigError: If environment values are invalid.
        """
        raw_base_dir = os.getenv(BASE_DIR_ENV_VAR) or str(Path.cwd())
        return cls(base_dir=_parse_base_dir(raw_base_dir))


def _parse_base_dir(raw_value: str) -> Path:
    """Parse the base directory environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Absolute, expanded base directory.

    Raises:
        StageConfigError: If the path exists but is not a directory.
    """
    base_dir = Path(raw_value).expanduser().resolve()
    if base_dir.exists() and not base_dir.is_dir():
        raise StageConfigError(
            f"Invalid {BASE_DIR_ENV_VAR} value: '{raw_value}' is not a directory. "
            f"Point {BASE_DIR_ENV_VAR} at a directory or unset it to use the cwd."
        )
    return base_dir
