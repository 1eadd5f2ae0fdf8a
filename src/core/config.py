"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigurationError


@dataclass(frozen=True)
class PipelineConfig:
    """Timing and formatting settings for the poll-dedup-forward pipeline."""

    poll_interval: float = 30.0
    page_size: int = 10
    pacing_delay: float = 1.0
    restart_delay: float = 1.0
    caption_chars: int = 200
    caption_placeholder: str = "No description"


def require_values(values: Mapping[str, Optional[str]]) -> None:
    """Raise ConfigurationError naming every missing mandatory value."""

    missing = [name for name, value in values.items() if value is None or not str(value).strip()]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
