"""Core utilities for the assistant API"""

from assistant_api.core.config import settings
from assistant_api.core.logging import configure_logging

__all__ = ["settings", "configure_logging"]
