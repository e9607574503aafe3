"""
SpoolSettings — environment configuration for spoolq.

Every field maps to a SPOOLQ_* variable (or a line in ./.env):

    SPOOLQ_PATH=/var/spool/jobs
    SPOOLQ_ORDER_KEY=timestamp
    SPOOLQ_WATCH=true
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from spoolq.core.naming import OrderKey
from spoolq.core.selection import CorruptPolicy, Selection


class SpoolSettings(BaseSettings):
    """
    Environment configuration, e.g. SPOOLQ_PATH=/var/spool/jobs.

    Constructor arguments of SpoolQueue / QueueStream take precedence; these
    settings only feed SpoolQueue.from_settings() and QueueStream.from_settings().
    """

    model_config = SettingsConfigDict(
        env_prefix="spoolq_",
        env_file=".env",
        extra="ignore",
    )

    path: Path = Path("spool")
    order_key: OrderKey = OrderKey.COUNTER
    selection: Selection = Selection.UNORDERED
    on_corrupt: CorruptPolicy = CorruptPolicy.SKIP
    fsync: bool = True

    poll_interval: float = 0.05  # seconds
    watch: bool = False
    debounce_ms: int = 100

    @property
    def debounce(self) -> timedelta:
        return timedelta(milliseconds=self.debounce_ms)
