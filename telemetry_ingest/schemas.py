from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class LatestReadingOut(BaseModel):
    metric: str
    value: float
    ts: datetime


class ReceiverHealth(BaseModel):
    enabled: bool
    healthy: bool
    running: bool = False
    connected: bool = False
    messages_persisted: int = 0
    messages_dropped: int = 0
    fatal_error: Optional[str] = None
    last_message_age_seconds: Optional[float] = None
