from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(slots=True)
class WebhookEvent:
    """A verified billing provider event; ``data`` is the event's ``data.object``."""

    id: str
    type: str
    data: Dict[str, Any]
    created: Optional[datetime] = None
