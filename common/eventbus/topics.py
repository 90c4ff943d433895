from __future__ import annotations

from .core import Topic


TOPIC_LEDGER = Topic("kabayan-hub.ledger")
