from __future__ import annotations

import hashlib
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol


MAX_CACHE_SIZE = 1000


def idempotency_key(order_id: str, customer_email: str, product_id: str) -> str:
    material = f"{order_id}-{customer_email}-{product_id}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


@dataclass
class IdempotencyRecord:
    result: Any
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class IdempotencyStore(Protocol):
    def has(self, key: str) -> bool: ...

    def record(self, key: str, result: Any) -> None: ...


class IdempotencyCache:
    """
    Process-local FIFO map of processed keys.

    Reads never refresh an entry's position; once full, each insert evicts
    exactly the oldest inserted key. Not synchronized: callers in one event
    loop may race between ``has`` and ``record`` on the same key.
    """

    def __init__(self, max_size: int = MAX_CACHE_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, IdempotencyRecord] = OrderedDict()

    def has(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> IdempotencyRecord | None:
        return self._entries.get(key)

    def record(self, key: str, result: Any) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = IdempotencyRecord(result=result)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
