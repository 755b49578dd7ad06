"""Pooled handle bookkeeping.

A ``PooledHandle`` wraps one driver client (asyncpg pool, aiomysql pool or
pymongo client) owned by the connection registry.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..core.utils import redact_connection_string
from .models import BackendKind

HandleKey = Tuple[BackendKind, str]


@dataclass(eq=False)
class PooledHandle:
    """Driver client plus usage metadata.

    Attributes:
        key: Registry cache key (backend kind, connection string)
        client: Backend-specific pool or client object
        created_at: Monotonic creation time
        last_used: Monotonic time of the last lease
        use_count: Number of leases taken
        in_flight: Leases currently open
    """
    key: HandleKey
    client: Any
    created_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)
    use_count: int = 0
    in_flight: int = 0

    @property
    def kind(self) -> BackendKind:
        return self.key[0]

    @property
    def connection_string(self) -> str:
        return self.key[1]

    def touch(self) -> None:
        """Record a new lease."""
        self.last_used = time.monotonic()
        self.use_count += 1

    def idle_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_used

    def age_seconds(self) -> float:
        return time.monotonic() - self.created_at

    def describe(self) -> Dict[str, Any]:
        """Redacted bookkeeping for diagnostics."""
        return {
            "backend": self.kind.value,
            "target": redact_connection_string(self.connection_string),
            "age_seconds": round(self.age_seconds(), 3),
            "idle_seconds": round(self.idle_seconds(), 3),
            "use_count": self.use_count,
            "in_flight": self.in_flight,
        }
