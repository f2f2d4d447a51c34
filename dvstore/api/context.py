"""Request Context — per-request values passed explicitly to handlers and log calls.

Invariants:
    - Created once per request by the adapter, before anything else runs
    - Never stored in module or global state
    - log_fields() always carries topic and endpoint
"""

import time
from dataclasses import dataclass, field

from starlette.requests import Request


@dataclass
class RequestContext:
    endpoint: str
    request: Request | None = None
    topic: str = "api"
    timeout: float | None = None
    started_at: float = field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def duration(self) -> str:
        return f"{self.elapsed() * 1000:.3f}ms"

    def deadline_exceeded(self) -> bool:
        return bool(self.timeout) and self.elapsed() >= self.timeout

    async def cancelled(self) -> bool:
        """True once the client disconnected or the request deadline passed."""
        if self.deadline_exceeded():
            return True
        if self.request is None:
            return False
        return await self.request.is_disconnected()

    def log_fields(self, **fields: object) -> dict:
        return {"topic": self.topic, "endpoint": self.endpoint, **fields}
