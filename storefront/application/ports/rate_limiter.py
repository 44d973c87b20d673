from typing import Protocol


class RateLimiter(Protocol):
    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Count one hit for key; False once the window budget is spent."""
        ...

    def reset(self, key: str) -> None:
        """Forget every hit recorded for key."""
        ...
