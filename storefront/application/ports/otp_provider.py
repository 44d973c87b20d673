from typing import Protocol


class OTPProvider(Protocol):
    def dispatch(self, phone: str, code: str) -> str:
        """Deliver the code and return a provider message id."""
        ...
