import logging
import uuid
from typing import Optional

from .storage import ClientStorage

logger = logging.getLogger(__name__)

SESSION_KEY = "sessionId"


class SessionIdentity:
    """Anonymous visitor id, minted lazily and kept until the guest cart is merged."""

    def __init__(self, storage: ClientStorage):
        self.storage = storage

    def peek(self) -> Optional[str]:
        value = self.storage.get(SESSION_KEY)
        return value if isinstance(value, str) and value else None

    def get_or_create(self) -> str:
        current = self.peek()
        if current:
            return current
        session_id = str(uuid.uuid4())
        self.storage.set(SESSION_KEY, session_id)
        logger.debug("Minted new guest session id")
        return session_id

    def clear(self) -> None:
        self.storage.remove(SESSION_KEY)
