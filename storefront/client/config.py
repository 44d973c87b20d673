from dataclasses import dataclass
from typing import Optional


@dataclass
class ClientConfig:
    base_url: str = "http://localhost:8000"
    # None keeps session id and guest cart in memory only
    storage_path: Optional[str] = None
    resend_seconds: int = 120
    request_timeout: float = 15.0
