from dataclasses import dataclass, field
from typing import Dict


DEFAULT_USER_AGENT = "requesterlib/1.0 (+https://example.com; contact: api@example.com)"
DEFAULT_API_URL = "https://api.example.com"


@dataclass(frozen=True)
class ClientConfig:
    api_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    connect_timeout: float = 5.0
    request_timeout: float = 15.0
    num_pools: int = 8
    max_connections: int = 16
    retries: int = 2
    backoff_factor: float = 0.3
    page_size_param: str = "per_page"
    default_headers: Dict[str, str] = field(default_factory=dict)
    metrics_interval: float = 0.0
