"""
Connection settings for clients of the shipment API.
"""

from typing import List
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Candidate servers and retry policy, read from SHIPMENT_CLIENT_* variables."""
    
    # Tried in order; the first one answering the health check wins
    server_urls: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    health_path: str = "/health"
    probe_timeout: float = 10.0
    request_timeout: float = 30.0
    
    max_retries: int = 3
    retry_delay: float = 2.0
    backoff_factor: float = 1.0
    
    class Config:
        env_prefix = "SHIPMENT_CLIENT_"
        env_file = ".env"
        case_sensitive = False
