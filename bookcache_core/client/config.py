"""BookCache Client Config - Request Layer Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_BASE_URL = "http://localhost:8000/api"


@dataclass
class ClientConfig:
    """API client configuration.

    Attributes:
        base_url: Root URL of the booking API
        timeout: Request timeout in seconds
        page_size: Default page size for list endpoints
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0
    page_size: int = 20

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build configuration from environment variables.

        Reads BOOKCACHE_API_BASE_URL (falling back to API_BASE_URL) and
        BOOKCACHE_REQUEST_TIMEOUT.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            ClientConfig instance
        """
        env = os.environ if environ is None else environ
        base_url = env.get("BOOKCACHE_API_BASE_URL") or env.get("API_BASE_URL") or DEFAULT_BASE_URL
        timeout = float(env.get("BOOKCACHE_REQUEST_TIMEOUT", cls.timeout))
        return cls(base_url=base_url.rstrip("/"), timeout=timeout)


__all__ = ["ClientConfig", "DEFAULT_BASE_URL"]
