"""
Provider adapter interfaces
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from plantscan.config import API_CONNECT_TIMEOUT, API_TIMEOUT
from plantscan.errors import ConfigError
from plantscan.models import CareDefaults, HealthOutcome, IdentificationOutcome
from plantscan.services.catalog import GCICatalog

logger = logging.getLogger(__name__)


def default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=API_CONNECT_TIMEOUT,
        read=API_TIMEOUT,
        write=API_TIMEOUT,
        pool=API_TIMEOUT,
    )


class ProviderAdapter(ABC):
    """Common plumbing: credentials, HTTP client, care defaults, catalog"""

    name = "provider"
    label = "Provider"
    key_env = "API_KEY"

    def __init__(
        self,
        api_key: Optional[str],
        care: Optional[CareDefaults] = None,
        catalog: Optional[GCICatalog] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.care = care or CareDefaults()
        self.catalog = catalog if catalog is not None else GCICatalog.get_instance()
        self._http_client = http_client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self):
        """Raise ConfigError before any request is made without credentials"""
        if not self.api_key:
            logger.error(f"{self.label} API key not configured")
            raise ConfigError(f"{self.label} API key is not configured. Add {self.key_env} to your environment.")

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, **kwargs)
        async with httpx.AsyncClient(timeout=default_timeout()) as client:
            return await client.post(url, **kwargs)


class IdentificationAdapter(ProviderAdapter):
    @abstractmethod
    async def identify(self, images: List[bytes]) -> IdentificationOutcome:
        """
        Identify the species in 1-5 images.

        Raises ConfigError when credentials are missing (before any request)
        and UpstreamError when the provider fails.
        """
        pass


class HealthAdapter(ProviderAdapter):
    @abstractmethod
    async def diagnose(self, images: List[bytes]) -> HealthOutcome:
        """
        Assess plant health in 1-5 images.

        Raises ConfigError when credentials are missing and
        HealthUpstreamError when the provider fails.
        """
        pass
