"""
Base class for remote API integrations
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import httpx

from workflow_factory.config import ToolConfig
from workflow_factory.models.schemas import ToolStatus


class BaseIntegration(ABC):
    """Base class for remote API clients"""

    def __init__(self, config: ToolConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.client = httpx.AsyncClient(timeout=config.timeout, transport=transport)

    @property
    @abstractmethod
    def name(self) -> str:
        """Integration name"""
        pass

    @abstractmethod
    async def health_check(self) -> ToolStatus:
        """Check if the remote API is reachable"""
        pass

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers for API requests"""
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict] = None
    ) -> httpx.Response:
        """Make an HTTP request to the remote API"""
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        req_headers = self._get_headers()
        if headers:
            req_headers.update(headers)

        response = await self.client.request(
            method=method,
            url=url,
            params=params,
            json=json,
            headers=req_headers,
        )
        return response

    async def get(self, endpoint: str, params: Optional[Dict] = None, **kwargs) -> httpx.Response:
        return await self._request("GET", endpoint, params=params, **kwargs)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
