"""Base HTTP Client for the compensation jobs API"""

from typing import Any

import httpx


class KeeperJobsError(Exception):
    """Raised for connection failures and error responses from the API"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class APIClient:
    """HTTP client for the compensation jobs API"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: int = 30,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle API response and extract data"""
        try:
            data = response.json()
        except ValueError:
            raise KeeperJobsError(
                f"Invalid JSON response: {response.status_code}", response.status_code
            ) from None

        if response.status_code >= 400:
            error_msg = "Unknown error"
            if isinstance(data, dict):
                error_msg = data.get("error", {}).get("message", error_msg)
            raise KeeperJobsError(
                f"API Error {response.status_code}: {error_msg}", response.status_code
            )

        # Envelope format (with "ok" field)
        if isinstance(data, dict) and "ok" in data:
            if not data.get("ok", False):
                error_msg = data.get("error", {}).get("message", "Request failed")
                raise KeeperJobsError(error_msg, response.status_code)
            return data.get("data", {})

        # Direct response format, e.g. the trigger
        return data

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self.client.request(method, f"/v1{path}", params=params, json=json)
        except httpx.RequestError as e:
            raise KeeperJobsError(f"Connection failed: {e}") from None
        return self._handle_response(response)

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make GET request"""
        return self.request("GET", path, params=params)

    def post(self, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make POST request"""
        return self.request("POST", path, json=json)
