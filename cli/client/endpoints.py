"""API Endpoint Wrappers"""

from typing import Any

import httpx

from .base import APIClient
from ..utils.config_manager import config


class KeeperJobsClient:
    """High-level client with typed endpoint methods"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        api_config = config.load_config().get("api", {})
        self.api = APIClient(
            base_url=base_url or api_config.get("base_url", "http://localhost:8000"),
            timeout=api_config.get("timeout", 30),
            token=token or api_config.get("token"),
            transport=transport,
        )

    def __enter__(self):
        self.api.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.api.__exit__(exc_type, exc_val, exc_tb)

    def health_check(self) -> dict[str, Any]:
        """Check API health status"""
        return self.api.get("/healthz")

    def run_jobs(self) -> dict[str, Any]:
        """Trigger one poll cycle"""
        return self.api.post("/jobs/run")

    def list_jobs(
        self,
        state: str | None = None,
        queue_name: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """List jobs with filters"""
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if state:
            params["state"] = state
        if queue_name:
            params["queue_name"] = queue_name
        return self.api.get("/jobs", params)

    def get_job(self, job_id: str) -> dict[str, Any]:
        """Get specific job by ID"""
        return self.api.get(f"/jobs/{job_id}")

    def job_stats(self) -> dict[str, Any]:
        """Get queue statistics"""
        return self.api.get("/jobs/stats/overview")

    def enqueue_job(
        self, queue_name: str, data: dict[str, Any], scheduled: str | None = None
    ) -> dict[str, Any]:
        """Enqueue a job"""
        body: dict[str, Any] = {"queue_name": queue_name, "data": data}
        if scheduled:
            body["scheduled"] = scheduled
        return self.api.post("/jobs", body)
