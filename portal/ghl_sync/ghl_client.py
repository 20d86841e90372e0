"""
GoHighLevel API Client

Thin wrapper around the GHL REST API (v1) for the lookups the webhook
pipeline needs: pipelines and their stages.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://rest.gohighlevel.com/v1"
DEFAULT_API_VERSION = "2021-07-28"


class GHLApiError(RuntimeError):
    """Raised when a GHL API call fails or GHL is not configured."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GHLClient:
    """
    Wrapper around a requests.Session authenticated with a GHL API key.

    One client is created per process by PortalContext and closed with it.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Version": api_version,
        })
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def _get(self, path: str) -> Dict[str, Any]:
        if not self.api_key:
            raise GHLApiError("GHL API key not configured")

        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"GET {url}")
        resp = self.session.get(url)

        if resp.status_code == 401:
            raise GHLApiError("GHL API authentication failed. Check your API credentials.", 401)
        if resp.status_code == 403:
            raise GHLApiError("GHL API access forbidden. Check your API permissions.", 403)
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise GHLApiError(f"GHL API error for {url}: {e}", resp.status_code) from e
        return resp.json()

    def get_pipelines(self) -> List[Dict[str, Any]]:
        return self._get("/pipelines/").get("pipelines", [])

    def get_pipeline_id(self, pipeline_name: str) -> Optional[str]:
        for pipeline in self.get_pipelines():
            if pipeline.get("name") == pipeline_name:
                return pipeline.get("id")
        return None

    def get_pipeline_stages(self, pipeline_id: str) -> List[Dict[str, Any]]:
        """
        Fetch all stages of a pipeline.

        Args:
            pipeline_id: GHL pipeline ID

        Returns:
            List of stage dicts with at least "id" and "name"
        """
        return self._get(f"/pipelines/{pipeline_id}/stages/").get("stages", [])

    def get_stage_name_by_id(self, pipeline_id: str, stage_id: str) -> Optional[str]:
        """
        Resolve a (pipeline, stage) id pair to the stage's display name.

        Returns:
            The stage name, or None if the pipeline has no such stage

        Raises:
            GHLApiError: if the stages could not be fetched
        """
        for stage in self.get_pipeline_stages(pipeline_id):
            if stage.get("id") == stage_id:
                return stage.get("name")
        logger.warning(f"Stage {stage_id} not found in pipeline {pipeline_id}")
        return None

    def close(self) -> None:
        self.session.close()
