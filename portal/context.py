"""
Portal Context

Holds the process-wide collaborators (deal store, GHL client) that the
webhook routes use. Built once at startup, handed to the Flask app, and
closed explicitly on shutdown.
"""

import logging
from typing import Any, Mapping, Optional

from .deal_store import FirestoreDealStore, InMemoryDealStore
from .ghl_sync.ghl_client import DEFAULT_API_VERSION, DEFAULT_BASE_URL, GHLClient
from .ghl_sync.reconciler import FieldReconciler

logger = logging.getLogger(__name__)


class PortalContext:
    def __init__(self, deal_store, ghl_client: Optional[GHLClient] = None):
        self.deal_store = deal_store
        self.ghl_client = ghl_client
        self.reconciler = FieldReconciler(
            stage_lookup=ghl_client.get_stage_name_by_id if ghl_client else None,
        )
        self._closed = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PortalContext":
        """
        Build the context from settings (a Flask config or the config module's values).

        Without FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID the deals live
        in memory only, which is meant for local development.
        """
        if config.get("FIREBASE_CREDENTIALS_PATH") or config.get("FIREBASE_PROJECT_ID"):
            deal_store = FirestoreDealStore(
                credentials_path=config.get("FIREBASE_CREDENTIALS_PATH"),
                project_id=config.get("FIREBASE_PROJECT_ID"),
                collection=config.get("DEALS_COLLECTION", "deals"),
            )
        else:
            logger.warning("No Firebase credentials configured - using in-memory deal store")
            deal_store = InMemoryDealStore()

        api_key = config.get("GHL_API_KEY")
        if not api_key:
            logger.warning("GHL_API_KEY not set - stage ids in webhooks cannot be resolved")
        ghl_client = GHLClient(
            api_key=api_key,
            base_url=config.get("GHL_BASE_URL") or DEFAULT_BASE_URL,
            api_version=config.get("GHL_API_VERSION") or DEFAULT_API_VERSION,
        )
        return cls(deal_store, ghl_client)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.ghl_client is not None:
            self.ghl_client.close()
        self.deal_store.close()
