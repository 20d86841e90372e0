"""
Deal Store

Persistence for portal deals. FirestoreDealStore is the production store;
InMemoryDealStore is used when no Firebase credentials are configured and
in tests. Both hand deals out as plain dicts carrying their document "id".
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import NotFound

from .utils import drop_none

logger = logging.getLogger(__name__)

Deal = Dict[str, Any]


class DealNotFoundError(KeyError):
    """Raised when writing to a deal id that does not exist."""


class FirestoreDealStore:
    """
    Deal collection in Firestore, accessed through firebase-admin.

    The firebase-admin app is created under its own name so that the store
    owns it and close() can tear it down again.
    """

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
        collection: str = "deals",
        app_name: str = "rainmakers-portal",
    ):
        if credentials_path:
            cred = credentials.Certificate(credentials_path)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": project_id} if project_id else None

        logger.info(f"Initializing Firestore deal store (collection: {collection})")
        self._app = firebase_admin.initialize_app(cred, options, name=app_name)
        self._db = firestore.client(app=self._app)
        self.collection = collection

    def _deals(self):
        return self._db.collection(self.collection)

    @staticmethod
    def _to_deal(snapshot) -> Deal:
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    def get_all_deals(self) -> List[Deal]:
        query = self._deals().order_by("createdAt", direction=firestore.Query.DESCENDING)
        return [self._to_deal(doc) for doc in query.stream()]

    def get_deal_by_id(self, deal_id: str) -> Optional[Deal]:
        snapshot = self._deals().document(deal_id).get()
        if not snapshot.exists:
            return None
        return self._to_deal(snapshot)

    def get_deals_by_contact_id(self, contact_id: str) -> List[Deal]:
        query = self._deals().where(filter=firestore.FieldFilter("contactId", "==", contact_id))
        return [self._to_deal(doc) for doc in query.stream()]

    def create_deal(self, data: Deal) -> Deal:
        now = datetime.now(timezone.utc)
        ref = self._deals().document()
        deal = {**drop_none(data), "id": ref.id, "createdAt": now, "updatedAt": now}
        ref.set(deal)
        logger.info(f"Created deal {ref.id}")
        return deal

    def update_deal(self, deal_id: str, updates: Deal) -> Optional[Deal]:
        """
        Apply a partial update to a deal.

        None values are dropped before writing and updatedAt is stamped
        with the server time.

        Raises:
            DealNotFoundError: if no document exists for deal_id
        """
        fields = drop_none(updates)
        fields["updatedAt"] = firestore.SERVER_TIMESTAMP
        try:
            self._deals().document(deal_id).update(fields)
        except NotFound as e:
            raise DealNotFoundError(deal_id) from e
        return self.get_deal_by_id(deal_id)

    def delete_deal(self, deal_id: str) -> None:
        self._deals().document(deal_id).delete()

    def close(self) -> None:
        logger.info("Closing Firestore deal store")
        firebase_admin.delete_app(self._app)


def _as_datetime(value: Any) -> datetime:
    """Coerce a stored timestamp (datetime or ISO-8601 string) to an aware datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class InMemoryDealStore:
    """Process-local deal store with the same interface as FirestoreDealStore."""

    def __init__(self, deals: Optional[List[Deal]] = None):
        self._deals: Dict[str, Deal] = {}
        for deal in deals or []:
            self.create_deal(deal)

    def get_all_deals(self) -> List[Deal]:
        deals = sorted(
            self._deals.values(),
            key=lambda d: d["createdAt"],
            reverse=True,
        )
        return [copy.deepcopy(d) for d in deals]

    def get_deal_by_id(self, deal_id: str) -> Optional[Deal]:
        deal = self._deals.get(deal_id)
        return copy.deepcopy(deal) if deal is not None else None

    def get_deals_by_contact_id(self, contact_id: str) -> List[Deal]:
        return [d for d in self.get_all_deals() if d.get("contactId") == contact_id]

    def create_deal(self, data: Deal) -> Deal:
        now = datetime.now(timezone.utc)
        deal_id = data.get("id") or uuid.uuid4().hex
        deal = {
            **drop_none(data),
            "id": deal_id,
            "createdAt": _as_datetime(data.get("createdAt") or now),
            "updatedAt": now,
        }
        self._deals[deal_id] = deal
        return copy.deepcopy(deal)

    def update_deal(self, deal_id: str, updates: Deal) -> Optional[Deal]:
        if deal_id not in self._deals:
            raise DealNotFoundError(deal_id)
        self._deals[deal_id].update(drop_none(updates))
        self._deals[deal_id]["updatedAt"] = datetime.now(timezone.utc)
        return self.get_deal_by_id(deal_id)

    def delete_deal(self, deal_id: str) -> None:
        self._deals.pop(deal_id, None)

    def close(self) -> None:
        self._deals.clear()
