"""Tests for building the portal context from settings."""

from unittest.mock import patch

from pipeline_stages import fetch_pipeline_stages
from portal.context import PortalContext
from portal.deal_store import InMemoryDealStore
from portal.ghl_sync.ghl_client import GHLClient
from tests.conftest import FakeGHLClient, FakeStageLookup


class TestPortalContext:
    def test_in_memory_without_firebase_settings(self) -> None:
        ctx = PortalContext.from_config({"GHL_API_KEY": "key"})
        assert isinstance(ctx.deal_store, InMemoryDealStore)
        assert isinstance(ctx.ghl_client, GHLClient)
        assert ctx.reconciler.stage_lookup == ctx.ghl_client.get_stage_name_by_id
        ctx.close()

    def test_firestore_when_configured(self) -> None:
        with patch("portal.context.FirestoreDealStore") as store_cls:
            ctx = PortalContext.from_config({
                "FIREBASE_PROJECT_ID": "rainmakers",
                "DEALS_COLLECTION": "deals-staging",
            })
        store_cls.assert_called_once_with(
            credentials_path=None, project_id="rainmakers", collection="deals-staging"
        )
        assert ctx.deal_store is store_cls.return_value

    def test_without_ghl_client_there_is_no_stage_lookup(self) -> None:
        assert PortalContext(InMemoryDealStore()).reconciler.stage_lookup is None

    def test_close_is_idempotent(self) -> None:
        client = FakeGHLClient(FakeStageLookup())
        ctx = PortalContext(InMemoryDealStore([{"id": "d1"}]), client)
        ctx.close()
        ctx.close()
        assert client.closed
        assert ctx.deal_store.get_all_deals() == []


class _StagesOnlyClient:
    def get_pipeline_stages(self, pipeline_id):
        return [
            {"id": "s1", "name": "Proposal Stage"},
            {"id": "s2", "name": "Closed Won"},
        ]


def test_pipeline_stages_report(capsys) -> None:
    stages = fetch_pipeline_stages(_StagesOnlyClient(), "pipe-1")
    out = capsys.readouterr().out
    assert len(stages) == 2
    assert "Proposal Stage (ID = s1) -> Proposal" in out
    assert "Closed Won (ID = s2) -> UNMAPPED" in out
