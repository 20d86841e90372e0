"""Pytest fixtures for portal sync tests."""

import pytest

from flask_app import create_app
from portal.context import PortalContext
from portal.deal_store import InMemoryDealStore


class FakeStageLookup:
    """Stands in for GHLClient.get_stage_name_by_id."""

    def __init__(self, stages=None, error=None):
        self.stages = stages or {}
        self.error = error
        self.calls = []

    def __call__(self, pipeline_id, stage_id):
        self.calls.append((pipeline_id, stage_id))
        if self.error is not None:
            raise self.error
        return self.stages.get((pipeline_id, stage_id))


class FakeGHLClient:
    def __init__(self, stage_lookup):
        self.get_stage_name_by_id = stage_lookup
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def sample_deals() -> list[dict]:
    return [
        {
            "id": "deal-1",
            "dealId": "RM-1001",
            "title": "Sunset Apartments Refinance",
            "propertyName": "Sunset Apartments",
            "propertyAddress": "100 Sunset Blvd, Los Angeles, CA",
            "ghlOpportunityId": "ghl-opp-1",
            "contactId": "contact-1",
            "stage": "Qualification",
            "status": "active",
        },
        {
            "id": "deal-2",
            "dealId": "RM-1002",
            "title": "Harbor Point Acquisition",
            "propertyName": "Harbor Point",
            "propertyAddress": "55 Harbor Way, Seattle, WA",
            "contactId": "contact-1",
            "stage": "Needs Analysis",
            "status": "active",
        },
    ]


@pytest.fixture
def store(sample_deals) -> InMemoryDealStore:
    return InMemoryDealStore(sample_deals)


@pytest.fixture
def stage_lookup() -> FakeStageLookup:
    return FakeStageLookup({("pipe-1", "stage-uw"): "Underwriting Stage"})


@pytest.fixture
def context(store, stage_lookup) -> PortalContext:
    return PortalContext(store, FakeGHLClient(stage_lookup))


@pytest.fixture
def app(context):
    return create_app(context=context, settings={"TESTING": True, "GHL_WEBHOOK_SECRET": None})


@pytest.fixture
def client(app):
    return app.test_client()
