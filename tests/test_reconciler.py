"""Tests for computing deal updates from GHL events."""

import pytest

from portal.ghl_sync.ghl_client import GHLApiError
from portal.ghl_sync.opportunity import ContactEvent, OpportunityEvent
from portal.ghl_sync.reconciler import FieldReconciler
from tests.conftest import FakeStageLookup

NOW = "2026-10-16T12:00:00+00:00"


def _event(**opportunity) -> OpportunityEvent:
    return OpportunityEvent.from_payload({"opportunity": opportunity})


@pytest.fixture
def reconciler() -> FieldReconciler:
    return FieldReconciler(clock=lambda: NOW)


class TestFieldMapping:
    def test_top_level_and_custom_fields(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "propertyAddress": "old"}
        event = OpportunityEvent.from_payload({
            "opportunity": {
                "monetaryValue": 500000,
                "customFields": {"opportunity.property_address": "123 Main St"},
            }
        })
        assert reconciler.reconcile(deal, event) == {
            "opportunityValue": 500000,
            "propertyAddress": "123 Main St",
        }

    def test_unchanged_values_are_skipped(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "status": "open", "owner": "user-1"}
        event = _event(id="o1", status="open", assignedTo="user-2")
        assert reconciler.reconcile(deal, event) == {"owner": "user-2"}

    def test_blank_values_are_skipped(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "lender": "First Bank"}
        event = _event(
            id="o1",
            source="",
            tags=[],
            customFields={"opportunity.lender": "  ", "opportunity.ltv": None},
        )
        assert reconciler.reconcile(deal, event) == {}

    def test_first_ghl_key_wins_for_shared_field(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1"}
        event = _event(id="o1", monetaryValue=100, lead_value=200)
        assert reconciler.reconcile(deal, event) == {"opportunityValue": 100}

    def test_contact_namespace_fields(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1"}
        event = _event(id="o1", customFields={"contact.discord_username": "rainmaker#1"})
        assert reconciler.reconcile(deal, event) == {"discordUsername": "rainmaker#1"}

    def test_unmapped_custom_fields_are_dropped(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1"}
        event = _event(id="o1", customFields={"opportunity.favorite_color": "blue"})
        assert reconciler.reconcile(deal, event) == {}


class TestGhlOpportunityId:
    def test_set_when_missing(self, reconciler: FieldReconciler) -> None:
        assert reconciler.reconcile({"id": "d1"}, _event(id="o1")) == {"ghlOpportunityId": "o1"}

    def test_never_overwritten(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1"}
        assert reconciler.reconcile(deal, _event(id="o2")) == {}


class TestStage:
    def test_stage_change_sets_timestamp(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Qualification"}
        updates = reconciler.reconcile(deal, _event(id="o1", pipeline_stage="Proposal Stage"))
        assert updates == {"stage": "Proposal", "stageLastUpdated": NOW}

    def test_lowercase_proposal_label(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Lender Submission"}
        updates = reconciler.reconcile(deal, _event(id="o1", pipeline_stage="proposal"))
        assert updates == {"stage": "Proposal", "stageLastUpdated": NOW}

    def test_same_stage_produces_no_update(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Proposal", "stageLastUpdated": "earlier"}
        updates = reconciler.reconcile(deal, _event(id="o1", pipleline_stage="Proposal Stage"))
        assert updates == {}

    def test_stage_resolved_from_ids(self) -> None:
        lookup = FakeStageLookup({("pipe-1", "stage-uw"): "Underwriting Stage"})
        reconciler = FieldReconciler(stage_lookup=lookup, clock=lambda: NOW)
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Proposal", "pipelineId": "pipe-1", "stageId": "stage-uw"}
        updates = reconciler.reconcile(deal, _event(id="o1", pipelineId="pipe-1", pipelineStageId="stage-uw"))
        assert updates == {"stage": "Underwriting", "stageLastUpdated": NOW}
        assert lookup.calls == [("pipe-1", "stage-uw")]

    def test_stage_label_preferred_over_lookup(self) -> None:
        lookup = FakeStageLookup({("pipe-1", "stage-uw"): "Underwriting Stage"})
        reconciler = FieldReconciler(stage_lookup=lookup, clock=lambda: NOW)
        deal = {"id": "d1", "ghlOpportunityId": "o1", "pipelineId": "pipe-1", "stageId": "stage-uw"}
        event = _event(id="o1", pipeline_stage="Lender Submission", pipelineId="pipe-1", pipelineStageId="stage-uw")
        assert reconciler.reconcile(deal, event)["stage"] == "Lender Submission"
        assert lookup.calls == []

    def test_unknown_stage_id_leaves_stage_alone(self) -> None:
        reconciler = FieldReconciler(stage_lookup=FakeStageLookup(), clock=lambda: NOW)
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Proposal", "pipelineId": "pipe-1"}
        updates = reconciler.reconcile(deal, _event(id="o1", pipelineId="pipe-1", pipelineStageId="nope"))
        assert updates == {"stageId": "nope"}

    def test_lookup_errors_propagate(self) -> None:
        reconciler = FieldReconciler(stage_lookup=FakeStageLookup(error=GHLApiError("boom", 500)))
        with pytest.raises(GHLApiError):
            reconciler.reconcile({"id": "d1"}, _event(id="o1", pipelineId="p", pipelineStageId="s"))

    def test_timestamp_never_set_alone(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "ghlOpportunityId": "o1", "stage": "Qualification"}
        for stage in ("Initial Qualification Stage", "Proposal Stage", "Bespoke Custom Stage"):
            updates = reconciler.reconcile(deal, _event(id="o1", pipeline_stage=stage))
            assert ("stage" in updates) == ("stageLastUpdated" in updates)


class TestIdempotence:
    def test_second_pass_is_empty(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "stage": "Qualification", "propertyAddress": "old"}
        event = _event(
            id="o1",
            name="Sunset Apartments",
            status="open",
            monetaryValue=750000,
            pipeline_stage="Underwriting Stage",
            customFields=[
                {"key": "opportunity.property_address", "field_value": "100 Sunset Blvd"},
                {"key": "opportunity.loan_amount", "field_value": 500000},
            ],
        )
        first = reconciler.reconcile(deal, event)
        assert first
        deal.update(first)
        assert reconciler.reconcile(deal, event) == {}


class TestReconcileContact:
    def test_only_contact_fields(self, reconciler: FieldReconciler) -> None:
        deal = {"id": "d1", "leadPropertyCity": "Dallas"}
        event = ContactEvent.from_payload({
            "contact": {
                "id": "c1",
                "customFields": {
                    "contact.lead_property_city": "Austin",
                    "contact.discord_username": "rainmaker#1",
                    "opportunity.lender": "ignored here",
                },
            }
        })
        assert reconciler.reconcile_contact(deal, event) == {
            "leadPropertyCity": "Austin",
            "discordUsername": "rainmaker#1",
        }
