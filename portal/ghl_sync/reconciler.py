"""
Field Reconciliation

Computes the minimal set of deal field updates implied by a GHL event.
Nothing here writes; callers persist the returned dict.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from ..deal_store import Deal
from ..utils import is_blank, utc_now_iso
from .field_mapping import CONTACT_CUSTOM_FIELD_MAP, CUSTOM_FIELD_MAP, TOP_LEVEL_FIELD_MAP
from .opportunity import ContactEvent, OpportunityEvent
from .stage_mapping import normalize_stage

logger = logging.getLogger(__name__)

StageLookup = Callable[[str, str], Optional[str]]


def diff_mapped_fields(
    deal: Deal,
    source: Mapping[str, Any],
    field_map: Mapping[str, str],
    updates: Dict[str, Any],
) -> None:
    """
    Copy mapped values from `source` into `updates` where they are non-blank
    and differ from the deal's current value. The first GHL key that
    provides a value for a deal field wins.
    """
    for ghl_key, deal_field in field_map.items():
        if deal_field in updates or ghl_key not in source:
            continue
        value = source[ghl_key]
        if is_blank(value):
            continue
        if deal.get(deal_field) != value:
            updates[deal_field] = value


class FieldReconciler:
    """
    Turns an OpportunityEvent into updates for a matched deal.

    Args:
        stage_lookup: Resolves (pipeline_id, stage_id) to a stage name;
            usually GHLClient.get_stage_name_by_id. Without it, events that
            only carry stage ids leave the stage alone.
        clock: Returns the timestamp written to stageLastUpdated
    """

    def __init__(self, stage_lookup: Optional[StageLookup] = None, clock: Callable[[], str] = utc_now_iso):
        self.stage_lookup = stage_lookup
        self.clock = clock

    def resolve_stage_name(self, event: OpportunityEvent) -> Optional[str]:
        if event.stage_name:
            return event.stage_name
        if not (event.pipeline_id and event.pipeline_stage_id):
            return None
        if self.stage_lookup is None:
            logger.warning(
                f"Stage id {event.pipeline_stage_id} received but no stage lookup is configured"
            )
            return None

        # Lookup failures propagate; the webhook answers 500 and GHL retries
        stage_name = self.stage_lookup(event.pipeline_id, event.pipeline_stage_id)
        if not stage_name:
            logger.warning(
                f"Could not resolve stage {event.pipeline_stage_id} in pipeline {event.pipeline_id}, "
                f"leaving stage unchanged"
            )
        return stage_name

    def reconcile(self, deal: Deal, event: OpportunityEvent) -> Dict[str, Any]:
        """
        Compute field updates for `deal` from `event`.

        Returns:
            Deal fields to write; empty if nothing changed. A "stage" entry
            is always accompanied by "stageLastUpdated".
        """
        updates: Dict[str, Any] = {}

        if event.opportunity_id and not deal.get("ghlOpportunityId"):
            updates["ghlOpportunityId"] = event.opportunity_id

        stage_name = self.resolve_stage_name(event)
        if stage_name:
            new_stage = normalize_stage(stage_name)
            current_stage = deal.get("stage")
            if new_stage != current_stage:
                logger.info(f"Deal {deal.get('id')}: stage {current_stage!r} -> {new_stage!r} (GHL: {stage_name!r})")
                updates["stage"] = new_stage
                updates["stageLastUpdated"] = self.clock()

        diff_mapped_fields(deal, event.attributes, TOP_LEVEL_FIELD_MAP, updates)
        diff_mapped_fields(deal, event.custom_fields, CUSTOM_FIELD_MAP, updates)

        unmapped = sorted(key for key in event.custom_fields if key not in CUSTOM_FIELD_MAP)
        if unmapped:
            logger.debug(f"Deal {deal.get('id')}: ignoring unmapped custom fields {unmapped}")

        return updates

    def reconcile_contact(self, deal: Deal, event: ContactEvent) -> Dict[str, Any]:
        """Compute updates for `deal` from contact-level custom fields only."""
        updates: Dict[str, Any] = {}
        diff_mapped_fields(deal, event.custom_fields, CONTACT_CUSTOM_FIELD_MAP, updates)

        unmapped = sorted(key for key in event.custom_fields if key not in CONTACT_CUSTOM_FIELD_MAP)
        if unmapped:
            logger.debug(f"Deal {deal.get('id')}: ignoring unmapped contact fields {unmapped}")
        return updates
