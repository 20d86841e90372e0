"""
GHL Webhook Handling

Request-level orchestration for GHL webhooks: authenticate, parse, match,
reconcile, persist, respond. Every handler returns a (body, status) pair
and never raises, so GHL always gets an answer. GHL's own webhook retry
policy is the only retry mechanism; a missing deal is answered with 200
so that it does not retry forever.
"""

import hmac
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from ..utils import utc_now_iso
from .deal_matcher import default_strategies, find_deal
from .opportunity import ContactEvent, InvalidPayloadError, OpportunityEvent
from .stage_mapping import normalize_stage

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"

Response = Tuple[Dict[str, Any], int]


def check_webhook_secret(headers: Mapping[str, str], secret: Optional[str]) -> bool:
    """
    True when no secret is configured, or the request carries the
    configured secret in X-Webhook-Secret.
    """
    if not secret:
        return True
    provided = headers.get(WEBHOOK_SECRET_HEADER)
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8"))


def _error(message: str, status: int) -> Response:
    return {"success": False, "error": message}, status


def handle_opportunity_webhook(
    body: Any,
    headers: Mapping[str, str],
    store,
    reconciler,
    secret: Optional[str] = None,
    address_hint_keywords=(),
    source: str = "ghl",
) -> Response:
    """
    Process one GHL opportunity webhook.

    Args:
        body: Decoded JSON body (None if the body was not JSON)
        headers: Request headers
        store: Deal store
        reconciler: FieldReconciler
        secret: Shared webhook secret; None disables the check
        address_hint_keywords: Keywords for the deal matcher's address hint tier
        source: Route name, used in log lines

    Returns:
        (response body, HTTP status)
    """
    if not check_webhook_secret(headers, secret):
        logger.warning(f"[{source}] Rejected webhook with invalid secret")
        return _error("Unauthorized", 401)

    try:
        event = OpportunityEvent.from_payload(body)
    except InvalidPayloadError as e:
        logger.warning(f"[{source}] Invalid webhook payload: {e}")
        return _error(str(e), 400)

    logger.info(f"[{source}] Webhook for opportunity id={event.opportunity_id} name={event.name!r}")

    try:
        deals = store.get_all_deals()
        deal = find_deal(event, deals, default_strategies(address_hint_keywords))

        if deal is None:
            logger.warning(
                f"[{source}] No matching deal for opportunity id={event.opportunity_id} name={event.name!r}"
            )
            return {
                "success": True,
                "message": "Webhook received but no matching deal found",
                "opportunityId": event.opportunity_id,
                "opportunityName": event.name,
            }, 200

        deal_id = deal["id"]
        updates = reconciler.reconcile(deal, event)

        if not updates:
            logger.info(f"[{source}] Deal {deal_id}: no changes to apply")
            return {
                "success": True,
                "message": "No changes to apply",
                "dealId": deal_id,
                "updates": {},
                "noChanges": True,
                "stageChanged": False,
            }, 200

        logger.info(f"[{source}] Deal {deal_id}: applying updates {sorted(updates)}")
        store.update_deal(deal_id, updates)

        return {
            "success": True,
            "message": "Deal updated successfully",
            "dealId": deal_id,
            "updates": updates,
            "noChanges": False,
            "stageChanged": "stage" in updates,
        }, 200

    except Exception as e:
        logger.error(
            f"[{source}] Error processing webhook for opportunity id={event.opportunity_id}: {e}",
            exc_info=True,
        )
        return _error("Failed to process webhook", 500)


def handle_contact_webhook(
    body: Any,
    headers: Mapping[str, str],
    store,
    reconciler,
    secret: Optional[str] = None,
) -> Response:
    """
    Process a GHL contact webhook: push contact-level custom fields onto
    every deal linked to the contact.
    """
    if not check_webhook_secret(headers, secret):
        logger.warning("[contact] Rejected webhook with invalid secret")
        return _error("Unauthorized", 401)

    try:
        event = ContactEvent.from_payload(body)
    except InvalidPayloadError as e:
        logger.warning(f"[contact] Invalid webhook payload: {e}")
        return _error(str(e), 400)

    try:
        deals = store.get_deals_by_contact_id(event.contact_id)
        if not deals:
            logger.warning(f"[contact] No deals found for contact {event.contact_id}")
            return {
                "success": True,
                "message": "Webhook received but no related deals found",
                "contactId": event.contact_id,
            }, 200

        updated = {}
        for deal in deals:
            updates = reconciler.reconcile_contact(deal, event)
            if updates:
                store.update_deal(deal["id"], updates)
                updated[deal["id"]] = updates

        logger.info(f"[contact] Contact {event.contact_id}: updated {len(updated)} of {len(deals)} deals")
        return {
            "success": True,
            "message": "Contact updates processed successfully",
            "contactId": event.contact_id,
            "relatedDeals": len(deals),
            "updatedDeals": updated,
        }, 200

    except Exception as e:
        logger.error(f"[contact] Error processing webhook for contact {event.contact_id}: {e}", exc_info=True)
        return _error("Failed to process contact webhook", 500)


def apply_stage_change(body: Any, store, stage_lookup) -> Response:
    """
    Move a deal to the stage identified by GHL ids, as if GHL had sent a
    stage change. Used when wiring up a new pipeline.
    """
    body = body if isinstance(body, dict) else {}
    deal_id = body.get("dealId")
    new_stage_id = body.get("newStageId")
    pipeline_id = body.get("pipelineId")

    if not deal_id or not new_stage_id or not pipeline_id:
        return _error("Missing required fields: dealId, newStageId, pipelineId", 400)
    if stage_lookup is None:
        return _error("GHL stage lookup not configured", 503)

    try:
        deal = store.get_deal_by_id(deal_id)
        if deal is None:
            return _error("Deal not found", 404)

        stage_name = stage_lookup(pipeline_id, new_stage_id)
        if not stage_name:
            return _error("Could not fetch stage name from GHL", 400)

        updates = {
            "stage": normalize_stage(stage_name),
            "stageLastUpdated": utc_now_iso(),
        }
        store.update_deal(deal_id, updates)

        return {
            "success": True,
            "message": "Stage change applied",
            "dealId": deal_id,
            "oldStage": deal.get("stage"),
            "newStage": updates["stage"],
            "ghlStageName": stage_name,
            "updates": updates,
        }, 200

    except Exception as e:
        logger.error(f"Manual stage change failed for deal {deal_id}: {e}", exc_info=True)
        return _error("Stage change failed", 500)


def diagnose_deals(store) -> Response:
    """Summarize which deals are linked to a GHL opportunity."""
    try:
        deals = store.get_all_deals()
    except Exception as e:
        logger.error(f"Error loading deals for diagnosis: {e}", exc_info=True)
        return _error("Failed to get deals for diagnosis", 500)

    with_ghl = [d for d in deals if d.get("ghlOpportunityId")]
    return {
        "message": "Deal diagnosis completed",
        "timestamp": utc_now_iso(),
        "summary": {
            "totalDeals": len(deals),
            "dealsWithGhlId": len(with_ghl),
            "dealsWithoutGhlId": len(deals) - len(with_ghl),
        },
        "allDeals": [
            {
                "id": d.get("id"),
                "dealId": d.get("dealId"),
                "title": d.get("title"),
                "stage": d.get("stage"),
                "ghlOpportunityId": d.get("ghlOpportunityId"),
                "contactId": d.get("contactId"),
                "hasGhlId": bool(d.get("ghlOpportunityId")),
            }
            for d in deals
        ],
        "ghlOpportunityIds": [d["ghlOpportunityId"] for d in with_ghl],
    }, 200
