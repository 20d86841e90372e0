"""
GoHighLevel -> Portal Sync Module

Handles GHL opportunity and contact webhooks and reconciles them into
portal deals.
"""

from .ghl_client import GHLClient, GHLApiError
from .opportunity import OpportunityEvent, ContactEvent, InvalidPayloadError
from .stage_mapping import normalize_stage, CANONICAL_STAGES
from .deal_matcher import find_deal, default_strategies
from .reconciler import FieldReconciler
from .webhook_handler import (
    handle_opportunity_webhook,
    handle_contact_webhook,
    apply_stage_change,
    diagnose_deals,
)

__all__ = [
    'GHLClient',
    'GHLApiError',
    'OpportunityEvent',
    'ContactEvent',
    'InvalidPayloadError',
    'normalize_stage',
    'CANONICAL_STAGES',
    'find_deal',
    'default_strategies',
    'FieldReconciler',
    'handle_opportunity_webhook',
    'handle_contact_webhook',
    'apply_stage_change',
    'diagnose_deals',
]
