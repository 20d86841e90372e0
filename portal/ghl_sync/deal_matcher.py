"""
Deal Matching

Locates the portal deal a GHL opportunity event refers to. Matching is an
ordered chain of strategies over the full deal list; the first strategy
that returns a deal wins.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..deal_store import Deal
from .opportunity import OpportunityEvent

logger = logging.getLogger(__name__)

MatchStrategy = Callable[[OpportunityEvent, List[Deal]], Optional[Deal]]

# Deal fields compared verbatim against the opportunity name, in order
NAME_MATCH_FIELDS = ("dealId", "propertyAddress", "propertyName", "title")


def _contains_either_way(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def match_by_ghl_opportunity_id(event: OpportunityEvent, deals: List[Deal]) -> Optional[Deal]:
    if not event.opportunity_id:
        return None
    return next((d for d in deals if d.get("ghlOpportunityId") == event.opportunity_id), None)


def match_by_exact_name(event: OpportunityEvent, deals: List[Deal]) -> Optional[Deal]:
    if not event.name:
        return None
    for field in NAME_MATCH_FIELDS:
        for deal in deals:
            if deal.get(field) == event.name:
                return deal
    return None


def match_by_title_substring(event: OpportunityEvent, deals: List[Deal]) -> Optional[Deal]:
    if not event.name:
        return None
    for deal in deals:
        title = deal.get("title")
        if isinstance(title, str) and title.strip() and _contains_either_way(title, event.name):
            return deal
    return None


def _match_address(address: str, deals: List[Deal]) -> Optional[Deal]:
    if not address.strip():
        return None
    for deal in deals:
        deal_address = deal.get("propertyAddress")
        if isinstance(deal_address, str) and deal_address.strip() and _contains_either_way(deal_address, address):
            return deal
    return None


def match_by_property_address(event: OpportunityEvent, deals: List[Deal]) -> Optional[Deal]:
    address = event.property_address()
    if not address:
        return None
    return _match_address(address, deals)


def address_hint_strategy(keywords: Iterable[str]) -> MatchStrategy:
    """
    Build a strategy that treats any custom-field value containing one of
    `keywords` as a candidate address. With no keywords the strategy never
    matches.
    """
    keywords = tuple(k.lower() for k in keywords if k and k.strip())

    def match_by_address_hint(event: OpportunityEvent, deals: List[Deal]) -> Optional[Deal]:
        if not keywords:
            return None
        for key, value in event.custom_fields.items():
            if not isinstance(value, str):
                continue
            lower_value = value.lower()
            if any(k in lower_value for k in keywords):
                logger.info(f"Deal matcher: trying custom field '{key}' as address hint")
                deal = _match_address(value, deals)
                if deal:
                    return deal
        return None

    return match_by_address_hint


def default_strategies(address_hint_keywords: Iterable[str] = ()) -> List[Tuple[str, MatchStrategy]]:
    return [
        ("ghl_opportunity_id", match_by_ghl_opportunity_id),
        ("exact_name", match_by_exact_name),
        ("title_substring", match_by_title_substring),
        ("property_address", match_by_property_address),
        ("address_hint", address_hint_strategy(address_hint_keywords)),
    ]


def find_deal(
    event: OpportunityEvent,
    deals: List[Deal],
    strategies: Optional[Sequence[Tuple[str, MatchStrategy]]] = None,
) -> Optional[Deal]:
    """
    Find the deal an opportunity event refers to.

    Args:
        event: Parsed opportunity event
        deals: All portal deals
        strategies: Ordered (name, strategy) pairs; defaults to
            default_strategies() without address hints

    Returns:
        The matched deal, or None if no strategy matched
    """
    if strategies is None:
        strategies = default_strategies()

    for name, strategy in strategies:
        deal = strategy(event, deals)
        if deal is not None:
            logger.info(f"Deal matcher: opportunity {event.opportunity_id} matched deal {deal.get('id')} by {name}")
            return deal

    logger.info(
        f"Deal matcher: no deal for opportunity id={event.opportunity_id} name={event.name!r} "
        f"({len(deals)} deals searched)"
    )
    return None
