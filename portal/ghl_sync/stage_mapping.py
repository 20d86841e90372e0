"""
Stage Mapping

Maps GHL pipeline stage names onto the portal's canonical deal stages.
"""

import logging

logger = logging.getLogger(__name__)

CANONICAL_STAGES = (
    "Qualification",
    "Needs Analysis",
    "Lender Submission",
    "Proposal",
    "Signed Proposal",
    "Underwriting",
)

# GHL has used both "X Stage" and bare "X" names for the same stage.
GHL_STAGE_MAP = {
    "Initial Qualification Stage": "Qualification",
    "Needs Analysis Stage": "Needs Analysis",
    "Lender Submission Stage": "Lender Submission",
    "Proposal Stage": "Proposal",
    "Signed Proposal Stage": "Signed Proposal",
    "Underwriting Stage": "Underwriting",
    "Qualification": "Qualification",
    "Needs Analysis": "Needs Analysis",
    "Lender Submission": "Lender Submission",
    "Proposal": "Proposal",
    "Signed Proposal": "Signed Proposal",
    "Underwriting": "Underwriting",
}


def is_canonical_stage(stage) -> bool:
    return stage in CANONICAL_STAGES


def normalize_stage(ghl_stage_name: str) -> str:
    """
    Map a GHL stage name to a canonical portal stage.

    Mapping order:
    - exact (case-sensitive) match against GHL_STAGE_MAP
    - case-insensitive exact match
    - a known name contained in the label (longest first), then the
      label contained in a known name
    - otherwise the name is returned unchanged, so unknown stages stay
      visible on the deal

    Args:
        ghl_stage_name: Stage label as sent by GHL

    Returns:
        Canonical stage name, or the input if nothing matched
    """
    if not ghl_stage_name or not ghl_stage_name.strip():
        return ghl_stage_name

    if ghl_stage_name in GHL_STAGE_MAP:
        return GHL_STAGE_MAP[ghl_stage_name]

    lower_name = ghl_stage_name.strip().lower()
    lower_map = {ghl_stage.lower(): portal_stage for ghl_stage, portal_stage in GHL_STAGE_MAP.items()}
    if lower_name in lower_map:
        return lower_map[lower_name]

    # Longest contained key wins: "signed proposal" over "proposal"
    for key in sorted(lower_map, key=len, reverse=True):
        if key in lower_name:
            logger.info(f"Stage mapping: matched '{ghl_stage_name}' to '{lower_map[key]}'")
            return lower_map[key]

    for key, portal_stage in lower_map.items():
        if lower_name in key:
            logger.info(f"Stage mapping: matched '{ghl_stage_name}' to '{portal_stage}'")
            return portal_stage

    logger.warning(f"No stage mapping found for GHL stage '{ghl_stage_name}', using as-is")
    return ghl_stage_name
