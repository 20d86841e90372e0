#!/usr/bin/env python3
"""
Print the stages of a GHL pipeline, with the canonical portal stage each
one maps to. Useful for checking a new pipeline against the stage
mapping.

Usage: python pipeline_stages.py <pipeline_id>
"""
import sys

import config
from portal.ghl_sync.ghl_client import GHLClient
from portal.ghl_sync.stage_mapping import is_canonical_stage, normalize_stage


def fetch_pipeline_stages(client, pipeline_id):
    """
    Fetch and print all stages for a given pipeline ID.
    """
    stages = client.get_pipeline_stages(pipeline_id)
    print(f"Pipeline {pipeline_id} stages:")
    for s in stages:
        portal_stage = normalize_stage(s.get('name', ''))
        marker = portal_stage if is_canonical_stage(portal_stage) else "UNMAPPED"
        print(f" • {s.get('name')} (ID = {s.get('id')}) -> {marker}")
    return stages


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    client = GHLClient(config.GHL_API_KEY, base_url=config.GHL_BASE_URL, api_version=config.GHL_API_VERSION)
    try:
        fetch_pipeline_stages(client, sys.argv[1])
    finally:
        client.close()
