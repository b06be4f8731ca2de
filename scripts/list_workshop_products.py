#!/usr/bin/env python3
"""
List the site's Webflow products and mark which ones count as workshops.

Reads WEBFLOW_SITE_ID and WEBFLOW_API_TOKEN from .env file.
Run from project root: python scripts/list_workshop_products.py [--workshops-only]
"""

import asyncio
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Load .env file
from dotenv import load_dotenv
load_dotenv(os.path.join(project_root, ".env"))

from src.config import Settings
from src.domain.errors import UpstreamError
from src.providers.webflow.client import is_workshop_product, list_products


def _product_record(item):
    if isinstance(item.get("product"), dict):
        return item["product"]
    return item


def main():
    workshops_only = "--workshops-only" in sys.argv[1:]
    config = Settings()
    if not config.webflow_site_id or not config.webflow_api_token:
        print("Error: WEBFLOW_SITE_ID and WEBFLOW_API_TOKEN must be set")
        sys.exit(1)

    try:
        items = asyncio.run(
            list_products(
                config.webflow_site_id,
                api_token=config.webflow_api_token,
                base_url=config.webflow_api_base,
                timeout_seconds=config.upstream_timeout_seconds,
            )
        )
    except UpstreamError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    workshop_count = 0
    for item in items:
        product = _product_record(item)
        is_workshop = is_workshop_product(
            product,
            product_type_id=config.workshop_product_type_id,
            category_id=config.workshop_category_id,
        )
        workshop_count += int(is_workshop)
        if workshops_only and not is_workshop:
            continue
        field_data = product.get("fieldData") or {}
        marker = "workshop" if is_workshop else "-"
        print(f"{product.get('id')}  [{marker}]  {field_data.get('name', '(unnamed)')}")

    print(f"\n{len(items)} products, {workshop_count} workshops")


if __name__ == "__main__":
    main()
