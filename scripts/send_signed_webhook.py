#!/usr/bin/env python3
"""
Post a signed sample order to a running webhook endpoint.

Reads WEBFLOW_WEBHOOK_SECRET from .env file.
Run from project root:
    python scripts/send_signed_webhook.py http://localhost:8000/api/webflow/order --product-id abc123
"""

import argparse
import json
import os
import sys
import time

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Load .env file
from dotenv import load_dotenv
load_dotenv(os.path.join(project_root, ".env"))

import httpx
from src.domain.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, sign


def sample_order(product_id: str, email: str) -> dict:
    return {
        "triggerType": "ecomm_new_order",
        "payload": {
            "orderId": f"test-order-{int(time.time())}",
            "customerInfo": {"fullName": "Test Customer", "email": email},
            "purchasedItems": [
                {"productId": product_id, "name": "Test Workshop", "count": 1},
            ],
        },
    }


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("url")
    parser.add_argument("--product-id", required=True)
    parser.add_argument("--email", default=os.getenv("RESEND_FROM_EMAIL", "test@example.com"))
    args = parser.parse_args()

    secret = os.getenv("WEBFLOW_WEBHOOK_SECRET")
    if not secret:
        print("Error: WEBFLOW_WEBHOOK_SECRET must be set in .env")
        sys.exit(1)

    body = json.dumps(sample_order(args.product_id, args.email))
    timestamp = str(int(time.time() * 1000))
    headers = {
        "Content-Type": "application/json",
        SIGNATURE_HEADER: sign(secret, timestamp, body),
        TIMESTAMP_HEADER: timestamp,
    }

    response = httpx.post(args.url, content=body, headers=headers, timeout=60.0)
    print(f"HTTP {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


if __name__ == "__main__":
    main()
