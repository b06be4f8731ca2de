#!/usr/bin/env python3
"""
Send a test email through Resend.

Reads RESEND_API_KEY and RESEND_FROM_EMAIL from .env file.
Run from project root: python scripts/send_test_email.py you@example.com
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
from src.providers.resend.client import send_test_email


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/send_test_email.py <email> [subject]")
        sys.exit(1)

    email = sys.argv[1]
    config = Settings()
    options = {}
    if len(sys.argv) > 2:
        options["subject"] = sys.argv[2]

    try:
        result = asyncio.run(
            send_test_email(
                email,
                api_key=config.resend_api_key,
                from_email=config.resend_from_email,
                base_url=config.resend_api_base,
                **options,
            )
        )
    except UpstreamError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print(f"Sent test email to {email}")
    print(f"  Message ID: {result.get('id')}")


if __name__ == "__main__":
    main()
