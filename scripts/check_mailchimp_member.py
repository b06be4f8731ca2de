#!/usr/bin/env python3
"""
Show a buyer's Mailchimp audience membership and tags.

Reads MAILCHIMP_API_KEY, MAILCHIMP_SERVER_PREFIX and MAILCHIMP_AUDIENCE_ID from .env file.
Run from project root: python scripts/check_mailchimp_member.py buyer@example.com
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
from src.providers.mailchimp.client import get_member


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/check_mailchimp_member.py <email>")
        sys.exit(1)

    email = sys.argv[1]
    config = Settings()

    try:
        member = asyncio.run(
            get_member(
                email=email,
                audience_id=config.mailchimp_audience_id,
                api_key=config.mailchimp_api_key,
                server_prefix=config.mailchimp_server_prefix,
                timeout_seconds=config.upstream_timeout_seconds,
            )
        )
    except UpstreamError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if member is None:
        print(f"{email} is not in audience {config.mailchimp_audience_id}")
        sys.exit(2)

    tags = [tag.get("name") for tag in member.get("tags") or [] if isinstance(tag, dict)]
    print(f"Member: {member.get('email_address', email)}")
    print(f"  Status: {member.get('status')}")
    print(f"  Merge fields: {member.get('merge_fields') or {}}")
    print(f"  Tags: {', '.join(tags) if tags else '(none)'}")


if __name__ == "__main__":
    main()
