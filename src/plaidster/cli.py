"""
Plaidster command line - manage the client credentials the library uses.

Run with: python -m plaidster.cli

Or via the console script: plaidster
"""

import argparse
import getpass
import logging
from typing import List, Optional

from .config import ClientConfig, store_secret
from .errors import ConfigurationError


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Plaidster client credentials")
    parser.add_argument(
        "command",
        choices=["store-secret", "check-credentials"],
        help="Command to execute",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "store-secret":
        print("Enter your Plaid client secret:")
        secret = getpass.getpass("> ").strip()
        if not secret:
            print("✗ No secret provided.")
            return 1
        if store_secret(secret):
            print("✓ Secret stored securely in OS keyring.")
            return 0
        print("✗ Failed to store secret. Set PLAID_SECRET environment variable instead.")
        return 1

    try:
        config = ClientConfig.from_environment()
    except ConfigurationError as e:
        print(f"✗ {e}")
        return 1

    print(f"✓ Client id found: {config.client_id}")
    print(f"✓ Secret found ({len(config.secret)} characters)")
    print(f"  Environment: {config.environment.value} ({config.base_url})")
    print(f"  Timeout: {config.timeout:g}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
