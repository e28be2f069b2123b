"""
Generate an API key for local/dev usage and show the user id it maps to.

Usage:
  python tools/create_api_key.py
  python tools/create_api_key.py --key "dev-key-1" --admin
"""

import argparse
import sys
from pathlib import Path

# Ensure repo root is importable when script is executed via path (tools/create_api_key.py).
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from utils.api_key_utils import generate_api_key, user_id_for_api_key  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate an API key")
    parser.add_argument(
        "--key",
        default=None,
        help="Raw API key to describe. If omitted, a new random key is generated.",
    )
    parser.add_argument("--prefix", default="deepsearch", help="Prefix for generated key")
    parser.add_argument("--admin", action="store_true", help="Print the ADMIN_API_KEYS line instead")
    args = parser.parse_args()

    raw_key = args.key or generate_api_key(prefix=args.prefix)
    user_id = user_id_for_api_key(raw_key)

    print(f"user_id: {user_id}")
    print("\nAdd it to .env (comma-separate multiple keys):")
    print(f"{'ADMIN_API_KEYS' if args.admin else 'API_KEYS'}={raw_key}")
    print("\nUse this header:")
    print(f"X-API-Key: {raw_key}")


if __name__ == "__main__":
    main()
