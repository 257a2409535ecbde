"""
Admin Secret Setup Script

Prints the ADMIN_PASSWORD_HASH value for an admin password and, optionally,
a freshly generated BEARER_TOKEN. Paste the output into the deployment
environment (or a local .env file).

Usage:
    python scripts/hash_password.py
    python scripts/hash_password.py --generate-bearer-token
"""

import os
import sys
import argparse
import getpass
import secrets

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from retrace_admin.services.credential_verifier import hash_password, timing_safe_equal

MIN_PASSWORD_LENGTH = 12


def prompt_password() -> str:
    password = getpass.getpass("Admin password: ")
    confirm = getpass.getpass("Confirm password: ")

    if not timing_safe_equal(password, confirm):
        print("[X] Passwords do not match")
        sys.exit(1)

    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"[X] Password must be at least {MIN_PASSWORD_LENGTH} characters")
        sys.exit(1)

    return password


def main():
    parser = argparse.ArgumentParser(description="Generate admin gate secrets")
    parser.add_argument(
        "--generate-bearer-token",
        action="store_true",
        help="Also print a random BEARER_TOKEN for administrative API callers",
    )
    args = parser.parse_args()

    password = prompt_password()
    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")

    if args.generate_bearer_token:
        print(f"BEARER_TOKEN={secrets.token_urlsafe(32)}")


if __name__ == "__main__":
    main()
