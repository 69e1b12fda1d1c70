"""
Initialize the review database.

This script:
1. Creates the SQL tables (or the MongoDB indexes) for the configured backend
2. Optionally provisions default scheduling parameters for a user

Usage:
    python -m scripts.init_db [--user-id USER] [--overwrite]
"""

from __future__ import annotations

import argparse

from flashbag.config import get_storage_backend, is_test_mode
from flashbag.fsrs.parameters import default_parameters
from flashbag.storage import get_store


def init_db(user_id: str | None = None, overwrite: bool = False):
    print(f"Backend: {get_storage_backend()}{' (TEST MODE)' if is_test_mode() else ''}")

    store = get_store()
    print("✓ Schema ready")

    if user_id is None:
        return

    if store.get_scheduling_parameters(user_id) is not None and not overwrite:
        print(f"  User {user_id} already has scheduling parameters (use --overwrite to reset)")
        return

    store.save_scheduling_parameters(user_id, default_parameters())
    print(f"✓ Default scheduling parameters saved for {user_id}")


def main():
    parser = argparse.ArgumentParser(description="Create review tables and provision users")
    parser.add_argument(
        "--user-id",
        help="Provision default scheduling parameters for this user"
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the user's existing parameters with the defaults"
    )

    args = parser.parse_args()

    init_db(user_id=args.user_id, overwrite=args.overwrite)


if __name__ == "__main__":
    main()
