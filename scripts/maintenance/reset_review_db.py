"""
Reset the review database.

DANGEROUS: This deletes all cards, review history and settings!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_review_db
"""

from flashbag.config import get_storage_backend, is_test_mode
from flashbag.storage import get_store


def main():
    print("=" * 60)
    print("WARNING: Reset Review Database")
    print("=" * 60)
    print()
    print(f"Backend: {get_storage_backend()}{' (TEST MODE)' if is_test_mode() else ''}")
    print()
    print("This will DELETE:")
    print("  - All cards and their memory state (stability, difficulty, etc.)")
    print("  - All review logs (history of past reviews)")
    print("  - All scheduling parameters and study sessions")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        get_store().reset_db()
        print("✓ Database reset complete!")
        print("\nThe database now has empty tables ready for new reviews.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
