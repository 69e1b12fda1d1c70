"""
Import cards from a CSV file into a bag.

The CSV needs question and answer columns; hint is optional.
Every imported card starts in the New state, due immediately.

Usage:
    python -m scripts.import_cards cards.csv --user-id USER --bag-id BAG [--dry-run]
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd

from flashbag.storage import get_store
from flashbag.storage.records import create_card
from flashbag.timeutils import utc_now

REQUIRED_COLUMNS = ("question", "answer")


def _clean(value) -> str | None:
    if pd.isna(value) or str(value).strip() == "":
        return None
    return str(value).strip()


def import_cards(csv_path: Path, user_id: str, bag_id: str, dry_run: bool = False):
    df = pd.read_csv(csv_path)
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise SystemExit(f"✗ {csv_path} is missing columns: {', '.join(missing)}")

    store = None if dry_run else get_store()
    imported = 0
    skipped = 0

    for idx, row in df.iterrows():
        question = _clean(row["question"])
        answer = _clean(row["answer"])
        if question is None or answer is None:
            skipped += 1
            print(f"  ⚠ Row {idx + 1}: empty question or answer, skipped")
            continue

        card = create_card(
            user_id,
            bag_id,
            utc_now(),
            question=question,
            answer=answer,
            hint=_clean(row.get("hint")),
        )
        if store is not None:
            store.insert_card(card)
        imported += 1

    print(f"\n{'='*60}")
    print("Import complete!")
    print(f"{'='*60}")
    print(f"Imported: {imported}")
    print(f"Skipped:  {skipped}")

    if dry_run:
        print("\n⚠ DRY RUN MODE - No cards were written")


def main():
    parser = argparse.ArgumentParser(description="Import cards from CSV into a bag")
    parser.add_argument("csv_path", type=Path, help="CSV with question, answer[, hint] columns")
    parser.add_argument("--user-id", required=True, help="Owner of the imported cards")
    parser.add_argument("--bag-id", required=True, help="Bag to import into")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the CSV without writing cards"
    )

    args = parser.parse_args()

    import_cards(args.csv_path, args.user_id, args.bag_id, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
