#!/usr/bin/env python3
"""
Script to rebuild every business's rating aggregate from its visible reviews
Usage: python -m booking_engine.scripts.recalculate_ratings [business_id ...]
"""
import sys
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from booking_engine.config.database import SessionLocal
from booking_engine.core.exceptions import StoreError
from booking_engine.core.transactions import write_transaction
from booking_engine.models.business import Business
from booking_engine.services.review.rating_projector import recompute_business_rating


def recalculate_ratings(db: Session, business_ids: Optional[List[uuid.UUID]] = None) -> dict:
    """Recompute ratings, one transaction per business. Returns {business_id: summary}"""
    if business_ids is None:
        business_ids = [row[0] for row in db.query(Business.id).order_by(Business.created_at).all()]

    results = {}
    for business_id in business_ids:
        with write_transaction(db, f"recalculating rating of business {business_id}"):
            results[business_id] = recompute_business_rating(db, business_id)

    return results


def main(argv: List[str]) -> int:
    try:
        business_ids = [uuid.UUID(arg) for arg in argv] or None
    except ValueError as e:
        print(f"\n❌ Invalid business ID: {e}")
        return 2

    db: Session = SessionLocal()
    try:
        results = recalculate_ratings(db, business_ids)
    except StoreError as e:
        print(f"\n❌ Error recalculating ratings: {e}")
        return 1
    finally:
        db.close()

    print("\n" + "=" * 60)
    print(f"RECALCULATED {len(results)} BUSINESS RATINGS")
    print("=" * 60)
    for business_id, summary in results.items():
        print(f"  {business_id}: {summary.average} ({summary.count} reviews)")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
