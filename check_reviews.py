# check_reviews.py
"""
Report reviews whose scholarshipId cannot join to a scholarship.

Ratings are matched to scholarships by comparing review.scholarshipId with
str(scholarship._id), so the field must hold a 24-hex ObjectId string of a
scholarship that still exists.

    python check_reviews.py
"""
import logging

from pydantic import ValidationError

from config import Settings
from database import REVIEWS, SCHOLARSHIPS, connect
from schemas import Review

logger = logging.getLogger(__name__)


def find_orphan_reviews(db):
    scholarship_ids = {str(s["_id"]) for s in db[SCHOLARSHIPS].find({}, {"_id": 1})}
    orphans = []
    for review in db[REVIEWS].find():
        try:
            Review.model_validate({k: v for k, v in review.items() if k != "_id"})
        except ValidationError as e:
            orphans.append({"_id": str(review["_id"]), "reason": f"invalid: {e.errors()[0]['msg']}"})
            continue
        if review["scholarshipId"] not in scholarship_ids:
            orphans.append({"_id": str(review["_id"]), "reason": "unknown scholarship"})
    return orphans


def main():
    settings = Settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(message)s")
    client = connect(settings.mongodb_uri)
    try:
        orphans = find_orphan_reviews(client[settings.db_name])
    finally:
        client.close()
    for o in orphans:
        logger.warning("review %s: %s", o["_id"], o["reason"])
    logger.info("%d review(s) need attention", len(orphans))


if __name__ == "__main__":
    main()
