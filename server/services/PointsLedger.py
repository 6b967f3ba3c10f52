"""
Per-volunteer points ledger.

``credit`` and ``verify`` are the only writers of ``points``, ``verifiedPoints``
and ``pendingPoints``. Both are single-document atomic updates, so the row keeps
``points == verifiedPoints + pendingPoints`` after every call no matter how many
admins act at once.
"""
import logging
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError

from helpers.Pagination import get_pagination, create_pagination_response
from models.models import LedgerSnapshot
from .errors import InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)

SORT_FIELDS = {"points": "points", "verified": "verifiedPoints"}


def require_positive_points(amount, label="Points"):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"{label} must be a positive whole number")
    return amount


class PointsLedger:
    COLLECTION = "volunteer_points"

    def __init__(self, db):
        self.db = db

    def _snapshot(self, row) -> LedgerSnapshot:
        return LedgerSnapshot.model_validate(row)

    async def _ensure_row(self, volunteer_id: str, now: datetime):
        try:
            await self.db.update(
                self.COLLECTION,
                {"volunteerId": volunteer_id},
                {"$setOnInsert": {
                    "points": 0,
                    "verifiedPoints": 0,
                    "pendingPoints": 0,
                    "notes": [],
                    "creditKeys": [],
                    "lastVerifiedAt": None,
                    "lastVerifiedBy": None,
                    "createdAt": now,
                }},
                upsert=True,
            )
        except DuplicateKeyError:
            # another request created the row between our match and insert
            logger.debug("Points row for volunteer %s created concurrently", volunteer_id)

    async def credit(self, volunteer_id: str, amount: int, note: str = None, idempotency_key: str = None) -> LedgerSnapshot:
        """
        Add ``amount`` to the volunteer's pending (and total) points.

        With an ``idempotency_key`` the credit is applied at most once; a replay
        returns the current snapshot untouched.
        """
        require_positive_points(amount, "Points to credit")
        now = datetime.now(timezone.utc)
        await self._ensure_row(volunteer_id, now)

        query = {"volunteerId": volunteer_id}
        update = {
            "$inc": {"points": amount, "pendingPoints": amount},
            "$set": {"updatedAt": now},
        }
        push = {}
        if note:
            push["notes"] = note
        if idempotency_key:
            query["creditKeys"] = {"$ne": idempotency_key}
            push["creditKeys"] = idempotency_key
        if push:
            update["$push"] = push

        row = await self.db.find_one_and_update(self.COLLECTION, query, update)
        if row is None:
            logger.warning("Credit %s for volunteer %s already applied, skipping", idempotency_key, volunteer_id)
            return await self.get(volunteer_id)

        logger.info(
            "Credited %d points to volunteer %s (pending=%d, total=%d)",
            amount, volunteer_id, row["pendingPoints"], row["points"],
        )
        return self._snapshot(row)

    async def verify(self, volunteer_id: str, amount_to_verify: int, verified_by: str = None) -> LedgerSnapshot:
        """Move ``amount_to_verify`` from pending to verified; the total is unchanged."""
        require_positive_points(amount_to_verify, "Points to verify")
        now = datetime.now(timezone.utc)

        row = await self.db.find_one_and_update(
            self.COLLECTION,
            {"volunteerId": volunteer_id, "pendingPoints": {"$gte": amount_to_verify}},
            {
                "$inc": {"pendingPoints": -amount_to_verify, "verifiedPoints": amount_to_verify},
                "$set": {"lastVerifiedAt": now, "lastVerifiedBy": verified_by, "updatedAt": now},
            },
        )
        if row is None:
            existing = await self.db.find_one(self.COLLECTION, {"volunteerId": volunteer_id})
            if existing is None:
                raise NotFoundError("Volunteer points record not found")
            raise InvalidAmountError(
                f"Cannot verify more points than pending ({existing['pendingPoints']} pending)"
            )

        logger.info(
            "Verified %d points for volunteer %s (verified=%d, pending=%d)",
            amount_to_verify, volunteer_id, row["verifiedPoints"], row["pendingPoints"],
        )
        return self._snapshot(row)

    async def get(self, volunteer_id: str) -> LedgerSnapshot:
        row = await self.db.find_one(self.COLLECTION, {"volunteerId": volunteer_id})
        if row is None:
            raise NotFoundError("Volunteer points record not found")
        return self._snapshot(row)

    async def snapshots(self, volunteer_ids):
        rows = await self.db.find_many(self.COLLECTION, {"volunteerId": {"$in": list(volunteer_ids)}})
        return {row["volunteerId"]: self._snapshot(row) for row in rows}

    async def _rank_of(self, field: str, value: int, descending: bool = True) -> int:
        # Standard competition ranking: ties share a rank.
        better = {"$gt": value} if descending else {"$lt": value}
        return await self.db.count(self.COLLECTION, {field: better}) + 1

    async def _volunteer_cards(self, volunteer_ids):
        volunteers = await self.db.find_many(
            "volunteers",
            {"_id": {"$in": list(volunteer_ids)}},
            {"name": 1, "registrationId": 1, "email": 1},
        )
        return {v["_id"]: v for v in volunteers}

    async def leaderboard(self, page=1, limit=10, sort_by="points", sort_order="desc"):
        page, limit, skip = get_pagination(page, limit)
        field = SORT_FIELDS.get(sort_by, "points")
        descending = sort_order != "asc"

        rows = await self.db.find_many(
            self.COLLECTION,
            sort=[(field, -1 if descending else 1), ("volunteerId", 1)],
            skip=skip,
            limit=limit,
        )
        total = await self.db.count(self.COLLECTION)
        cards = await self._volunteer_cards(row["volunteerId"] for row in rows)

        entries = []
        rank = None
        previous = None
        for row in rows:
            if rank is None or row[field] != previous:
                rank = await self._rank_of(field, row[field], descending)
                previous = row[field]
            entries.append({
                "rank": rank,
                "volunteer": cards.get(row["volunteerId"], {"_id": row["volunteerId"]}),
                "points": row["points"],
                "verifiedPoints": row["verifiedPoints"],
                "pendingPoints": row["pendingPoints"],
                "lastVerifiedAt": row.get("lastVerifiedAt"),
            })

        return create_pagination_response(entries, total, page, limit)

    async def volunteer_stats(self, volunteer_id: str):
        volunteer = await self.db.find_one("volunteers", {"_id": volunteer_id})
        if volunteer is None:
            raise NotFoundError("Volunteer not found")
        card = {k: volunteer.get(k) for k in ("_id", "name", "registrationId", "email")}

        row = await self.db.find_one(self.COLLECTION, {"volunteerId": volunteer_id})
        if row is None:
            return {
                "rank": None,
                "volunteer": card,
                "points": 0,
                "verifiedPoints": 0,
                "pendingPoints": 0,
                "lastVerifiedAt": None,
            }

        return {
            "rank": await self._rank_of("points", row["points"]),
            "volunteer": card,
            "points": row["points"],
            "verifiedPoints": row["verifiedPoints"],
            "pendingPoints": row["pendingPoints"],
            "lastVerifiedAt": row.get("lastVerifiedAt"),
        }
