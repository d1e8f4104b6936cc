from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from .auth import Identity
from .config import SCORE_MAX, SCORE_MIN
from .errors import OutOfRange
from .repository import get_rating_for_user, list_ratings_by_target, upsert_rating
from .schemas import Rating, RatingAggregate, RatingCreate
from .targets import ResolvedTarget

logger = logging.getLogger(__name__)

DIMENSIONS = ("dimension1", "dimension2", "dimension3")


def _round_mean(total: float, count: int) -> float:
    value = Decimal(str(total)) / Decimal(count)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def validate_scores(payload: RatingCreate) -> None:
    if not SCORE_MIN <= payload.score <= SCORE_MAX:
        raise OutOfRange(f"score must be between {SCORE_MIN} and {SCORE_MAX}")
    for key in DIMENSIONS:
        value = getattr(payload, key)
        if value is not None and not SCORE_MIN <= value <= SCORE_MAX:
            raise OutOfRange(f"{key} must be between {SCORE_MIN} and {SCORE_MAX}")


def to_rating(row: Dict[str, Any], target: ResolvedTarget, viewer: Optional[Identity] = None) -> Rating:
    is_anonymous = bool(row.get("is_anonymous"))
    user_id = row.get("user_id")
    if is_anonymous and (viewer is None or viewer.user_id != user_id):
        user_id = None
    return Rating(
        id=row["id"],
        target_type=target.target_type.value,
        target_id=target.target_id,
        user_id=user_id,
        score=row["overall_score"],
        dimension1=row.get("dimension1"),
        dimension2=row.get("dimension2"),
        dimension3=row.get("dimension3"),
        is_anonymous=is_anonymous,
        show_username=bool(row.get("show_username")),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def aggregate(rows: List[Dict[str, Any]]) -> RatingAggregate:
    if not rows:
        return RatingAggregate(count=0, mean=0.0, dimensions={key: None for key in DIMENSIONS})
    scores = [r["overall_score"] for r in rows if r.get("overall_score") is not None]
    dimensions: Dict[str, float | None] = {}
    for key in DIMENSIONS:
        values = [r[key] for r in rows if r.get(key) is not None]
        dimensions[key] = _round_mean(sum(values), len(values)) if values else None
    return RatingAggregate(
        count=len(rows),
        mean=_round_mean(sum(scores), len(scores)) if scores else 0.0,
        dimensions=dimensions,
    )


def submit_rating(conn, identity: Identity, target: ResolvedTarget, payload: RatingCreate) -> Rating:
    validate_scores(payload)
    row = upsert_rating(
        conn,
        target.partition,
        target.entity_id,
        identity.user_id,
        {
            "overall_score": payload.score,
            "dimension1": payload.dimension1,
            "dimension2": payload.dimension2,
            "dimension3": payload.dimension3,
            "is_anonymous": int(payload.is_anonymous),
            "show_username": int(False if payload.is_anonymous else payload.show_username),
        },
    )
    logger.info("Stored rating %s on %s %s", row["id"], target.target_type.value, target.entity_id)
    return to_rating(row, target, identity)


def ratings_for_target(
    conn,
    target: ResolvedTarget,
    viewer: Optional[Identity] = None,
    include_user_rating: bool = False,
) -> Dict[str, Any]:
    if not target.exists:
        return {"ratings": [], "aggregate": aggregate([]), "userRating": None}
    rows = list_ratings_by_target(conn, target.partition, target.entity_id)
    user_rating = None
    if include_user_rating and viewer is not None:
        own = get_rating_for_user(conn, target.partition, target.entity_id, viewer.user_id)
        user_rating = to_rating(own, target, viewer) if own else None
    return {
        "ratings": [to_rating(r, target, viewer) for r in rows],
        "aggregate": aggregate(rows),
        "userRating": user_rating,
    }
