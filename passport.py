"""
Passport aggregation.

A passport is the read-only snapshot of one user's stamps (unlocked garments),
earned badges and cumulative impact. It is computed on every request and never
stored.

Records whose references no longer resolve (a stamp for a deleted garment, a
user badge for a deleted badge definition) are left out of the passport and
listed under ``unresolved`` so callers can tell an empty collection from a
data integrity gap.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog import get_garments, track_analytics
from database import (
    doc_to_response,
    find_by_ids,
    get_documents,
    insert_document,
    require_document,
    upsert_document,
)
from errors import ValidationError
from schemas import (
    Analytics as AnalyticsSchema,
    Badge as BadgeSchema,
    Stamp as StampSchema,
    TotalImpact,
    UnresolvedRef,
    User as UserSchema,
    UserBadge as UserBadgeSchema,
)

logger = logging.getLogger(__name__)


def total_impact(garments: Iterable[dict]) -> TotalImpact:
    """Fold stamped garments into cumulative impact.

    Garments without impact metrics, or with a metric left empty, add zero.
    Countries are the distinct non-empty garment origins.
    """
    totals = TotalImpact()
    origins = set()
    for garment in garments:
        metrics = garment.get("impact_metrics")
        if metrics:
            totals.water_saved += metrics.get("water_saved") or 0
            totals.co2_offset += metrics.get("co2_offset") or 0
            totals.artisans_supported += metrics.get("artisans_supported") or 0
        if garment.get("origin"):
            origins.add(garment["origin"])
    totals.countries_explored = len(origins)
    return totals


# -----------------------------
# Users
# -----------------------------
def create_user(db: Database, user: UserSchema) -> dict:
    try:
        return insert_document(db, "user", user)
    except DuplicateKeyError:
        raise ValidationError("Email already registered")


def get_user(db: Database, user_id: str) -> dict:
    return require_document(db, "user", user_id, "User")


# -----------------------------
# Stamps
# -----------------------------
def _tag_for_garment(db, tag_code_id, garment):
    tag = require_document(db, "tagcode", tag_code_id, "Tag code")
    if tag["garment_id"] != garment["id"]:
        raise ValidationError("Tag code belongs to a different garment")
    return tag


def create_stamp(db: Database, user_id: str, garment_id: str,
                 tag_code_id: Optional[str] = None,
                 scan_location: Optional[str] = None) -> Tuple[dict, bool]:
    """Record that a user unlocked a garment. Returns (stamp, created).

    A user holds at most one stamp per garment; repeating the unlock returns
    the existing stamp with created=False. A tag code, when given, must be one
    attached to that garment.
    """
    user = get_user(db, user_id)
    garment = require_document(db, "garment", garment_id, "Garment")
    if tag_code_id is not None:
        tag_code_id = _tag_for_garment(db, tag_code_id, garment)["id"]

    stamp, created = upsert_document(
        db,
        "stamp",
        {"user_id": user["id"], "garment_id": garment["id"]},
        StampSchema(
            user_id=user["id"],
            garment_id=garment["id"],
            tag_code_id=tag_code_id,
            scan_location=scan_location,
        ),
    )
    if not created:
        return stamp, False

    track_analytics(db, AnalyticsSchema(
        user_id=user["id"],
        garment_id=garment["id"],
        action="view_passport",
        metadata={"stamp_id": stamp["id"]},
    ))
    logger.info("User %s unlocked garment %s", user["id"], garment["id"])
    return stamp, True


def _resolve_stamps(db, user_id):
    stamps = list(db.stamp.find({"user_id": user_id}).sort("unlocked_at", 1))
    garments = get_garments(db, {s["garment_id"] for s in stamps})

    resolved, unresolved = [], []
    for s in stamps:
        stamp = doc_to_response(s)
        garment = garments.get(str(stamp["garment_id"]))
        if garment is None:
            logger.warning("Stamp %s references missing garment %s", stamp["id"], stamp["garment_id"])
            unresolved.append(UnresolvedRef(collection="stamp", id=stamp["id"], missing="garment", ref=stamp["garment_id"]))
            continue
        stamp["garment"] = garment
        resolved.append(stamp)
    return resolved, unresolved


# -----------------------------
# Badges
# -----------------------------
def list_badges(db: Database) -> List[dict]:
    return get_documents(db, "badge")


def create_badge(db: Database, badge: BadgeSchema) -> dict:
    return insert_document(db, "badge", badge)


def award_badge(db: Database, user_id: str, badge_id: str) -> Tuple[dict, bool]:
    """Manually award a badge. Awarding a badge the user already holds is a no-op."""
    user = get_user(db, user_id)
    badge = require_document(db, "badge", badge_id, "Badge")

    key = {"user_id": user["id"], "badge_id": badge["id"]}
    entry, created = upsert_document(db, "userbadge", key, UserBadgeSchema(**key))
    entry["badge"] = badge
    if not created:
        return entry, False
    logger.info("Awarded badge %s to user %s", badge["id"], user["id"])
    return entry, True


def _resolve_user_badges(db, user_id):
    entries = list(db.userbadge.find({"user_id": user_id}).sort("earned_at", 1))
    badges = find_by_ids(db, "badge", {e["badge_id"] for e in entries})

    resolved, unresolved = [], []
    for e in entries:
        entry = doc_to_response(e)
        badge = badges.get(str(entry["badge_id"]))
        if badge is None:
            logger.warning("User badge %s references missing badge %s", entry["id"], entry["badge_id"])
            unresolved.append(UnresolvedRef(collection="userbadge", id=entry["id"], missing="badge", ref=entry["badge_id"]))
            continue
        entry["badge"] = badge
        resolved.append(entry)
    return resolved, unresolved


def get_user_badges(db: Database, user_id: str) -> List[dict]:
    user = get_user(db, user_id)
    badges, _ = _resolve_user_badges(db, user["id"])
    return badges


# -----------------------------
# Passport
# -----------------------------
def get_user_passport(db: Database, user_id: str) -> dict:
    user = get_user(db, user_id)
    stamps, missing_garments = _resolve_stamps(db, user["id"])
    badges, missing_badges = _resolve_user_badges(db, user["id"])
    totals = total_impact(s["garment"] for s in stamps)
    return {
        "user": user,
        "stamps": stamps,
        "badges": badges,
        "total_impact": totals.model_dump(),
        "unresolved": [u.model_dump() for u in missing_garments + missing_badges],
    }
