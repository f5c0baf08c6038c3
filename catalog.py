"""
Garment catalog queries, brand onboarding writes and tag resolution.

Garment detail is assembled with one bulk query per related collection
rather than one query per garment, so a listing of N garments costs a fixed
number of round trips.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import (
    as_object_id,
    doc_to_response,
    find_by_ids,
    get_documents,
    insert_document,
    require_document,
)
from errors import NotFound, ValidationError
from schemas import (
    Analytics as AnalyticsSchema,
    CareInstructions as CareInstructionsSchema,
    CulturalContent as CulturalContentSchema,
    Garment as GarmentSchema,
    ImpactMetrics as ImpactMetricsSchema,
    TagCode as TagCodeSchema,
)

logger = logging.getLogger(__name__)


def _first_by_garment(docs):
    # one-to-one collections: the earliest document wins
    out = {}
    for d in docs:
        out.setdefault(d["garment_id"], doc_to_response(d))
    return out


def _all_by_garment(docs):
    out = {}
    for d in docs:
        out.setdefault(d["garment_id"], []).append(doc_to_response(d))
    return out


def attach_details(db: Database, garments: List[dict]) -> List[dict]:
    """Join raw garment documents to brand, artisan, impact, culture, care and tag."""
    if not garments:
        return []

    garment_ids = [str(g["_id"]) for g in garments]
    by_garment = {"garment_id": {"$in": garment_ids}}

    brands = find_by_ids(db, "brand", {g.get("brand_id") for g in garments})
    artisans = find_by_ids(db, "artisan", {g.get("artisan_id") for g in garments})
    metrics = _first_by_garment(db.impactmetrics.find(by_garment))
    content = _all_by_garment(db.culturalcontent.find(by_garment))
    care = _first_by_garment(db.careinstructions.find(by_garment))
    tags = _first_by_garment(db.tagcode.find(by_garment))

    out = []
    for g in garments:
        item = doc_to_response(g)
        gid = item["id"]
        item["brand"] = brands.get(item.get("brand_id"))
        item["artisan"] = artisans.get(item.get("artisan_id"))
        item["impact_metrics"] = metrics.get(gid)
        item["cultural_content"] = content.get(gid, [])
        item["care_instructions"] = care.get(gid)
        item["tag_code"] = tags.get(gid)
        out.append(item)
    return out


def get_garments(db: Database, garment_ids: Iterable[str]) -> Dict[str, dict]:
    """Full detail for a set of garments, keyed by id. Unknown ids are absent."""
    oids = {as_object_id(i) for i in garment_ids}
    oids.discard(None)
    if not oids:
        return {}
    docs = list(db.garment.find({"_id": {"$in": list(oids)}}))
    return {g["id"]: g for g in attach_details(db, docs)}


def get_garment(db: Database, garment_id: str) -> dict:
    garment = get_garments(db, [garment_id]).get(str(as_object_id(garment_id)))
    if garment is None:
        raise NotFound("Garment not found")
    return garment


def list_garments(db: Database, category: Optional[str] = None, brand: Optional[str] = None,
                  search: Optional[str] = None) -> List[dict]:
    q = {}
    if category and category.lower() != "all":
        q["category"] = category
    if brand:
        # stored references are canonical lowercase hex
        brand_oid = as_object_id(brand)
        q["brand_id"] = str(brand_oid) if brand_oid else brand
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        q["$or"] = [{"name": pattern}, {"description": pattern}]
    docs = list(db.garment.find(q))
    return attach_details(db, docs)


# -----------------------------
# Onboarding writes
# -----------------------------
def create_garment(db: Database, garment: GarmentSchema) -> dict:
    brand = require_document(db, "brand", garment.brand_id, "Brand")
    artisan = require_document(db, "artisan", garment.artisan_id, "Artisan")
    data = garment.model_copy(update={"brand_id": brand["id"], "artisan_id": artisan["id"]})
    return insert_document(db, "garment", data)


def _for_garment(db, record):
    garment = require_document(db, "garment", record.garment_id, "Garment")
    return record.model_copy(update={"garment_id": garment["id"]})


def create_impact_metrics(db: Database, metrics: ImpactMetricsSchema) -> dict:
    metrics = _for_garment(db, metrics)
    steps = sorted(metrics.supply_chain_steps, key=lambda s: s.step)
    return insert_document(db, "impactmetrics", metrics.model_copy(update={"supply_chain_steps": steps}))


def create_cultural_content(db: Database, content: CulturalContentSchema) -> dict:
    return insert_document(db, "culturalcontent", _for_garment(db, content))


def create_care_instructions(db: Database, care: CareInstructionsSchema) -> dict:
    return insert_document(db, "careinstructions", _for_garment(db, care))


def create_tag_code(db: Database, tag: TagCodeSchema) -> dict:
    tag = _for_garment(db, tag)
    for field in ("code", "nfc_uid", "qr_code"):
        value = getattr(tag, field)
        if value is not None and db.tagcode.find_one({field: value}):
            raise ValidationError(f"Tag {field} already registered")
    try:
        return insert_document(db, "tagcode", tag)
    except DuplicateKeyError:
        # lost a race with a concurrent registration of the same tag
        raise ValidationError("Tag already registered")


# -----------------------------
# Tag resolution
# -----------------------------
def _resolve(db, field, value):
    tag = db.tagcode.find_one({field: value, "is_active": True})
    if not tag:
        raise NotFound("Garment not found for this tag")
    try:
        return get_garment(db, tag["garment_id"])
    except NotFound:
        logger.warning("Tag %s points at missing garment %s", tag["_id"], tag["garment_id"])
        raise NotFound("Garment not found for this tag")


def resolve_by_code(db: Database, code: str) -> dict:
    return _resolve(db, "code", code)


def resolve_by_nfc(db: Database, uid: str) -> dict:
    return _resolve(db, "nfc_uid", uid)


def resolve_by_qr(db: Database, qr_code: str) -> dict:
    return _resolve(db, "qr_code", qr_code)


# -----------------------------
# Engagement analytics
# -----------------------------
def track_analytics(db: Database, event: AnalyticsSchema) -> dict:
    return insert_document(db, "analytics", event)


def get_garment_analytics(db: Database, garment_id: str) -> List[dict]:
    garment = require_document(db, "garment", garment_id, "Garment")
    return get_documents(db, "analytics", {"garment_id": garment["id"]})
