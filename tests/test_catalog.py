import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

import catalog

from catalog import (
    create_garment,
    create_impact_metrics,
    create_tag_code,
    get_garment,
    list_garments,
    resolve_by_code,
    resolve_by_nfc,
    resolve_by_qr,
)
from database import create_document
from errors import NotFound, ValidationError
from schemas import (
    Brand as BrandSchema,
    CulturalContent as CulturalContentSchema,
    Garment as GarmentSchema,
    ImpactMetrics as ImpactMetricsSchema,
    TagCode as TagCodeSchema,
)


@pytest.fixture
def shop(make_garment):
    return {
        "huipil": make_garment("Huipil de Flores", "Guatemala", description="Brocade blouse dyed with cochineal"),
        "tenugui": make_garment("Indigo Tenugui", "Japan", category="accessories", description="Shibori scarf"),
        "kaftan": make_garment("Lalita Kaftan", "India", description="Block printed with natural INDIGO and madder"),
    }


def names(garments):
    return sorted(g["name"] for g in garments)


def test_search_matches_name_or_description_case_insensitively(db, shop):
    assert names(list_garments(db, search="indigo")) == ["Indigo Tenugui", "Lalita Kaftan"]
    assert names(list_garments(db, search="BROCADE")) == ["Huipil de Flores"]


def test_search_is_a_plain_substring(db, shop):
    assert list_garments(db, search="in.igo") == []


def test_category_filter(db, shop):
    assert names(list_garments(db, category="accessories")) == ["Indigo Tenugui"]
    assert names(list_garments(db, category="clothing", search="indigo")) == ["Lalita Kaftan"]
    assert len(list_garments(db, category="all")) == 3


def test_brand_filter(db, shop, make_garment):
    other = create_document(db, "brand", BrandSchema(name="Desert Rose Collective"))
    make_garment("Kaftan Azul", "Morocco", brand=other)
    assert names(list_garments(db, brand=other)) == ["Kaftan Azul"]
    assert names(list_garments(db, brand=other.upper())) == ["Kaftan Azul"]
    assert len(list_garments(db)) == 4


def test_listing_joins_related_records(db, shop):
    create_document(db, "culturalcontent", CulturalContentSchema(garment_id=shop["tenugui"], type="history", title="Aizome", content="Indigo heritage"))
    create_document(db, "culturalcontent", CulturalContentSchema(garment_id=shop["tenugui"], type="vocabulary", title="Terms", content="Sukumo"))
    create_document(db, "impactmetrics", ImpactMetricsSchema(garment_id=shop["tenugui"], water_saved=1800))

    by_name = {g["name"]: g for g in list_garments(db)}
    tenugui = by_name["Indigo Tenugui"]
    assert [c["title"] for c in tenugui["cultural_content"]] == ["Aizome", "Terms"]
    assert tenugui["impact_metrics"]["water_saved"] == 1800
    assert tenugui["brand"]["name"] == "Threads of Heritage"
    assert by_name["Huipil de Flores"]["impact_metrics"] is None
    assert by_name["Huipil de Flores"]["cultural_content"] == []


def test_get_garment_not_found(db):
    with pytest.raises(NotFound):
        get_garment(db, str(ObjectId()))
    with pytest.raises(NotFound):
        get_garment(db, "garment-1")


def test_create_garment_requires_brand_and_artisan(db, brand_id, artisan_id):
    garment = GarmentSchema(brand_id=brand_id, artisan_id=str(ObjectId()), name="Scarf", category="textiles", price=10, origin="Peru")
    with pytest.raises(NotFound, match="Artisan"):
        create_garment(db, garment)

    created = create_garment(db, garment.model_copy(update={"artisan_id": artisan_id}))
    assert created["name"] == "Scarf"
    assert created["is_active"] is True


def test_supply_chain_steps_are_stored_in_order(db, make_garment):
    gid = make_garment()
    metrics = create_impact_metrics(db, ImpactMetricsSchema(garment_id=gid, supply_chain_steps=[
        {"step": 2, "title": "Weaving", "location": "Atitlán", "date": "2024-03", "description": "Backstrap loom"},
        {"step": 1, "title": "Harvest", "location": "San Marcos", "date": "2024-01", "description": "Organic cotton"},
    ]))
    assert [s["step"] for s in metrics["supply_chain_steps"]] == [1, 2]


@pytest.fixture
def tagged(db, make_garment):
    gid = make_garment("Kaftan Azul", "Morocco")
    create_tag_code(db, TagCodeSchema(garment_id=gid, code="SUB-MA-KAZ-002", nfc_uid="04A1B2C3", qr_code="QR-KAZ-002"))
    return gid


def test_resolve_active_tag(db, tagged):
    assert resolve_by_code(db, "SUB-MA-KAZ-002")["id"] == tagged
    assert resolve_by_nfc(db, "04A1B2C3")["id"] == tagged
    garment = resolve_by_qr(db, "QR-KAZ-002")
    assert garment["name"] == "Kaftan Azul"
    assert garment["tag_code"]["code"] == "SUB-MA-KAZ-002"


def test_resolve_is_exact_match(db, tagged):
    with pytest.raises(NotFound):
        resolve_by_code(db, "sub-ma-kaz-002")
    with pytest.raises(NotFound):
        resolve_by_qr(db, "QR-KAZ")


def test_inactive_tag_behaves_like_unknown_tag(db, tagged):
    db.tagcode.update_many({}, {"$set": {"is_active": False}})
    for resolve, value in [(resolve_by_code, "SUB-MA-KAZ-002"), (resolve_by_nfc, "04A1B2C3"), (resolve_by_qr, "QR-KAZ-002")]:
        with pytest.raises(NotFound) as inactive:
            resolve(db, value)
        with pytest.raises(NotFound) as unknown:
            resolve(db, "NOPE")
        assert inactive.value.message == unknown.value.message


def test_tag_for_deleted_garment_is_not_found(db, tagged):
    db.garment.delete_one({"_id": ObjectId(tagged)})
    with pytest.raises(NotFound):
        resolve_by_code(db, "SUB-MA-KAZ-002")


def test_tag_codes_are_unique(db, tagged, make_garment):
    other = make_garment("Indigo Tenugui", "Japan")
    with pytest.raises(ValidationError, match="code"):
        create_tag_code(db, TagCodeSchema(garment_id=other, code="SUB-MA-KAZ-002"))
    with pytest.raises(ValidationError, match="nfc_uid"):
        create_tag_code(db, TagCodeSchema(garment_id=other, code="SUB-JP-003", nfc_uid="04A1B2C3"))
    assert db.tagcode.count_documents({}) == 1


def test_tag_code_requires_garment(db):
    with pytest.raises(NotFound):
        create_tag_code(db, TagCodeSchema(garment_id=str(ObjectId()), code="SUB-XX-000"))


def test_store_rejects_duplicate_tag_codes(db, tagged, make_garment):
    other = make_garment("Indigo Tenugui", "Japan")
    with pytest.raises(DuplicateKeyError):
        db.tagcode.insert_one({"garment_id": other, "code": "SUB-MA-KAZ-002", "is_active": True})
    with pytest.raises(DuplicateKeyError):
        db.tagcode.insert_one({"garment_id": other, "code": "SUB-JP-003", "qr_code": "QR-KAZ-002"})


def test_tags_without_nfc_or_qr_do_not_collide(db, make_garment):
    gid = make_garment()
    create_tag_code(db, TagCodeSchema(garment_id=gid, code="SUB-1"))
    create_tag_code(db, TagCodeSchema(garment_id=gid, code="SUB-2"))
    assert db.tagcode.count_documents({"nfc_uid": None, "qr_code": None}) == 2


def test_concurrent_tag_registration_is_rejected(db, make_garment, monkeypatch):
    gid = make_garment()
    insert = catalog.insert_document

    def racing_insert(db, collection_name, data):
        # another request registers the same code between the check and the insert
        db.tagcode.insert_one({"garment_id": gid, "code": data.code, "is_active": True})
        return insert(db, collection_name, data)

    monkeypatch.setattr(catalog, "insert_document", racing_insert)
    with pytest.raises(ValidationError, match="already registered"):
        create_tag_code(db, TagCodeSchema(garment_id=gid, code="SUB-1"))
    assert db.tagcode.count_documents({"code": "SUB-1"}) == 1
