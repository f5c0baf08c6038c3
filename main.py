import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database

import catalog
import passport
from database import connect, ensure_indexes, get_documents, insert_document
from errors import PassportError
from schemas import (
    Analytics as AnalyticsSchema,
    Artisan as ArtisanSchema,
    Badge as BadgeSchema,
    Brand as BrandSchema,
    CareInstructions as CareInstructionsSchema,
    CulturalContent as CulturalContentSchema,
    Garment as GarmentSchema,
    ImpactMetrics as ImpactMetricsSchema,
    TagCode as TagCodeSchema,
    User as UserSchema,
)
from seed import seed_data

logger = logging.getLogger(__name__)

COLLECTIONS = [
    "user", "brand", "artisan", "garment", "tagcode", "impactmetrics",
    "culturalcontent", "careinstructions", "stamp", "badge", "userbadge", "analytics",
]

router = APIRouter()


# -----------------------------
# Utilities
# -----------------------------

def get_db(request: Request) -> Database:
    db = request.app.state.db
    if db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db


def handle_passport_error(request: Request, exc: PassportError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def handle_unexpected_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# -----------------------------
# Schemas for requests
# -----------------------------
class StampCreate(BaseModel):
    user_id: str
    garment_id: str
    tag_code_id: Optional[str] = None
    scan_location: Optional[str] = None

class BadgeAward(BaseModel):
    badge_id: str


# -----------------------------
# Routes
# -----------------------------
@router.get("/")
def root():
    return {"name": "Garment Passport API", "status": "ok"}

@router.get("/schema")
def get_schema_info():
    return {"collections": COLLECTIONS}

@router.get("/test")
def test_database(request: Request):
    db = request.app.state.db
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    if db is not None:
        response["database"] = "✅ Available"
        response["database_name"] = db.name
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            logger.warning("Database check failed: %s", e)
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response

# Catalog
@router.get("/api/garments")
def list_garments(category: Optional[str] = None, brand: Optional[str] = None, search: Optional[str] = None, db: Database = Depends(get_db)):
    return catalog.list_garments(db, category=category, brand=brand, search=search)

@router.get("/api/garments/{garment_id}")
def get_garment(garment_id: str, db: Database = Depends(get_db)):
    return catalog.get_garment(db, garment_id)

@router.post("/api/garments", status_code=201)
def create_garment(payload: GarmentSchema, db: Database = Depends(get_db)):
    return catalog.create_garment(db, payload)

@router.get("/api/garments/{garment_id}/analytics")
def get_garment_analytics(garment_id: str, db: Database = Depends(get_db)):
    return catalog.get_garment_analytics(db, garment_id)

@router.get("/api/brands")
def list_brands(db: Database = Depends(get_db)):
    return get_documents(db, "brand")

@router.post("/api/brands", status_code=201)
def create_brand(payload: BrandSchema, db: Database = Depends(get_db)):
    return insert_document(db, "brand", payload)

@router.get("/api/artisans")
def list_artisans(db: Database = Depends(get_db)):
    return get_documents(db, "artisan")

@router.post("/api/artisans", status_code=201)
def create_artisan(payload: ArtisanSchema, db: Database = Depends(get_db)):
    return insert_document(db, "artisan", payload)

@router.post("/api/impact-metrics", status_code=201)
def create_impact_metrics(payload: ImpactMetricsSchema, db: Database = Depends(get_db)):
    return catalog.create_impact_metrics(db, payload)

@router.post("/api/cultural-content", status_code=201)
def create_cultural_content(payload: CulturalContentSchema, db: Database = Depends(get_db)):
    return catalog.create_cultural_content(db, payload)

@router.post("/api/care-instructions", status_code=201)
def create_care_instructions(payload: CareInstructionsSchema, db: Database = Depends(get_db)):
    return catalog.create_care_instructions(db, payload)

@router.post("/api/tag-codes", status_code=201)
def create_tag_code(payload: TagCodeSchema, db: Database = Depends(get_db)):
    return catalog.create_tag_code(db, payload)

@router.post("/api/analytics", status_code=201)
def track_analytics(payload: AnalyticsSchema, db: Database = Depends(get_db)):
    return catalog.track_analytics(db, payload)

# Scanning
def _scanned(db: Database, garment: dict, scan_type: str, value: str) -> dict:
    catalog.track_analytics(db, AnalyticsSchema(
        garment_id=garment["id"],
        action="scan",
        metadata={"scan_type": scan_type, "value": value},
    ))
    logger.info("Scanned %s tag %s -> garment %s", scan_type, value, garment["id"])
    return garment

@router.get("/api/scan/nfc/{uid}")
def scan_nfc(uid: str, db: Database = Depends(get_db)):
    return _scanned(db, catalog.resolve_by_nfc(db, uid), "nfc", uid)

@router.get("/api/scan/qr/{code}")
def scan_qr(code: str, db: Database = Depends(get_db)):
    return _scanned(db, catalog.resolve_by_qr(db, code), "qr", code)

@router.get("/api/scan/code/{code}")
def scan_code(code: str, db: Database = Depends(get_db)):
    return _scanned(db, catalog.resolve_by_code(db, code), "code", code)

# Users, stamps & badges
@router.post("/api/users", status_code=201)
def create_user(payload: UserSchema, db: Database = Depends(get_db)):
    return passport.create_user(db, payload)

@router.get("/api/users/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    return passport.get_user(db, user_id)

@router.get("/api/users/{user_id}/passport")
def get_user_passport(user_id: str, db: Database = Depends(get_db)):
    return passport.get_user_passport(db, user_id)

@router.get("/api/users/{user_id}/badges")
def get_user_badges(user_id: str, db: Database = Depends(get_db)):
    return passport.get_user_badges(db, user_id)

@router.post("/api/users/{user_id}/badges", status_code=201)
def award_badge(user_id: str, payload: BadgeAward, response: Response, db: Database = Depends(get_db)):
    entry, created = passport.award_badge(db, user_id, payload.badge_id)
    if not created:
        response.status_code = 200
    return entry

@router.post("/api/stamps", status_code=201)
def create_stamp(payload: StampCreate, response: Response, db: Database = Depends(get_db)):
    stamp, created = passport.create_stamp(
        db,
        payload.user_id,
        payload.garment_id,
        tag_code_id=payload.tag_code_id,
        scan_location=payload.scan_location,
    )
    if not created:
        response.status_code = 200
    return stamp

@router.get("/api/badges")
def list_badges(db: Database = Depends(get_db)):
    return passport.list_badges(db)

@router.post("/api/badges", status_code=201)
def create_badge(payload: BadgeSchema, db: Database = Depends(get_db)):
    return passport.create_badge(db, payload)


def create_app(db: Optional[Database] = None, seed: bool = False) -> FastAPI:
    app = FastAPI(title="Garment Passport API", version="1.0.0")
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PassportError, handle_passport_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.on_event("startup")
    def prepare_store():
        if app.state.db is None:
            return
        ensure_indexes(app.state.db)
        if seed:
            seed_data(app.state.db)

    app.include_router(router)
    return app


app = create_app(connect(), seed=os.getenv("SEED_DATA", "1") != "0")

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
