import mongomock
import pytest
from fastapi.testclient import TestClient

from database import create_document, ensure_indexes
from main import create_app
from schemas import (
    Artisan as ArtisanSchema,
    Brand as BrandSchema,
    Garment as GarmentSchema,
    ImpactMetrics as ImpactMetricsSchema,
    Stamp as StampSchema,
    User as UserSchema,
)


@pytest.fixture
def db():
    db = mongomock.MongoClient()["passport_test"]
    ensure_indexes(db)
    return db


@pytest.fixture
def client(db):
    with TestClient(create_app(db)) as c:
        yield c


@pytest.fixture
def brand_id(db):
    return create_document(db, "brand", BrandSchema(name="Threads of Heritage", origin="Guatemala"))


@pytest.fixture
def artisan_id(db):
    return create_document(db, "artisan", ArtisanSchema(name="María Elena Tuyuc", country="Guatemala", craft="Backstrap weaving"))


@pytest.fixture
def make_garment(db, brand_id, artisan_id):
    def _make(name="Huipil de Flores", origin="Guatemala", category="clothing", description=None, metrics=None, brand=None):
        gid = create_document(db, "garment", GarmentSchema(
            brand_id=brand or brand_id,
            artisan_id=artisan_id,
            name=name,
            description=description,
            category=category,
            price=100,
            origin=origin,
        ))
        if metrics is not None:
            create_document(db, "impactmetrics", ImpactMetricsSchema(garment_id=gid, **metrics))
        return gid
    return _make


@pytest.fixture
def make_user(db):
    def _make(name="Sarah Martinez", email="sarah@example.com"):
        return create_document(db, "user", UserSchema(name=name, email=email))
    return _make


@pytest.fixture
def stamp(db):
    def _stamp(user_id, garment_id):
        return create_document(db, "stamp", StampSchema(user_id=user_id, garment_id=garment_id))
    return _stamp
