"""Demo catalog inserted into an empty database on startup."""
import logging

from pymongo.database import Database

from database import create_document
from schemas import (
    Artisan as ArtisanSchema,
    Badge as BadgeSchema,
    Brand as BrandSchema,
    CareInstructions as CareInstructionsSchema,
    CulturalContent as CulturalContentSchema,
    Garment as GarmentSchema,
    ImpactMetrics as ImpactMetricsSchema,
    Stamp as StampSchema,
    TagCode as TagCodeSchema,
    User as UserSchema,
    UserBadge as UserBadgeSchema,
)

logger = logging.getLogger(__name__)

SAMPLE_BRANDS = {
    "heritage": {
        "name": "Threads of Heritage",
        "description": "Preserving Guatemalan textile traditions through ethical partnerships with indigenous artisans",
        "origin": "Guatemala",
        "philosophy": "Honoring traditional craftsmanship while providing fair wages and sustainable livelihoods",
        "sustainability_practices": ["Fair Trade Certified", "Natural Dyes Only", "Zero Waste Production"],
        "website": "https://threadsofheritage.example",
        "is_verified": True,
    },
    "desert_rose": {
        "name": "Desert Rose Collective",
        "description": "Connecting global citizens with artisans across Morocco, Japan, and India",
        "origin": "Morocco",
        "philosophy": "Celebrating cultural diversity through mindful fashion",
        "sustainability_practices": ["Organic Materials", "Water Conservation", "Cultural Preservation"],
        "website": "https://desertrose.example",
        "is_verified": True,
    },
}

SAMPLE_ARTISANS = {
    "maria": {
        "name": "María Elena Tuyuc",
        "country": "Guatemala",
        "region": "Santiago Atitlán",
        "craft": "Traditional Mayan backstrap weaving",
        "bio": "Third-generation weaver specializing in jaspe and brocade techniques",
        "years_of_experience": 25,
        "generation": 3,
    },
    "fatima": {
        "name": "Fatima Benali",
        "country": "Morocco",
        "region": "Fes",
        "craft": "Moroccan embroidery and zellij-inspired needlework",
        "bio": "Master embroiderer known for geometric patterns inspired by Moroccan tilework",
        "years_of_experience": 18,
    },
    "kenji": {
        "name": "Kenji Yamamoto",
        "country": "Japan",
        "region": "Tokushima",
        "craft": "Indigo dyeing (Aizome) and shibori resist techniques",
        "bio": "Preserving Japanese indigo fermentation methods and shibori patterns",
        "years_of_experience": 30,
    },
}

# brand key, artisan key, garment fields, tag, impact
SAMPLE_GARMENTS = [
    (
        "heritage", "maria",
        {
            "name": "Huipil de Flores",
            "description": "Traditional Guatemalan embroidered blouse with floral brocade handwoven on a backstrap loom",
            "category": "clothing",
            "price": 285.0,
            "origin": "Guatemala",
            "materials": ["Organic cotton", "Natural plant dyes", "Hand-spun thread"],
            "techniques": ["Backstrap loom weaving", "Brocade embroidery", "Natural dyeing"],
            "is_verified": True,
        },
        {"code": "SUB-GT-HDF-001", "nfc_uid": "04A1B2C3D4E501", "qr_code": "SUB-GT-HDF-001"},
        {"water_saved": 2500, "co2_offset": 12, "artisans_supported": 3, "supply_chain_steps": [
            {"step": 1, "title": "Cotton Harvest", "location": "San Marcos, Guatemala", "date": "2024-01", "description": "Organic cotton harvested by a local cooperative"},
            {"step": 2, "title": "Weaving", "location": "Santiago Atitlán, Guatemala", "date": "2024-03", "description": "Handwoven on a backstrap loom"},
        ]},
    ),
    (
        "desert_rose", "fatima",
        {
            "name": "Kaftan Azul",
            "description": "Moroccan silk kaftan with geometric embroidery inspired by zellij tilework from Fes",
            "category": "clothing",
            "price": 425.0,
            "origin": "Morocco",
            "materials": ["Organic silk", "Natural indigo dye"],
            "techniques": ["Hand embroidery", "Natural dyeing"],
            "is_verified": True,
        },
        {"code": "SUB-MA-KAZ-002", "nfc_uid": "04A1B2C3D4E502", "qr_code": "SUB-MA-KAZ-002"},
        {"water_saved": 3200, "co2_offset": 18, "artisans_supported": 5, "supply_chain_steps": [
            {"step": 1, "title": "Silk Production", "location": "Chefchaouen, Morocco", "date": "2024-01", "description": "Organic silk from a local cooperative"},
            {"step": 2, "title": "Hand Embroidery", "location": "Fes, Morocco", "date": "2024-05", "description": "Needlework by Fatima Benali"},
        ]},
    ),
    (
        "desert_rose", "kenji",
        {
            "name": "Indigo Tenugui",
            "description": "Japanese cotton scarf dyed with fermented indigo and shibori resist patterns",
            "category": "accessories",
            "price": 98.0,
            "origin": "Japan",
            "materials": ["Organic cotton", "Natural indigo (sukumo)"],
            "techniques": ["Shibori tie-dye", "Indigo fermentation"],
            "is_verified": True,
        },
        {"code": "SUB-JP-ITG-003", "nfc_uid": "04A1B2C3D4E503", "qr_code": "SUB-JP-ITG-003"},
        {"water_saved": 1800, "co2_offset": 8, "artisans_supported": 2, "supply_chain_steps": []},
    ),
]

SAMPLE_CULTURE = {
    "Huipil de Flores": [
        ("history", "The Living Tradition of Guatemalan Huipiles", "Huipiles have been woven by Mayan women for over 2,000 years as living documents of cultural identity."),
        ("vocabulary", "Textile Terms in K'iche' Maya", "Jaspe (ikat dyeing) • Brocade (supplementary weft) • Corte (wraparound skirt)"),
    ],
    "Kaftan Azul": [
        ("technique", "Zellij-Inspired Embroidery", "Geometric patterns from Moroccan mosaic tilework translated into embroidery."),
    ],
    "Indigo Tenugui": [
        ("history", "Japan's Indigo Heritage", "Aizome dates back over 1,000 years; Tokushima became the indigo capital during the Edo period."),
    ],
}

SAMPLE_CARE = {
    "washing_instructions": "Hand wash in cold water with pH-neutral soap. Lay flat to dry away from direct sunlight.",
    "special_care": "Natural dyes may fade slightly over time. Store folded in a cool, dry place.",
    "repair_guidance": "Small tears can be mended with traditional darning. Contact the brand for artisan repair.",
}

SAMPLE_BADGES = [
    {"name": "First Steps", "description": "Collected your first ethical fashion stamp", "required_stamps": 1, "rarity": "common"},
    {"name": "Culture Keeper", "description": "Collected 5 stamps from different artisan traditions", "required_stamps": 5, "rarity": "rare"},
    {"name": "Global Citizen", "description": "Collected stamps from 3 different countries", "required_countries": 3, "rarity": "epic"},
]

SAMPLE_USER = {"email": "sarah.martinez@example.com", "name": "Sarah Martinez", "membership_tier": "gold"}


def seed_data(db: Database) -> bool:
    """Insert the demo catalog. Does nothing when garments already exist."""
    if db.garment.count_documents({}) > 0:
        return False

    brand_ids = {k: create_document(db, "brand", BrandSchema(**v)) for k, v in SAMPLE_BRANDS.items()}
    artisan_ids = {k: create_document(db, "artisan", ArtisanSchema(**v)) for k, v in SAMPLE_ARTISANS.items()}

    garment_ids = []
    tag_ids = []
    for brand, artisan, fields, tag, impact in SAMPLE_GARMENTS:
        gid = create_document(db, "garment", GarmentSchema(brand_id=brand_ids[brand], artisan_id=artisan_ids[artisan], **fields))
        garment_ids.append(gid)
        tag_ids.append(create_document(db, "tagcode", TagCodeSchema(garment_id=gid, **tag)))
        create_document(db, "impactmetrics", ImpactMetricsSchema(garment_id=gid, **impact))
        create_document(db, "careinstructions", CareInstructionsSchema(garment_id=gid, materials=", ".join(fields["materials"]), **SAMPLE_CARE))
        for kind, title, content in SAMPLE_CULTURE.get(fields["name"], []):
            create_document(db, "culturalcontent", CulturalContentSchema(garment_id=gid, type=kind, title=title, content=content))

    badge_ids = [create_document(db, "badge", BadgeSchema(**b)) for b in SAMPLE_BADGES]

    uid = create_document(db, "user", UserSchema(**SAMPLE_USER))
    for gid, tid in list(zip(garment_ids, tag_ids))[:2]:
        create_document(db, "stamp", StampSchema(user_id=uid, garment_id=gid, tag_code_id=tid))
    create_document(db, "userbadge", UserBadgeSchema(user_id=uid, badge_id=badge_ids[0]))

    logger.info("Seeded %d garments, %d badges and a demo user", len(garment_ids), len(badge_ids))
    return True
