"""
Garment Passport Database Schemas

Each Pydantic model represents a MongoDB collection.
Collection name is the lowercase class name (TagCode -> "tagcode").
References between collections are stored as string ids.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    email: Optional[EmailStr] = None
    name: str
    avatar_url: Optional[str] = None
    role: Literal["shopper", "brand"] = "shopper"
    membership_tier: Literal["silver", "gold", "platinum"] = "silver"

class Brand(BaseModel):
    name: str
    description: Optional[str] = None
    origin: Optional[str] = None
    philosophy: Optional[str] = None
    sustainability_practices: List[str] = Field(default_factory=list)
    website: Optional[str] = None
    logo_url: Optional[str] = None
    is_verified: bool = False

class Artisan(BaseModel):
    name: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    country: str
    region: Optional[str] = None
    craft: str
    years_of_experience: Optional[int] = Field(None, ge=0)
    generation: Optional[int] = Field(None, ge=1)
    is_verified: bool = False

class Garment(BaseModel):
    brand_id: str
    artisan_id: str
    name: str
    description: Optional[str] = None
    category: Literal["clothing", "accessories", "textiles", "jewelry"]
    price: float = Field(ge=0)
    images: List[str] = Field(default_factory=list)
    origin: str
    materials: List[str] = Field(default_factory=list)
    techniques: List[str] = Field(default_factory=list)
    is_active: bool = True
    is_verified: bool = False

# Physical NFC/QR tag attached to a garment
class TagCode(BaseModel):
    garment_id: str
    code: str = Field(..., min_length=1)
    nfc_uid: Optional[str] = None
    qr_code: Optional[str] = None
    is_active: bool = True

class SupplyChainStep(BaseModel):
    step: int = Field(ge=1)
    title: str
    location: str
    date: str
    description: str

class ImpactMetrics(BaseModel):
    garment_id: str
    water_saved: Optional[float] = Field(None, ge=0, description="Litres")
    co2_offset: Optional[float] = Field(None, ge=0, description="Kilograms")
    artisans_supported: Optional[int] = Field(None, ge=0)
    supply_chain_steps: List[SupplyChainStep] = Field(default_factory=list)

class CulturalContent(BaseModel):
    garment_id: str
    type: Literal["recipe", "music", "video", "myth", "vocabulary", "technique", "history"]
    title: str
    content: str
    images: List[str] = Field(default_factory=list)
    is_ai_generated: bool = False

class CareInstructions(BaseModel):
    garment_id: str
    washing_instructions: Optional[str] = None
    materials: Optional[str] = None
    special_care: Optional[str] = None
    repair_guidance: Optional[str] = None

# A user's unlocked garment passport
class Stamp(BaseModel):
    user_id: str
    garment_id: str
    tag_code_id: Optional[str] = None
    scan_location: Optional[str] = None
    unlocked_at: datetime = Field(default_factory=_utcnow)

class Badge(BaseModel):
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    required_stamps: Optional[int] = Field(None, ge=0)
    required_countries: Optional[int] = Field(None, ge=0)
    rarity: Optional[Literal["common", "rare", "epic", "legendary"]] = None

class UserBadge(BaseModel):
    user_id: str
    badge_id: str
    earned_at: datetime = Field(default_factory=_utcnow)

class Analytics(BaseModel):
    user_id: Optional[str] = None
    garment_id: Optional[str] = None
    action: Literal["scan", "view_passport", "view_impact", "view_care", "view_culture", "share", "purchase"]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


# -----------------------------
# Derived (never stored)
# -----------------------------
class TotalImpact(BaseModel):
    water_saved: float = 0
    co2_offset: float = 0
    artisans_supported: int = 0
    countries_explored: int = 0

class UnresolvedRef(BaseModel):
    """A record left out of an aggregate because something it points at is gone."""
    collection: str
    id: str
    missing: str
    ref: Optional[str] = None
