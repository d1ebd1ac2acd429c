"""
Resource Models
Books, learning platforms and equipment, with tiered pricing and stock
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from enum import Enum

from ..config.settings import settings

# ============================================================================
# ENUMS
# ============================================================================

class ResourceType(str, Enum):
    BOOK = "Book"
    PLATFORM = "Platform"
    HARDWARE = "Hardware"
    DIGITAL = "Digital"

class ResourceLanguage(str, Enum):
    FRENCH = "French"
    ENGLISH = "English"
    SWAHILI = "Swahili"
    MULTI_LANGUAGE = "Multi-language"

class ResourceSubject(str, Enum):
    FRENCH = "French"
    ENGLISH = "English"
    READING = "Reading"
    CODING = "Coding"
    CHESS = "Chess"
    ROBOTICS = "Robotics"
    GENERAL = "General"

class PriceTier(str, Enum):
    """Customer tiers: schools buy in bulk, teachers get a discount, students pay retail"""
    SCHOOL = "school"
    TEACHER = "teacher"
    STUDENT = "student"

class StockStatus(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"

class BookFormat(str, Enum):
    PAPERBACK = "Paperback"
    HARDCOVER = "Hardcover"
    SPIRAL = "Spiral"
    EBOOK = "eBook"

# ============================================================================
# SUB-MODELS
# ============================================================================

class Publisher(BaseModel):
    french_publisher: Optional[str] = None
    english_publisher: Optional[str] = None
    series: Optional[str] = None
    level: Optional[str] = None
    edition: Optional[str] = None

class PlatformDetails(BaseModel):
    platform_name: Optional[str] = None
    license_type: Optional[str] = None
    access_duration: Optional[str] = None
    max_users: Optional[int] = Field(None, ge=1)

class Pricing(BaseModel):
    cost_price: float = Field(0, ge=0, description="What the company pays suppliers")
    school_bulk_price: float = Field(0, ge=0)
    teacher_discount_price: float = Field(0, ge=0)
    student_retail_price: float = Field(0, ge=0)
    currency: str = settings.default_currency

class Inventory(BaseModel):
    total_stock: int = Field(0, ge=0)
    available: Optional[int] = Field(None, ge=0, description="Defaults to total_stock")
    minimum_stock: int = Field(settings.low_stock_threshold, ge=0, description="Low stock alert threshold")

    @model_validator(mode="after")
    def check_available(self):
        if self.available is None:
            self.available = self.total_stock
        elif self.available > self.total_stock:
            raise ValueError('available cannot exceed total_stock')
        return self

class InventoryUpdate(BaseModel):
    """Partial inventory change; fields left out keep their stored value"""
    total_stock: Optional[int] = Field(None, ge=0)
    available: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)

class Supplier(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    lead_time: Optional[str] = None

class AcademicInfo(BaseModel):
    french_level: Optional[str] = None
    age_group: Optional[str] = None
    difficulty: Optional[str] = None

class ResourceMetadata(BaseModel):
    isbn: Optional[str] = None
    pages: Optional[int] = Field(None, ge=1)
    format: BookFormat = BookFormat.PAPERBACK

# ============================================================================
# RESOURCE CREATE / UPDATE
# ============================================================================

class ResourceCreate(BaseModel):
    """Model for cataloguing a resource"""
    name: str = Field(..., min_length=1, max_length=200)
    type: ResourceType = ResourceType.BOOK
    language: ResourceLanguage = ResourceLanguage.FRENCH
    subject: ResourceSubject = ResourceSubject.FRENCH
    publisher: Publisher = Field(default_factory=Publisher)
    platform_details: Optional[PlatformDetails] = None
    pricing: Pricing = Field(default_factory=Pricing)
    inventory: Inventory = Field(default_factory=Inventory)
    supplier: Optional[Supplier] = None
    academic_info: Optional[AcademicInfo] = None
    metadata: Optional[ResourceMetadata] = None
    programs: List[str] = Field(default_factory=list, description="Linked program IDs")
    description: Optional[str] = Field(None, max_length=2000)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Alex et Zoé 1",
                "type": "Book",
                "language": "French",
                "subject": "French",
                "publisher": {"french_publisher": "CLE International", "series": "Alex et Zoé", "level": "A1"},
                "pricing": {"cost_price": 1800, "school_bulk_price": 2200, "teacher_discount_price": 2400, "student_retail_price": 2800},
                "inventory": {"total_stock": 40, "minimum_stock": 5}
            }
        }

class ResourceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ResourceType] = None
    language: Optional[ResourceLanguage] = None
    subject: Optional[ResourceSubject] = None
    publisher: Optional[Publisher] = None
    platform_details: Optional[PlatformDetails] = None
    pricing: Optional[Pricing] = None
    inventory: Optional[InventoryUpdate] = None
    supplier: Optional[Supplier] = None
    academic_info: Optional[AcademicInfo] = None
    metadata: Optional[ResourceMetadata] = None
    programs: Optional[List[str]] = None
    description: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None

class StockAdjustment(BaseModel):
    """Signed change to available stock; positive deliveries also raise total_stock"""
    delta: int = Field(..., description="Units to add (positive) or remove (negative)")
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_delta(self):
        if self.delta == 0:
            raise ValueError('delta must not be zero')
        return self
