"""
Pydantic models for service listings.

A listing is a provider's bookable offering.  ``rating`` and
``reviews`` are derived from the bookings made against the listing and
are therefore only present on the read model.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .user import AccountSummary


class ServiceCategory(str, Enum):
    plumbing = "plumbing"
    electrical = "electrical"
    cleaning = "cleaning"
    carpentry = "carpentry"
    painting = "painting"
    pest_control = "pest_control"
    appliance_repair = "appliance_repair"
    gardening = "gardening"


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("Name must not be blank")
    return v


class AvailabilityHours(BaseModel):
    start: str = Field(..., pattern=TIME_OF_DAY_PATTERN, examples=["08:00"])
    end: str = Field(..., pattern=TIME_OF_DAY_PATTERN, examples=["18:00"])


class Availability(BaseModel):
    days: List[Weekday] = Field(default_factory=list)
    hours: AvailabilityHours


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, examples=["Leak repair"])
    description: str = Field(..., examples=["Fix leaking pipes and taps"])
    category: ServiceCategory
    base_price: float = Field(..., ge=0, examples=[80.0])
    is_emergency: bool = False
    availability: Availability
    images: List[str] = Field(default_factory=list)

    strip_name = field_validator("name")(_strip_name)


class ServiceCreate(ServiceBase):
    """Schema for publishing a listing."""
    pass


class ServiceUpdate(BaseModel):
    """Schema for updating a listing.

    Every field is optional; the supplied fields are merged onto the
    stored listing and the rest are left untouched.
    """

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[ServiceCategory] = None
    base_price: Optional[float] = Field(None, ge=0)
    is_emergency: Optional[bool] = None
    availability: Optional[Availability] = None
    images: Optional[List[str]] = None

    strip_name = field_validator("name")(_strip_name)


class ServiceRead(ServiceBase):
    id: int
    provider_id: int
    provider: Optional[AccountSummary] = None
    rating: float = Field(0, ge=0, le=5)
    reviews: List[int] = Field(default_factory=list, description="Ids of reviewed bookings")
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


class ServiceSummary(BaseModel):
    id: int
    name: str
