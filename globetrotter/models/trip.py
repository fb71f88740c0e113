import math
import re
from datetime import date, datetime, time, timezone
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from globetrotter.errors import ValidationFailed


# ---------------------------
# Vocabularies
# ---------------------------

IMAGE_URL_PATTERN = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)

TRIP_STATUSES = ("planning", "active", "completed", "cancelled")
CURRENCIES = ("USD", "EUR", "GBP", "INR", "CAD", "AUD")
ACTIVITY_CATEGORIES = ("Sightseeing", "Food", "Adventure", "Culture", "Nightlife")
COST_TIERS = ("Low", "Medium", "High")
DURATION_BUCKETS = ("1–3 hrs", "Half-day", "Full-day")

TripStatus = Literal["planning", "active", "completed", "cancelled"]
Currency = Literal["USD", "EUR", "GBP", "INR", "CAD", "AUD"]
Category = Literal["Sightseeing", "Food", "Adventure", "Culture", "Nightlife"]
CostTier = Literal["Low", "Medium", "High"]
DurationBucket = Literal["1–3 hrs", "Half-day", "Full-day"]

MAX_TRIP_TAGS = 20
MAX_ACTIVITY_TAGS = 10
MAX_TAG_LENGTH = 20


def is_image_url(value: Optional[str]) -> bool:
    return bool(value) and bool(IMAGE_URL_PATTERN.match(value))


def to_utc_datetime(value: Any) -> Any:
    """Accept ISO strings, dates and datetimes; return an aware UTC datetime."""
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            raise ValueError(f"Invalid date: {value}")
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def normalize_tags(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    tags = [t.strip() for t in value if isinstance(t, str)]
    tags = [t for t in tags if t][:limit]
    if any(len(t) > MAX_TAG_LENGTH for t in tags):
        raise ValueError(f"Tag cannot be more than {MAX_TAG_LENGTH} characters")
    return tags


def _clip(value: Any, length: int) -> str:
    if value is None:
        return ""
    return str(value).strip()[:length]


def _non_negative(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def parse_command(model_cls, payload: Any, prefix: str = ""):
    """Decode an untrusted payload into a command model or raise ValidationFailed."""
    try:
        return model_cls.model_validate(payload if payload is not None else {})
    except ValidationError as e:
        raise ValidationFailed.from_pydantic(e, prefix=prefix)


# ---------------------------
# Trip-level commands
# ---------------------------

class Coordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    longitude: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)


class Location(BaseModel):
    city: str = Field("", max_length=100)
    country: str = Field("", max_length=100)
    coordinates: Optional[Coordinates] = None

    @field_validator("city", "country", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _clip(v, 100)


class Budget(BaseModel):
    amount: float = Field(1000, ge=0, allow_inf_nan=False, description="Planned budget amount")
    currency: Currency = "USD"

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        if v is None:
            return "USD"
        return str(v).strip().upper()


class _TripFields(BaseModel):
    description: Optional[str] = Field(None, max_length=1000)
    coverPhoto: Optional[str] = None
    isPublic: Optional[bool] = None
    tags: Optional[List[str]] = None
    budget: Optional[Budget] = None
    location: Optional[Location] = None

    @field_validator("description", "coverPhoto", mode="before")
    @classmethod
    def strip_optional_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("coverPhoto")
    @classmethod
    def validate_cover_photo(cls, v):
        if v and not is_image_url(v):
            raise ValueError("Please provide a valid image URL")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return v
        return normalize_tags(v, MAX_TRIP_TAGS)


class TripCreate(_TripFields):
    """Payload for creating a trip."""
    name: str = Field(..., min_length=3, max_length=100)
    startDate: datetime
    endDate: datetime
    budget: Budget = Field(default_factory=Budget)
    location: Location = Field(default_factory=Location)
    isPublic: bool = False
    tags: List[str] = Field(default_factory=list)
    status: TripStatus = "planning"

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return to_utc_datetime(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.startDate >= self.endDate:
            raise ValueError("End date must be after start date")
        return self


class TripUpdate(_TripFields):
    """Partial update; omitted fields are left untouched."""
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: Optional[TripStatus] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return to_utc_datetime(v) if v is not None else v


class TripStatusUpdate(BaseModel):
    status: TripStatus


# ---------------------------
# Embedded values
# ---------------------------

class CityInput(BaseModel):
    id: str = Field(..., min_length=1, max_length=120)
    name: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    img: str = ""

    @field_validator("id", "name", "country", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("img", mode="before")
    @classmethod
    def clean_img(cls, v):
        return v.strip() if isinstance(v, str) else ""


class ActivityInput(BaseModel):
    """
    An activity to attach to a city.

    Identity and vocabulary fields are strict; media and descriptive fields are
    coerced so a bad photo link never costs the whole activity.
    """
    id: str = Field(..., min_length=1, max_length=120)
    name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    category: Category
    cost: CostTier
    duration: DurationBucket
    rating: float = 4.0
    img: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("id", "name", "city", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("rating", mode="before")
    @classmethod
    def clamp_rating(cls, v):
        if v is None:
            return 4.0
        try:
            rating = float(v)
        except (TypeError, ValueError):
            return 4.0
        if not math.isfinite(rating):
            return 4.0
        return min(max(rating, 0.0), 5.0)

    @field_validator("img", mode="before")
    @classmethod
    def drop_bad_image(cls, v):
        if not isinstance(v, str):
            return ""
        v = v.strip()
        return v if is_image_url(v) else ""

    @field_validator("description", mode="before")
    @classmethod
    def clip_description(cls, v):
        return _clip(v, 500)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        return normalize_tags(v, MAX_ACTIVITY_TAGS)


class ItineraryItemInput(BaseModel):
    id: str = Field(..., min_length=1)
    activityId: str = ""
    time: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    @field_validator("id", "activityId", mode="before")
    @classmethod
    def clip_ids(cls, v):
        return _clip(v, 64)

    @field_validator("time", mode="before")
    @classmethod
    def clip_time(cls, v):
        return _clip(v, 5)

    @field_validator("name", mode="before")
    @classmethod
    def clip_name(cls, v):
        return _clip(v, 120)


class ItineraryDayInput(BaseModel):
    id: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    items: List[ItineraryItemInput] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def clip_id(cls, v):
        return _clip(v, 64)

    @field_validator("date", mode="before")
    @classmethod
    def clip_date(cls, v):
        return _clip(v, 10)

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, v):
        return v if isinstance(v, list) else []


class ItineraryUpdate(BaseModel):
    itinerary: List[ItineraryDayInput] = Field(default_factory=list)


class BudgetSummaryInput(BaseModel):
    """Budget buckets; values are coerced and floored at zero, never rejected."""
    transport: float = 0
    stay: float = 0
    activities: float = 0
    meals: float = 0
    total: Optional[float] = None
    currency: str = "USD"

    @field_validator("transport", "stay", "activities", "meals", mode="before")
    @classmethod
    def floor_amount(cls, v):
        return _non_negative(v)

    @field_validator("total", mode="before")
    @classmethod
    def floor_total(cls, v):
        return None if v is None else _non_negative(v)

    @field_validator("currency", mode="before")
    @classmethod
    def clip_currency(cls, v):
        code = _clip(v, 3).upper()
        return code or "USD"

    @model_validator(mode="after")
    def fill_total(self):
        if self.total is None:
            self.total = self.transport + self.stay + self.activities + self.meals
        return self


# ---------------------------
# Convenience requests
# ---------------------------

class SaveActivityRequest(BaseModel):
    cityName: str = Field(..., min_length=1, max_length=100)
    cityCountry: str = Field(..., min_length=1, max_length=100)
    cityImg: str = ""
    activity: Dict[str, Any]

    @field_validator("cityName", "cityCountry", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v


class QuickAddRequest(BaseModel):
    cities: List[CityInput] = Field(..., min_length=1)


# ---------------------------
# Responses
# ---------------------------

class TripOut(BaseModel):
    """Trip as returned to clients: the stored document plus derived values."""
    model_config = ConfigDict(extra="allow")

    id: str
    userId: str
    name: str
    startDate: datetime
    endDate: datetime
    status: TripStatus
    duration: int
    dateStatus: Literal["upcoming", "ongoing", "past"]
    totalActivities: int


class TripData(BaseModel):
    model_config = ConfigDict(extra="allow")

    trip: TripOut


class TripListData(BaseModel):
    trips: List[TripOut]


class TripResponse(BaseModel):
    # message and pagination pass through only when the router sets them
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: TripData


class TripListResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: TripListData
