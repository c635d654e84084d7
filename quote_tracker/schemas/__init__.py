"""
Pydantic schemas for API request/response validation.

Provides data transfer objects for all API endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from quote_tracker.models.quote import QuotePriority, QuoteStatus, ServiceType
from quote_tracker.services.quotes.price_calculator import Discount, Urgency

PHONE_PATTERN = r"^[\+]?[0-9\s\-\(\)]{8,20}$"
MAX_FEATURES = 20


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str
    code: str
    field: str | None = None
    details: dict[str, Any] | None = None


# Submission schemas
class ClientInfo(BaseModel):
    """Contact details of the person requesting the quote."""
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    company: str | None = Field(default=None, max_length=255)
    
    @field_validator("phone", "company", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value
    
    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class ProjectDetails(BaseModel):
    """What the client wants built."""
    service_type: ServiceType
    features: list[str] = Field(default_factory=list, max_length=MAX_FEATURES)
    description: str | None = Field(default=None, max_length=2000)
    timeline: str | None = Field(default=None, max_length=100)
    budget_range: str | None = Field(default=None, max_length=100)
    additional_requirements: str | None = Field(default=None, max_length=1000)


class QuoteSubmission(BaseModel):
    """Public quote request."""
    client: ClientInfo
    project: ProjectDetails


# Admin schemas
class StatusUpdate(BaseModel):
    """Status transition request."""
    status: QuoteStatus
    notes: str | None = Field(default=None, max_length=1000)
    changed_by: str = Field(default="admin", min_length=1, max_length=100)
    message: str | None = Field(default=None, max_length=2000)
    notify_client: bool = True


class NoteCreate(BaseModel):
    """New note on a quote."""
    note: str = Field(min_length=1, max_length=2000)
    author: str = Field(default="admin", min_length=1, max_length=100)
    is_internal: bool = False


class QuoteFieldUpdate(BaseModel):
    """Direct edit of non-status fields."""
    priority: QuotePriority | None = None
    assigned_to: str | None = Field(default=None, max_length=100)


# Pricing schemas
class PricingRequest(BaseModel):
    """Feature-breakdown estimate request."""
    service_type: ServiceType
    features: list[str] = Field(default_factory=list, max_length=MAX_FEATURES)
    custom_requirements: str | None = Field(default=None, max_length=1000)


class CatalogPricingRequest(BaseModel):
    """Urgency/discount price request."""
    service_type: ServiceType
    features: list[str] = Field(default_factory=list, max_length=MAX_FEATURES)
    urgency: Urgency = Urgency.NORMAL
    discount: Discount | None = None


class FeatureCostResponse(BaseModel):
    key: str
    name: str
    cost: int


class PriceEstimateResponse(BaseModel):
    """Feature-breakdown estimate."""
    base_price: int
    feature_breakdown: list[FeatureCostResponse]
    additional_cost: int
    complexity_bonus: int
    total: int
    currency: str
    disclaimer: str
    priority: QuotePriority


class LineAmountResponse(BaseModel):
    name: str
    price: int


class CatalogPriceResponse(BaseModel):
    """Urgency/discount price with its breakdown."""
    base_price: int
    features_price: int
    total_price: int
    service: LineAmountResponse
    features: list[LineAmountResponse]
    development_days: tuple[int, int]
    breakdown_text: str


# Quote response schemas
class QuoteFeatureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    feature_name: str
    feature_cost: int


class QuoteNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    author: str
    note: str
    is_internal: bool
    created_at: datetime


class PublicNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    author: str
    note: str
    created_at: datetime


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    previous_status: QuoteStatus | None
    new_status: QuoteStatus
    changed_by: str
    notes: str | None
    created_at: datetime


class QuoteSummaryResponse(BaseModel):
    """Row in the admin quote list."""
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    quote_number: str
    client_name: str
    client_email: str
    client_company: str | None
    service_type: ServiceType
    estimated_price: int
    currency: str
    status: QuoteStatus
    priority: QuotePriority
    assigned_to: str | None
    created_at: datetime
    updated_at: datetime


class QuoteResponse(QuoteSummaryResponse):
    """Full quote for the admin view."""
    client_phone: str | None
    description: str | None
    timeline: str | None
    budget_range: str | None
    additional_requirements: str | None
    features: list[QuoteFeatureResponse]
    notes: list[QuoteNoteResponse]
    status_history: list[StatusHistoryResponse]


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class QuoteListResponse(BaseModel):
    items: list[QuoteSummaryResponse]
    pagination: PaginationResponse


class QuoteCreatedResponse(BaseModel):
    """What the submitter gets back."""
    id: str
    quote_number: str
    access_token: str
    tracking_url: str
    estimated_price: int
    currency: str
    priority: QuotePriority
    status: QuoteStatus
    estimate: PriceEstimateResponse


class StatusChangeResponse(BaseModel):
    quote_id: str
    quote_number: str
    previous_status: QuoteStatus
    status: QuoteStatus
    history_entry: StatusHistoryResponse
    notification_scheduled: bool


class TrackingResponse(BaseModel):
    """Client tracking view, reachable with the access token only."""
    quote_number: str
    status: QuoteStatus
    priority: QuotePriority
    service_type: ServiceType
    estimated_price: int
    currency: str
    timeline: str | None
    features: list[QuoteFeatureResponse]
    created_at: datetime
    updated_at: datetime
    estimated_response_date: datetime
    status_history: list[StatusHistoryResponse]
    notes: list[PublicNoteResponse]


class ReminderSweepResponse(BaseModel):
    processed: int
    successful: int
    failed: int


class ReminderResponse(BaseModel):
    quote_id: str
    sent: bool
