"""
Quote lifecycle models.

Holds the quote itself, the add-on features priced at submission, client
and internal notes, and the append-only status history.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean, DateTime, Enum as SQLEnum, ForeignKey,
    Integer, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_tracker.database.base import Base, utcnow


class ServiceType(str, Enum):
    """Services that can be quoted."""
    LANDING_PAGE = "LANDING_PAGE"
    CORPORATE_WEB = "CORPORATE_WEB"
    ECOMMERCE = "ECOMMERCE"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"


class QuoteStatus(str, Enum):
    """Quote lifecycle status."""
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    QUOTED = "QUOTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class QuotePriority(str, Enum):
    """Priority derived from the estimated price."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Quote(Base):
    """
    A priced service request moving through the review lifecycle.
    
    `estimated_price` and feature costs are fixed at submission time.
    """
    
    __tablename__ = "quotes"
    
    # Identification
    quote_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    access_token: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    
    # Client
    client_name: Mapped[str] = mapped_column(String(100), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_phone: Mapped[str | None] = mapped_column(String(20))
    client_company: Mapped[str | None] = mapped_column(String(255))
    
    # Project
    service_type: Mapped[ServiceType] = mapped_column(SQLEnum(ServiceType), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    timeline: Mapped[str | None] = mapped_column(String(100))
    budget_range: Mapped[str | None] = mapped_column(String(100))
    additional_requirements: Mapped[str | None] = mapped_column(Text)
    
    # Pricing
    estimated_price: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="ARS")
    
    # Workflow
    status: Mapped[QuoteStatus] = mapped_column(
        SQLEnum(QuoteStatus),
        default=QuoteStatus.PENDING,
        index=True,
    )
    priority: Mapped[QuotePriority] = mapped_column(
        SQLEnum(QuotePriority),
        default=QuotePriority.LOW,
    )
    assigned_to: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )
    
    # Relationships
    features: Mapped[list["QuoteFeature"]] = relationship(
        "QuoteFeature",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteFeature.position",
    )
    notes: Mapped[list["QuoteNote"]] = relationship(
        "QuoteNote",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteNote.created_at",
    )
    status_history: Mapped[list["QuoteStatusHistory"]] = relationship(
        "QuoteStatusHistory",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteStatusHistory.created_at",
    )
    
    @property
    def public_notes(self) -> list["QuoteNote"]:
        return [note for note in self.notes if not note.is_internal]


class QuoteFeature(Base):
    """Add-on feature with the cost looked up at submission."""
    
    __tablename__ = "quote_features"
    
    quote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    feature_name: Mapped[str] = mapped_column(String(100), nullable=False)
    feature_cost: Mapped[int] = mapped_column(Integer, default=0)
    
    quote: Mapped["Quote"] = relationship("Quote", back_populates="features")


class QuoteNote(Base):
    """Timestamped annotation, visible to the client unless internal."""
    
    __tablename__ = "quote_notes"
    
    quote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
    )
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)
    
    quote: Mapped["Quote"] = relationship("Quote", back_populates="notes")


class QuoteStatusHistory(Base):
    """
    Audit entry for one status transition.
    
    Rows are only ever inserted.
    """
    
    __tablename__ = "quote_status_history"
    
    quote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_status: Mapped[QuoteStatus | None] = mapped_column(SQLEnum(QuoteStatus))
    new_status: Mapped[QuoteStatus] = mapped_column(SQLEnum(QuoteStatus), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    
    quote: Mapped["Quote"] = relationship("Quote", back_populates="status_history")
