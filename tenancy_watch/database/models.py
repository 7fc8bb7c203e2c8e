"""SQLAlchemy models for all database tables."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenancy_watch.core.database import Base


def _money():
    return Numeric(14, 2, asdecimal=False)


class CaseRecord(Base):
    """One harvested listing entry (dispute outcome or enforcement order)."""

    __tablename__ = "case_records"
    __table_args__ = (
        UniqueConstraint("source_type", "case_ref", name="uq_case_records_source_ref"),
        Index("ix_case_records_pending_ai", "source_type", "ai_processed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    source_type: Mapped[str] = mapped_column(
        String, nullable=False
    )  # disputes | enforcement_orders
    case_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    secondary_ref: Mapped[str | None] = mapped_column(String, nullable=True)  # TR No. / PRTB No.
    heading: Mapped[str | None] = mapped_column(Text, nullable=True)
    case_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)

    applicant_name: Mapped[str | None] = mapped_column(String, nullable=True)
    applicant_role: Mapped[str | None] = mapped_column(String, nullable=True)
    respondent_name: Mapped[str | None] = mapped_column(String, nullable=True)
    respondent_role: Mapped[str | None] = mapped_column(String, nullable=True)

    documents: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list
    )  # [{"label": ..., "url": ...}]
    linked_case_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("case_records.id", ondelete="SET NULL"), nullable=True
    )
    raw_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_page: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # AI-derived fields
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_outcome: Mapped[str | None] = mapped_column(String, nullable=True)
    # NULL with ai_processed_at set and no ai_error: amount withheld, not zero
    ai_compensation_amount: Mapped[float | None] = mapped_column(_money(), nullable=True)
    ai_cost_order: Mapped[float | None] = mapped_column(_money(), nullable=True)
    ai_property_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_dispute_type: Mapped[str | None] = mapped_column(String, nullable=True)
    ai_award_items: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    ai_amount_quote: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_model: Mapped[str | None] = mapped_column(String, nullable=True)
    ai_processed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    ai_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    parties: Mapped[list["CaseParty"]] = relationship(
        "CaseParty", back_populates="case", cascade="all, delete-orphan"
    )


class Party(Base):
    """A resolved person or organisation appearing on cases."""

    __tablename__ = "parties"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    normalized_name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    party_type: Mapped[str] = mapped_column(
        String, nullable=False, default="Unknown"
    )  # Landlord | Tenant | Unknown

    # Derived aggregates, recomputed by the entity resolver
    total_cases: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_as_applicant: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_as_respondent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_enforcement_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    net_awards_for: Mapped[float] = mapped_column(_money(), nullable=False, default=0)
    net_awards_against: Mapped[float] = mapped_column(_money(), nullable=False, default=0)
    net_awards: Mapped[float] = mapped_column(_money(), nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    cases: Mapped[list["CaseParty"]] = relationship(
        "CaseParty", back_populates="party", cascade="all, delete-orphan"
    )


class CaseParty(Base):
    """Link between a case record and a party in a given role."""

    __tablename__ = "case_parties"
    __table_args__ = (
        UniqueConstraint("case_id", "party_id", "role", name="uq_case_parties_case_party_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("case_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    party_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("parties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String, nullable=False)  # applicant | respondent
    party_type: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    case: Mapped["CaseRecord"] = relationship("CaseRecord", back_populates="parties")
    party: Mapped["Party"] = relationship("Party", back_populates="cases")


class HarvestJob(Base):
    """One harvesting run over a listing."""

    __tablename__ = "harvest_jobs"
    __table_args__ = (
        # At most one running job per source type
        Index(
            "uq_harvest_jobs_running_source",
            "source_type",
            unique=True,
            postgresql_where=text("status = 'running'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    source_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="running"
    )  # running | completed | failed | cancelled
    current_page: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_results: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    workflow_id: Mapped[str | None] = mapped_column(String, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
