"""ORM Models for CleanQuote saved agreements (SQLAlchemy 2.0)"""
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.db import Base


def gen_uuid():
    return str(uuid.uuid4())


# ── SAVED AGREEMENTS ──────────────────────────────────────────────────────────
class SavedAgreement(Base):
    """
    A priced service agreement. ``payload`` holds the per-service records in
    the current schema; ``classification`` is a snapshot taken at save time and
    is always recomputed when the agreement is priced again.
    """
    __tablename__ = "saved_agreements"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(50), default="pending_approval")  # approved | pending_approval
    classification: Mapped[str] = mapped_column(String(20), default="red")  # red | neutral | green
    contract_months: Mapped[int] = mapped_column(Integer, default=12)
    total_agreement_amount: Mapped[float] = mapped_column(Numeric(14, 2), default=0)
    payload: Mapped[dict] = mapped_column(JSONB, default=dict)
    version: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_saved_agreements_status", "status"),
    )
