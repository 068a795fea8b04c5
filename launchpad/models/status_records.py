"""
Status Record Model - one upserted summary per pull request.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from launchpad.database.base import Base
from launchpad.models.deployments import utcnow


class StatusRecordRow(Base):
    """
    Stored status summary, keyed by signature.

    The signature is unique, so two concurrent creates cannot both succeed;
    the loser falls back to an update (last writer wins).
    """

    __tablename__ = "status_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signature: Mapped[str] = mapped_column(String(255), nullable=False)
    pull_request: Mapped[Optional[int]] = mapped_column(Integer)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("signature", name="uq_status_records_signature"),
    )
