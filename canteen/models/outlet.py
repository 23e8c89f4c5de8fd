"""Outlet ORM model."""

from datetime import datetime, time, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from canteen.db.base import Base


class Outlet(Base):
    """Food stall on a campus; the unit of admin authentication and menu ownership."""

    __tablename__ = "outlets"

    id: Mapped[int] = mapped_column(primary_key=True)
    university_id: Mapped[int] = mapped_column(ForeignKey("universities.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    cuisine_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    opens_at: Mapped[time] = mapped_column(Time, nullable=False, default=time(9, 0))
    closes_at: Mapped[time] = mapped_column(Time, nullable=False, default=time(21, 0))
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    owner_email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    owner_password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    university: Mapped["University"] = relationship(back_populates="outlets", lazy="joined")
    menu_items: Mapped[list["MenuItem"]] = relationship(back_populates="outlet")
