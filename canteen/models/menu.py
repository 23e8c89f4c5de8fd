"""Menu ORM models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from canteen.db.base import Base

DEFAULT_PREP_TIME_MINUTES: int = 10


class MenuItem(Base):
    """Dish offered by an outlet. Prices are stored in minor currency units."""

    __tablename__ = "menu_items"
    __table_args__ = (
        Index("ix_menu_items_outlet_available", "outlet_id", "is_available"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    outlet_id: Mapped[int] = mapped_column(ForeignKey("outlets.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    prep_time: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_PREP_TIME_MINUTES)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_veg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    outlet: Mapped["Outlet"] = relationship(back_populates="menu_items")
