from datetime import datetime
from typing import Optional

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Text, Integer, DateTime, Identity, CheckConstraint, func, text


class Base(DeclarativeBase):
    pass


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, Identity(always=True), primary_key=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    page: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # added in schema revision 2; older rows may hold NULL
    page_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        server_default=text("0"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("type <> ''", name="ck_events_type_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, type='{self.type}', "
            f"page='{self.page}', page_count={self.page_count}, "
            f"created_at={self.created_at})>"
        )
