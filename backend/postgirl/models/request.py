import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import String, DateTime, ForeignKey, Boolean, Integer, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from postgirl.database import Base


class HttpMethod(str, PyEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class BodyType(str, PyEnum):
    RAW = "raw"
    FORM = "form"
    JSON = "json"
    NONE = "none"


class Request(Base):
    __tablename__ = "requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    collection_id: Mapped[str] = mapped_column(ForeignKey("collections.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Plain string: methods outside HttpMethod are kept (uppercased) rather than rejected
    method: Mapped[str] = mapped_column(String(16), default=HttpMethod.GET.value)
    url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    headers: Mapped[dict | None] = mapped_column(JSON, default=dict)
    body: Mapped[str | None] = mapped_column(Text)
    body_type: Mapped[str] = mapped_column(String(10), default=BodyType.NONE.value)
    follow_redirects: Mapped[bool] = mapped_column(Boolean, default=True)
    timeout_ms: Mapped[int] = mapped_column(Integer, default=30000)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    collection: Mapped["Collection"] = relationship(back_populates="requests")  # noqa: F821
