from pydantic import BaseModel, Field, field_validator

from postgirl.config import settings
from postgirl.models.request import BodyType, HttpMethod


def normalize_method(method: str | None) -> str:
    """Uppercase a method name; unknown verbs are kept, blank ones become GET."""
    value = (method or "").strip().upper()
    return value or HttpMethod.GET.value


class CollectionCreate(BaseModel):
    workspace_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None


class RequestCreate(BaseModel):
    collection_id: str
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    method: str = HttpMethod.GET.value
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    body_type: BodyType = BodyType.NONE
    follow_redirects: bool = Field(default_factory=lambda: settings.DEFAULT_FOLLOW_REDIRECTS)
    timeout_ms: int = Field(default_factory=lambda: settings.DEFAULT_TIMEOUT_MS, ge=0)
    order_index: int = 0

    @field_validator("method", mode="before")
    @classmethod
    def _uppercase_method(cls, value):
        return normalize_method(value)


