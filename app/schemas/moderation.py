import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RiskLevel(str, enum.Enum):
    none = "none"
    low = "low"
    medium = "medium"
    high = "high"


# ---- Requests ----
class PostPayload(BaseModel):
    """A content item as handed over by the host site."""

    id: Optional[int] = None  # unset until the post is persisted
    raw: str
    cooked: Optional[str] = None  # HTML already rendered by the host
    user_id: int
    topic_id: int
    topic_slug: str
    topic_title: Optional[str] = None
    post_number: int = 1


class ModerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    author_id: str
    context_id: str
    content_id: str
    content_url: str
    topic_title: Optional[str] = None
    rendered_html: Optional[str] = None


# ---- Results ----
class ImageModerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_url: str
    risk_level: Optional[str] = None  # None when the service returned no level
    request_id: Optional[str] = None


class ModerationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    approved: bool
