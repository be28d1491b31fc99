from functools import lru_cache

from fastapi import APIRouter, Depends, Request

from app.core.config import get_settings
from app.core.exceptions import ValidationException
from app.core.logger import logger
from app.schemas.moderation import ModerationOutcome, PostPayload
from app.services.moderation_service import ModerationService

router = APIRouter(prefix="/api/v1/moderate", tags=["moderation"])


@lru_cache()
def get_moderation_service() -> ModerationService:
    """Shared service built from the process settings."""
    return ModerationService.from_settings(get_settings())


@router.post("/post", response_model=ModerationOutcome, status_code=200)
def moderate_post(
    payload: PostPayload,
    request: Request,
    service: ModerationService = Depends(get_moderation_service),
):
    """
    Check the images embedded in a post against the configured risk policy.

    The service fails open, so this endpoint answers with
    ``{"approved": true}`` whenever the risk could not be determined.

    Args:
        payload: Post content and its location in the host site
        request: FastAPI request object for logging
        service: Moderation service dependency

    Returns:
        ModerationOutcome: Whether the post may be published
    """
    logger.info(
        "Post moderation request received",
        extra={
            "content_id": str(payload.id),
            "content_length": len(payload.raw),
            "client_ip": request.client.host if request.client else "unknown"
        }
    )

    if payload.post_number < 1:
        raise ValidationException("post_number must be positive", field="post_number")

    outcome = service.analyze_post(payload)

    logger.info(
        "Post moderation completed",
        extra={"content_id": str(payload.id), "approved": outcome.approved}
    )
    return outcome
