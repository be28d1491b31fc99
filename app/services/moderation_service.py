import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from app.clients.aliyun_client import AliyunModerationClient
from app.core.config import Settings
from app.core.exceptions import classify_error
from app.core.logger import logger, truncate_for_log
from app.policies.allow_list import AllowListPolicy
from app.schemas.moderation import ModerationOutcome, ModerationRequest, PostPayload
from app.services.content_extractor import extract_image_urls
from app.services.renderer import render_markdown

Renderer = Callable[[str], str]

APPROVED = ModerationOutcome(approved=True)
REJECTED = ModerationOutcome(approved=False)


def build_moderation_request(
    post: PostPayload,
    base_url: str,
    now: Optional[float] = None
) -> ModerationRequest:
    """
    Turn a host content item into a moderation request.

    Args:
        post: Content item as submitted by the host site
        base_url: Site base URL for the canonical content link
        now: Unix time used for the placeholder id of unsaved posts

    Returns:
        ModerationRequest for the post
    """
    if post.id is not None:
        content_id = str(post.id)
    else:
        content_id = f"pending_{int(time.time() if now is None else now)}"

    return ModerationRequest(
        content=post.raw,
        author_id=str(post.user_id),
        context_id=str(post.topic_id),
        content_id=content_id,
        content_url=f"{base_url}/t/{post.topic_slug}/{post.topic_id}/{post.post_number}",
        topic_title=post.topic_title if post.post_number == 1 else None,
        rendered_html=post.cooked,
    )


class ContentChecker(ABC):
    """One kind of check run against a moderation request."""

    name = "content"

    @abstractmethod
    def check(self, request: ModerationRequest) -> ModerationOutcome:
        ...


class ImageContentChecker(ContentChecker):
    """Classifies every embedded image; the first rejected image rejects the content."""

    name = "image"

    def __init__(
        self,
        client: AliyunModerationClient,
        policy: AllowListPolicy,
        base_url: str,
        renderer: Renderer = render_markdown,
    ):
        self.client = client
        self.policy = policy
        self.base_url = base_url
        self.renderer = renderer

    def check(self, request: ModerationRequest) -> ModerationOutcome:
        if request.rendered_html is not None:
            html = request.rendered_html
        else:
            html = self.renderer(request.content)
        image_urls = extract_image_urls(html, self.base_url)

        for url in image_urls:
            logger.debug(
                f"Checking image: {truncate_for_log(url)}",
                extra={"content_id": request.content_id, "image_url": truncate_for_log(url)}
            )
            result = self.client.moderate_image(url)
            if self.policy.decide(result.risk_level):
                continue

            logger.warning(
                f"Image moderation failed for URL: {truncate_for_log(url)}",
                extra={
                    "content_id": request.content_id,
                    "image_url": truncate_for_log(url),
                    "risk_level": result.risk_level
                }
            )
            return REJECTED

        return APPROVED


class TextContentChecker(ContentChecker):
    """Reserved for text moderation; approves everything for now."""

    name = "text"

    def check(self, request: ModerationRequest) -> ModerationOutcome:
        return APPROVED


class ModerationService:
    """
    Runs the configured checkers over a piece of content.

    Checkers run in order and the first rejection wins. Any error raised
    while checking is logged with its category and the content is
    approved: the service fails open.
    """

    def __init__(
        self,
        checkers: Sequence[ContentChecker],
        base_url: str,
        client: Optional[AliyunModerationClient] = None,
    ):
        self.checkers: List[ContentChecker] = list(checkers)
        self.base_url = base_url
        self.client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        renderer: Renderer = render_markdown,
        client: Optional[AliyunModerationClient] = None,
    ) -> "ModerationService":
        client = client or AliyunModerationClient.from_settings(settings)
        policy = AllowListPolicy.from_setting(settings.aliyun_risk_level_allow_list)
        return cls(
            checkers=[
                ImageContentChecker(client, policy, settings.base_url, renderer),
                TextContentChecker(),
            ],
            base_url=settings.base_url,
            client=client,
        )

    def analyze_content(self, request: ModerationRequest) -> ModerationOutcome:
        logger.info(
            "Analyzing content with Aliyun Moderation API",
            extra={"content_id": request.content_id}
        )

        try:
            for checker in self.checkers:
                outcome = checker.check(request)
                if not outcome.approved:
                    logger.info(
                        f"Content rejected by {checker.name} check",
                        extra={"content_id": request.content_id}
                    )
                    return outcome
            return APPROVED
        except Exception as e:
            category = classify_error(e)
            details = getattr(e, "details", {}) or {}
            logger.error(
                f"Moderation {category} error, approving content: {e}",
                extra={
                    "content_id": request.content_id,
                    "error_category": category,
                    "image_url": details.get("image_url", "")
                },
                exc_info=True
            )
            return APPROVED

    def analyze_post(self, post: PostPayload) -> ModerationOutcome:
        logger.debug("Analyzing post content", extra={"content_id": str(post.id)})
        return self.analyze_content(build_moderation_request(post, self.base_url))

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
