from typing import Optional, Tuple

import requests

from app.core.config import Settings, DEFAULT_REGION
from app.core.exceptions import (
    ModerationServiceException,
    RequestSigningException,
    ResponseDecodingException,
)
from app.core.logger import logger, truncate_for_log
from app.core.security import build_common_params, encode_service_parameters, sign_request
from app.schemas.moderation import ImageModerationResult

ACTION = "ImageModeration"
API_VERSION = "2022-03-02"
SERVICE = "baselineCheck"
DEFAULT_TIMEOUT = (5.0, 10.0)


class AliyunModerationClient:
    """Signed client for the Aliyun image moderation endpoint."""

    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        region: str = DEFAULT_REGION,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        self.region = region or DEFAULT_REGION
        self.timeout = timeout
        # a fresh session per call unless one is injected
        self.session = session

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None):
        return cls(
            access_key_id=settings.aliyun_access_key_id,
            access_key_secret=settings.aliyun_access_key_secret,
            region=settings.aliyun_region,
            timeout=settings.request_timeout,
            session=session,
        )

    @property
    def endpoint(self) -> str:
        return f"https://green-cip.{self.region}.aliyuncs.com"

    def moderate_image(self, image_url: str) -> ImageModerationResult:
        """
        Classify one image with the remote service.

        Args:
            image_url: Absolute URL of the image

        Returns:
            ImageModerationResult whose ``risk_level`` is None when the
            service did not report one

        Raises:
            RequestSigningException: If the call cannot be signed
            ModerationServiceException: On connection failure, timeout or non-2xx status
            ResponseDecodingException: If the body is not a JSON object of the expected shape
        """
        log_url = truncate_for_log(image_url)
        params = build_common_params(ACTION, API_VERSION, self.access_key_id)
        params["Service"] = SERVICE
        params["ServiceParameters"] = encode_service_parameters({"imageUrl": image_url})
        try:
            signed = sign_request(params, self.access_key_secret)
        except RequestSigningException as e:
            raise RequestSigningException(
                e.message,
                details={**e.details, "image_url": log_url},
            ) from e

        owns_session = self.session is None
        session = self.session if self.session is not None else requests.Session()
        try:
            response = session.post(
                self.endpoint,
                params=signed.request_params,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ModerationServiceException(
                f"Moderation request timed out: {e}",
                details={"image_url": log_url},
            ) from e
        except requests.RequestException as e:
            raise ModerationServiceException(
                f"Moderation request failed: {e}",
                details={"image_url": log_url},
            ) from e
        finally:
            if owns_session:
                session.close()

        if not 200 <= response.status_code < 300:
            raise ModerationServiceException(
                f"Moderation service returned HTTP {response.status_code}",
                status_code=response.status_code,
                details={"image_url": log_url},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponseDecodingException(
                f"Moderation response is not valid JSON: {e}",
                details={"image_url": log_url},
            ) from e

        if not isinstance(payload, dict):
            raise ResponseDecodingException(
                "Moderation response is not a JSON object",
                details={"image_url": log_url},
            )

        data = payload.get("Data") or {}
        if not isinstance(data, dict):
            raise ResponseDecodingException(
                "Moderation response field 'Data' is not an object",
                details={"image_url": log_url},
            )

        risk_level = data.get("RiskLevel")
        if risk_level is not None and not isinstance(risk_level, str):
            raise ResponseDecodingException(
                "Moderation response field 'RiskLevel' is not a string",
                details={"image_url": log_url},
            )
        risk_level = risk_level.strip().lower() if risk_level else None
        request_id = payload.get("RequestId")
        request_id = str(request_id) if request_id is not None else None

        logger.info(
            "Aliyun moderation response received",
            extra={
                "image_url": log_url,
                "risk_level": risk_level,
                "aliyun_request_id": request_id,
                "aliyun_code": payload.get("Code"),
            }
        )

        return ImageModerationResult(
            image_url=image_url,
            risk_level=risk_level or None,
            request_id=request_id,
        )

    def close(self) -> None:
        if self.session is not None:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
