"""Tests for the Aliyun moderation client."""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from app.clients.aliyun_client import AliyunModerationClient
from app.core.config import Settings
from app.core.exceptions import (
    ModerationServiceException,
    RequestSigningException,
    ResponseDecodingException,
)
from app.core.security import sign_request

IMAGE_URL = "https://cdn.example.com/cat.png"


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return AliyunModerationClient(
        access_key_id="test-key-id",
        access_key_secret="test-secret",
        region="cn-beijing",
        timeout=(2.0, 4.0),
        session=session,
    )


class TestRequestConstruction:
    """Test the outgoing request."""

    def test_posts_signed_params_to_regional_endpoint(self, client, session):
        """The call goes to the regional endpoint with a verifiable signature."""
        session.post.return_value = _response(payload={"Data": {"RiskLevel": "none"}})

        client.moderate_image(IMAGE_URL)

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://green-cip.cn-beijing.aliyuncs.com"
        assert kwargs["timeout"] == (2.0, 4.0)
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

        params = kwargs["params"]
        assert params["Action"] == "ImageModeration"
        assert params["Service"] == "baselineCheck"
        assert params["AccessKeyId"] == "test-key-id"
        assert json.loads(params["ServiceParameters"]) == {"imageUrl": IMAGE_URL}

        unsigned = {k: v for k, v in params.items() if k != "Signature"}
        assert params["Signature"] == sign_request(unsigned, "test-secret").signature

    def test_missing_secret_fails_before_network(self, session):
        """An unsigned request is never sent."""
        client = AliyunModerationClient("id", "", session=session)

        with pytest.raises(RequestSigningException) as exc_info:
            client.moderate_image(IMAGE_URL)

        session.post.assert_not_called()
        assert exc_info.value.details["image_url"] == IMAGE_URL

    def test_signing_error_carries_truncated_url(self, session):
        """Long URLs are cut to 100 characters in the error details."""
        client = AliyunModerationClient("id", "", session=session)
        long_url = "https://cdn.example.com/" + "a" * 200 + ".png"

        with pytest.raises(RequestSigningException) as exc_info:
            client.moderate_image(long_url)

        assert exc_info.value.details["image_url"] == long_url[:100] + "..."

    def test_from_settings(self, session):
        """Settings supply credentials, region and timeouts."""
        settings = Settings(
            aliyun_access_key_id="id",
            aliyun_access_key_secret="secret",
            aliyun_region="",
            moderation_connect_timeout=1.5,
            moderation_read_timeout=3.0,
        )
        client = AliyunModerationClient.from_settings(settings, session=session)

        assert client.endpoint == "https://green-cip.cn-shanghai.aliyuncs.com"
        assert client.timeout == (1.5, 3.0)


class TestResponseParsing:
    """Test interpretation of the service response."""

    def test_risk_level_lowercased(self, client, session):
        """The risk level is normalized to lowercase."""
        session.post.return_value = _response(
            payload={"Code": 200, "RequestId": "req-1", "Data": {"RiskLevel": "HIGH"}}
        )

        result = client.moderate_image(IMAGE_URL)

        assert result.risk_level == "high"
        assert result.request_id == "req-1"
        assert result.image_url == IMAGE_URL

    @pytest.mark.parametrize("payload", [
        {"Code": 200, "Data": {}},
        {"Code": 200, "Data": {"RiskLevel": ""}},
        {"Code": 200},
        {"Code": 200, "Data": None},
    ])
    def test_missing_risk_level_is_unknown(self, client, session, payload):
        """An absent risk level is a result, not an error."""
        session.post.return_value = _response(payload=payload)

        assert client.moderate_image(IMAGE_URL).risk_level is None

    @pytest.mark.parametrize("status_code", [400, 403, 500, 503])
    def test_error_status_raises(self, client, session, status_code):
        """Non-2xx statuses are transport failures."""
        session.post.return_value = _response(status_code=status_code)

        with pytest.raises(ModerationServiceException) as exc_info:
            client.moderate_image(IMAGE_URL)

        assert exc_info.value.details["status_code"] == status_code
        assert exc_info.value.category == "transport"

    def test_timeout_raises(self, client, session):
        """Timeouts surface as transport failures."""
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ModerationServiceException) as exc_info:
            client.moderate_image(IMAGE_URL)

        assert "timed out" in exc_info.value.message
        assert exc_info.value.details["image_url"] == IMAGE_URL

    def test_connection_error_raises(self, client, session):
        session.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(ModerationServiceException):
            client.moderate_image(IMAGE_URL)

    def test_invalid_json_raises(self, client, session):
        """Unparseable bodies are decoding failures."""
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        session.post.return_value = response

        with pytest.raises(ResponseDecodingException) as exc_info:
            client.moderate_image(IMAGE_URL)

        assert exc_info.value.category == "decoding"

    @pytest.mark.parametrize("payload", [
        ["not", "an", "object"],
        {"Data": "oops"},
        {"Data": {"RiskLevel": 3}},
    ])
    def test_unexpected_shape_raises(self, client, session, payload):
        session.post.return_value = _response(payload=payload)

        with pytest.raises(ResponseDecodingException):
            client.moderate_image(IMAGE_URL)


class TestLifecycle:
    """Test session handling."""

    def test_fresh_session_per_call(self):
        """Without an injected session each call opens and closes its own."""
        client = AliyunModerationClient("id", "secret")
        with patch("app.clients.aliyun_client.requests.Session") as session_cls:
            first, second = Mock(), Mock()
            first.post.return_value = _response(payload={"Data": {"RiskLevel": "low"}})
            second.post.return_value = _response(payload={"Data": {"RiskLevel": "high"}})
            session_cls.side_effect = [first, second]

            assert client.moderate_image(IMAGE_URL).risk_level == "low"
            assert client.moderate_image(IMAGE_URL).risk_level == "high"

        first.close.assert_called_once()
        second.close.assert_called_once()

    def test_fresh_session_closed_on_error(self):
        client = AliyunModerationClient("id", "secret")
        with patch("app.clients.aliyun_client.requests.Session") as session_cls:
            session_cls.return_value.post.side_effect = requests.Timeout("slow")

            with pytest.raises(ModerationServiceException):
                client.moderate_image(IMAGE_URL)

        session_cls.return_value.close.assert_called_once()

    def test_context_manager_closes_session(self, session):
        with AliyunModerationClient("id", "secret", session=session):
            pass
        session.close.assert_called_once()
