import httpx
import pytest

from dental_booking.errors import (
    RecaptchaFailedError,
    RecaptchaRequiredError,
    RecaptchaServiceError,
)
from dental_booking.recaptcha import RecaptchaVerifier


def _verifier(recaptcha, **kwargs) -> RecaptchaVerifier:
    return RecaptchaVerifier("secret", transport=recaptcha.transport(), **kwargs)


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "   ", 123])
async def test_missing_token_fails_without_calling_verifier(recaptcha, token):
    with pytest.raises(RecaptchaRequiredError):
        await _verifier(recaptcha).verify(token, "1.2.3.4")

    assert recaptcha.calls == []


@pytest.mark.asyncio
async def test_success_submits_token_secret_and_ip_once(recaptcha):
    result = await _verifier(recaptcha).verify("abc", "1.2.3.4")

    assert result["success"] is True
    assert recaptcha.calls == [{"secret": "secret", "response": "abc", "remoteip": "1.2.3.4"}]


@pytest.mark.asyncio
async def test_rejected_token_carries_error_codes(recaptcha):
    recaptcha.reply = {"success": False, "error-codes": ["invalid-input-response"]}

    with pytest.raises(RecaptchaFailedError) as exc_info:
        await _verifier(recaptcha).verify("abc")

    assert exc_info.value.error_codes == ["invalid-input-response"]
    assert exc_info.value.extra == {"errorCodes": ["invalid-input-response"]}
    assert len(recaptcha.calls) == 1


@pytest.mark.asyncio
async def test_network_failure_is_a_service_error_and_not_retried(recaptcha):
    recaptcha.error = httpx.ConnectError("connection refused")

    with pytest.raises(RecaptchaServiceError) as exc_info:
        await _verifier(recaptcha).verify("abc")

    assert exc_info.value.status_code == 502
    assert len(recaptcha.calls) == 1


@pytest.mark.asyncio
async def test_upstream_error_status_is_a_service_error(recaptcha):
    recaptcha.status_code = 503

    with pytest.raises(RecaptchaServiceError):
        await _verifier(recaptcha).verify("abc")


@pytest.mark.asyncio
async def test_timeout_is_a_service_error(recaptcha):
    recaptcha.error = httpx.ReadTimeout("timed out")

    with pytest.raises(RecaptchaServiceError):
        await _verifier(recaptcha).verify("abc")


@pytest.mark.asyncio
async def test_low_score_fails_when_threshold_configured(recaptcha):
    recaptcha.reply = {"success": True, "score": 0.2}

    with pytest.raises(RecaptchaFailedError) as exc_info:
        await _verifier(recaptcha, min_score=0.5).verify("abc")

    assert exc_info.value.error_codes == ["low-score"]


@pytest.mark.asyncio
async def test_score_ignored_without_threshold(recaptcha):
    recaptcha.reply = {"success": True, "score": 0.1}

    result = await _verifier(recaptcha).verify("abc")

    assert result["score"] == 0.1
