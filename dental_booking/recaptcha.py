"""
Google reCAPTCHA verification
"""

import logging
from typing import Optional

import httpx
from fastapi import Request

from .errors import RecaptchaFailedError, RecaptchaRequiredError, RecaptchaServiceError

logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    """
    Verifies reCAPTCHA tokens against the siteverify endpoint.

    Exactly one outbound call is made per verification and it is never
    retried; a failed verification rejects the request.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        verify_url: str = "https://www.google.com/recaptcha/api/siteverify",
        timeout: float = 5.0,
        min_score: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.timeout = timeout
        self.min_score = min_score
        self.transport = transport
        if not secret_key:
            logger.warning("⚠️ RECAPTCHA_SECRET_KEY not configured - every verification will fail")

    async def verify(self, token: Optional[str], ip: Optional[str] = None) -> dict:
        """
        Verify a reCAPTCHA token

        Args:
            token: Token from the client widget
            ip: Client IP address (optional)

        Returns:
            The verifier's response body on success

        Raises:
            RecaptchaRequiredError: token missing or blank (no call is made)
            RecaptchaServiceError: the verification call itself failed
            RecaptchaFailedError: the verifier rejected the token
        """
        if not isinstance(token, str) or not token.strip():
            raise RecaptchaRequiredError()

        data = {"secret": self.secret_key or "", "response": token.strip()}
        if ip:
            data["remoteip"] = ip

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(self.verify_url, data=data)
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ reCAPTCHA verification error: {str(e)}")
            raise RecaptchaServiceError() from e

        if not isinstance(result, dict):
            logger.error(f"❌ Unexpected reCAPTCHA response: {result!r}")
            raise RecaptchaServiceError()

        if not result.get("success", False):
            error_codes = result.get("error-codes", [])
            logger.warning(f"❌ reCAPTCHA verification failed for IP: {ip} - Errors: {error_codes}")
            raise RecaptchaFailedError(error_codes)

        score = result.get("score")
        if self.min_score is not None and score is not None and score < self.min_score:
            logger.warning(f"❌ reCAPTCHA score {score} below {self.min_score} for IP: {ip}")
            raise RecaptchaFailedError(["low-score"])

        logger.info(f"✅ reCAPTCHA verification successful for IP: {ip}")
        return result


def get_recaptcha_verifier(request: Request) -> Optional[RecaptchaVerifier]:
    """The verifier installed on the app, or None when CAPTCHA is disabled"""
    return getattr(request.app.state, "recaptcha_verifier", None)
