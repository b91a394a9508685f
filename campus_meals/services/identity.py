"""
Google ID token verification.

google-auth only ships a blocking verifier (it fetches Google's signing certs
over HTTP), so verification runs in the default thread executor.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

logger = logging.getLogger(__name__)


class IdentityVerificationError(Exception):
    """Raised when an ID token cannot be verified"""


@dataclass
class IdentityClaims:
    email: str
    name: Optional[str] = None
    subject: Optional[str] = None


class GoogleIdentityVerifier:
    def __init__(self, client_id: str):
        self.client_id = client_id
        self._transport = google_requests.Request()

    def _verify_sync(self, token: str) -> dict:
        return google_id_token.verify_oauth2_token(token, self._transport, self.client_id or None)

    async def verify(self, token: str) -> IdentityClaims:
        loop = asyncio.get_event_loop()
        try:
            info = await loop.run_in_executor(None, self._verify_sync, token)
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.warning(f"Google ID token rejected: {e}")
            raise IdentityVerificationError("Invalid Google token") from e

        email = info.get("email")
        if not email:
            raise IdentityVerificationError("Google token carries no email")

        return IdentityClaims(
            email=email.strip().lower(),
            name=info.get("name"),
            subject=info.get("sub"),
        )
