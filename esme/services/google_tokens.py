"""
Google OAuth token refresh for work that runs without a user session.
"""

from typing import Dict, Any
import logging
import requests

from sqlalchemy.orm import Session

from ..config import GoogleConfig
from ..errors import NoRefreshToken, TokenRefreshFailed
from ..models.user import User

logger = logging.getLogger(__name__)


class GoogleTokenService:
    """Exchanges stored refresh tokens for fresh access tokens."""

    def __init__(self, db_session: Session, config: GoogleConfig):
        self.db_session = db_session
        self.config = config

    def get_fresh_access_token(self, user_id: str) -> str:
        """
        Refresh the user's Google access token and persist it.

        Refreshes on every call; there is no local expiry tracking.

        Raises:
            NoRefreshToken: the user never granted offline access.
            TokenRefreshFailed: Google rejected the refresh (e.g. revoked grant).
        """
        user = self.db_session.get(User, user_id)
        if user is None or not user.google_refresh_token:
            raise NoRefreshToken(user_id)

        token_data = self._refresh(user.google_refresh_token)
        access_token = token_data["access_token"]

        # Interactive requests can reuse the refreshed token
        user.google_access_token = access_token
        self.db_session.commit()

        logger.info(f"Refreshed Google access token for user {user_id}")
        return access_token

    def _refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Run the refresh_token grant against Google's token endpoint."""
        try:
            response = requests.post(
                self.config.token_url,
                data={
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token"
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=10
            )
        except requests.RequestException as e:
            logger.error(f"Google token refresh request failed: {e}")
            raise TokenRefreshFailed("request_failed", str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok or not data.get("access_token"):
            error = data.get("error") or "unknown_error"
            logger.warning(f"Google token refresh rejected: {error}")
            raise TokenRefreshFailed(error, data.get("error_description"))

        return data
