"""
Slack Web API client.
"""

from typing import Dict, Any, Optional, List, Callable
import logging
import requests
import httpx

from ..errors import SlackAPIError

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"

# Bot scopes requested by the OAuth install
SLACK_BOT_PERMISSIONS = [
    "channels:history",
    "chat:write",
    "commands",
    "groups:history",
    "groups:read",
    "groups:write",
    "im:write",
    "users:read",
    "users:read.email"
]


class SlackClient:
    """Thin wrapper over the Slack Web API methods e-SME uses."""

    def __init__(self, token: str, timeout: int = 10):
        self.token = token
        self.timeout = timeout

    def _call(self, method: str, payload: Dict[str, Any], form: bool = False) -> Dict[str, Any]:
        """POST a Web API method and decode failures into SlackAPIError variants.

        Read methods such as users.info only accept form-encoded arguments,
        so callers pass form=True for those.
        """
        headers = {"Authorization": f"Bearer {self.token}"}
        if form:
            body = {"data": payload}
        else:
            headers["Content-Type"] = "application/json; charset=utf-8"
            body = {"json": payload}

        try:
            logger.debug(f"Calling Slack {method}: {payload}")
            response = requests.post(
                f"{SLACK_API_URL}/{method}",
                headers=headers,
                timeout=self.timeout,
                **body
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"HTTP error calling Slack {method}: {e}")
            raise SlackAPIError("request_failed", str(e)) from e
        except ValueError as e:
            logger.error(f"Invalid JSON from Slack {method}: {e}")
            raise SlackAPIError("invalid_response", str(e)) from e

        if not result.get("ok"):
            code = result.get("error")
            logger.debug(f"Slack {method} returned error: {code}")
            raise SlackAPIError.from_code(code, result.get("detail") or code)

        return result

    def create_private_channel(self, name: str) -> Dict[str, Any]:
        """Create a private channel and return the channel object."""
        result = self._call("conversations.create", {"name": name, "is_private": True})
        channel = result.get("channel") or {}
        logger.info(f"Created Slack channel {channel.get('id')} ({channel.get('name')})")
        return channel

    def set_topic(self, channel: str, topic: str) -> None:
        self._call("conversations.setTopic", {"channel": channel, "topic": topic})

    def post_message(
        self,
        channel: str,
        text: str,
        thread_ts: Optional[str] = None,
        blocks: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        """Post a message, optionally as a thread reply, and return its ts."""
        payload = {
            "channel": channel,
            "text": text
        }
        if thread_ts:
            payload["thread_ts"] = thread_ts
        if blocks:
            payload["blocks"] = blocks

        result = self._call("chat.postMessage", payload)
        ts = result.get("ts")
        if not ts:
            raise SlackAPIError("invalid_response", "chat.postMessage returned no ts")
        logger.info(f"Posted message {ts} to Slack channel {channel}")
        return ts

    def invite_user(self, channel: str, user: str) -> None:
        self._call("conversations.invite", {"channel": channel, "users": user})

    def rename_channel(self, channel: str, name: str) -> str:
        """Rename a channel and return the name Slack actually applied."""
        result = self._call("conversations.rename", {"channel": channel, "name": name})
        return (result.get("channel") or {}).get("name") or name

    def archive_channel(self, channel: str) -> None:
        self._call("conversations.archive", {"channel": channel})
        logger.info(f"Archived Slack channel {channel}")

    def get_user_info(self, user: str) -> Dict[str, Any]:
        result = self._call("users.info", {"user": user}, form=True)
        return result.get("user") or {}

    def open_dm(self, user: str) -> str:
        """Open (or reuse) a DM channel with a user and return its id."""
        result = self._call("conversations.open", {"users": user})
        channel_id = (result.get("channel") or {}).get("id")
        if not channel_id:
            raise SlackAPIError("invalid_response", "conversations.open returned no channel")
        return channel_id


SlackClientFactory = Callable[[str], SlackClient]


def create_slack_client(token: str) -> SlackClient:
    """Default factory; services take a factory so tests can inject fakes."""
    return SlackClient(token)


async def exchange_oauth_code(
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: Optional[str] = None
) -> Dict[str, Any]:
    """Exchange an OAuth authorization code for a bot token."""
    data = {
        "code": code,
        "client_id": client_id,
        "client_secret": client_secret
    }
    if redirect_uri:
        data["redirect_uri"] = redirect_uri

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{SLACK_API_URL}/oauth.v2.access", data=data)
            response.raise_for_status()
            result = response.json()
    except httpx.HTTPError as e:
        logger.error(f"HTTP error during Slack token exchange: {e}")
        raise SlackAPIError("request_failed", str(e)) from e

    if not result.get("ok"):
        raise SlackAPIError.from_code(result.get("error"))

    return result


def post_to_response_url(response_url: str, payload: Dict[str, Any]) -> bool:
    """Send a delayed slash-command reply. Returns False instead of raising."""
    try:
        response = requests.post(response_url, json=payload, timeout=5)
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to post to Slack response_url: {e}")
        return False
