"""
Slack-specific API endpoints.

This module provides endpoints for Slack integration including:
- OAuth2 sign-in callback at /oauth/callback
- Event subscriptions at /events (channel messages -> answers)
- Slash commands at /commands
- Interactive components at /interactions

Every webhook is acknowledged within Slack's 3 second window; the actual
work runs afterwards as a background task with its own database session.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
from urllib.parse import parse_qs
import logging
import json

from ..database import get_session
from ..errors import SlackAPIError
from ..models.conversation import Conversation
from ..models.share import ChatShare
from ..models.user import User
from ..services.blocks import (
    build_chat_list_blocks,
    build_error_blocks,
    build_shared_chat_list_blocks,
    build_welcome_text,
)
from ..services.credentials import disconnect_slack, find_user_by_slack_id, upsert_slack_identity
from ..services.signature import is_url_verification, require_slack_signature
from ..services.slack import SLACK_BOT_PERMISSIONS, exchange_oauth_code, post_to_response_url
from ..services.sync import should_handle_event
from .deps import build_synchronizer, get_config, get_current_user

logger = logging.getLogger(__name__)

CHATS_COMMAND = "/esme-chats"
CHAT_LIST_LIMIT = 10

slack_router = APIRouter()


@slack_router.get("/client-id")
async def get_slack_client_id(request: Request):
    """Client id and scopes the web app needs to start the Slack OAuth flow."""
    config = get_config(request)
    return {
        "clientId": config.slack.client_id,
        "scopes": ",".join(SLACK_BOT_PERMISSIONS),
        "redirectUri": config.slack.redirect_uri
    }


def send_welcome_dm(client, slack_user_id: str, bot_name: str, frontend_url: str) -> None:
    """Best-effort welcome DM after sign-in."""
    try:
        dm_channel = client.open_dm(slack_user_id)
        client.post_message(dm_channel, build_welcome_text(bot_name, frontend_url))
    except SlackAPIError as e:
        logger.warning(f"Could not send welcome DM to {slack_user_id}: {e}")


@slack_router.get("/oauth/callback", response_class=HTMLResponse)
async def handle_slack_oauth_callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code from Slack"),
    error: Optional[str] = Query(None, description="Error reported by Slack"),
    db: Session = Depends(get_session)
):
    """
    Complete "Sign in with Slack".

    Exchanges the code for a bot token, looks up the installing user's email,
    attaches the Slack identity to the user with that email (creating one if
    needed) and sends a welcome DM.
    """
    if error:
        logger.warning(f"Slack OAuth denied: {error}")
        raise HTTPException(status_code=400, detail=f"Slack authorization failed: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    config = get_config(request)
    client_factory = request.app.state.slack_client_factory

    try:
        logger.info(f"Received Slack OAuth callback with code: {code[:10]}...")

        token_data = await exchange_oauth_code(
            code=code,
            client_id=config.slack.client_id,
            client_secret=config.slack.client_secret,
            redirect_uri=config.slack.redirect_uri
        )

        bot_token = token_data.get("access_token")
        slack_user_id = (token_data.get("authed_user") or {}).get("id")
        team_id = (token_data.get("team") or {}).get("id")
        if not bot_token or not slack_user_id:
            raise HTTPException(status_code=400, detail="Slack did not return a token and user")

        client = client_factory(bot_token)
        user_info = await run_in_threadpool(client.get_user_info, slack_user_id)
    except SlackAPIError as e:
        logger.error(f"Slack OAuth failed: {e}")
        raise HTTPException(status_code=502, detail=f"Slack OAuth failed: {e.code}")

    profile = user_info.get("profile") or {}
    email = profile.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Could not get email from Slack. Make sure users:read.email scope is granted.")

    name = profile.get("real_name") or user_info.get("real_name") or user_info.get("name")
    user = upsert_slack_identity(db, email, slack_user_id, team_id, bot_token, name=name)

    await run_in_threadpool(send_welcome_dm, client, slack_user_id, config.bot.name, config.bot.frontend_url)

    logger.info(f"Slack connected for user {user.id} ({email})")

    return request.app.state.templates.TemplateResponse(request, "slack/connected.html", {
        "title": f"{config.bot.name} - Slack Connected",
        "bot_name": config.bot.name,
        "email": email,
        "frontend_url": config.bot.frontend_url
    })


@slack_router.post("/disconnect")
async def disconnect_slack_account(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Forget the user's Slack identity; conversations and Google access stay."""
    disconnect_slack(db, user)
    return {"success": True}


@slack_router.post("/events")
async def handle_slack_events(request: Request, background_tasks: BackgroundTasks):
    """
    Handle Slack Events API deliveries.

    The url_verification handshake is answered before signature checking.
    Everything else must be signed; relevant channel messages are answered in
    the background after a 200 acknowledgement.
    """
    config = get_config(request)
    raw_body = await request.body()

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        logger.error("Invalid JSON in Slack event body")
        raise HTTPException(status_code=400, detail="Invalid JSON in request body")

    if is_url_verification(payload):
        logger.info("Answering Slack URL verification challenge")
        return {"challenge": payload.get("challenge")}

    await require_slack_signature(request, config.slack.signing_secret, config.slack.signature_tolerance_seconds)

    if payload.get("type") != "event_callback":
        logger.debug(f"Ignoring Slack payload type: {payload.get('type')}")
        return {"status": "ignored"}

    event = payload.get("event") or {}

    if config.slack.app_id and event.get("app_id") == config.slack.app_id:
        logger.debug("Ignoring event from our own app")
        return {"status": "ignored"}

    if not should_handle_event(event):
        logger.debug(f"Ignoring Slack event: type={event.get('type')} subtype={event.get('subtype')} channel_type={event.get('channel_type')}")
        return {"status": "ignored"}

    background_tasks.add_task(process_channel_event, request.app.state, event)
    return {"status": "ok"}


def process_channel_event(state: Any, event: Dict[str, Any]) -> None:
    """Pull path for one channel message, run after the webhook was acknowledged."""
    try:
        with state.database.session() as db:
            outcome = build_synchronizer(db, state).handle_channel_message(event)
            logger.info(f"Slack event {event.get('ts')} in {event.get('channel')}: {outcome.status}")
    except Exception as e:
        logger.error(f"Error processing Slack event {event.get('ts')}: {e}", exc_info=True)


@slack_router.post("/commands")
async def handle_slack_commands(request: Request, background_tasks: BackgroundTasks):
    """Acknowledge a slash command immediately and answer via response_url."""
    config = get_config(request)
    raw_body = await require_slack_signature(request, config.slack.signing_secret, config.slack.signature_tolerance_seconds)

    form = parse_form_body(raw_body)
    logger.info(f"Slash command {form.get('command')} from Slack user {form.get('user_id')}")

    background_tasks.add_task(process_slash_command, request.app.state, form)
    return Response(status_code=200)


def parse_form_body(raw_body: bytes) -> Dict[str, str]:
    """Decode an application/x-www-form-urlencoded body already read for verification."""
    parsed = parse_qs(raw_body.decode("utf-8"), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


def process_slash_command(state: Any, form: Dict[str, str]) -> None:
    """Build the command reply and deliver it to the command's response_url."""
    response_url = form.get("response_url")
    if not response_url:
        logger.warning("Slash command without response_url, nothing to reply to")
        return

    try:
        with state.database.session() as db:
            payload = build_command_reply(db, state.config, form)
    except Exception as e:
        logger.error(f"Error handling slash command {form.get('command')}: {e}", exc_info=True)
        payload = {
            "response_type": "ephemeral",
            "text": "❌ Error loading chats",
            "blocks": build_error_blocks("Something went wrong while loading your chats. Please try again.")
        }

    post_to_response_url(response_url, payload)


def build_command_reply(db: Session, config: Any, form: Dict[str, str]) -> Dict[str, Any]:
    """Ephemeral reply for a slash command."""
    command = form.get("command")
    if command != CHATS_COMMAND:
        return {"response_type": "ephemeral", "text": f"Unknown command: {command}"}

    user = find_user_by_slack_id(db, form.get("user_id"))
    if user is None:
        return {
            "response_type": "ephemeral",
            "text": f"❌ You need to connect your Slack account first.\n\nGo to: {config.bot.frontend_url}"
        }

    frontend_url = config.bot.frontend_url
    if (form.get("text") or "").strip().lower() == "shared":
        shares = db.query(ChatShare).filter(
            ChatShare.shared_with_email == user.email
        ).order_by(ChatShare.created_at.desc()).limit(CHAT_LIST_LIMIT).all()
        return {
            "response_type": "ephemeral",
            "text": "Chats shared with you",
            "blocks": build_shared_chat_list_blocks(shares, frontend_url)
        }

    chats = db.query(Conversation).filter(
        Conversation.owner_id == user.id
    ).order_by(Conversation.updated_at.desc()).limit(CHAT_LIST_LIMIT).all()
    return {
        "response_type": "ephemeral",
        "text": "Your chats",
        "blocks": build_chat_list_blocks(chats, frontend_url, "personal")
    }


@slack_router.post("/interactions")
async def handle_slack_interactions(request: Request):
    """Acknowledge interactive components (button clicks); links open client-side."""
    config = get_config(request)
    raw_body = await require_slack_signature(request, config.slack.signing_secret, config.slack.signature_tolerance_seconds)

    form = parse_form_body(raw_body)
    try:
        payload = json.loads(form.get("payload") or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid interaction payload")

    actions = [action.get("action_id") for action in payload.get("actions") or []]
    logger.info(f"Slack interaction {payload.get('type')} from {(payload.get('user') or {}).get('id')}: {actions}")
    return Response(status_code=200)
