"""
Slack Block Kit builders.
"""

from typing import Dict, Any, List, Sequence


def build_init_blocks(conversation_name: str, document_names: Sequence[str]) -> List[Dict[str, Any]]:
    """Blocks for the first message in a freshly created conversation channel."""
    if document_names:
        summary = f"📎 *{len(document_names)} document(s) attached*\n" + "\n".join(f"• {name}" for name in document_names)
    else:
        summary = "No documents attached yet"

    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"📂 {conversation_name}"[:150]}
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": summary}
        },
        {"type": "divider"},
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": "💬 Ask me anything about these documents!"}
        }
    ]


def build_init_text(conversation_name: str, document_names: Sequence[str], frontend_url: str) -> str:
    """Plain-text fallback for the init message."""
    text = f"📂 *{conversation_name}*\n\n"
    if document_names:
        text += "📎 *Attached Documents:*\n"
        text += "".join(f"• {name}\n" for name in document_names)
        text += "\n"
    text += "💬 Ask questions about these documents and I'll help you!\n"
    text += f"🌐 View in web app: {frontend_url}"
    return text


def build_chat_list_blocks(chats: Sequence[Any], frontend_url: str, type_label: str = "personal") -> List[Dict[str, Any]]:
    """Blocks listing a user's conversations for the slash command."""
    if not chats:
        return [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"No {type_label} chats found.\n\n🌐 Create chats in the web app: {frontend_url}"
                }
            }
        ]

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "📋 Your Personal Chats"}
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": "💡 Your chats are synced as private Slack channels.\nCheck your Slack sidebar for channels starting with `esme-`"
            }
        },
        {"type": "divider"}
    ]

    for chat in chats:
        channel_name = chat.slack_channel_name or "Not synced yet"
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*{chat.name or 'Untitled Chat'}*\n"
                    f"📱 Channel: `{channel_name}`\n"
                    f"📎 {len(chat.documents)} files · 💬 {len(chat.messages)} messages"
                )
            },
            "accessory": {
                "type": "button",
                "text": {"type": "plain_text", "text": "Open in Web"},
                "url": f"{frontend_url}?chat={chat.id}",
                "action_id": "open_chat"
            }
        })

    blocks.append({
        "type": "context",
        "elements": [
            {"type": "mrkdwn", "text": "💬 Message directly in the Slack channels to chat with AI!"}
        ]
    })

    return blocks


def build_shared_chat_list_blocks(shares: Sequence[Any], frontend_url: str) -> List[Dict[str, Any]]:
    """Blocks listing snapshots shared with a user."""
    if not shares:
        return [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "No shared chats found.\n\nChats shared with you will appear here."
                }
            }
        ]

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "🌐 Chats Shared With You"}
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": "💡 Shared chats use snapshots - they're read-only in this view."}
        },
        {"type": "divider"}
    ]

    for share in shares:
        snapshot = share.snapshot or {}
        creator = share.created_by
        shared_by = (creator.name or creator.email) if creator else "Unknown"
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*{snapshot.get('name') or 'Shared Chat'}*\n"
                    f"👤 Shared by: {shared_by}\n"
                    f"📎 {len(snapshot.get('documents') or [])} files · 💬 {len(snapshot.get('messages') or [])} messages"
                )
            },
            "accessory": {
                "type": "button",
                "text": {"type": "plain_text", "text": "View in Web"},
                "url": f"{frontend_url}?share={share.id}",
                "action_id": "open_shared_chat"
            }
        })

    return blocks


def build_error_blocks(message: str) -> List[Dict[str, Any]]:
    return [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"❌ *Error*\n{message}"}
        }
    ]


def build_welcome_text(bot_name: str, frontend_url: str) -> str:
    """DM sent after a user connects Slack."""
    return (
        f"🎉 *Connected to {bot_name}!*\n\n"
        f"Your {bot_name} chats will appear as private Slack channels.\n\n"
        "*How it works:*\n"
        "• Open chats in the web app - they auto-create Slack channels\n"
        "• Message in Slack or web app - stays in sync!\n"
        "• Share chats - colleagues get added to the channel\n\n"
        "*Commands:*\n"
        "• `/esme-chats` - View all your chats\n"
        "• `/esme-chats shared` - View shared chats\n\n"
        f"🌐 Web app: {frontend_url}"
    )
