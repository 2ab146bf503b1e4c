"""
Tests for the interactive answer endpoint.
"""

from esme.errors import LLMServiceError
from esme.models.conversation import Message

HEADERS = {"X-User-Email": "owner@example.com", "Authorization": "Bearer ya29.session"}


def test_prompt_persists_and_mirrors_both_messages(test_client, bound_conversation, test_session, fake_slack, mock_llm, fake_fetcher_factory):
    response = test_client.post("/api/ai/prompt", headers=HEADERS, json={
        "chat_id": bound_conversation.id,
        "user_prompt": "What's the budget?"
    })

    assert response.status_code == 200
    assert response.json()["ai_response"] == "The Q3 budget is $1M."

    # Session token is used directly; no refresh on the interactive path
    assert fake_fetcher_factory.tokens == ["ya29.session"]

    texts = [call["text"] for call in fake_slack.calls_to("post_message")]
    assert texts == ["👤 *Olive Owner*\nWhat's the budget?", "🤖 *AI Assistant*\nThe Q3 budget is $1M."]

    test_session.expire_all()
    messages = test_session.query(Message).order_by(Message.created_at.asc()).all()
    assert [(m.role, m.synced_to_slack) for m in messages] == [("user", True), ("assistant", True)]


def test_prompt_without_channel_skips_slack(test_client, conversation, fake_slack):
    response = test_client.post("/api/ai/prompt", headers=HEADERS, json={
        "chat_id": conversation.id,
        "user_prompt": "What's the budget?"
    })

    assert response.status_code == 200
    assert fake_slack.calls == []


def test_prompt_request_system_prompt_overrides(test_client, conversation, mock_llm):
    test_client.post("/api/ai/prompt", headers=HEADERS, json={
        "chat_id": conversation.id,
        "user_prompt": "Summarize",
        "system_prompt": "Answer in French."
    })

    assert mock_llm.complete.call_args[0][0].startswith("Answer in French.")


def test_llm_failure_returns_502_and_keeps_user_message(test_client, bound_conversation, test_session, mock_llm, fake_slack):
    mock_llm.complete.side_effect = LLMServiceError("quota exceeded")

    response = test_client.post("/api/ai/prompt", headers=HEADERS, json={
        "chat_id": bound_conversation.id,
        "user_prompt": "What's the budget?"
    })

    assert response.status_code == 502
    assert response.json()["error"] == "Failed to generate AI response"
    test_session.expire_all()
    assert [m.role for m in test_session.query(Message).all()] == ["user"]
    assert len(fake_slack.calls_to("post_message")) == 1


def test_missing_google_token(test_client, conversation):
    response = test_client.post("/api/ai/prompt", headers={"X-User-Email": "owner@example.com"}, json={
        "chat_id": conversation.id,
        "user_prompt": "Hi"
    })

    assert response.status_code == 401
    assert response.json()["detail"]["needsAuth"] is True


def test_empty_prompt_rejected(test_client, conversation):
    response = test_client.post("/api/ai/prompt", headers=HEADERS, json={"chat_id": conversation.id, "user_prompt": "  "})

    assert response.status_code == 400


def test_unknown_chat(test_client, owner):
    response = test_client.post("/api/ai/prompt", headers=HEADERS, json={"chat_id": "missing", "user_prompt": "Hi"})

    assert response.status_code == 404
