"""
Tests for sharing chats and inviting recipients into the Slack channel.
"""

from esme.errors import SlackAPIError
from esme.models.share import ChatShare
from esme.models.user import User

HEADERS = {"X-User-Email": "owner@example.com", "Authorization": "Bearer ya29.session"}


def add_colleague(session, slack_user_id="U_COLE"):
    colleague = User(email="colleague@example.com", name="Cole", slack_user_id=slack_user_id)
    session.add(colleague)
    session.commit()
    return colleague


def test_share_snapshots_documents(test_client, conversation, test_session):
    response = test_client.post(f"/api/chats/{conversation.id}/shares", headers=HEADERS, json={"email": "Colleague@Example.com"})

    assert response.status_code == 201
    share = test_session.query(ChatShare).one()
    assert share.shared_with_email == "colleague@example.com"
    assert share.snapshot["name"] == "Q3 Planning Notes!!"
    assert share.snapshot["documents"][0]["content"] == "Budget for doc-budget: $1M"
    assert share.slack_synced is False


def test_share_invites_linked_recipient(test_client, bound_conversation, test_session, fake_slack):
    add_colleague(test_session)

    response = test_client.post(f"/api/chats/{bound_conversation.id}/shares", headers=HEADERS, json={"email": "colleague@example.com"})

    assert response.status_code == 201
    assert response.json()["share"]["slack_synced"] is True
    assert fake_slack.calls_to("invite_user") == [{"channel": "C_BOUND", "user": "U_COLE"}]
    assert "*Cole* was added to this chat!" in fake_slack.calls_to("post_message")[0]["text"]


def test_share_again_refreshes_snapshot(test_client, conversation, test_session):
    test_client.post(f"/api/chats/{conversation.id}/shares", headers=HEADERS, json={"email": "colleague@example.com"})
    test_client.post(f"/api/chats/{conversation.id}/shares", headers=HEADERS, json={"email": "colleague@example.com"})

    assert test_session.query(ChatShare).count() == 1


def test_invite_failure_does_not_fail_share(test_client, bound_conversation, test_session, fake_slack):
    add_colleague(test_session)
    fake_slack.fail("invite_user", SlackAPIError.from_code("user_is_restricted"))

    response = test_client.post(f"/api/chats/{bound_conversation.id}/shares", headers=HEADERS, json={"email": "colleague@example.com"})

    assert response.status_code == 201
    assert response.json()["share"]["slack_synced"] is False


def test_cannot_share_with_self(test_client, conversation):
    response = test_client.post(f"/api/chats/{conversation.id}/shares", headers=HEADERS, json={"email": "owner@example.com"})

    assert response.status_code == 400
