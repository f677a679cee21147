# backend/tests/integration/test_api.py
from helpdesk_bot.config import strings
from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.domain import IntentResult, SearchItem, SearchResult
from helpdesk_bot.models.errors import SessionBusy

API_PREFIX = "/api"


def activity(text, conversation="conv-1", user="user-1", activity_type="message"):
    return {
        "type": activity_type,
        "text": text,
        "channelId": "webchat",
        "from": {"id": user, "name": "Test User"},
        "conversation": {"id": conversation},
    }


def test_message_is_routed_through_the_dialog_engine(test_client, classifier):
    classifier.classify.return_value = IntentResult(intent="Help", top_score=0.95)

    response = test_client.post(f"{API_PREFIX}/messages", json=activity("what can you do?"))

    assert response.status_code == 200
    body = response.json()
    assert body["conversation_id"] == "webchat:user-1:conv-1"
    assert body["reply"]["text"] == strings.HELP_MESSAGE
    classifier.classify.assert_awaited_once_with("what can you do?")


def test_prompt_replies_carry_suggested_actions(test_client, classifier):
    classifier.classify.return_value = IntentResult(intent="SubmitTicket", top_score=0.9)

    response = test_client.post(f"{API_PREFIX}/messages", json=activity("my laptop will not boot"))

    reply = response.json()["reply"]
    assert reply["text"] == strings.SEVERITY_PROMPT
    assert [a["value"] for a in reply["suggested_actions"]] == ["high", "normal", "low"]


def test_search_results_are_returned_as_a_carousel(test_client, search_client):
    search_client.query.return_value = SearchResult(items=[
        SearchItem(title="Reset your password", category="accounts", text="Go to the portal.", score=3.2),
    ])

    response = test_client.post(f"{API_PREFIX}/messages", json=activity("search about password reset"))

    reply = response.json()["reply"]
    assert reply["attachment_layout"] == "carousel"
    assert reply["attachments"][0]["content"]["title"] == "Reset your password"
    search_client.query.assert_awaited_once_with("search=password reset")


def test_sessions_are_scoped_per_user(test_client, classifier):
    classifier.classify.return_value = IntentResult(intent="SubmitTicket", top_score=0.9)
    test_client.post(f"{API_PREFIX}/messages", json=activity("printer broken", user="alice"))

    classifier.classify.return_value = IntentResult(intent="Help", top_score=0.9)
    response = test_client.post(f"{API_PREFIX}/messages", json=activity("high", user="bob"))

    assert response.json()["reply"]["text"] == strings.HELP_MESSAGE


def test_non_message_activity_is_ignored(test_client, classifier):
    response = test_client.post(
        f"{API_PREFIX}/messages",
        json=activity(None, activity_type="conversationUpdate"),
    )

    assert response.status_code == 200
    assert response.json()["reply"] is None
    classifier.classify.assert_not_awaited()


def test_invalid_activity_is_rejected(test_client):
    response = test_client.post(f"{API_PREFIX}/messages", json={"type": "message", "text": "hi"})
    assert response.status_code == 422


def test_reset_conversation_cancels_pending_prompt(test_client, classifier, session_store):
    classifier.classify.return_value = IntentResult(intent="SubmitTicket", top_score=0.9)
    test_client.post(f"{API_PREFIX}/messages", json=activity("printer broken"))

    response = test_client.delete(f"{API_PREFIX}/conversations/webchat:user-1:conv-1")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert len(session_store) == 0


def test_reset_of_locked_conversation_is_a_conflict(test_client, session_store, mocker):
    mocker.patch.object(session_store, "lock", side_effect=SessionBusy("still locked"))

    response = test_client.delete(f"{API_PREFIX}/conversations/webchat:user-1:conv-1")

    assert response.status_code == 409


def test_channel_secret_is_enforced_when_configured(test_client, classifier, mocker):
    mocker.patch.object(settings, "channel_secret", "s3cret")
    classifier.classify.return_value = IntentResult(intent="Help", top_score=0.9)

    denied = test_client.post(f"{API_PREFIX}/messages", json=activity("hi"))
    wrong = test_client.post(
        f"{API_PREFIX}/messages", json=activity("hi"), headers={"Authorization": "Bearer nope"}
    )
    allowed = test_client.post(
        f"{API_PREFIX}/messages", json=activity("hi"), headers={"Authorization": "Bearer s3cret"}
    )

    assert denied.status_code == 401
    assert wrong.status_code == 401
    assert allowed.status_code == 200


def test_create_ticket_returns_new_id(test_client):
    payload = {"category": "hardware", "severity": "high", "description": "printer is broken"}

    first = test_client.post(f"{API_PREFIX}/tickets", json=payload)
    second = test_client.post(f"{API_PREFIX}/tickets", json=payload)

    assert first.status_code == 201
    assert isinstance(first.json(), int)
    assert second.json() == first.json() + 1


def test_create_ticket_validates_severity(test_client):
    payload = {"category": "hardware", "severity": "critical", "description": "printer is broken"}
    assert test_client.post(f"{API_PREFIX}/tickets", json=payload).status_code == 422


def test_health_endpoints(test_client):
    assert test_client.get("/health").json()["status"] == "healthy"
    assert test_client.get("/health/live").json() == {"status": "alive"}
    assert test_client.get("/health/ready").json() == {"status": "ready"}
    assert test_client.get("/").json()["service"] == "Help Desk Bot"


def test_metrics_endpoint(test_client):
    test_client.get("/health")
    response = test_client.get("/metrics")
    assert response.status_code == 200
    assert "response_time_seconds" in response.text


def test_detailed_health_reports_collaborator_circuits(test_client):
    response = test_client.get("/health/detailed")

    assert response.status_code == 200
    services = response.json()["data"]["services"]
    assert set(services) == {"classifier", "search", "tickets", "session_store"}
    assert services["session_store"]["state"] == "connected"


def test_detailed_health_requires_api_key_when_configured(test_client, mocker):
    mocker.patch.object(settings, "api_key", "metrics-key")

    assert test_client.get("/health/detailed").status_code == 403
    assert test_client.get("/health/detailed", headers={"X-API-KEY": "metrics-key"}).status_code == 200
