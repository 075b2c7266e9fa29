import pytest


def _respond(client, path="/api/v1/query-responses", **body):
    return client.post(path, json=body)


def test_response_writes_one_record_and_one_chat_message(client, submit_bundle, store) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]

    response = _respond(client, queryId=sub_id, responseText="KYC uploaded", team="Sales")

    assert response.status_code == 201
    body = response.json()
    assert body["data"]["isRead"] is False
    assert body["data"]["appNo"] == "A100"
    assert body["data"]["respondedBy"] == "Sales Team"
    assert body["chatMessage"]["message"] == "KYC uploaded"
    assert len(store.responses) == 1
    assert len(store.messages) == 1

    chat = client.get(f"/api/v1/queries/{sub_id}/chat").json()
    assert chat["count"] == 1
    assert chat["data"][0]["team"] == "Sales"


def test_response_missing_fields_listed(client) -> None:
    response = _respond(client, queryId="1-0")

    assert response.status_code == 400
    assert response.json()["details"]["fields"] == ["responseText", "team"]


def test_response_to_unknown_query_is_404(client) -> None:
    response = _respond(client, queryId="nope", responseText="hello", team="Credit")

    assert response.status_code == 404


@pytest.mark.parametrize("path", ["/api/v1/query-responses", "/api/v1/responses"])
def test_list_responses_newest_first_with_unread_count(client, submit_bundle, path) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]
    _respond(client, path=path, queryId=sub_id, responseText="first", team="Sales")
    _respond(client, path=path, queryId=sub_id, responseText="second", team="Credit")

    listing = client.get(path, params={"queryId": sub_id}).json()

    assert listing["count"] == 2
    assert listing["unreadCount"] == 2
    assert [r["responseText"] for r in listing["data"]] == ["second", "first"]
    assert "messages" not in listing

    credit_only = client.get(path, params={"team": "credit"}).json()
    assert [r["responseText"] for r in credit_only["data"]] == ["second"]


def test_list_responses_can_include_messages(client, submit_bundle) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]
    _respond(client, queryId=sub_id, responseText="done", team="Sales")

    listing = client.get(
        "/api/v1/query-responses", params={"queryId": sub_id, "includeMessages": "true"}
    ).json()

    assert [m["message"] for m in listing["messages"]] == ["done"]


def test_mark_read(client, submit_bundle) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]
    created = _respond(client, queryId=sub_id, responseText="done", team="Sales").json()["data"]

    response = client.patch("/api/v1/responses", json={"responseIds": [created["id"]]})

    assert response.status_code == 200
    assert response.json()["updatedCount"] == 1
    unread = client.get("/api/v1/responses", params={"unreadOnly": "true"}).json()
    assert unread["count"] == 0


def test_mark_read_requires_list(client) -> None:
    response = client.patch("/api/v1/query-responses", json={"responseIds": "resp-1"})

    assert response.status_code == 400
    assert response.json()["details"]["fields"] == ["responseIds"]
