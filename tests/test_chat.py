def test_chat_is_empty_for_new_query(client, submit_bundle) -> None:
    bundle = submit_bundle()

    response = client.get(f"/api/v1/queries/{bundle['id']}/chat")

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["count"] == 0


def test_post_chat_message_defaults_team_to_role(client, submit_bundle) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]

    response = client.post(
        f"/api/v1/queries/{sub_id}/chat",
        json={"message": "Please share PAN", "sender": "Anil", "senderRole": "credit"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["team"] == "credit"
    assert data["queryId"] == sub_id

    history = client.get(f"/api/v1/queries/{sub_id}/chat").json()["data"]
    assert [m["sender"] for m in history] == ["Anil"]


def test_post_chat_message_requires_fields(client, submit_bundle) -> None:
    bundle = submit_bundle()

    response = client.post(f"/api/v1/queries/{bundle['id']}/chat", json={"message": "hi"})

    assert response.status_code == 400
    assert response.json()["details"]["fields"] == ["sender", "senderRole"]


def test_post_chat_message_unknown_query(client) -> None:
    response = client.post(
        "/api/v1/queries/999-0/chat",
        json={"message": "hi", "sender": "Anil", "senderRole": "sales"},
    )

    assert response.status_code == 404


def test_chat_history_is_oldest_first(client, submit_bundle) -> None:
    bundle = submit_bundle()
    sub_id = bundle["queries"][0]["id"]
    for text in ("one", "two", "three"):
        client.post(
            f"/api/v1/queries/{sub_id}/chat",
            json={"message": text, "sender": "Ops", "senderRole": "operations"},
        )

    history = client.get(f"/api/v1/queries/{sub_id}/chat").json()["data"]

    assert [m["message"] for m in history] == ["one", "two", "three"]
