from fastapi.testclient import TestClient

from loanops.core import errors
from loanops.main import app
from loanops.services import queries as query_service


def test_unhandled_error_echoes_detail_outside_production(client, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(query_service, "list_queries", boom)
    monkeypatch.setattr(errors.settings, "environment", "development")

    response = TestClient(app, raise_server_exceptions=False).get("/api/v1/queries")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "internal_server_error"
    assert body["details"]["detail"] == "store exploded"


def test_unhandled_error_hides_detail_in_production(client, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(query_service, "list_queries", boom)
    monkeypatch.setattr(errors.settings, "environment", "production")

    response = TestClient(app, raise_server_exceptions=False).get("/api/v1/queries")

    assert response.status_code == 500
    assert response.json()["details"] == {}


def test_request_validation_is_reported_as_422(client) -> None:
    response = client.post("/api/v1/queries", json={"appNo": "A1", "queries": "not-a-list"})

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
