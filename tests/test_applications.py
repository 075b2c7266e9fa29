from datetime import date

import pytest
from conftest import FakeResult, make_application, sequence_handler
from sqlalchemy.exc import IntegrityError

from loanops.schemas.applications import ImportedApplication
from loanops.services import applications


def test_get_application_exact_match(client, fake_db) -> None:
    fake_db.on_execute(sequence_handler([FakeResult(scalar=make_application(app_id="APP001"))]))

    response = client.get("/api/v1/applications/APP001")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["appNo"] == "APP001"
    assert data["customerName"] == "Asha Verma"
    assert data["branchName"] == "Pune Central"
    assert data["status"] == "sanctioned"
    assert len(fake_db.statements) == 1


def test_get_application_falls_back_to_case_insensitive(client, fake_db) -> None:
    fake_db.on_execute(
        sequence_handler([FakeResult(), FakeResult(scalar=make_application(app_id="APP001"))])
    )

    response = client.get("/api/v1/applications/app001")

    assert response.status_code == 200
    assert response.json()["data"]["appNo"] == "APP001"
    assert len(fake_db.statements) == 2


def test_get_application_ignores_spacing(client, fake_db) -> None:
    fake_db.on_execute(
        sequence_handler(
            [FakeResult(), FakeResult(), FakeResult(items=[make_application(app_id="APP 001")])]
        )
    )

    response = client.get("/api/v1/applications/APP001")

    assert response.status_code == 200
    assert response.json()["data"]["appNo"] == "APP 001"


def test_get_application_not_found(client) -> None:
    response = client.get("/api/v1/applications/NOPE")

    assert response.status_code == 404
    assert response.json()["details"]["searchedFor"] == "NOPE"


def test_list_applications(client, fake_db) -> None:
    rows = [make_application(app_id="APP002"), make_application(app_id="APP001")]
    fake_db.on_execute(sequence_handler([FakeResult(scalar=2), FakeResult(items=rows)]))

    response = client.get("/api/v1/applications", params={"status": "sanctioned", "limit": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [a["appNo"] for a in body["data"]] == ["APP002", "APP001"]


@pytest.mark.asyncio
async def test_bulk_create_skips_duplicates_within_batch(fake_db) -> None:
    rows = [
        ImportedApplication(app_id="B1", customer_name="A", branch="X", applied_date=date(2024, 1, 1)),
        ImportedApplication(app_id="B1", customer_name="B", branch="X", applied_date=date(2024, 1, 2)),
    ]

    outcome = await applications.bulk_create_applications(fake_db, rows)

    assert outcome.created == 1
    assert outcome.failed == 1
    assert outcome.duplicates == 1
    assert len(fake_db.added) == 1


@pytest.mark.asyncio
async def test_bulk_create_rolls_back_when_commit_conflicts(fake_db) -> None:
    fake_db.commit_error = IntegrityError("INSERT INTO applications", {}, Exception("UNIQUE constraint failed"))
    rows = [ImportedApplication(app_id="C1", customer_name="A", branch="X", applied_date=date(2024, 1, 1))]

    outcome = await applications.bulk_create_applications(fake_db, rows)

    assert outcome.created == 0
    assert outcome.failed == 1
    assert fake_db.rolled_back is True
    assert fake_db.committed is False
    assert outcome.errors == ["Batch insert failed: UNIQUE constraint failed"]
