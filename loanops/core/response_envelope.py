from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi.encoders import jsonable_encoder


def _success_code(status_code: int) -> str:
    mapping = {
        200: "ok",
        201: "created",
        202: "accepted",
    }
    return mapping.get(status_code, "ok")


def _success_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Success"


def success_envelope(
    data: Any,
    *,
    status_code: int = 200,
    message: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Wrap ``data`` in the success envelope shared by every route.

    Extra keyword arguments (``count``, ``filters``, ``systemMessage`` ...) are
    placed next to ``data`` at the top level of the body.
    """
    payload: dict[str, Any] = {
        "success": True,
        "code": _success_code(status_code),
        "message": message or _success_message(status_code),
        "data": data,
        "details": {},
    }
    for key, value in extra.items():
        payload[key] = value
    return jsonable_encoder(payload)

