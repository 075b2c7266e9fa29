import contextvars

_team: contextvars.ContextVar[str] = contextvars.ContextVar("team", default="-")
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


def set_team(team: str) -> None:
    _team.set(team)


def get_team() -> str:
    return _team.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def clear_context() -> None:
    _team.set("-")
    _request_id.set("-")
