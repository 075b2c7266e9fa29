from fastapi import Request

from loanops.db.session import get_db
from loanops.services.store import QueryStore

__all__ = ["get_db", "get_query_store"]


def get_query_store(request: Request) -> QueryStore:
    return request.app.state.query_store
