from __future__ import annotations

import threading
import time
from uuid import uuid4

from loanops.schemas.activity import ActionRecord, ChatMessage, ResponseRecord
from loanops.schemas.queries import QueryBundle, SubQuery


def new_record_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def normalize_query_id(query_id: int | str | None) -> str:
    if query_id is None:
        return ""
    return str(query_id).strip()


class QueryStore:
    """In-process source of truth for query bundles and everything said about them.

    One instance is created per application and handed to handlers through
    ``deps.get_query_store``. Bundles are mutated in place; actions, messages
    and responses are only ever appended (responses additionally flip
    ``is_read``). Callers that read-modify-write must hold ``lock``.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.bundles: list[QueryBundle] = []
        self.actions: list[ActionRecord] = []
        self.messages: list[ChatMessage] = []
        self.responses: list[ResponseRecord] = []
        self._last_bundle_id = 0

    def next_bundle_id(self) -> int:
        with self.lock:
            candidate = int(time.time() * 1000)
            self._last_bundle_id = max(candidate, self._last_bundle_id + 1)
            return self._last_bundle_id

    def add_bundle(self, bundle: QueryBundle) -> None:
        with self.lock:
            self.bundles.append(bundle)

    def locate(self, query_id: int | str | None) -> tuple[QueryBundle, SubQuery | None] | None:
        """Find a bundle by id, or the bundle holding a sub-query with that id.

        Ids arrive as JSON numbers or strings, so both sides compare as text.
        """
        wanted = normalize_query_id(query_id)
        if not wanted:
            return None
        with self.lock:
            for bundle in self.bundles:
                if str(bundle.id) == wanted:
                    return bundle, None
                for sub_query in bundle.queries:
                    if sub_query.id == wanted:
                        return bundle, sub_query
        return None

    def append_action(self, record: ActionRecord) -> None:
        with self.lock:
            self.actions.append(record)

    def append_message(self, message: ChatMessage) -> None:
        with self.lock:
            self.messages.append(message)

    def append_response(self, response: ResponseRecord) -> None:
        with self.lock:
            self.responses.append(response)

    def messages_for(self, query_id: int | str | None) -> list[ChatMessage]:
        wanted = normalize_query_id(query_id)
        with self.lock:
            matching = [m for m in self.messages if m.query_id == wanted]
        return sorted(matching, key=lambda m: m.timestamp)

    def actions_for(self, query_id: int | str | None) -> list[ActionRecord]:
        wanted = normalize_query_id(query_id)
        with self.lock:
            return [a for a in self.actions if a.query_id == wanted]
