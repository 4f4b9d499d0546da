"""Ephemeral per-session storage of the document under analysis."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[str, Optional[str]], None]


@dataclass(slots=True)
class StoredDocument:
    text: str
    source: str = "text"


class SessionDocumentStore:
    """In-memory map of session id to document, with change callbacks.

    Subscribers receive ``(session_id, text)`` after every change; ``text`` is
    ``None`` when the document was cleared. Nothing is persisted.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, StoredDocument] = {}
        self._subscribers: List[Subscriber] = []

    def get(self, session_id: str) -> Optional[StoredDocument]:
        return self._documents.get(session_id)

    def set(self, session_id: str, text: str, *, source: str = "text") -> StoredDocument:
        document = StoredDocument(text=text, source=source)
        self._documents[session_id] = document
        self._notify(session_id, text)
        return document

    def clear(self, session_id: str) -> bool:
        removed = self._documents.pop(session_id, None)
        if removed is not None:
            self._notify(session_id, None)
        return removed is not None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* and return a function that unregisters it."""

        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _notify(self, session_id: str, text: Optional[str]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(session_id, text)
            except Exception:
                LOGGER.exception("Session document subscriber failed for %s", session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)


__all__ = ["SessionDocumentStore", "StoredDocument", "Subscriber"]
