"""
TicketStore: in-memory ticket storage with secondary indexes.

Tickets live in a dict keyed by id. Category, priority and status each get an
index mapping every enum member to the set of ticket ids carrying it, so
filtering on those fields is a set intersection instead of a scan.

All index maintenance happens under one re-entrant lock per store, so an
observer never sees a ticket indexed under a mix of old and new values.
Callers receive copies; the store is the only holder of the live instances.
"""
from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from app.models.schemas import (
    Ticket,
    TicketCategory,
    TicketCreate,
    TicketFilters,
    TicketPriority,
    TicketStatus,
)

# Fields an update can never change
_IMMUTABLE_FIELDS = ("id", "customer_id", "created_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketStore:
    """Primary map plus category / priority / status indexes."""

    def __init__(self) -> None:
        self._tickets: dict[str, Ticket] = {}
        self._category_index: dict[TicketCategory, set[str]] = {c: set() for c in TicketCategory}
        self._priority_index: dict[TicketPriority, set[str]] = {p: set() for p in TicketPriority}
        self._status_index: dict[TicketStatus, set[str]] = {s: set() for s in TicketStatus}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: Union[TicketCreate, dict[str, Any]]) -> Ticket:
        """Store a new ticket with a fresh id and defaults for unset enums."""
        if isinstance(data, dict):
            data = TicketCreate.model_validate(data)
        now = utcnow()
        fields = data.model_dump(exclude_none=True)
        ticket = Ticket(
            **fields,
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._tickets[ticket.id] = ticket
            self._add_to_indexes(ticket)
        return ticket.model_copy(deep=True)

    def create_with_id(self, ticket: Ticket) -> Ticket:
        """Store a caller-built ticket as is.

        There is no duplicate-id guard: a second ticket with the same id
        replaces the first, whose index entries are dropped with it.
        """
        stored = ticket.model_copy(deep=True)
        with self._lock:
            previous = self._tickets.get(stored.id)
            if previous is not None:
                self._remove_from_indexes(previous)
            self._tickets[stored.id] = stored
            self._add_to_indexes(stored)
        return stored.model_copy(deep=True)

    def update(self, ticket_id: str, patch: dict[str, Any]) -> Optional[Ticket]:
        """Apply `patch` over the stored ticket; None if the id is unknown.

        Raises pydantic.ValidationError when the patched ticket is invalid,
        leaving the stored ticket and its index entries untouched.
        """
        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                return None

            self._remove_from_indexes(current)
            try:
                merged = {**current.model_dump(), **patch}
                for key in _IMMUTABLE_FIELDS:
                    merged[key] = getattr(current, key)
                # updated_at must move forward even within one clock tick
                merged["updated_at"] = max(utcnow(), current.updated_at + timedelta(microseconds=1))
                updated = Ticket.model_validate(merged)
            except Exception:
                self._add_to_indexes(current)
                raise

            self._tickets[ticket_id] = updated
            self._add_to_indexes(updated)
            return updated.model_copy(deep=True)

    def delete(self, ticket_id: str) -> bool:
        with self._lock:
            ticket = self._tickets.pop(ticket_id, None)
            if ticket is None:
                return False
            self._remove_from_indexes(ticket)
            return True

    def clear(self) -> None:
        with self._lock:
            self._tickets.clear()
            for index in (self._category_index, self._priority_index, self._status_index):
                for ids in index.values():
                    ids.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, ticket_id: str) -> Optional[Ticket]:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            return ticket.model_copy(deep=True) if ticket is not None else None

    def find_all(self) -> list[Ticket]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._tickets.values()]

    def find_by_filters(self, filters: Union[TicketFilters, dict[str, Any], None] = None) -> list[Ticket]:
        """Intersect the indexed filters, then scan customer_id / assigned_to."""
        if filters is None:
            filters = TicketFilters()
        elif isinstance(filters, dict):
            filters = TicketFilters.model_validate(filters)

        indexed = [
            (self._category_index, filters.category),
            (self._priority_index, filters.priority),
            (self._status_index, filters.status),
        ]

        with self._lock:
            candidate_ids: Optional[set[str]] = None
            for index, value in indexed:
                if value is None:
                    continue
                ids = index.get(value)
                if not ids:
                    return []
                candidate_ids = set(ids) if candidate_ids is None else candidate_ids & ids
                if not candidate_ids:
                    return []

            if candidate_ids is None:
                candidates = list(self._tickets.values())
            else:
                candidates = [self._tickets[i] for i in candidate_ids if i in self._tickets]

            if filters.customer_id is not None:
                candidates = [t for t in candidates if t.customer_id == filters.customer_id]
            if filters.assigned_to is not None:
                candidates = [t for t in candidates if t.assigned_to == filters.assigned_to]

            return [t.model_copy(deep=True) for t in candidates]

    def count(self) -> int:
        with self._lock:
            return len(self._tickets)

    # ------------------------------------------------------------------
    # Index maintenance (caller holds the lock)
    # ------------------------------------------------------------------

    def _add_to_indexes(self, ticket: Ticket) -> None:
        self._category_index[ticket.category].add(ticket.id)
        self._priority_index[ticket.priority].add(ticket.id)
        self._status_index[ticket.status].add(ticket.id)

    def _remove_from_indexes(self, ticket: Ticket) -> None:
        self._category_index[ticket.category].discard(ticket.id)
        self._priority_index[ticket.priority].discard(ticket.id)
        self._status_index[ticket.status].discard(ticket.id)
