"""Bulk ticket import: parse, optionally classify, store."""
from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Optional, Union

from pydantic import ValidationError

from app.logging_utils import audit_event
from app.models.classifier import TicketClassifier
from app.models.schemas import (
    ImportResult,
    ImportRowError,
    Ticket,
    TicketImportRecord,
)
from app.services.parsers import CsvTicketParser, JsonTicketParser, TicketParser, XmlTicketParser
from app.services.ticket_store import TicketStore, utcnow

logger = logging.getLogger(__name__)


class FileType(str, Enum):
    CSV = "csv"
    JSON = "json"
    XML = "xml"


class UnsupportedFileTypeError(ValueError):
    def __init__(self, file_type: object):
        super().__init__(
            f"Unsupported file type: {file_type}. Must be one of: {', '.join(t.value for t in FileType)}"
        )
        self.file_type = file_type


class ImportService:
    def __init__(self, store: TicketStore, classifier: Optional[TicketClassifier] = None):
        self.store = store
        self.classifier = classifier or TicketClassifier()
        self.parsers: dict[FileType, TicketParser] = {
            FileType.CSV: CsvTicketParser(),
            FileType.JSON: JsonTicketParser(),
            FileType.XML: XmlTicketParser(),
        }

    def import_tickets(
        self,
        content: str,
        file_type: Union[FileType, str],
        auto_classify: bool = False,
    ) -> ImportResult:
        resolved = self._resolve_file_type(file_type)
        parsed = self.parsers[resolved].parse(content)

        errors: list[ImportRowError] = list(parsed.errors)
        tickets: list[Ticket] = []
        for record in parsed.success:
            try:
                ticket = self._build_ticket(record, auto_classify)
                tickets.append(self.store.create_with_id(ticket))
            except (ValidationError, ValueError) as e:
                errors.append(ImportRowError(
                    row=len(tickets) + len(errors) + 1,
                    error=str(e) or "Failed to create ticket",
                ))

        result = ImportResult(
            total=len(tickets) + len(errors),
            successful=len(tickets),
            failed=len(errors),
            errors=errors,
            tickets=tickets,
        )
        audit_event(
            logger,
            "ticket_import",
            "tickets imported",
            file_type=resolved.value,
            total=result.total,
            successful=result.successful,
            failed=result.failed,
        )
        return result

    def detect_file_type(self, content: str, filename: Optional[str] = None) -> FileType:
        if filename:
            ext = filename.lower().rsplit(".", 1)[-1]
            if ext in {t.value for t in FileType}:
                return FileType(ext)

        trimmed = content.strip()
        if trimmed.startswith(("{", "[")):
            return FileType.JSON
        if trimmed.startswith(("<?xml", "<tickets")):
            return FileType.XML
        return FileType.CSV

    # Internal helpers ------------------------------------------------
    @staticmethod
    def _resolve_file_type(file_type: Union[FileType, str]) -> FileType:
        if isinstance(file_type, FileType):
            return file_type
        try:
            return FileType(str(file_type).lower())
        except ValueError:
            raise UnsupportedFileTypeError(file_type) from None

    def _build_ticket(self, record: TicketImportRecord, auto_classify: bool) -> Ticket:
        classification = None
        if auto_classify:
            # the block is informational; parsed category/priority are kept
            outcome = self.classifier.classify(record.subject, record.description)
            classification = outcome.as_ticket_classification()

        now = utcnow()
        return Ticket(
            id=str(uuid.uuid4()),
            customer_id=record.customer_id,
            customer_email=record.customer_email,
            customer_name=record.customer_name,
            subject=record.subject,
            description=record.description,
            category=record.category,
            priority=record.priority,
            status=record.status,
            created_at=record.created_at or now,
            updated_at=record.updated_at or now,
            assigned_to=record.assigned_to,
            tags=list(record.tags),
            metadata=record.metadata.model_copy(),
            classification=classification,
        )
