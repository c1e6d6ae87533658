"""Import parsers for CSV, JSON and XML ticket files.

Each parser turns raw text into `TicketImportRecord`s. Records are validated
one by one: a bad record becomes a row error and the rest of the batch is
still processed. Only a document that cannot be read at all (or has the wrong
top-level shape) yields the single row-0 error.

Row numbers are 1-based positions of the record in its source; CSV counts the
header line, so its first data row is row 2.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple, Type
from xml.etree import ElementTree

import pandas as pd
from pydantic import ValidationError

from app.models.schemas import ImportRowError, TicketImportRecord
from app.utils import parse_datetime, pick, split_tags

logger = logging.getLogger(__name__)


class DocumentShapeError(ValueError):
    """Content parsed, but its top-level structure is not a ticket list."""


@dataclass
class ParseResult:
    success: List[TicketImportRecord] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)


def format_validation_error(exc: ValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(messages)


class TicketParser:
    """Shared record loop; subclasses read the document and map fields."""

    format_name: str = ""
    first_row: int = 1
    document_errors: Tuple[Type[BaseException], ...] = ()

    def parse(self, content: str) -> ParseResult:
        result = ParseResult()
        try:
            records = list(self._read_records(content))
        except DocumentShapeError as e:
            result.errors.append(ImportRowError(row=0, error=str(e)))
            return result
        except self.document_errors as e:
            logger.warning("%s document rejected: %s", self.format_name, e)
            result.errors.append(ImportRowError(row=0, error=f"{self.format_name} parsing failed: {e}"))
            return result

        for i, raw in enumerate(records):
            row = i + self.first_row
            try:
                record = TicketImportRecord.model_validate(self._normalize(raw))
            except ValidationError as e:
                result.errors.append(ImportRowError(row=row, error=format_validation_error(e), data=raw))
            except (TypeError, ValueError, AttributeError) as e:
                result.errors.append(ImportRowError(row=row, error=str(e) or "Unknown parsing error", data=raw))
            else:
                result.success.append(record)
        return result

    def _read_records(self, content: str) -> Iterable[Any]:
        raise NotImplementedError

    def _normalize(self, raw: Any) -> Dict[str, Any]:
        raise NotImplementedError

    # Field mapping shared by all formats ------------------------------
    def _common_fields(self, item: Dict[str, Any]) -> Dict[str, Any]:
        normalized: Dict[str, Any] = {
            "customer_id": pick(item, "customer_id", "customerId", default=""),
            "customer_email": pick(item, "customer_email", "customerEmail", default=""),
            "customer_name": pick(item, "customer_name", "customerName", default=""),
            "subject": pick(item, "subject", default=""),
            "description": pick(item, "description", default=""),
        }
        for key in ("category", "priority", "status"):
            value = pick(item, key)
            if value is not None:
                normalized[key] = value
        assigned_to = pick(item, "assigned_to", "assignedTo")
        if assigned_to is not None:
            normalized["assigned_to"] = assigned_to

        # unparseable dates are dropped, not reported
        for snake, camel in (("created_at", "createdAt"), ("updated_at", "updatedAt")):
            parsed = parse_datetime(pick(item, snake, camel))
            if parsed is not None:
                normalized[snake] = parsed
        return normalized

    @staticmethod
    def _metadata(meta: Dict[str, Any]) -> Dict[str, Any]:
        metadata = {
            "source": pick(meta, "source", default="api"),
            "device_type": pick(meta, "device_type", "deviceType", default="desktop"),
        }
        browser = pick(meta, "browser")
        if browser is not None:
            metadata["browser"] = browser
        return metadata


class CsvTicketParser(TicketParser):
    """Header row + one ticket per line; tags are a comma-separated cell."""

    format_name = "CSV"
    first_row = 2
    document_errors = (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeError)

    def _read_records(self, content: str) -> Iterable[Dict[str, str]]:
        header = pd.read_csv(io.StringIO(content), dtype=str, nrows=0, engine="python")
        # rows longer than the header keep only its columns
        df = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            index_col=False,
            usecols=list(range(len(header.columns))),
        )
        df.columns = [str(c).strip() for c in df.columns]
        df = df.fillna("")
        for raw in df.to_dict(orient="records"):
            yield {k: v.strip() if isinstance(v, str) else "" for k, v in raw.items()}

    def _normalize(self, raw: Dict[str, str]) -> Dict[str, Any]:
        normalized = self._common_fields(raw)
        normalized["tags"] = split_tags(raw.get("tags"))
        normalized["metadata"] = self._metadata(raw)
        return normalized


class JsonTicketParser(TicketParser):
    """Top-level JSON array of ticket objects; tags are a native list."""

    format_name = "JSON"
    document_errors = (json.JSONDecodeError, UnicodeError)

    def _read_records(self, content: str) -> Iterable[Any]:
        data = json.loads(content)
        if not isinstance(data, list):
            raise DocumentShapeError("JSON must be an array of ticket objects")
        return data

    def _normalize(self, raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise TypeError("Ticket record must be a JSON object")
        normalized = self._common_fields(raw)
        if "tags" in raw:
            normalized["tags"] = raw["tags"] if isinstance(raw["tags"], list) else split_tags(raw["tags"])
        meta = raw.get("metadata")
        if isinstance(meta, dict):
            normalized["metadata"] = self._metadata(meta)
        elif meta is not None:
            normalized["metadata"] = meta
        return normalized


class XmlTicketParser(TicketParser):
    """``<tickets><ticket>...</ticket></tickets>`` documents.

    Tags may be ``<tags>a, b</tags>`` or ``<tags><tag>a</tag>...</tags>``;
    metadata is a nested ``<metadata>`` element.
    """

    format_name = "XML"
    document_errors = (ElementTree.ParseError, UnicodeError)

    def _read_records(self, content: str) -> Iterable[Dict[str, Any]]:
        root = ElementTree.fromstring(content.strip())
        if root.tag != "tickets":
            raise DocumentShapeError("XML must have a root <tickets> element")
        return [self._element_to_dict(el) for el in root.findall("ticket")]

    def _normalize(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise TypeError("Ticket element must contain child elements")
        normalized = self._common_fields(raw)

        tags = raw.get("tags")
        if isinstance(tags, dict):
            normalized["tags"] = split_tags(tags.get("tag"))
        elif tags:
            normalized["tags"] = split_tags(tags)

        meta = raw.get("metadata")
        if isinstance(meta, dict):
            normalized["metadata"] = self._metadata(meta)
        return normalized

    def _element_to_dict(self, element: ElementTree.Element) -> Any:
        children = list(element)
        if not children and not element.attrib:
            return (element.text or "").strip()

        data: Dict[str, Any] = dict(element.attrib)
        for child in children:
            value = self._element_to_dict(child)
            if child.tag in data:
                existing = data[child.tag]
                if not isinstance(existing, list):
                    data[child.tag] = [existing]
                data[child.tag].append(value)
            else:
                data[child.tag] = value
        if not children and element.text and element.text.strip():
            data["_text"] = element.text.strip()
        return data

