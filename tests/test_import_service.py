import pytest
import sys
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.models.schemas import TicketCategory, TicketPriority
from app.services.import_service import FileType, ImportService, UnsupportedFileTypeError
from app.services.ticket_store import TicketStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def store():
    return TicketStore()


@pytest.fixture
def service(store):
    return ImportService(store)


def ticket_record(**overrides):
    record = {
        "customer_id": "C1",
        "customer_email": "a@example.com",
        "customer_name": "A",
        "subject": "Question",
        "description": "Long enough description",
    }
    record.update(overrides)
    return record


def test_import_csv_fixture(service, store):
    """All sample CSV rows are stored"""
    content = (FIXTURES / "sample_tickets.csv").read_text(encoding="utf-8")
    result = service.import_tickets(content, "csv")

    assert (result.total, result.successful, result.failed) == (3, 3, 0)
    assert store.count() == 3
    for ticket in result.tickets:
        assert store.find_by_id(ticket.id) is not None


def test_missing_category_defaults_without_auto_classify(service):
    """Records without category/priority import as other/medium, unclassified"""
    content = (FIXTURES / "sample_tickets.csv").read_text(encoding="utf-8")
    first, second, _ = service.import_tickets(content, FileType.CSV, auto_classify=False).tickets

    assert first.subject == "Cannot login"
    assert first.category == TicketCategory.OTHER
    assert first.priority == TicketPriority.MEDIUM
    assert first.classification is None
    assert second.category == TicketCategory.BILLING_QUESTION
    assert second.priority == TicketPriority.HIGH
    assert second.classification is None


def test_auto_classify_attaches_classification(service):
    """autoClassify records the classifier's result without changing the ticket's values"""
    content = (FIXTURES / "sample_tickets.csv").read_text(encoding="utf-8")
    first = service.import_tickets(content, FileType.CSV, auto_classify=True).tickets[0]

    assert first.category == TicketCategory.OTHER
    assert first.priority == TicketPriority.MEDIUM
    assert first.classification is not None
    assert first.classification.manually_classified is False
    assert first.classification.confidence > 0


def test_auto_classify_keeps_explicit_values(service):
    """autoClassify never overrides values from the file or their defaults"""
    content = json.dumps([ticket_record(
        subject="Cannot login",
        description="I forgot my password and cannot access my account",
        category="billing_question",
    )])
    ticket = service.import_tickets(content, "json", auto_classify=True).tickets[0]

    assert ticket.category == TicketCategory.BILLING_QUESTION
    assert ticket.priority == TicketPriority.MEDIUM
    assert ticket.classification is not None


def test_unmatched_text_falls_back_to_defaults(service):
    ticket = service.import_tickets(json.dumps([ticket_record(
        subject="Hello there", description="Just saying hi to the team today",
    )]), "json").tickets[0]

    assert ticket.category == TicketCategory.OTHER
    assert ticket.priority == TicketPriority.MEDIUM


def test_provided_dates_are_kept(service):
    ticket = service.import_tickets(json.dumps([ticket_record(
        category="other", priority="low", created_at="2023-05-01T12:00:00Z",
    )]), "json").tickets[0]

    assert ticket.created_at.year == 2023
    assert ticket.updated_at.year > 2023


def test_partial_import_counts(service, store):
    """Good rows are stored, bad rows reported, total adds up"""
    content = json.dumps([ticket_record(), ticket_record(customer_email="broken"), ticket_record()])
    result = service.import_tickets(content, "json")

    assert (result.total, result.successful, result.failed) == (3, 2, 1)
    assert result.errors[0].row == 2
    assert store.count() == 2


def test_header_only_csv(service):
    result = service.import_tickets("customer_id,customer_email,customer_name,subject,description\n", "csv")
    assert (result.total, result.successful, result.failed) == (0, 0, 0)


def test_document_error_is_single_failure(service, store):
    result = service.import_tickets("<tickets><ticket>", "xml")

    assert (result.successful, result.failed) == (0, 1)
    assert result.errors[0].row == 0
    assert store.count() == 0


def test_file_type_is_case_insensitive(service):
    result = service.import_tickets(json.dumps([ticket_record()]), "JSON")
    assert result.successful == 1


def test_unsupported_file_type(service):
    with pytest.raises(UnsupportedFileTypeError) as exc:
        service.import_tickets("a,b\n1,2", "yaml")
    assert "yaml" in str(exc.value)


@pytest.mark.parametrize("content, filename, expected", [
    ("whatever", "tickets.JSON", FileType.JSON),
    ("[]", "tickets.xml", FileType.XML),
    ("  [{\"a\": 1}]", None, FileType.JSON),
    ("{\"a\": 1}", None, FileType.JSON),
    ("<?xml version=\"1.0\"?><tickets/>", None, FileType.XML),
    ("<tickets></tickets>", "upload.txt", FileType.XML),
    ("customer_id,subject\n", None, FileType.CSV),
])
def test_detect_file_type(service, content, filename, expected):
    """Extension first, then content sniffing, CSV by default"""
    assert service.detect_file_type(content, filename) == expected


def test_import_emits_audit_log(service, caplog):
    import logging
    with caplog.at_level(logging.INFO, logger="app.services.import_service"):
        service.import_tickets(json.dumps([ticket_record()]), "json")

    records = [r for r in caplog.records if getattr(r, "event", None) == "ticket_import"]
    assert len(records) == 1
    assert records[0].successful == 1
