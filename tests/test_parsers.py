import pytest
import sys
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.models.schemas import DeviceType, Source, TicketCategory, TicketPriority, TicketStatus
from app.services.parsers import CsvTicketParser, JsonTicketParser, XmlTicketParser

FIXTURES = Path(__file__).parent / "fixtures"

CSV_HEADER = "customer_id,customer_email,customer_name,subject,description"


def fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def test_csv_fixture_parses_all_rows():
    """Every row of the sample CSV is valid"""
    result = CsvTicketParser().parse(fixture_text("sample_tickets.csv"))

    assert result.errors == []
    assert len(result.success) == 3

    first = result.success[0]
    assert first.customer_id == "CUST-100"
    assert first.category == TicketCategory.OTHER
    assert first.priority == TicketPriority.MEDIUM
    assert first.tags == ["login", "urgent"]
    assert first.metadata.source == Source.WEB_FORM
    assert first.metadata.browser == "Chrome"

    second = result.success[1]
    assert second.category == TicketCategory.BILLING_QUESTION
    assert second.priority == TicketPriority.HIGH
    assert second.status == TicketStatus.IN_PROGRESS
    assert second.metadata.device_type == DeviceType.MOBILE
    assert second.metadata.browser is None


def test_csv_header_only_is_empty_batch():
    """A header with no data rows yields nothing and no errors"""
    result = CsvTicketParser().parse(CSV_HEADER + "\n")
    assert result.success == []
    assert result.errors == []


def test_csv_row_numbers_count_the_header():
    """First data row is row 2"""
    content = "\n".join([
        CSV_HEADER,
        "C1,ok@example.com,Ok User,Subject,Long enough description",
        "C2,bad-email,Bad User,Subject,Long enough description",
    ])
    result = CsvTicketParser().parse(content)

    assert len(result.success) == 1
    assert len(result.errors) == 1
    assert result.errors[0].row == 3
    assert "customer_email" in result.errors[0].error
    assert result.errors[0].data["customer_id"] == "C2"


def test_csv_missing_required_field_reported_per_row():
    """An empty required cell fails only that row"""
    content = "\n".join([
        CSV_HEADER,
        ",x@example.com,No Id,Subject,Long enough description",
    ])
    result = CsvTicketParser().parse(content)

    assert result.success == []
    assert [e.row for e in result.errors] == [2]
    assert "customer_id" in result.errors[0].error


def test_csv_defaults_and_dates():
    """Missing metadata gets defaults; bad dates are dropped silently"""
    content = "\n".join([
        CSV_HEADER + ",created_at,updatedAt",
        "C1,a@example.com,A,Subject,Long enough description,2024-02-01T08:00:00Z,not a date",
    ])
    record = CsvTicketParser().parse(content).success[0]

    assert record.metadata.source == Source.API
    assert record.metadata.device_type == DeviceType.DESKTOP
    assert record.status == TicketStatus.NEW
    assert record.created_at.year == 2024
    assert record.updated_at is None


def test_csv_malformed_document():
    """Unreadable CSV becomes a single row-0 error"""
    content = CSV_HEADER + '\nC1,"unterminated,a@example.com,A,S,Long enough description\n'
    result = CsvTicketParser().parse(content)

    assert result.success == []
    assert len(result.errors) == 1
    assert result.errors[0].row == 0
    assert result.errors[0].error.startswith("CSV parsing failed:")


def test_csv_row_with_extra_fields_is_truncated():
    """A row wider than the header keeps its header columns; neighbours are unaffected"""
    content = "\n".join([
        CSV_HEADER,
        "C1,a@example.com,A,First subject,Long enough description",
        "C2,b@example.com,B,Second subject,Another long description,EXTRA",
        "C3,c@example.com,C,Third subject,Yet another description",
    ])
    result = CsvTicketParser().parse(content)

    assert result.errors == []
    assert [r.customer_id for r in result.success] == ["C1", "C2", "C3"]
    assert result.success[1].description == "Another long description"
    assert "EXTRA" not in result.success[1].model_dump_json()


def test_csv_first_data_row_with_extra_fields():
    """A wide first row is not mistaken for an index column"""
    content = "\n".join([
        CSV_HEADER,
        "C1,a@example.com,A,First subject,Long enough description,EXTRA,MORE",
        "C2,b@example.com,B,Second subject,Another long description",
    ])
    result = CsvTicketParser().parse(content)

    assert result.errors == []
    first, second = result.success
    assert first.customer_id == "C1"
    assert first.description == "Long enough description"
    assert second.customer_id == "C2"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def test_json_fixture_accepts_camel_and_snake_case():
    """Both naming styles map onto the same record fields"""
    result = JsonTicketParser().parse(fixture_text("sample_tickets.json"))

    assert result.errors == []
    camel, snake = result.success
    assert camel.customer_id == "CUST-200"
    assert camel.tags == ["mobile", "crash"]
    assert camel.metadata.device_type == DeviceType.MOBILE
    assert camel.metadata.browser == "Safari"
    assert camel.created_at is not None
    assert snake.customer_name == "Erin Green"
    assert snake.category == TicketCategory.OTHER


def test_json_snake_case_preferred():
    """When both variants are present, snake_case wins"""
    record = {
        "customer_id": "SNAKE", "customerId": "CAMEL",
        "customer_email": "a@example.com", "customer_name": "A",
        "subject": "S", "description": "Long enough description",
    }
    result = JsonTicketParser().parse(json.dumps([record]))
    assert result.success[0].customer_id == "SNAKE"


def test_json_row_numbers_start_at_one():
    """Invalid second record is row 2; non-object records are row errors too"""
    good = {"customer_id": "C1", "customer_email": "a@example.com", "customer_name": "A",
            "subject": "S", "description": "Long enough description"}
    bad = dict(good, description="short")
    result = JsonTicketParser().parse(json.dumps([good, bad, "nope"]))

    assert len(result.success) == 1
    assert [e.row for e in result.errors] == [2, 3]
    assert "description" in result.errors[0].error
    assert result.errors[1].data == "nope"


def test_json_unknown_enum_rejected():
    record = {"customer_id": "C1", "customer_email": "a@example.com", "customer_name": "A",
              "subject": "S", "description": "Long enough description", "priority": "whenever"}
    result = JsonTicketParser().parse(json.dumps([record]))

    assert result.success == []
    assert "priority" in result.errors[0].error


def test_json_document_errors():
    """Invalid JSON and a non-array root are row-0 errors"""
    broken = JsonTicketParser().parse("[{not json")
    assert broken.errors[0].row == 0
    assert broken.errors[0].error.startswith("JSON parsing failed:")

    not_array = JsonTicketParser().parse('{"customer_id": "C1"}')
    assert not_array.success == []
    assert not_array.errors[0].row == 0
    assert not_array.errors[0].error == "JSON must be an array of ticket objects"


def test_json_empty_array():
    result = JsonTicketParser().parse("[]")
    assert result.success == [] and result.errors == []


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

def test_xml_fixture_tags_and_metadata():
    """Repeated <tag> children and comma-separated tags both work"""
    result = XmlTicketParser().parse(fixture_text("sample_tickets.xml"))

    assert result.errors == []
    first, second = result.success
    assert first.tags == ["reports", "regression"]
    assert first.category == TicketCategory.BUG_REPORT
    assert first.metadata.browser == "Edge"
    assert second.customer_id == "CUST-301"
    assert second.tags == ["2fa", "login"]
    assert second.metadata.source == Source.API


def test_xml_single_tag_child():
    """One <tag> child still becomes a one-element list"""
    content = """<tickets><ticket>
        <customer_id>C1</customer_id><customer_email>a@example.com</customer_email>
        <customer_name>A</customer_name><subject>S</subject>
        <description>Long enough description</description>
        <tags><tag>solo</tag></tags>
    </ticket></tickets>"""
    result = XmlTicketParser().parse(content)
    assert result.success[0].tags == ["solo"]


def test_xml_invalid_record_row_number():
    content = """<tickets>
        <ticket><customer_id>C1</customer_id><customer_email>a@example.com</customer_email>
            <customer_name>A</customer_name><subject>S</subject>
            <description>Long enough description</description></ticket>
        <ticket><customer_id>C2</customer_id><customer_email>a@example.com</customer_email>
            <customer_name>B</customer_name><subject>S</subject></ticket>
    </tickets>"""
    result = XmlTicketParser().parse(content)

    assert len(result.success) == 1
    assert [e.row for e in result.errors] == [2]
    assert "description" in result.errors[0].error


def test_xml_document_errors():
    """Malformed XML and a wrong root element are row-0 errors"""
    broken = XmlTicketParser().parse("<tickets><ticket>")
    assert broken.errors[0].row == 0
    assert broken.errors[0].error.startswith("XML parsing failed:")

    wrong_root = XmlTicketParser().parse("<orders><ticket/></orders>")
    assert wrong_root.errors[0].row == 0
    assert wrong_root.errors[0].error == "XML must have a root <tickets> element"


def test_xml_empty_tickets_element():
    result = XmlTicketParser().parse("<tickets/>")
    assert result.success == [] and result.errors == []
