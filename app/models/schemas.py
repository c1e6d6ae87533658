from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator


class TicketCategory(str, Enum):
    ACCOUNT_ACCESS = "account_access"
    TECHNICAL_ISSUE = "technical_issue"
    BILLING_QUESTION = "billing_question"
    FEATURE_REQUEST = "feature_request"
    BUG_REPORT = "bug_report"
    OTHER = "other"

class TicketPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class TicketStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    WAITING_CUSTOMER = "waiting_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"

class Source(str, Enum):
    WEB_FORM = "web_form"
    EMAIL = "email"
    API = "api"
    CHAT = "chat"
    PHONE = "phone"

class DeviceType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class TicketMetadata(BaseModel):
    source: Source = Source.API
    device_type: DeviceType = DeviceType.DESKTOP
    browser: Optional[str] = None

class ClassificationData(BaseModel):
    confidence: Optional[float] = None
    keywords: list[str] = Field(default_factory=list)
    reasoning: Optional[str] = None
    manually_classified: bool = False

class ClassificationResult(BaseModel):
    category: TicketCategory
    priority: TicketPriority
    confidence: float
    reasoning: str
    keywords: list[str]

    def as_ticket_classification(self) -> ClassificationData:
        return ClassificationData(
            confidence=self.confidence,
            keywords=list(self.keywords),
            reasoning=self.reasoning,
            manually_classified=False,
        )


class Ticket(BaseModel):
    id: str
    customer_id: str = Field(min_length=1)
    customer_email: EmailStr
    customer_name: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    category: TicketCategory = TicketCategory.OTHER
    priority: TicketPriority = TicketPriority.MEDIUM
    status: TicketStatus = TicketStatus.NEW
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    metadata: TicketMetadata = Field(default_factory=TicketMetadata)
    classification: Optional[ClassificationData] = None


class TicketCreate(BaseModel):
    customer_id: str = Field(min_length=1)
    customer_email: EmailStr
    customer_name: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    metadata: TicketMetadata


class TicketUpdate(BaseModel):
    customer_email: Optional[EmailStr] = None
    customer_name: Optional[str] = Field(None, min_length=1)
    subject: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    assigned_to: Optional[str] = None
    tags: Optional[list[str]] = None
    resolved_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _require_one_field(self):
        if not self.changes():
            raise ValueError("at least one field must be provided")
        return self

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, as a patch for the store."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class TicketFilters(BaseModel):
    category: Optional[TicketCategory] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    customer_id: Optional[str] = None
    assigned_to: Optional[str] = None


class TicketImportRecord(BaseModel):
    """One validated record produced by a format parser."""
    customer_id: str = Field(min_length=1)
    customer_email: EmailStr
    customer_name: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    category: TicketCategory = TicketCategory.OTHER
    priority: TicketPriority = TicketPriority.MEDIUM
    status: TicketStatus = TicketStatus.NEW
    assigned_to: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    metadata: TicketMetadata = Field(default_factory=TicketMetadata)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportRowError(BaseModel):
    row: int
    error: str
    data: Optional[Any] = None

class ImportResult(BaseModel):
    total: int
    successful: int
    failed: int
    errors: list[ImportRowError]
    tickets: list[Ticket]

class ImportRequest(BaseModel):
    content: str
    fileType: Optional[str] = None
    filename: Optional[str] = None
    autoClassify: bool | str = False

    @property
    def auto_classify(self) -> bool:
        if isinstance(self.autoClassify, str):
            return self.autoClassify.lower() == "true"
        return self.autoClassify


class TicketListResponse(BaseModel):
    count: int
    tickets: list[Ticket]

class AutoClassifyResponse(BaseModel):
    ticket: Ticket
    classification: ClassificationResult

class HealthResponse(BaseModel):
    status: str
    message: str
    version: str | None = None
    timestamp: datetime | None = None

class ErrorDetail(BaseModel):
    field: str
    message: str

class ErrorResponse(BaseModel):
    error: str
    code: str | None = None
    request_id: str | None = None
    message: str | None = None
    details: list[ErrorDetail] | None = None
