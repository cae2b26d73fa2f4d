"""Canonical CRM models and derived views.

Raw records coming out of a record store use the CRM's camelCase nested
shape (``name.firstName``, ``amount.amountMicros``, ``domainName.primaryLinkUrl``).
The models here are the canonical, fully populated form produced by the
normalizer: wrapper objects stay structured, and every optional field is
present with an explicit ``None`` when the raw record omits it.

Money is always carried as integer micro-units. Conversion to whole units
happens only through ``micros_to_value`` for display.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

MICROS_PER_UNIT = 1_000_000
NO_STAGE = "No stage"


class RecordType(str, Enum):
    """Record types reachable through the record store."""

    PERSON = "person"
    COMPANY = "company"
    OPPORTUNITY = "opportunity"
    TASK = "task"
    NOTE = "note"
    COMMENT = "comment"
    TASK_TARGET = "taskTarget"
    NOTE_TARGET = "noteTarget"


class ActivityType(str, Enum):
    """Type tag of a timeline item."""

    TASK = "task"
    NOTE = "note"
    COMMENT = "comment"


class TaskStatus(str, Enum):
    """Task workflow status."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


def value_to_micros(value: float) -> int:
    """Convert a whole-unit amount (e.g. 1000.50) to integer micro-units."""
    return round(value * MICROS_PER_UNIT)


def micros_to_value(micros: int) -> float:
    """Convert micro-units to a whole-unit amount for display."""
    return micros / MICROS_PER_UNIT


# =============================================================================
# Composite (wrapper) values
# =============================================================================


class FullName(BaseModel):
    """Person name wrapper."""

    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Link(BaseModel):
    """Single-URL link wrapper (domain, LinkedIn, X)."""

    primary_link_url: Optional[str] = None
    primary_link_label: Optional[str] = None


class Emails(BaseModel):
    """Email wrapper with one primary address."""

    primary_email: Optional[str] = None
    additional_emails: List[str] = Field(default_factory=list)


class Phones(BaseModel):
    """Phone wrapper with one primary number."""

    primary_phone_number: Optional[str] = None
    primary_phone_country_code: Optional[str] = None


class Address(BaseModel):
    """Postal address wrapper."""

    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class Money(BaseModel):
    """Currency amount in integer micro-units."""

    amount_micros: Optional[int] = None
    currency_code: Optional[str] = None

    @property
    def value(self) -> Optional[float]:
        """Whole-unit amount for display, or None when no amount is set."""
        if self.amount_micros is None:
            return None
        return micros_to_value(self.amount_micros)


class RecordRef(BaseModel):
    """Resolved reference to another record (id plus display name)."""

    id: str
    name: Optional[str] = None


class AuthorRef(BaseModel):
    """Author or assignee embedded in an activity record."""

    id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# Canonical records
# =============================================================================


class Person(BaseModel):
    """Canonical CRM person (contact)."""

    id: str = Field(..., description="Record identifier")
    name: FullName = Field(default_factory=FullName)
    emails: Optional[Emails] = None
    phones: Optional[Phones] = None
    company_id: Optional[str] = Field(None, description="Company the person works for")
    company: Optional[RecordRef] = Field(None, description="Resolved company reference")
    job_title: Optional[str] = None
    linkedin_link: Optional[Link] = None
    city: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name.display_name

    @property
    def email(self) -> Optional[str]:
        return self.emails.primary_email if self.emails else None


class Company(BaseModel):
    """Canonical CRM company."""

    id: str = Field(..., description="Record identifier")
    name: str = Field("", description="Company name")
    domain_name: Optional[Link] = None
    address: Optional[Address] = None
    employees: Optional[int] = None
    linkedin_link: Optional[Link] = None
    x_link: Optional[Link] = None
    annual_recurring_revenue: Optional[Money] = None
    ideal_customer_profile: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Opportunity(BaseModel):
    """Canonical CRM opportunity (deal)."""

    id: str = Field(..., description="Record identifier")
    name: str = Field("", description="Opportunity name")
    amount: Optional[Money] = None
    stage: Optional[str] = None
    close_date: Optional[datetime] = None
    company_id: Optional[str] = None
    company: Optional[RecordRef] = None
    point_of_contact_id: Optional[str] = None
    point_of_contact: Optional[RecordRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def amount_micros(self) -> int:
        """Amount in micro-units, 0 when no amount is set."""
        if self.amount is None or self.amount.amount_micros is None:
            return 0
        return self.amount.amount_micros


class Task(BaseModel):
    """Canonical CRM task."""

    id: str
    title: Optional[str] = None
    body: Optional[str] = None
    status: Optional[str] = None
    due_at: Optional[datetime] = None
    assignee_id: Optional[str] = None
    assignee: Optional[AuthorRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Note(BaseModel):
    """Canonical CRM note."""

    id: str
    title: Optional[str] = None
    body: Optional[str] = None
    author_id: Optional[str] = None
    author: Optional[AuthorRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Comment(BaseModel):
    """Canonical comment attached directly to a person, company or opportunity."""

    id: str
    body: Optional[str] = None
    author_id: Optional[str] = None
    author: Optional[AuthorRef] = None
    person_id: Optional[str] = None
    company_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ActivityTarget(BaseModel):
    """Join record linking a task or note to the entity it concerns."""

    id: str
    activity_type: ActivityType
    activity_id: Optional[str] = None
    person_id: Optional[str] = None
    company_id: Optional[str] = None
    opportunity_id: Optional[str] = None


# =============================================================================
# Timeline views
# =============================================================================


class ActivityItem(BaseModel):
    """One entry of a merged activity timeline."""

    id: str
    type: ActivityType
    title: Optional[str] = None
    body: Optional[str] = None
    status: Optional[str] = Field(None, description="Task status (tasks only)")
    created_at: datetime
    author_id: Optional[str] = None
    author: Optional[AuthorRef] = None


class ActivityFilter(BaseModel):
    """Filter for timeline queries.

    ``types`` holds raw type tokens; they are validated by the aggregator so
    an unknown token surfaces as a crmgraph ValidationError.
    """

    types: Optional[List[str]] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    author_id: Optional[str] = None
    status: Optional[List[str]] = None
    limit: int = 20
    offset: int = 0


class Timeline(BaseModel):
    """Paginated, time-ordered merge of activity items."""

    activities: List[ActivityItem] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    limit: int = 20
    offset: int = 0
    truncated: bool = Field(False, description="True when a linked-id sweep hit the scan limit")


# =============================================================================
# Relationship views
# =============================================================================


class CompanyContacts(BaseModel):
    """All contacts of one company."""

    company_id: str
    company_name: str
    contacts: List[Person] = Field(default_factory=list)
    total_contacts: int = 0
    truncated: bool = Field(False, description="True when the sweep hit the scan limit")


class PersonOpportunities(BaseModel):
    """All opportunities where one person is the point of contact."""

    person_id: str
    person_name: str
    opportunities: List[Opportunity] = Field(default_factory=list)
    total_opportunities: int = 0
    truncated: bool = Field(False, description="True when the sweep hit the scan limit")


class RelationshipSummary(BaseModel):
    """Independent relationship counts for one company or person."""

    entity_id: str
    entity_type: str
    companies: int = Field(0, ge=0)
    contacts: int = Field(0, ge=0)
    opportunities: int = Field(0, ge=0)
    tasks: int = Field(0, ge=0)
    activities: int = Field(0, ge=0)


# =============================================================================
# Orphan report
# =============================================================================


class OrphanedCompany(BaseModel):
    id: str
    name: str
    opportunity_count: int = 0


class OrphanedContact(BaseModel):
    id: str
    name: str
    opportunity_count: int = 0


class OrphanedOpportunity(BaseModel):
    id: str
    name: str
    stage: Optional[str] = None


class OrphanedTask(BaseModel):
    id: str
    title: Optional[str] = None
    status: Optional[str] = None


class OrphanReport(BaseModel):
    """Records missing an expected relationship, one list per category."""

    companies: List[OrphanedCompany] = Field(default_factory=list)
    contacts: List[OrphanedContact] = Field(default_factory=list)
    opportunities: List[OrphanedOpportunity] = Field(default_factory=list)
    tasks: List[OrphanedTask] = Field(default_factory=list)
    truncated: bool = Field(False, description="True when the sweep hit the scan limit")

    @property
    def is_clean(self) -> bool:
        return not (self.companies or self.contacts or self.opportunities or self.tasks)


# =============================================================================
# Pipeline view
# =============================================================================


class StageGroup(BaseModel):
    """Opportunities sharing one sales stage."""

    stage: str
    opportunities: List[Opportunity] = Field(default_factory=list)
    count: int = 0
    total_value_micros: int = 0

    @property
    def total_value(self) -> float:
        return micros_to_value(self.total_value_micros)


class StageGroups(BaseModel):
    """Pipeline grouped by stage, in first-seen stage order."""

    stages: Dict[str, StageGroup] = Field(default_factory=dict)
    total_count: int = 0
    total_value_micros: int = 0
    truncated: bool = Field(False, description="True when the sweep hit the scan limit")

    @property
    def total_value(self) -> float:
        return micros_to_value(self.total_value_micros)


# =============================================================================
# Flat tool inputs
# =============================================================================


class AmountInput(BaseModel):
    """Amount as supplied by a caller, in whole currency units."""

    value: float
    currency: str = "USD"


class PersonInput(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company_id: Optional[str] = None
    job_title: Optional[str] = None
    linkedin_url: Optional[str] = None
    city: Optional[str] = None


class CompanyInput(BaseModel):
    name: Optional[str] = None
    domain_name: Optional[str] = None
    address: Optional[str] = None
    employees: Optional[int] = None
    linkedin_url: Optional[str] = None
    x_url: Optional[str] = None
    annual_recurring_revenue: Optional[float] = None
    currency: str = "USD"
    ideal_customer_profile: Optional[bool] = None


class OpportunityInput(BaseModel):
    name: Optional[str] = None
    amount: Optional[AmountInput] = None
    stage: Optional[str] = None
    close_date: Optional[str] = None
    company_id: Optional[str] = None
    point_of_contact_id: Optional[str] = None


class TaskInput(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    due_at: Optional[str] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None


class NoteInput(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
