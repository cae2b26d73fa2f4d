"""Entity normalizer: raw CRM records -> canonical models.

Raw records use the CRM's nested camelCase shape. Each record type gets an
explicit conversion function so the mapping stays total: every canonical
field is populated, wrapper objects are kept as structured values, and a
missing or null raw field becomes ``None``.

Embedded relation objects (``company``, ``pointOfContact``, ``assignee``,
``author``) are reduced to references when the store returns them inline.
"""

from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from crmgraph.errors import ValidationError
from crmgraph.records.models import (
    ActivityItem,
    ActivityTarget,
    ActivityType,
    Address,
    AuthorRef,
    Comment,
    Company,
    Emails,
    FullName,
    Link,
    Money,
    Note,
    Opportunity,
    Person,
    Phones,
    RecordRef,
    RecordType,
    Task,
)

Raw = Dict[str, Any]


def _obj(raw: Raw, key: str) -> Optional[Raw]:
    value = raw.get(key)
    return value if isinstance(value, dict) else None


def _name(raw: Optional[Raw]) -> FullName:
    if not raw:
        return FullName()
    return FullName(
        first_name=raw.get("firstName") or "",
        last_name=raw.get("lastName") or "",
    )


def _link(raw: Optional[Raw]) -> Optional[Link]:
    if not raw or not raw.get("primaryLinkUrl"):
        return None
    return Link(
        primary_link_url=raw["primaryLinkUrl"],
        primary_link_label=raw.get("primaryLinkLabel") or None,
    )


def _emails(raw: Optional[Raw]) -> Optional[Emails]:
    if not raw or not raw.get("primaryEmail"):
        return None
    return Emails(
        primary_email=raw["primaryEmail"],
        additional_emails=list(raw.get("additionalEmails") or []),
    )


def _phones(raw: Optional[Raw]) -> Optional[Phones]:
    if not raw or not raw.get("primaryPhoneNumber"):
        return None
    return Phones(
        primary_phone_number=raw["primaryPhoneNumber"],
        primary_phone_country_code=raw.get("primaryPhoneCountryCode") or None,
    )


def _address(raw: Optional[Raw]) -> Optional[Address]:
    if not raw:
        return None
    address = Address(
        street1=raw.get("addressStreet1") or None,
        street2=raw.get("addressStreet2") or None,
        city=raw.get("addressCity") or None,
        state=raw.get("addressState") or None,
        postcode=raw.get("addressPostcode") or None,
        country=raw.get("addressCountry") or None,
    )
    if not any(address.model_dump().values()):
        return None
    return address


def _money(raw: Optional[Raw]) -> Optional[Money]:
    if not raw or raw.get("amountMicros") is None:
        return None
    try:
        micros = int(raw["amountMicros"])
    except (TypeError, ValueError):
        raise ValidationError(
            f"amountMicros must be an integer, got {raw['amountMicros']!r}", field="amountMicros"
        )
    return Money(amount_micros=micros, currency_code=raw.get("currencyCode") or None)


def _body(raw: Raw) -> Optional[str]:
    """Plain body, falling back to the markdown of a rich-text wrapper."""
    body = raw.get("body")
    if isinstance(body, str):
        return body or None
    rich = _obj(raw, "bodyV2")
    if rich and rich.get("markdown"):
        return rich["markdown"]
    return None


def _author(raw: Optional[Raw]) -> Optional[AuthorRef]:
    if not raw:
        return None
    name = _name(_obj(raw, "name"))
    return AuthorRef(
        id=raw.get("id"),
        first_name=name.first_name,
        last_name=name.last_name,
    )


def _company_ref(raw: Optional[Raw]) -> Optional[RecordRef]:
    if not raw or not raw.get("id"):
        return None
    return RecordRef(id=raw["id"], name=raw.get("name"))


def _person_ref(raw: Optional[Raw]) -> Optional[RecordRef]:
    if not raw or not raw.get("id"):
        return None
    name = _name(_obj(raw, "name"))
    return RecordRef(id=raw["id"], name=name.display_name or None)


# =============================================================================
# Per-type conversions
# =============================================================================


def normalize_person(raw: Raw) -> Person:
    return Person(
        id=raw["id"],
        name=_name(_obj(raw, "name")),
        emails=_emails(_obj(raw, "emails")),
        phones=_phones(_obj(raw, "phones")),
        company_id=raw.get("companyId"),
        company=_company_ref(_obj(raw, "company")),
        job_title=raw.get("jobTitle") or None,
        linkedin_link=_link(_obj(raw, "linkedinLink")),
        city=raw.get("city") or None,
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def normalize_company(raw: Raw) -> Company:
    return Company(
        id=raw["id"],
        name=raw.get("name") or "",
        domain_name=_link(_obj(raw, "domainName")),
        address=_address(_obj(raw, "address")),
        employees=raw.get("employees"),
        linkedin_link=_link(_obj(raw, "linkedinLink")),
        x_link=_link(_obj(raw, "xLink")),
        annual_recurring_revenue=_money(_obj(raw, "annualRecurringRevenue")),
        ideal_customer_profile=raw.get("idealCustomerProfile"),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def normalize_opportunity(raw: Raw) -> Opportunity:
    return Opportunity(
        id=raw["id"],
        name=raw.get("name") or "",
        amount=_money(_obj(raw, "amount")),
        stage=raw.get("stage") or None,
        close_date=raw.get("closeDate") or None,
        company_id=raw.get("companyId"),
        company=_company_ref(_obj(raw, "company")),
        point_of_contact_id=raw.get("pointOfContactId"),
        point_of_contact=_person_ref(_obj(raw, "pointOfContact")),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def normalize_task(raw: Raw) -> Task:
    return Task(
        id=raw["id"],
        title=raw.get("title") or None,
        body=_body(raw),
        status=raw.get("status") or None,
        due_at=raw.get("dueAt") or None,
        assignee_id=raw.get("assigneeId"),
        assignee=_author(_obj(raw, "assignee")),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def normalize_note(raw: Raw) -> Note:
    return Note(
        id=raw["id"],
        title=raw.get("title") or None,
        body=_body(raw),
        author_id=raw.get("authorId"),
        author=_author(_obj(raw, "author")),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def normalize_comment(raw: Raw) -> Comment:
    return Comment(
        id=raw["id"],
        body=_body(raw),
        author_id=raw.get("authorId"),
        author=_author(_obj(raw, "author")),
        person_id=raw.get("personId"),
        company_id=raw.get("companyId"),
        opportunity_id=raw.get("opportunityId"),
        created_at=raw.get("createdAt"),
    )


def normalize_task_target(raw: Raw) -> ActivityTarget:
    return ActivityTarget(
        id=raw["id"],
        activity_type=ActivityType.TASK,
        activity_id=raw.get("taskId"),
        person_id=raw.get("personId"),
        company_id=raw.get("companyId"),
        opportunity_id=raw.get("opportunityId"),
    )


def normalize_note_target(raw: Raw) -> ActivityTarget:
    return ActivityTarget(
        id=raw["id"],
        activity_type=ActivityType.NOTE,
        activity_id=raw.get("noteId"),
        person_id=raw.get("personId"),
        company_id=raw.get("companyId"),
        opportunity_id=raw.get("opportunityId"),
    )


_NORMALIZERS: Dict[RecordType, Callable[[Raw], BaseModel]] = {
    RecordType.PERSON: normalize_person,
    RecordType.COMPANY: normalize_company,
    RecordType.OPPORTUNITY: normalize_opportunity,
    RecordType.TASK: normalize_task,
    RecordType.NOTE: normalize_note,
    RecordType.COMMENT: normalize_comment,
    RecordType.TASK_TARGET: normalize_task_target,
    RecordType.NOTE_TARGET: normalize_note_target,
}


def normalize_record(record_type: Union[RecordType, str], raw: Raw) -> BaseModel:
    """Normalize a raw record of a known type.

    Args:
        record_type: Record type tag (enum or its string value)
        raw: Raw record as returned by the record store

    Returns:
        The canonical model for that type

    Raises:
        ValidationError: If the type is unknown or the record is malformed
    """
    try:
        rtype = RecordType(record_type)
    except ValueError:
        raise ValidationError(f"Unknown record type: '{record_type}'", field="record_type")

    if "id" not in raw:
        raise ValidationError(f"{rtype.value} record has no id", field="id")

    try:
        return _NORMALIZERS[rtype](raw)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Malformed {rtype.value} record '{raw.get('id')}': {e.error_count()} invalid field(s)"
        ) from e
    except ValidationError as e:
        raise ValidationError(
            f"Malformed {rtype.value} record '{raw.get('id')}': {e}", field=e.field
        ) from e


# =============================================================================
# Timeline items
# =============================================================================


def to_activity_item(activity_type: ActivityType, raw: Raw) -> ActivityItem:
    """Convert a raw task, note or comment into a timeline item.

    Raises:
        ValidationError: If the record has no id or creation timestamp
    """
    if "id" not in raw or not raw.get("createdAt"):
        raise ValidationError(
            f"{activity_type.value} '{raw.get('id')}' has no id or createdAt", field="createdAt"
        )

    try:
        return _activity_item(activity_type, raw)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Malformed {activity_type.value} record '{raw.get('id')}': "
            f"{e.error_count()} invalid field(s)"
        ) from e


def _activity_item(activity_type: ActivityType, raw: Raw) -> ActivityItem:
    if activity_type == ActivityType.TASK:
        task = normalize_task(raw)
        return ActivityItem(
            id=task.id,
            type=ActivityType.TASK,
            title=task.title,
            body=task.body,
            status=task.status,
            created_at=task.created_at,
            author_id=task.assignee_id,
            author=task.assignee,
        )

    if activity_type == ActivityType.NOTE:
        note = normalize_note(raw)
        return ActivityItem(
            id=note.id,
            type=ActivityType.NOTE,
            title=note.title,
            body=note.body,
            created_at=note.created_at,
            author_id=note.author_id,
            author=note.author,
        )

    comment = normalize_comment(raw)
    return ActivityItem(
        id=comment.id,
        type=ActivityType.COMMENT,
        body=comment.body,
        created_at=comment.created_at,
        author_id=comment.author_id,
        author=comment.author,
    )
