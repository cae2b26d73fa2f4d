"""Mapping layer: flat tool arguments -> nested CRM record fields.

Tool callers pass flat arguments (``first_name``, ``email``, ``amount.value``).
The CRM stores composite fields as wrapper objects (``name``, ``emails``,
``amount``). Each record type has one explicit conversion function so the
mapping is total and testable regardless of which optional fields are set.

With ``partial=True`` (updates), only supplied fields are emitted and nothing
is required. With ``partial=False`` (creates), the type's required fields must
be present and defaults are filled in.
"""

from typing import Any, Dict

from crmgraph.errors import ValidationError
from crmgraph.records.models import (
    CompanyInput,
    NoteInput,
    OpportunityInput,
    PersonInput,
    TaskInput,
    TaskStatus,
    value_to_micros,
)

Fields = Dict[str, Any]


def _require(value: Any, field: str, record_type: str) -> None:
    if value is None or value == "":
        raise ValidationError(f"{record_type} requires '{field}'", field=field)


def _link(url: str) -> Dict[str, str]:
    return {"primaryLinkUrl": url}


def _money(value: float, currency: str) -> Dict[str, Any]:
    return {"amountMicros": value_to_micros(value), "currencyCode": currency}


def person_fields(data: PersonInput, partial: bool = False) -> Fields:
    """Convert flat person input to record fields.

    The name wrapper is always written whole: on update, supplying only one
    half of the name is rejected so the other half is not blanked.
    """
    if not partial:
        _require(data.first_name, "first_name", "person")
        _require(data.last_name, "last_name", "person")

    fields: Fields = {}
    if data.first_name is not None or data.last_name is not None:
        if data.first_name is None or data.last_name is None:
            raise ValidationError(
                "Both first_name and last_name are required to change a name",
                field="name",
            )
        fields["name"] = {"firstName": data.first_name, "lastName": data.last_name}
    if data.email:
        fields["emails"] = {"primaryEmail": data.email}
    if data.phone:
        fields["phones"] = {"primaryPhoneNumber": data.phone}
    if data.company_id:
        fields["companyId"] = data.company_id
    if data.job_title:
        fields["jobTitle"] = data.job_title
    if data.linkedin_url:
        fields["linkedinLink"] = _link(data.linkedin_url)
    if data.city:
        fields["city"] = data.city
    return fields


def company_fields(data: CompanyInput, partial: bool = False) -> Fields:
    """Convert flat company input to record fields."""
    if not partial:
        _require(data.name, "name", "company")

    fields: Fields = {}
    if data.name:
        fields["name"] = data.name
    if data.domain_name:
        fields["domainName"] = _link(data.domain_name)
    if data.address:
        fields["address"] = {"addressStreet1": data.address}
    if data.employees is not None:
        fields["employees"] = data.employees
    if data.linkedin_url:
        fields["linkedinLink"] = _link(data.linkedin_url)
    if data.x_url:
        fields["xLink"] = _link(data.x_url)
    if data.annual_recurring_revenue is not None:
        fields["annualRecurringRevenue"] = _money(data.annual_recurring_revenue, data.currency)
    if data.ideal_customer_profile is not None:
        fields["idealCustomerProfile"] = data.ideal_customer_profile
    return fields


def opportunity_fields(data: OpportunityInput, partial: bool = False) -> Fields:
    """Convert flat opportunity input to record fields."""
    if not partial:
        _require(data.name, "name", "opportunity")

    fields: Fields = {}
    if data.name:
        fields["name"] = data.name
    if data.amount is not None:
        fields["amount"] = _money(data.amount.value, data.amount.currency)
    if data.stage:
        fields["stage"] = data.stage
    if data.close_date:
        fields["closeDate"] = data.close_date
    if data.company_id:
        fields["companyId"] = data.company_id
    if data.point_of_contact_id:
        fields["pointOfContactId"] = data.point_of_contact_id
    return fields


def task_fields(data: TaskInput, partial: bool = False) -> Fields:
    """Convert flat task input to record fields (status defaults to TODO on create)."""
    if not partial:
        _require(data.title, "title", "task")

    fields: Fields = {}
    if data.title:
        fields["title"] = data.title
    if data.body:
        fields["body"] = data.body
    if data.due_at:
        fields["dueAt"] = data.due_at
    if data.status is not None:
        fields["status"] = data.status.value
    elif not partial:
        fields["status"] = TaskStatus.TODO.value
    if data.assignee_id:
        fields["assigneeId"] = data.assignee_id
    return fields


def note_fields(data: NoteInput, partial: bool = False) -> Fields:
    """Convert flat note input to record fields."""
    if not partial:
        _require(data.body, "body", "note")

    fields: Fields = {}
    if data.title:
        fields["title"] = data.title
    if data.body:
        fields["body"] = data.body
    return fields
