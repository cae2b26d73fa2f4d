"""Tests for the entity normalizer."""

from datetime import datetime, timezone

import pytest

from crmgraph.errors import ValidationError
from crmgraph.records.models import (
    ActivityTarget,
    ActivityType,
    Company,
    Opportunity,
    Person,
    RecordType,
)
from crmgraph.records.normalize import (
    normalize_company,
    normalize_note,
    normalize_opportunity,
    normalize_person,
    normalize_record,
    to_activity_item,
)


class TestNormalizeRecords:
    """Tests for per-type conversions."""

    def test_person_keeps_wrappers(self):
        """Name, emails and links stay structured."""
        person = normalize_person(
            {
                "id": "p1",
                "name": {"firstName": "Ada", "lastName": "Lovelace"},
                "emails": {"primaryEmail": "ada@example.com", "additionalEmails": ["a@b.c"]},
                "linkedinLink": {"primaryLinkUrl": "https://linkedin.com/in/ada"},
                "companyId": "c1",
                "company": {"id": "c1", "name": "Analytical"},
            }
        )
        assert person.name.first_name == "Ada"
        assert person.display_name == "Ada Lovelace"
        assert person.email == "ada@example.com"
        assert person.emails.additional_emails == ["a@b.c"]
        assert person.linkedin_link.primary_link_url == "https://linkedin.com/in/ada"
        assert person.company.name == "Analytical"

    def test_absent_fields_are_none(self):
        """Missing optional fields become explicit None."""
        person = normalize_person({"id": "p1"})
        assert person.emails is None
        assert person.phones is None
        assert person.company_id is None
        assert person.job_title is None
        assert person.display_name == ""
        assert "emails" in person.model_dump()

    def test_company_money_and_address(self):
        company = normalize_company(
            {
                "id": "c1",
                "name": "Acme",
                "annualRecurringRevenue": {"amountMicros": 1_000_500_000, "currencyCode": "USD"},
                "address": {"addressCity": "Berlin"},
            }
        )
        assert company.annual_recurring_revenue.amount_micros == 1_000_500_000
        assert company.annual_recurring_revenue.value == 1000.5
        assert company.address.city == "Berlin"
        assert company.address.street1 is None

    def test_empty_address_is_none(self):
        company = normalize_company({"id": "c1", "address": {"addressCity": ""}})
        assert company.address is None

    def test_opportunity_embedded_refs(self):
        """Embedded relation objects reduce to references."""
        opp = normalize_opportunity(
            {
                "id": "o1",
                "name": "Deal",
                "companyId": "c1",
                "company": {"id": "c1", "name": "Acme", "employees": 10},
                "pointOfContactId": "p1",
                "pointOfContact": {"id": "p1", "name": {"firstName": "Ada", "lastName": "L"}},
            }
        )
        assert opp.company.id == "c1"
        assert opp.company.name == "Acme"
        assert opp.point_of_contact.name == "Ada L"
        assert opp.amount is None
        assert opp.stage is None

    def test_note_body_from_rich_text(self):
        """Note bodies fall back to the markdown of bodyV2."""
        note = normalize_note({"id": "n1", "bodyV2": {"markdown": "**hi**"}})
        assert note.body == "**hi**"
        assert normalize_note({"id": "n2", "body": "plain"}).body == "plain"

    @pytest.mark.parametrize(
        "record_type,model",
        [
            (RecordType.PERSON, Person),
            ("company", Company),
            ("opportunity", Opportunity),
            ("taskTarget", ActivityTarget),
        ],
    )
    def test_normalize_record_dispatch(self, record_type, model):
        assert isinstance(normalize_record(record_type, {"id": "x"}), model)

    def test_unknown_record_type(self):
        with pytest.raises(ValidationError):
            normalize_record("workspaceMember", {"id": "x"})

    def test_missing_id(self):
        with pytest.raises(ValidationError):
            normalize_record("person", {"name": {"firstName": "A"}})

    def test_malformed_field(self):
        """Invalid field values raise the crmgraph ValidationError."""
        with pytest.raises(ValidationError):
            normalize_record("company", {"id": "c1", "employees": "many"})

    def test_non_integer_micros(self):
        with pytest.raises(ValidationError) as exc:
            normalize_record("opportunity", {"id": "o1", "amount": {"amountMicros": "n/a"}})
        assert exc.value.field == "amountMicros"
        assert "o1" in str(exc.value)


class TestActivityItems:
    """Tests for timeline item conversion."""

    def test_task_uses_assignee_as_author(self):
        item = to_activity_item(
            ActivityType.TASK,
            {
                "id": "t1",
                "title": "Call",
                "status": "TODO",
                "assigneeId": "wm-1",
                "assignee": {"id": "wm-1", "name": {"firstName": "Wendy", "lastName": "Ma"}},
                "createdAt": "2026-02-01T10:00:00Z",
            },
        )
        assert item.type == ActivityType.TASK
        assert item.status == "TODO"
        assert item.author_id == "wm-1"
        assert item.author.display_name == "Wendy Ma"
        assert item.created_at == datetime(2026, 2, 1, 10, tzinfo=timezone.utc)

    def test_note_and_comment(self):
        note = to_activity_item(
            ActivityType.NOTE,
            {"id": "n1", "title": "N", "authorId": "wm-2", "createdAt": "2026-02-01T10:00:00Z"},
        )
        comment = to_activity_item(
            ActivityType.COMMENT,
            {"id": "c1", "body": "hi", "createdAt": "2026-02-01T10:00:00Z"},
        )
        assert note.author_id == "wm-2"
        assert note.status is None
        assert comment.title is None
        assert comment.body == "hi"
        assert comment.author is None

    def test_missing_created_at(self):
        with pytest.raises(ValidationError):
            to_activity_item(ActivityType.NOTE, {"id": "n1"})
