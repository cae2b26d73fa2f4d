"""Tests for single-record create and update operations."""

import pytest

from crmgraph.engine import CRMGraph
from crmgraph.errors import NotFoundError, ValidationError
from crmgraph.records.models import (
    AmountInput,
    CompanyInput,
    NoteInput,
    OpportunityInput,
    PersonInput,
    TaskInput,
)

SEED_COUNTS = {
    "person": 4,
    "company": 3,
    "opportunity": 5,
    "task": 4,
    "note": 3,
    "comment": 2,
    "taskTarget": 3,
    "noteTarget": 2,
}


class TestContacts:
    """Tests for create_contact() and update_contact()."""

    def test_create_contact(self, graph, store):
        person = graph.create_contact(
            PersonInput(first_name="Eve", last_name="Adams", email="eve@x.io", company_id="c-acme")
        )

        assert person.display_name == "Eve Adams"
        assert person.email == "eve@x.io"
        raw = store.get("person", person.id)
        assert raw["name"] == {"firstName": "Eve", "lastName": "Adams"}
        assert raw["emails"] == {"primaryEmail": "eve@x.io"}
        assert graph.get_company_contacts("c-acme").total_contacts == 3

    def test_create_requires_name_and_writes_nothing(self, graph):
        with pytest.raises(ValidationError):
            graph.create_contact(PersonInput(first_name="Eve"))
        assert graph.get_record_counts() == SEED_COUNTS

    def test_create_with_unknown_company(self, graph):
        with pytest.raises(NotFoundError) as exc:
            graph.create_contact(PersonInput(first_name="E", last_name="A", company_id="c-ghost"))
        assert exc.value.record_type == "company"
        assert graph.get_record_counts() == SEED_COUNTS

    def test_update_only_supplied_fields(self, graph):
        person = graph.update_contact("p-alice", PersonInput(job_title="CTO"))
        assert person.job_title == "CTO"
        assert person.display_name == "Alice Smith"
        assert person.company_id == "c-acme"

    def test_update_without_fields(self, graph):
        with pytest.raises(ValidationError):
            graph.update_contact("p-alice", PersonInput())

    def test_update_unknown_contact(self, graph):
        with pytest.raises(NotFoundError):
            graph.update_contact("p-ghost", PersonInput(city="Paris"))


class TestCompanies:
    """Tests for create_company() and update_company()."""

    def test_create_company_with_revenue(self, graph):
        company = graph.create_company(
            CompanyInput(
                name="Hooli", domain_name="https://hooli.com", annual_recurring_revenue=0.1
            )
        )
        assert company.name == "Hooli"
        assert company.domain_name.primary_link_url == "https://hooli.com"
        assert company.annual_recurring_revenue.amount_micros == 100_000
        assert company.annual_recurring_revenue.currency_code == "USD"

    def test_update_company(self, graph):
        company = graph.update_company("c-initech", CompanyInput(employees=50))
        assert company.employees == 50
        assert company.name == "Initech"


class TestOpportunities:
    """Tests for create_opportunity() and update_opportunity()."""

    def test_create_opportunity(self, graph):
        opp = graph.create_opportunity(
            OpportunityInput(
                name="Expansion",
                amount=AmountInput(value=1234.56),
                stage="NEW",
                company_id="c-globex",
            )
        )
        assert opp.amount_micros == 1_234_560_000
        assert opp.company_id == "c-globex"

        groups = graph.list_opportunities_by_stage()
        assert groups.stages["NEW"].count == 3

    def test_unknown_point_of_contact(self, graph):
        with pytest.raises(NotFoundError):
            graph.create_opportunity(OpportunityInput(name="X", point_of_contact_id="p-ghost"))
        assert graph.get_record_counts()["opportunity"] == 5

    def test_update_stage(self, graph):
        opp = graph.update_opportunity("o-4", OpportunityInput(stage="LOST"))
        assert opp.stage == "LOST"
        assert opp.id == "o-4"
        assert graph.list_opportunities_by_stage().stages["LOST"].count == 1


class TestActivities:
    """Tests for create_task() and create_note()."""

    def test_create_task_defaults_to_todo(self, graph):
        task = graph.create_task(TaskInput(title="Call back", assignee_id="wm-1"))
        assert task.status == "TODO"
        assert task.assignee_id == "wm-1"
        assert graph.get_activities().total_count == 8

    def test_create_note(self, graph):
        note = graph.create_note(NoteInput(title="Expo", body="Met at the expo"))
        assert note.body == "Met at the expo"
        assert note.title == "Expo"

    def test_note_requires_body(self, graph):
        with pytest.raises(ValidationError):
            graph.create_note(NoteInput(title="Empty"))


class TestRecordCounts:
    """Tests for get_record_counts()."""

    def test_seed_counts(self, graph):
        assert graph.get_record_counts() == SEED_COUNTS

    def test_concurrent_counts(self, store):
        assert CRMGraph(store, fetch_workers=4).get_record_counts() == SEED_COUNTS
