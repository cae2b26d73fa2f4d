"""CLI entry point for crmgraph.

Every command prints the aggregated view as JSON on stdout. Failures are
printed to stderr and exit with status 1.

Commands:
- activities: merged task/note timeline
- entity-activities: timeline of one person, company or opportunity
- company-contacts / person-opportunities: relationship views
- summary: relationship counts for a company or person
- orphans: records missing an expected relationship
- pipeline: opportunities grouped by stage
- link-opportunity / transfer-contact: relationship mutations
- create-* / update-*: single-record writes from flat options
- stats: record counts per type
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from typer import Context, Typer

from crmgraph.config import config
from crmgraph.engine import CRMGraph
from crmgraph.errors import CRMGraphError
from crmgraph.records.models import (
    ActivityFilter,
    AmountInput,
    CompanyInput,
    NoteInput,
    OpportunityInput,
    PersonInput,
    TaskInput,
)
from crmgraph.store.base import parse_timestamp
from crmgraph.store.registry import RecordStoreFactory, RecordStoreRegistryError

# Initialize Typer app
app = Typer(
    name="crmgraph",
    help="Cross-entity relationship views over a CRM record store.",
)


# =============================================================================
# App setup and output helpers
# =============================================================================


@app.callback()
def init_app(
    ctx: Context,
    store: Optional[str] = typer.Option(
        None, "--store", "-s", help="Record store: memory or sqlite (default: CRMGRAPH_STORE)"
    ),
    db: Optional[Path] = typer.Option(
        None, "--db", help="SQLite database path (default: CRMGRAPH_DB_PATH)"
    ),
):
    """Select the record store used by every command."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    name = store or config.store
    kwargs = {}
    if name.lower() == "sqlite":
        if db is None:
            config.ensure_directories()
        kwargs["db_path"] = db or config.db_path

    try:
        ctx.obj = CRMGraph(RecordStoreFactory.create(name, **kwargs))
    except (RecordStoreRegistryError, CRMGraphError) as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(1)


def _emit(result: Any) -> None:
    """Print a pydantic view (or a list of them) as JSON."""
    if isinstance(result, list):
        payload = [item.model_dump(mode="json") for item in result]
    elif isinstance(result, BaseModel):
        payload = result.model_dump(mode="json")
    else:
        payload = result
    typer.echo(json.dumps(payload, indent=2))


def _run(ctx: Context, operation, *args: Any, **kwargs: Any) -> None:
    graph: CRMGraph = ctx.obj
    try:
        result = operation(graph, *args, **kwargs)
    except (CRMGraphError, PydanticValidationError) as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(1)
    _emit(result)


# =============================================================================
# Timeline commands
# =============================================================================


@app.command()
def activities(
    ctx: Context,
    types: Optional[List[str]] = typer.Option(
        None, "--type", "-t", help="Activity type: task or note (repeatable)"
    ),
    date_from: Optional[str] = typer.Option(None, "--from", help="Created at or after (ISO 8601)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Created at or before (ISO 8601)"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author/assignee id"),
    status: Optional[List[str]] = typer.Option(
        None, "--status", help="Task status (repeatable; excludes notes)"
    ),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
    offset: int = typer.Option(0, "--offset", help="Results to skip"),
):
    """Show tasks and notes as one timeline.

    Examples:
        crmgraph activities --type task --limit 10
        crmgraph activities --status TODO --status IN_PROGRESS
    """

    def query(graph: CRMGraph):
        flt = ActivityFilter(
            types=types or None,
            date_from=parse_timestamp(date_from),
            date_to=parse_timestamp(date_to),
            author_id=author,
            status=status or None,
            limit=limit,
            offset=offset,
        )
        if flt.status:
            return graph.filter_activities(flt)
        return graph.get_activities(flt)

    _run(ctx, query)


@app.command(name="entity-activities")
def entity_activities(
    ctx: Context,
    entity_type: str = typer.Argument(..., help="person, company or opportunity"),
    entity_id: str = typer.Argument(..., help="Entity id"),
    comments: bool = typer.Option(True, "--comments/--no-comments", help="Include comments"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
    offset: int = typer.Option(0, "--offset", help="Results to skip"),
):
    """Show the timeline of one entity.

    Example:
        crmgraph entity-activities company 6c1f... --no-comments
    """
    _run(
        ctx,
        CRMGraph.get_entity_activities,
        entity_id,
        entity_type,
        include_comments=comments,
        limit=limit,
        offset=offset,
    )


# =============================================================================
# Relationship commands
# =============================================================================


@app.command(name="company-contacts")
def company_contacts(
    ctx: Context,
    company_id: str = typer.Argument(..., help="Company id"),
):
    """List every contact of a company."""
    _run(ctx, CRMGraph.get_company_contacts, company_id)


@app.command(name="person-opportunities")
def person_opportunities(
    ctx: Context,
    person_id: str = typer.Argument(..., help="Person id"),
):
    """List opportunities where a person is the point of contact."""
    _run(ctx, CRMGraph.get_person_opportunities, person_id)


@app.command()
def summary(
    ctx: Context,
    entity_type: str = typer.Argument(..., help="company or person"),
    entity_id: str = typer.Argument(..., help="Entity id"),
):
    """Show relationship counts for a company or person."""
    _run(ctx, CRMGraph.get_relationship_summary, entity_id, entity_type)


@app.command(name="link-opportunity")
def link_opportunity(
    ctx: Context,
    opportunity_id: str = typer.Argument(..., help="Opportunity id"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company id"),
    contact: Optional[str] = typer.Option(None, "--contact", "-p", help="Point of contact id"),
):
    """Link an opportunity to a company and/or point of contact."""
    _run(
        ctx,
        CRMGraph.link_opportunity_to_company,
        opportunity_id,
        company_id=company,
        point_of_contact_id=contact,
    )


@app.command(name="transfer-contact")
def transfer_contact(
    ctx: Context,
    contact_id: str = typer.Argument(..., help="Contact (person) id"),
    to_company: str = typer.Argument(..., help="Target company id"),
    from_company: Optional[str] = typer.Option(
        None, "--from", help="Expected current company id; the transfer is refused on mismatch"
    ),
):
    """Move a contact to another company."""
    _run(
        ctx,
        CRMGraph.transfer_contact_to_company,
        contact_id,
        to_company,
        from_company_id=from_company,
    )


# =============================================================================
# Sweep commands
# =============================================================================


@app.command()
def orphans(ctx: Context):
    """Report records missing an expected relationship."""
    _run(ctx, CRMGraph.find_orphaned_records)


@app.command()
def pipeline(ctx: Context):
    """Group opportunities by sales stage."""
    _run(ctx, CRMGraph.list_opportunities_by_stage)


@app.command()
def stats(ctx: Context):
    """Count stored records per record type."""
    _run(ctx, CRMGraph.get_record_counts)


# =============================================================================
# Record commands
# =============================================================================


@app.command(name="create-contact")
def create_contact(
    ctx: Context,
    first_name: str = typer.Argument(..., help="First name"),
    last_name: str = typer.Argument(..., help="Last name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Primary email"),
    phone: Optional[str] = typer.Option(None, "--phone", help="Primary phone number"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company id"),
    job_title: Optional[str] = typer.Option(None, "--job-title", help="Job title"),
    linkedin: Optional[str] = typer.Option(None, "--linkedin", help="LinkedIn profile URL"),
    city: Optional[str] = typer.Option(None, "--city", help="City"),
):
    """Create a contact.

    Example:
        crmgraph create-contact Ada Lovelace --email ada@example.com --company c-1
    """
    data = dict(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        company_id=company,
        job_title=job_title,
        linkedin_url=linkedin,
        city=city,
    )
    _run(ctx, lambda graph: graph.create_contact(PersonInput(**data)))


@app.command(name="update-contact")
def update_contact(
    ctx: Context,
    contact_id: str = typer.Argument(..., help="Contact (person) id"),
    first_name: Optional[str] = typer.Option(None, "--first-name", help="First name"),
    last_name: Optional[str] = typer.Option(None, "--last-name", help="Last name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Primary email"),
    phone: Optional[str] = typer.Option(None, "--phone", help="Primary phone number"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company id"),
    job_title: Optional[str] = typer.Option(None, "--job-title", help="Job title"),
    linkedin: Optional[str] = typer.Option(None, "--linkedin", help="LinkedIn profile URL"),
    city: Optional[str] = typer.Option(None, "--city", help="City"),
):
    """Update the given fields of a contact."""
    data = dict(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        company_id=company,
        job_title=job_title,
        linkedin_url=linkedin,
        city=city,
    )
    _run(ctx, lambda graph: graph.update_contact(contact_id, PersonInput(**data)))


@app.command(name="create-company")
def create_company(
    ctx: Context,
    name: str = typer.Argument(..., help="Company name"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Domain URL"),
    address: Optional[str] = typer.Option(None, "--address", help="Street address"),
    employees: Optional[int] = typer.Option(None, "--employees", help="Employee count"),
    linkedin: Optional[str] = typer.Option(None, "--linkedin", help="LinkedIn page URL"),
    arr: Optional[float] = typer.Option(None, "--arr", help="Annual recurring revenue"),
    currency: str = typer.Option("USD", "--currency", help="ARR currency code"),
):
    """Create a company."""
    data = dict(
        name=name,
        domain_name=domain,
        address=address,
        employees=employees,
        linkedin_url=linkedin,
        annual_recurring_revenue=arr,
        currency=currency,
    )
    _run(ctx, lambda graph: graph.create_company(CompanyInput(**data)))


@app.command(name="update-company")
def update_company(
    ctx: Context,
    company_id: str = typer.Argument(..., help="Company id"),
    name: Optional[str] = typer.Option(None, "--name", help="Company name"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Domain URL"),
    address: Optional[str] = typer.Option(None, "--address", help="Street address"),
    employees: Optional[int] = typer.Option(None, "--employees", help="Employee count"),
    linkedin: Optional[str] = typer.Option(None, "--linkedin", help="LinkedIn page URL"),
    arr: Optional[float] = typer.Option(None, "--arr", help="Annual recurring revenue"),
    currency: str = typer.Option("USD", "--currency", help="ARR currency code"),
):
    """Update the given fields of a company."""
    data = dict(
        name=name,
        domain_name=domain,
        address=address,
        employees=employees,
        linkedin_url=linkedin,
        annual_recurring_revenue=arr,
        currency=currency,
    )
    _run(ctx, lambda graph: graph.update_company(company_id, CompanyInput(**data)))


def _opportunity_input(
    name: Optional[str],
    amount: Optional[float],
    currency: str,
    stage: Optional[str],
    close_date: Optional[str],
    company: Optional[str],
    contact: Optional[str],
) -> OpportunityInput:
    return OpportunityInput(
        name=name,
        amount=AmountInput(value=amount, currency=currency) if amount is not None else None,
        stage=stage,
        close_date=close_date,
        company_id=company,
        point_of_contact_id=contact,
    )


@app.command(name="create-opportunity")
def create_opportunity(
    ctx: Context,
    name: str = typer.Argument(..., help="Opportunity name"),
    amount: Optional[float] = typer.Option(None, "--amount", help="Amount in whole units"),
    currency: str = typer.Option("USD", "--currency", help="Amount currency code"),
    stage: Optional[str] = typer.Option(None, "--stage", help="Sales stage"),
    close_date: Optional[str] = typer.Option(None, "--close-date", help="Close date (ISO 8601)"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company id"),
    contact: Optional[str] = typer.Option(None, "--contact", "-p", help="Point of contact id"),
):
    """Create an opportunity.

    Example:
        crmgraph create-opportunity "Renewal" --amount 12000.50 --stage NEW -c c-1
    """
    _run(
        ctx,
        lambda graph: graph.create_opportunity(
            _opportunity_input(name, amount, currency, stage, close_date, company, contact)
        ),
    )


@app.command(name="update-opportunity")
def update_opportunity(
    ctx: Context,
    opportunity_id: str = typer.Argument(..., help="Opportunity id"),
    name: Optional[str] = typer.Option(None, "--name", help="Opportunity name"),
    amount: Optional[float] = typer.Option(None, "--amount", help="Amount in whole units"),
    currency: str = typer.Option("USD", "--currency", help="Amount currency code"),
    stage: Optional[str] = typer.Option(None, "--stage", help="Sales stage"),
    close_date: Optional[str] = typer.Option(None, "--close-date", help="Close date (ISO 8601)"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company id"),
    contact: Optional[str] = typer.Option(None, "--contact", "-p", help="Point of contact id"),
):
    """Update the given fields of an opportunity."""
    _run(
        ctx,
        lambda graph: graph.update_opportunity(
            opportunity_id,
            _opportunity_input(name, amount, currency, stage, close_date, company, contact),
        ),
    )


@app.command(name="create-task")
def create_task(
    ctx: Context,
    title: str = typer.Argument(..., help="Task title"),
    body: Optional[str] = typer.Option(None, "--body", help="Task description"),
    due_at: Optional[str] = typer.Option(None, "--due", help="Due date (ISO 8601)"),
    status: Optional[str] = typer.Option(None, "--status", help="TODO, IN_PROGRESS or DONE"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a", help="Assignee id"),
):
    """Create a task (status defaults to TODO)."""
    data = dict(title=title, body=body, due_at=due_at, status=status, assignee_id=assignee)
    _run(ctx, lambda graph: graph.create_task(TaskInput(**data)))


@app.command(name="create-note")
def create_note(
    ctx: Context,
    body: str = typer.Argument(..., help="Note content"),
    title: Optional[str] = typer.Option(None, "--title", help="Note title"),
):
    """Create a note."""
    _run(ctx, lambda graph: graph.create_note(NoteInput(title=title, body=body)))


def main():
    app()


if __name__ == "__main__":
    main()
