"""Cross-entity aggregation engine.

``CRMGraph`` wires every aggregator to one record store and exposes their
operations from a single object:

    graph = CRMGraph(InMemoryRecordStore(seed))
    timeline = graph.get_activities(ActivityFilter(types=["task"], limit=10))
    report = graph.find_orphaned_records()
"""

from typing import Any, Dict, List, Optional

from crmgraph.engine.base import Aggregator, activity_order
from crmgraph.engine.merge import MergedPage, Source, fetch_all, gather, merge_sources
from crmgraph.engine.orphans import OrphanScanner
from crmgraph.engine.pipeline import PipelineGrouper
from crmgraph.engine.records import RecordManager
from crmgraph.engine.relationships import RelationshipAggregator
from crmgraph.engine.timeline import ActivityTimelineAggregator
from crmgraph.records.models import (
    ActivityFilter,
    ActivityItem,
    Company,
    CompanyContacts,
    CompanyInput,
    Note,
    NoteInput,
    Opportunity,
    OpportunityInput,
    OrphanReport,
    Person,
    PersonInput,
    PersonOpportunities,
    RelationshipSummary,
    StageGroups,
    Task,
    TaskInput,
    Timeline,
)
from crmgraph.store.base import RecordStore


class CRMGraph:
    """Facade over the timeline, relationship, orphan, pipeline and record aggregators."""

    def __init__(
        self,
        store: RecordStore,
        page_size: Optional[int] = None,
        scan_limit: Optional[int] = None,
        fetch_workers: Optional[int] = None,
    ):
        settings = dict(page_size=page_size, scan_limit=scan_limit, fetch_workers=fetch_workers)
        self.store = store
        self.timeline = ActivityTimelineAggregator(store, **settings)
        self.relationships = RelationshipAggregator(store, **settings)
        self.orphans = OrphanScanner(store, **settings)
        self.pipeline = PipelineGrouper(store, **settings)
        self.records = RecordManager(store, **settings)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "CRMGraph":
        """Build a graph over the record store selected by CRMGRAPH_STORE."""
        from crmgraph.store.registry import RecordStoreFactory

        return cls(RecordStoreFactory.from_env(), **kwargs)

    # Activity timeline

    def get_activities(self, filter: Optional[ActivityFilter] = None) -> Timeline:
        return self.timeline.get_activities(filter)

    def filter_activities(self, filter: ActivityFilter) -> List[ActivityItem]:
        return self.timeline.filter_activities(filter)

    def get_entity_activities(
        self,
        entity_id: str,
        entity_type: str,
        include_comments: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> Timeline:
        return self.timeline.get_entity_activities(
            entity_id, entity_type, include_comments=include_comments, limit=limit, offset=offset
        )

    def create_comment(
        self, body: str, target_id: str, target_type: str, author_id: Optional[str] = None
    ) -> ActivityItem:
        return self.timeline.create_comment(body, target_id, target_type, author_id=author_id)

    # Relationships

    def get_company_contacts(self, company_id: str) -> CompanyContacts:
        return self.relationships.get_company_contacts(company_id)

    def get_person_opportunities(self, person_id: str) -> PersonOpportunities:
        return self.relationships.get_person_opportunities(person_id)

    def link_opportunity_to_company(
        self,
        opportunity_id: str,
        company_id: Optional[str] = None,
        point_of_contact_id: Optional[str] = None,
    ) -> Opportunity:
        return self.relationships.link_opportunity_to_company(
            opportunity_id, company_id=company_id, point_of_contact_id=point_of_contact_id
        )

    def transfer_contact_to_company(
        self, contact_id: str, to_company_id: str, from_company_id: Optional[str] = None
    ) -> Person:
        return self.relationships.transfer_contact_to_company(
            contact_id, to_company_id, from_company_id=from_company_id
        )

    def get_relationship_summary(self, entity_id: str, entity_type: str) -> RelationshipSummary:
        return self.relationships.get_relationship_summary(entity_id, entity_type)

    # Sweeps

    def find_orphaned_records(self) -> OrphanReport:
        return self.orphans.find_orphaned_records()

    def list_opportunities_by_stage(self) -> StageGroups:
        return self.pipeline.list_opportunities_by_stage()

    def get_record_counts(self) -> Dict[str, int]:
        return self.records.get_record_counts()

    # Records

    def create_contact(self, data: PersonInput) -> Person:
        return self.records.create_contact(data)

    def update_contact(self, contact_id: str, data: PersonInput) -> Person:
        return self.records.update_contact(contact_id, data)

    def create_company(self, data: CompanyInput) -> Company:
        return self.records.create_company(data)

    def update_company(self, company_id: str, data: CompanyInput) -> Company:
        return self.records.update_company(company_id, data)

    def create_opportunity(self, data: OpportunityInput) -> Opportunity:
        return self.records.create_opportunity(data)

    def update_opportunity(self, opportunity_id: str, data: OpportunityInput) -> Opportunity:
        return self.records.update_opportunity(opportunity_id, data)

    def create_task(self, data: TaskInput) -> Task:
        return self.records.create_task(data)

    def create_note(self, data: NoteInput) -> Note:
        return self.records.create_note(data)


__all__ = [
    "CRMGraph",
    "Aggregator",
    "ActivityTimelineAggregator",
    "RelationshipAggregator",
    "OrphanScanner",
    "PipelineGrouper",
    "RecordManager",
    "MergedPage",
    "Source",
    "activity_order",
    "fetch_all",
    "gather",
    "merge_sources",
]
