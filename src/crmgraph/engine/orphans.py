"""Orphaned record detection.

Sweeps companies, persons, opportunities and unassigned tasks and reports
the records that miss an expected relationship. The sweep is bounded by the
aggregator's ``scan_limit`` per record type; when a bound is hit the report
is flagged ``truncated`` since cross-checks may then be incomplete.
"""

import logging
from collections import Counter

from crmgraph.engine.base import Aggregator
from crmgraph.engine.merge import gather
from crmgraph.records.models import (
    OrphanedCompany,
    OrphanedContact,
    OrphanedOpportunity,
    OrphanedTask,
    OrphanReport,
    RecordType,
)
from crmgraph.store.base import ALL, RecordFilter

logger = logging.getLogger(__name__)

UNASSIGNED = RecordFilter.build(equals={"assigneeId": None})


class OrphanScanner(Aggregator):
    """Finds companies, contacts, opportunities and tasks missing a link."""

    def find_orphaned_records(self) -> OrphanReport:
        """Scan the store for orphaned records.

        Categories:
        - companies no person references (with their opportunity count)
        - persons without a company (with their point-of-contact opportunity count)
        - opportunities with neither a company nor a point of contact
        - tasks without an assignee
        """
        (companies, c_trunc), (people, p_trunc), (opps, o_trunc), (tasks, t_trunc) = gather(
            [
                lambda: self._fetch_all(RecordType.COMPANY, ALL),
                lambda: self._fetch_all(RecordType.PERSON, ALL),
                lambda: self._fetch_all(RecordType.OPPORTUNITY, ALL),
                lambda: self._fetch_all(RecordType.TASK, UNASSIGNED),
            ],
            workers=self.fetch_workers,
        )

        persons = [self._normalize(RecordType.PERSON, r) for r in people]
        opportunities = [self._normalize(RecordType.OPPORTUNITY, r) for r in opps]

        employers = {p.company_id for p in persons if p.company_id}
        opps_by_company = Counter(o.company_id for o in opportunities if o.company_id)
        opps_by_contact = Counter(
            o.point_of_contact_id for o in opportunities if o.point_of_contact_id
        )

        report = OrphanReport(truncated=c_trunc or p_trunc or o_trunc or t_trunc)

        for raw in companies:
            company = self._normalize(RecordType.COMPANY, raw)
            if company.id not in employers:
                report.companies.append(
                    OrphanedCompany(
                        id=company.id,
                        name=company.name,
                        opportunity_count=opps_by_company[company.id],
                    )
                )

        for person in persons:
            if not person.company_id:
                report.contacts.append(
                    OrphanedContact(
                        id=person.id,
                        name=person.display_name or person.email or person.id,
                        opportunity_count=opps_by_contact[person.id],
                    )
                )

        for opp in opportunities:
            if not opp.company_id and not opp.point_of_contact_id:
                report.opportunities.append(
                    OrphanedOpportunity(id=opp.id, name=opp.name, stage=opp.stage)
                )

        for raw in tasks:
            task = self._normalize(RecordType.TASK, raw)
            report.tasks.append(OrphanedTask(id=task.id, title=task.title, status=task.status))

        logger.info(
            f"Orphan scan: {len(report.companies)} companies, {len(report.contacts)} contacts, "
            f"{len(report.opportunities)} opportunities, {len(report.tasks)} tasks"
        )
        return report
