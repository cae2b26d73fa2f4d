"""Single-record create and update operations.

Callers pass flat input models; the mapping layer turns them into the CRM's
nested record fields. Reference fields (``companyId``, ``pointOfContactId``)
must resolve before anything is written, and every operation issues at most
one store write.
"""

import logging
from typing import Dict

from crmgraph.engine.base import Aggregator
from crmgraph.engine.merge import gather
from crmgraph.errors import ValidationError
from crmgraph.records.mapping import (
    Fields,
    company_fields,
    note_fields,
    opportunity_fields,
    person_fields,
    task_fields,
)
from crmgraph.records.models import (
    Company,
    CompanyInput,
    Note,
    NoteInput,
    Opportunity,
    OpportunityInput,
    Person,
    PersonInput,
    RecordType,
    Task,
    TaskInput,
)

logger = logging.getLogger(__name__)

# Reference fields checked before a write, with the record type they point at
LINK_FIELDS: Dict[str, RecordType] = {
    "companyId": RecordType.COMPANY,
    "pointOfContactId": RecordType.PERSON,
}


class RecordManager(Aggregator):
    """Creates and updates contacts, companies, opportunities, tasks and notes."""

    # =========================================================================
    # Contacts
    # =========================================================================

    def create_contact(self, data: PersonInput) -> Person:
        """Create a contact.

        Raises:
            ValidationError: If first_name or last_name is missing
            NotFoundError: If company_id does not resolve
        """
        return self._create_record(RecordType.PERSON, person_fields(data))

    def update_contact(self, contact_id: str, data: PersonInput) -> Person:
        """Update the supplied fields of a contact; omitted fields stay as they are."""
        return self._update_record(RecordType.PERSON, contact_id, person_fields(data, partial=True))

    # =========================================================================
    # Companies
    # =========================================================================

    def create_company(self, data: CompanyInput) -> Company:
        return self._create_record(RecordType.COMPANY, company_fields(data))

    def update_company(self, company_id: str, data: CompanyInput) -> Company:
        return self._update_record(
            RecordType.COMPANY, company_id, company_fields(data, partial=True)
        )

    # =========================================================================
    # Opportunities
    # =========================================================================

    def create_opportunity(self, data: OpportunityInput) -> Opportunity:
        """Create an opportunity.

        Raises:
            ValidationError: If name is missing
            NotFoundError: If company_id or point_of_contact_id does not resolve
        """
        return self._create_record(RecordType.OPPORTUNITY, opportunity_fields(data))

    def update_opportunity(self, opportunity_id: str, data: OpportunityInput) -> Opportunity:
        return self._update_record(
            RecordType.OPPORTUNITY, opportunity_id, opportunity_fields(data, partial=True)
        )

    # =========================================================================
    # Activities
    # =========================================================================

    def create_task(self, data: TaskInput) -> Task:
        """Create a task (status defaults to TODO)."""
        return self._create_record(RecordType.TASK, task_fields(data))

    def create_note(self, data: NoteInput) -> Note:
        return self._create_record(RecordType.NOTE, note_fields(data))

    # =========================================================================
    # Counts
    # =========================================================================

    def get_record_counts(self) -> Dict[str, int]:
        """Number of stored records per record type, one count query each."""
        record_types = list(RecordType)
        counts = gather(
            [lambda rt=rt: self._count(rt) for rt in record_types],
            workers=self.fetch_workers,
        )
        return {rt.value: n for rt, n in zip(record_types, counts)}

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_links(self, fields: Fields) -> None:
        for field, target_type in LINK_FIELDS.items():
            if fields.get(field):
                self._require(target_type, fields[field])

    def _create_record(self, record_type: RecordType, fields: Fields):
        self._check_links(fields)
        raw = self._create(record_type, fields)
        logger.info(f"Created {record_type.value} {raw['id']}")
        return self._normalize(record_type, raw)

    def _update_record(self, record_type: RecordType, record_id: str, fields: Fields):
        if not fields:
            raise ValidationError(f"No {record_type.value} fields to update", field="fields")

        self._require(record_type, record_id)
        self._check_links(fields)
        raw = self._update(record_type, record_id, fields)
        logger.info(f"Updated {record_type.value} {record_id}: {sorted(fields)}")
        return self._normalize(record_type, raw)
