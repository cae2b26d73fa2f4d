"""Relationship views and relationship-changing mutations.

Companies, persons and opportunities reference each other through
``companyId`` and ``pointOfContactId``. This module answers "who belongs to
what" questions over those references and performs the two mutations that
rewire them. Each mutation validates its inputs and checks that every
referenced record exists before issuing exactly one single-record update.
"""

import logging
from typing import Dict, Optional

from crmgraph.engine.base import Aggregator
from crmgraph.engine.merge import gather
from crmgraph.errors import PreconditionError, ValidationError
from crmgraph.records.models import (
    CompanyContacts,
    Opportunity,
    Person,
    PersonOpportunities,
    RecordRef,
    RecordType,
    RelationshipSummary,
)
from crmgraph.store.base import Raw, RecordFilter

logger = logging.getLogger(__name__)

SUMMARY_ENTITY_TYPES = ("company", "person")


class RelationshipAggregator(Aggregator):
    """Company/person/opportunity relationship queries and link updates."""

    # =========================================================================
    # Views
    # =========================================================================

    def get_company_contacts(self, company_id: str) -> CompanyContacts:
        """Get every person whose ``companyId`` is the given company.

        Raises:
            NotFoundError: If the company does not exist
        """
        company = self._normalize(
            RecordType.COMPANY, self._require(RecordType.COMPANY, company_id)
        )
        raw_people, truncated = self._fetch_all(
            RecordType.PERSON, RecordFilter.build(equals={"companyId": company_id})
        )

        ref = RecordRef(id=company.id, name=company.name or None)
        contacts = []
        for raw in raw_people:
            person = self._normalize(RecordType.PERSON, raw)
            if person.company is None:
                person.company = ref
            contacts.append(person)

        logger.debug(f"company {company_id}: {len(contacts)} contact(s)")
        return CompanyContacts(
            company_id=company.id,
            company_name=company.name,
            contacts=contacts,
            total_contacts=len(contacts),
            truncated=truncated,
        )

    def get_person_opportunities(self, person_id: str) -> PersonOpportunities:
        """Get every opportunity where the person is the point of contact.

        Company names are resolved from the embedded company object when the
        store returns one, otherwise with one lookup per distinct company.

        Raises:
            NotFoundError: If the person does not exist
        """
        person = self._normalize(RecordType.PERSON, self._require(RecordType.PERSON, person_id))
        raw_opps, truncated = self._fetch_all(
            RecordType.OPPORTUNITY, RecordFilter.build(equals={"pointOfContactId": person_id})
        )

        person_ref = RecordRef(id=person.id, name=person.display_name or None)
        companies: Dict[str, Optional[RecordRef]] = {}
        opportunities = []
        for raw in raw_opps:
            opp = self._normalize(RecordType.OPPORTUNITY, raw)
            if opp.company is None and opp.company_id:
                opp.company = self._company_ref(opp.company_id, companies)
            if opp.point_of_contact is None:
                opp.point_of_contact = person_ref
            opportunities.append(opp)

        return PersonOpportunities(
            person_id=person.id,
            person_name=person.display_name,
            opportunities=opportunities,
            total_opportunities=len(opportunities),
            truncated=truncated,
        )

    def get_relationship_summary(self, entity_id: str, entity_type: str) -> RelationshipSummary:
        """Count the relationships of one company or person.

        Every count is an independent count query, so counts are not
        atomic relative to each other.

        Raises:
            ValidationError: If entity_type is not company or person
            NotFoundError: If a person entity does not exist
        """
        if entity_type not in SUMMARY_ENTITY_TYPES:
            raise ValidationError(
                f"entity_type must be company or person, got '{entity_type}'",
                field="entity_type",
            )

        if entity_type == "company":
            by_company = RecordFilter.build(equals={"companyId": entity_id})
            contacts, opportunities, tasks, notes = gather(
                [
                    lambda: self._count(RecordType.PERSON, by_company),
                    lambda: self._count(RecordType.OPPORTUNITY, by_company),
                    lambda: self._count(RecordType.TASK_TARGET, by_company),
                    lambda: self._count(RecordType.NOTE_TARGET, by_company),
                ],
                workers=self.fetch_workers,
            )
            return RelationshipSummary(
                entity_id=entity_id,
                entity_type=entity_type,
                companies=0,
                contacts=contacts,
                opportunities=opportunities,
                tasks=tasks,
                activities=tasks + notes,
            )

        person = self._require(RecordType.PERSON, entity_id)
        by_person = RecordFilter.build(equals={"personId": entity_id})
        opportunities, tasks, notes = gather(
            [
                lambda: self._count(
                    RecordType.OPPORTUNITY,
                    RecordFilter.build(equals={"pointOfContactId": entity_id}),
                ),
                lambda: self._count(RecordType.TASK_TARGET, by_person),
                lambda: self._count(RecordType.NOTE_TARGET, by_person),
            ],
            workers=self.fetch_workers,
        )
        return RelationshipSummary(
            entity_id=entity_id,
            entity_type=entity_type,
            companies=1 if person.get("companyId") else 0,
            contacts=0,
            opportunities=opportunities,
            tasks=tasks,
            activities=tasks + notes,
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def link_opportunity_to_company(
        self,
        opportunity_id: str,
        company_id: Optional[str] = None,
        point_of_contact_id: Optional[str] = None,
    ) -> Opportunity:
        """Set the company and/or point of contact of an opportunity.

        Only the supplied links are written; the other one is left as is.

        Raises:
            ValidationError: If neither company_id nor point_of_contact_id is given
            NotFoundError: If the opportunity or a supplied target does not exist
        """
        if not company_id and not point_of_contact_id:
            raise ValidationError(
                "Provide company_id and/or point_of_contact_id", field="company_id"
            )

        self._require(RecordType.OPPORTUNITY, opportunity_id)
        company = self._require(RecordType.COMPANY, company_id) if company_id else None
        contact = (
            self._require(RecordType.PERSON, point_of_contact_id)
            if point_of_contact_id
            else None
        )

        fields: Raw = {}
        if company_id:
            fields["companyId"] = company_id
        if point_of_contact_id:
            fields["pointOfContactId"] = point_of_contact_id

        updated = self._normalize(
            RecordType.OPPORTUNITY, self._update(RecordType.OPPORTUNITY, opportunity_id, fields)
        )
        logger.info(f"Linked opportunity {opportunity_id}: {sorted(fields)}")

        companies: Dict[str, Optional[RecordRef]] = {}
        if company is not None:
            companies[company["id"]] = RecordRef(id=company["id"], name=company.get("name"))
        if updated.company_id:
            updated.company = self._company_ref(updated.company_id, companies)
        if updated.point_of_contact_id:
            raw_contact = contact or self._get(RecordType.PERSON, updated.point_of_contact_id)
            updated.point_of_contact = self._person_ref(
                updated.point_of_contact_id, raw_contact
            )
        return updated

    def transfer_contact_to_company(
        self,
        contact_id: str,
        to_company_id: str,
        from_company_id: Optional[str] = None,
    ) -> Person:
        """Move a contact to another company.

        When ``from_company_id`` is given, the contact's current company must
        match it or nothing is written.

        Raises:
            NotFoundError: If the contact or the target company does not exist
            PreconditionError: If the current company differs from from_company_id
        """
        if not to_company_id:
            raise ValidationError("to_company_id is required", field="to_company_id")

        from_company_id = from_company_id or None
        contact = self._require(RecordType.PERSON, contact_id)
        current = contact.get("companyId") or None
        if from_company_id is not None and from_company_id != current:
            raise PreconditionError(
                f"Contact {contact_id} belongs to company '{current}', not '{from_company_id}'",
                expected=from_company_id,
                actual=current,
            )

        company = self._require(RecordType.COMPANY, to_company_id)
        raw = self._update(RecordType.PERSON, contact_id, {"companyId": to_company_id})
        updated = self._normalize(RecordType.PERSON, raw)
        logger.info(f"Transferred contact {contact_id}: {current} -> {to_company_id}")

        updated.company = RecordRef(id=company["id"], name=company.get("name"))
        return updated

    # =========================================================================
    # Reference resolution
    # =========================================================================

    def _company_ref(
        self, company_id: str, cache: Dict[str, Optional[RecordRef]]
    ) -> Optional[RecordRef]:
        """Resolve a company link, once per distinct id; dangling links give None."""
        if company_id not in cache:
            raw = self._get(RecordType.COMPANY, company_id)
            if raw is None:
                logger.warning(f"Unresolved company link: {company_id}")
                cache[company_id] = None
            else:
                cache[company_id] = RecordRef(id=raw["id"], name=raw.get("name"))
        return cache[company_id]

    def _person_ref(self, person_id: str, raw: Optional[Raw]) -> Optional[RecordRef]:
        if raw is None:
            logger.warning(f"Unresolved point of contact link: {person_id}")
            return None
        person: Person = self._normalize(RecordType.PERSON, raw)
        return RecordRef(id=person.id, name=person.display_name or None)
