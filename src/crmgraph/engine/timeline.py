"""Activity timeline aggregation.

Tasks, notes and comments live in separate record types. The timeline view
merges them into one sequence ordered by creation time (newest first, id
ascending on ties) and applies a single pagination window over the merge.

Entity-scoped timelines go through the ``taskTarget``/``noteTarget`` join
records; comments reference their entity directly.
"""

import logging
from typing import Dict, List, Optional, Sequence

from crmgraph.engine.base import Aggregator, activity_order
from crmgraph.engine.merge import MergedPage, Source, gather, merge_sources
from crmgraph.errors import ValidationError
from crmgraph.records.models import (
    ActivityFilter,
    ActivityItem,
    ActivityType,
    RecordType,
    Timeline,
)
from crmgraph.records.normalize import to_activity_item
from crmgraph.store.base import RecordFilter, check_window

logger = logging.getLogger(__name__)

# Types merged by the global timeline; comments only appear on entity timelines
TIMELINE_TYPES = (ActivityType.TASK, ActivityType.NOTE)

ENTITY_TYPES = ("person", "company", "opportunity")

AUTHOR_FIELDS: Dict[ActivityType, str] = {
    ActivityType.TASK: "assigneeId",
    ActivityType.NOTE: "authorId",
    ActivityType.COMMENT: "authorId",
}

_RECORD_TYPES: Dict[ActivityType, RecordType] = {
    ActivityType.TASK: RecordType.TASK,
    ActivityType.NOTE: RecordType.NOTE,
    ActivityType.COMMENT: RecordType.COMMENT,
}


def _check_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_TYPES:
        raise ValidationError(
            f"entity_type must be one of {', '.join(ENTITY_TYPES)}, got '{entity_type}'",
            field="entity_type",
        )
    return entity_type


class ActivityTimelineAggregator(Aggregator):
    """Merged, paginated views over tasks, notes and comments."""

    # =========================================================================
    # Global timeline
    # =========================================================================

    def get_activities(self, filter: Optional[ActivityFilter] = None) -> Timeline:
        """Get tasks and notes as one timeline.

        Args:
            filter: Types, createdAt range, author and pagination window.
                ``status`` is ignored here; use ``filter_activities``.

        Returns:
            Timeline whose ``total_count`` is the sum of per-type matches

        Raises:
            ValidationError: Unknown type token or negative limit/offset
        """
        flt = filter or ActivityFilter()
        check_window(flt.limit, flt.offset)
        types = self._resolve_types(flt.types)

        sources = [self._record_source(t, self._predicate(t, flt)) for t in types]
        page = self._window(sources, flt.limit, flt.offset)
        return Timeline(
            activities=page.items,
            total_count=page.total_count,
            has_more=page.has_more,
            limit=flt.limit,
            offset=flt.offset,
        )

    def filter_activities(self, filter: ActivityFilter) -> List[ActivityItem]:
        """Same as ``get_activities`` plus a task status filter.

        A status filter applies to tasks only, so notes drop out of the
        result whenever ``status`` is set.
        """
        check_window(filter.limit, filter.offset)
        types = self._resolve_types(filter.types)

        status = frozenset(filter.status) if filter.status else None
        if status is not None:
            types = [t for t in types if t == ActivityType.TASK]
        if not types:
            return []

        sources = [
            self._record_source(t, self._predicate(t, filter, status=status)) for t in types
        ]
        return self._window(sources, filter.limit, filter.offset).items

    # =========================================================================
    # Entity timeline
    # =========================================================================

    def get_entity_activities(
        self,
        entity_id: str,
        entity_type: str,
        include_comments: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> Timeline:
        """Get the activities linked to one person, company or opportunity.

        Tasks and notes are found through their target records; comments
        whose ``{entity_type}Id`` equals ``entity_id`` join as a third source.
        The result is flagged ``truncated`` when a target sweep stops at
        ``scan_limit``.
        """
        _check_entity_type(entity_type)
        check_window(limit, offset)
        link_field = f"{entity_type}Id"
        linked = RecordFilter.build(equals={link_field: entity_id})

        (task_targets, tasks_truncated), (note_targets, notes_truncated) = gather(
            [
                lambda: self._fetch_all(RecordType.TASK_TARGET, linked),
                lambda: self._fetch_all(RecordType.NOTE_TARGET, linked),
            ],
            workers=self.fetch_workers,
        )
        task_ids = {t["taskId"] for t in task_targets if t.get("taskId")}
        note_ids = {t["noteId"] for t in note_targets if t.get("noteId")}
        logger.debug(
            f"{entity_type} {entity_id}: {len(task_ids)} linked task(s), "
            f"{len(note_ids)} linked note(s)"
        )

        sources = [
            self._linked_source(ActivityType.TASK, task_ids),
            self._linked_source(ActivityType.NOTE, note_ids),
        ]
        if include_comments:
            sources.append(self._record_source(ActivityType.COMMENT, linked))

        page = self._window(sources, limit, offset)
        return Timeline(
            activities=page.items,
            total_count=page.total_count,
            has_more=page.has_more,
            limit=limit,
            offset=offset,
            truncated=tasks_truncated or notes_truncated,
        )

    def create_comment(
        self,
        body: str,
        target_id: str,
        target_type: str,
        author_id: Optional[str] = None,
    ) -> ActivityItem:
        """Attach a comment to a person, company or opportunity.

        Raises:
            ValidationError: Empty body or unknown target type
            NotFoundError: Target record does not exist
        """
        _check_entity_type(target_type)
        if not body or not body.strip():
            raise ValidationError("Comment body must not be empty", field="body")

        self._require(RecordType(target_type), target_id)

        fields = {"body": body, f"{target_type}Id": target_id}
        if author_id:
            fields["authorId"] = author_id
        raw = self._create(RecordType.COMMENT, fields)
        logger.info(f"Created comment {raw['id']} on {target_type} {target_id}")
        return to_activity_item(ActivityType.COMMENT, raw)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _resolve_types(tokens: Optional[Sequence[str]]) -> List[ActivityType]:
        """Validate type tokens; none (or an empty list) means every type."""
        if not tokens:
            return list(TIMELINE_TYPES)

        resolved: List[ActivityType] = []
        for token in tokens:
            match = next((t for t in TIMELINE_TYPES if t.value == token), None)
            if match is None:
                raise ValidationError(
                    f"Unknown activity type '{token}' (expected task or note)", field="types"
                )
            if match not in resolved:
                resolved.append(match)
        return resolved

    @staticmethod
    def _predicate(
        activity_type: ActivityType,
        flt: ActivityFilter,
        status: Optional[frozenset] = None,
    ) -> RecordFilter:
        equals = {}
        if flt.author_id:
            equals[AUTHOR_FIELDS[activity_type]] = flt.author_id
        return RecordFilter.build(
            equals=equals,
            any_of={"status": status} if status is not None else None,
            created_from=flt.date_from,
            created_to=flt.date_to,
        )

    def _record_source(
        self, activity_type: ActivityType, predicate: RecordFilter
    ) -> Source[ActivityItem]:
        record_type = _RECORD_TYPES[activity_type]

        def fetch(n: int):
            page = self._search(record_type, predicate, n, 0)
            return [to_activity_item(activity_type, r) for r in page.items], page.total_count

        return Source(name=activity_type.value, fetch=fetch)

    def _linked_source(self, activity_type: ActivityType, ids: set) -> Source[ActivityItem]:
        if not ids:
            return Source(name=activity_type.value, fetch=lambda n: ([], 0))
        return self._record_source(activity_type, RecordFilter.build(ids=ids))

    def _window(
        self, sources: List[Source[ActivityItem]], limit: int, offset: int
    ) -> MergedPage[ActivityItem]:
        return merge_sources(
            sources, limit, offset, key=activity_order, workers=self.fetch_workers
        )
