"""Pipeline grouping of opportunities by sales stage."""

import logging

from crmgraph.engine.base import Aggregator
from crmgraph.records.models import NO_STAGE, RecordType, StageGroup, StageGroups
from crmgraph.store.base import ALL

logger = logging.getLogger(__name__)


class PipelineGrouper(Aggregator):
    """Buckets opportunities by stage with per-stage value totals."""

    def list_opportunities_by_stage(self) -> StageGroups:
        """Group every opportunity by stage.

        Stages appear in first-seen order of the store's ordering. An absent
        stage is grouped under ``NO_STAGE``. Sums stay in micro-units. When the
        sweep stops at ``scan_limit`` the result is flagged ``truncated``.
        """
        raw_opps, truncated = self._fetch_all(RecordType.OPPORTUNITY, ALL)

        groups = StageGroups(truncated=truncated)
        for raw in raw_opps:
            opp = self._normalize(RecordType.OPPORTUNITY, raw)
            stage = opp.stage or NO_STAGE
            group = groups.stages.get(stage)
            if group is None:
                group = StageGroup(stage=stage)
                groups.stages[stage] = group

            group.opportunities.append(opp)
            group.count += 1
            group.total_value_micros += opp.amount_micros
            groups.total_count += 1
            groups.total_value_micros += opp.amount_micros

        logger.debug(f"Pipeline: {groups.total_count} opportunities in {len(groups.stages)} stages")
        return groups
