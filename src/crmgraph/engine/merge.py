"""Multi-source paginated merge.

Timeline, relationship and orphan views all follow the same pattern: fetch
from several independent sources, merge by a total order, then paginate.
This module holds that pattern once.

- ``gather`` runs independent fetches (sequentially or on a thread pool)
  and only returns once every fetch of the operation has finished.
- ``merge_sources`` builds one pagination window over several ordered
  sources: each source is asked for its first ``offset + limit`` items, the
  results are merged by ``key`` and sliced, and per-source totals are summed.
- ``fetch_all`` pages a single source to exhaustion, up to a bound.
"""

import heapq
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Sequence, Tuple, TypeVar

from crmgraph.store.base import Raw, SearchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def gather(calls: Sequence[Callable[[], R]], workers: int = 1) -> List[R]:
    """Run independent calls and return their results in call order.

    With ``workers <= 1`` calls run one after another and the first failure
    stops the rest. With a pool, a failure cancels calls not yet started,
    waits for running ones, then re-raises the first failure in call order.
    """
    if workers <= 1 or len(calls) <= 1:
        return [call() for call in calls]

    with ThreadPoolExecutor(max_workers=min(workers, len(calls))) as pool:
        futures: List[Future] = [pool.submit(call) for call in calls]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        if pending and any(f.exception() is not None for f in done):
            for future in pending:
                future.cancel()
            wait([f for f in pending if not f.cancelled()])

        for future in futures:
            if not future.cancelled() and future.exception() is not None:
                raise future.exception()
        return [future.result() for future in futures]


@dataclass
class Source(Generic[T]):
    """One ordered source of a merge.

    ``fetch(n)`` returns the first ``n`` items of the source in merge order,
    plus the source's total item count.
    """

    name: str
    fetch: Callable[[int], Tuple[List[T], int]]


@dataclass
class MergedPage(Generic[T]):
    """One pagination window over merged sources."""

    items: List[T] = field(default_factory=list)
    total_count: int = 0
    limit: int = 0
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total_count


def merge_sources(
    sources: Sequence[Source[T]],
    limit: int,
    offset: int,
    key: Callable[[T], Any],
    workers: int = 1,
) -> MergedPage[T]:
    """Merge ordered sources and apply one window to the merged sequence.

    Args:
        sources: Sources, each already ordered by ``key``
        limit: Window size
        offset: Items of the merged sequence to skip
        key: Sort key defining the merged total order
        workers: Fetch concurrency (see ``gather``)

    Returns:
        MergedPage with the window and the summed total count
    """
    needed = offset + limit
    results = gather([lambda s=s: s.fetch(needed) for s in sources], workers=workers)

    total = 0
    runs: List[List[T]] = []
    for source, (items, count) in zip(sources, results):
        logger.debug(f"merge source '{source.name}': {len(items)} fetched, {count} total")
        total += count
        runs.append(items)

    merged = list(heapq.merge(*runs, key=key))
    return MergedPage(
        items=merged[offset:needed],
        total_count=total,
        limit=limit,
        offset=offset,
    )


def fetch_all(
    fetch_page: Callable[[int, int], SearchPage],
    page_size: int,
    max_records: int,
) -> Tuple[List[Raw], bool]:
    """Page through one source until it is exhausted or the bound is hit.

    Args:
        fetch_page: ``fetch_page(limit, offset)`` returning one SearchPage
        page_size: Records per request
        max_records: Upper bound on records collected

    Returns:
        (records, truncated) where truncated is True when more records
        existed than ``max_records``
    """
    records: List[Raw] = []
    offset = 0
    total = 0
    while len(records) < max_records:
        request = min(page_size, max_records - len(records))
        page = fetch_page(request, offset)
        total = page.total_count
        records.extend(page.items)
        offset += len(page.items)
        if len(page.items) < request or offset >= total:
            break

    truncated = total > len(records) and len(records) >= max_records
    return records, truncated
