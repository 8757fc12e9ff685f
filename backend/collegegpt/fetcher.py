# fetcher.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .db import RecordStore, StoreUnavailable
from .records import COLLECTIONS, INTENT_TABLES, Record, to_record

log = logging.getLogger(__name__)


class FetchResult(BaseModel):
    records: List[Record] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)
    # table -> "filtered" | "unfiltered" | "filter_dropped"
    filters: Dict[str, str] = Field(default_factory=dict)


def _fetch_table(
    store: RecordStore,
    table: str,
    limit: int,
    department: Optional[str],
) -> tuple:
    spec = COLLECTIONS[table]
    mode = "unfiltered"
    rows = []
    if department and spec.department:
        rows = store.fetch(table, limit, [(col, department) for col in spec.department])
        mode = "filtered"
        if not rows:
            # Too specific; never let a filter empty the candidate set.
            mode = "filter_dropped"
    if mode != "filtered":
        rows = store.fetch(table, limit)
    return [to_record(row, spec) for row in rows], mode


def fetch_for_intent(
    store: Optional[RecordStore],
    intent: str,
    limit: int,
    department: Optional[str] = None,
) -> FetchResult:
    """
    Fetch candidate records for an intent.

    Multi-table intents fetch their tables concurrently; a failure in one
    table is recorded in `errors` and does not affect the others. Raises
    StoreUnavailable when no store is configured or every table failed.
    """
    if store is None:
        raise StoreUnavailable("record store not configured")

    tables = INTENT_TABLES.get(intent, INTENT_TABLES["people"])
    result = FetchResult()

    with ThreadPoolExecutor(max_workers=len(tables)) as pool:
        futures = {
            table: pool.submit(_fetch_table, store, table, limit, department)
            for table in tables
        }
        for table, future in futures.items():
            try:
                records, mode = future.result()
            except Exception as exc:
                log.warning("Fetch from %s failed: %s", table, exc)
                result.errors[table] = str(exc)
                continue
            result.records.extend(records)
            result.filters[table] = mode

    if len(result.errors) == len(tables):
        raise StoreUnavailable("; ".join(f"{t}: {e}" for t, e in result.errors.items()))
    return result
