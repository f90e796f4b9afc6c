from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class CatalogExtractionError(RuntimeError):
    """A catalog query failed; the extractor returned nothing."""

    def __init__(self, extractor: str, message: str):
        super().__init__(f"{extractor}: {message}")
        self.extractor = extractor


# Engines are connected for the batch and released on exit. A lent connection stays open and is handed
# back with the transaction state it arrived in; the autobegun read transaction is rolled back.
@contextmanager
def borrow_connection(bind: Any) -> Iterator[Any]:
    if isinstance(bind, Engine):
        with bind.connect() as conn:
            yield conn
        return

    was_in_transaction = bind.in_transaction()
    try:
        yield bind
    finally:
        if not was_in_transaction and bind.in_transaction():
            bind.rollback()


def fetch_rows(conn: Any, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
    rows = conn.execute(text(sql), dict(params or {})).mappings().all()
    return [dict(r) for r in rows]
