"""Shared test doubles for the monitoring pipeline."""

import json
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from regwatch.database.connection import session_scope


class FakeFetcher:
    """Fetcher double returning scripted outcomes per URL, in call order."""

    def __init__(self, outcomes: Optional[Dict[str, Any]] = None):
        self.outcomes: Dict[str, List[Any]] = {}
        self.calls: List[str] = []
        for url, outcome in (outcomes or {}).items():
            self.script(url, outcome)

    def script(self, url: str, *outcomes: Any) -> None:
        self.outcomes.setdefault(url, []).extend(outcomes)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch(self, url: str):
        self.calls.append(url)
        outcome = self.outcomes[url].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def analysis_payload(**overrides: Any) -> str:
    payload = {
        "summary": "FDA finalized the facility registration deadline.",
        "tags": ["registration", "reporting-deadline"],
        "status": "final",
        "effectiveDate": "2025-07-01",
        "needsReview": False,
        "whoAffected": "Manufacturers and indie brands"
    }
    payload.update(overrides)
    return json.dumps(payload)


def count_rows(session_factory, model, **filters: Any) -> int:
    with session_scope(session_factory) as db:
        query = db.query(func.count(model.id))
        for name, value in filters.items():
            query = query.filter(getattr(model, name) == value)
        return query.scalar()


def all_rows(session_factory, model, **filters: Any) -> list:
    with session_scope(session_factory) as db:
        query = db.query(model)
        for name, value in filters.items():
            query = query.filter(getattr(model, name) == value)
        return query.order_by(model.id).all()
