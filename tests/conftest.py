import json
import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pytest

from cluster_migrate.context import RunContext
from cluster_migrate.pipeline.rendering import StageRenderer

_FIELD = re.compile(r"JSON_QUERY\(this, '\$\.(\w+)(?:\[(\d+)\])?'\)")


class FakeClusterClient:
    """In-memory stand-in for the migration cluster.

    ``records`` maps a migration id to a status record, or to a list of
    records. With a list, every whole-status read after the first moves to
    the next record and the last one sticks; ``None`` entries mean the record
    is not visible yet.
    """

    def __init__(
        self,
        records: Optional[Dict[str, Any]] = None,
        members: Optional[List[str]] = None,
        lists: Optional[Dict[str, List[str]]] = None,
        failing: Optional[Dict[str, Exception]] = None,
    ):
        self.records = records or {}
        self.members = members if members is not None else ["member-1"]
        self.lists = lists or {}
        self.failing = failing or {}
        self.queries: List[str] = []
        self.offers: List[tuple] = []
        self.closed = False
        self._seen: Dict[str, bool] = {}

    def _record(self, key: str, advance: bool) -> Any:
        value = self.records.get(key)
        if not isinstance(value, list):
            return value
        if advance and self._seen.get(key) and len(value) > 1:
            value.pop(0)
        if advance:
            self._seen[key] = True
        return value[0] if value else None

    def execute(self, ctx: RunContext, query: str, *params: Any) -> List[tuple]:
        ctx.raise_if_done()
        self.queries.append(query)
        for fragment, exc in self.failing.items():
            if fragment in query:
                raise exc
        if query.startswith("CREATE MAPPING"):
            return []
        key = params[0]
        if query.startswith("SELECT this"):
            record = self._record(key, advance=False)
            return [] if record is None else [(json.dumps(record),)]
        fields = _FIELD.findall(query)
        record = self._record(key, advance=fields == [("status", "")])
        if record is None:
            return []
        row = []
        for name, index in fields:
            value = record.get(name)
            if index and value is not None:
                position = int(index)
                value = value[position] if position < len(value) else None
            row.append(None if value is None else json.dumps(value))
        return [tuple(row)]

    def member_ids(self, ctx: RunContext) -> List[str]:
        ctx.raise_if_done()
        return list(self.members)

    def get_list(self, ctx: RunContext, name: str) -> List[str]:
        ctx.raise_if_done()
        if name in self.failing:
            raise self.failing[name]
        return list(self.lists.get(name, []))

    def offer(self, ctx: RunContext, queue_name: str, payload: str) -> None:
        ctx.raise_if_done()
        self.offers.append((queue_name, json.loads(payload)))

    def close(self) -> None:
        self.closed = True


class RecordingRenderer(StageRenderer):
    def __init__(self):
        self.events: List[tuple] = []

    def pending(self, index, total, stage):
        self.events.append(("pending", index, stage.progress_message))

    @contextmanager
    def running(self, index, total, stage, status):
        self.events.append(("running", index, stage.progress_message))
        yield

    def success(self, index, total, stage):
        self.events.append(("success", index, stage.success_message))

    def failure(self, index, total, stage, error, ignored):
        self.events.append(("ignored" if ignored else "failure", index, str(error)))

    def of_kind(self, kind: str) -> List[tuple]:
        return [event for event in self.events if event[0] == kind]


def item(name: str, status: str, error: str = "", type_: str = "IMap") -> Dict[str, Any]:
    return {
        "name": name,
        "type": type_,
        "status": status,
        "completionPercentage": 100.0 if status == "COMPLETE" else 10.0,
        "error": error,
    }


def record(status: str, migrations=None, **extra: Any) -> Dict[str, Any]:
    payload = {
        "status": status,
        "migrations": migrations or [],
        "errors": [],
        "warnings": [],
        "report": "",
        "completionPercentage": 25.0,
        "remainingTime": 90000,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def ctx() -> RunContext:
    return RunContext.background()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
