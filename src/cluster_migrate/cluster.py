"""Remote cluster access used by the migration commands."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Protocol, Sequence, Tuple

import hazelcast
from hazelcast.core import HazelcastJsonValue
from hazelcast.future import Future

from .config import ClusterConfig
from .context import RunContext
from .logging_utils import get_logger

Row = Tuple[Optional[str], ...]

logger = get_logger("Cluster")


class ClusterClient(Protocol):
    """What the CLI needs from the migration cluster.

    Query columns come back as JSON text (or ``None`` for SQL NULL). Every
    call is independent; no transaction spans two calls.
    """

    def execute(self, ctx: RunContext, query: str, *params: Any) -> List[Row]:
        ...

    def member_ids(self, ctx: RunContext) -> List[str]:
        ...

    def get_list(self, ctx: RunContext, name: str) -> List[str]:
        ...

    def offer(self, ctx: RunContext, queue_name: str, payload: str) -> None:
        ...

    def close(self) -> None:
        ...


def _to_json_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, HazelcastJsonValue):
        return value.to_string()
    return json.dumps(value)


def _to_text(value: Any) -> str:
    if isinstance(value, HazelcastJsonValue):
        return value.to_string()
    return str(value)


class HazelcastClusterClient:
    def __init__(self, client: hazelcast.HazelcastClient):
        self._client = client

    @classmethod
    def connect(cls, config: ClusterConfig) -> "HazelcastClusterClient":
        logger.info("Connecting to cluster %s at %s", config.name, ", ".join(config.members))
        client = hazelcast.HazelcastClient(
            cluster_name=config.name,
            cluster_members=list(config.members),
            cluster_connect_timeout=config.connect_timeout,
        )
        return cls(client)

    def execute(self, ctx: RunContext, query: str, *params: Any) -> List[Row]:
        logger.debug("Executing query: %s", query)
        pending = self._client.sql.execute(query, *params)
        result = ctx.wait(pending) if isinstance(pending, Future) else pending
        try:
            row_set = result.is_row_set()
            if isinstance(row_set, Future):
                row_set = ctx.wait(row_set)
            if not row_set:
                return []
            rows: List[Row] = []
            for row in result:
                count = row.metadata.column_count
                rows.append(tuple(_to_json_text(row.get_object_with_index(i)) for i in range(count)))
            return rows
        finally:
            result.close()

    def member_ids(self, ctx: RunContext) -> List[str]:
        ctx.raise_if_done()
        return [str(member.uuid) for member in self._client.cluster_service.get_members()]

    def get_list(self, ctx: RunContext, name: str) -> List[str]:
        items: Sequence[Any] = ctx.wait(self._client.get_list(name).get_all())
        return [_to_text(item) for item in items]

    def offer(self, ctx: RunContext, queue_name: str, payload: str) -> None:
        accepted = ctx.wait(self._client.get_queue(queue_name).offer(HazelcastJsonValue(payload)))
        if not accepted:
            raise RuntimeError(f"queue {queue_name} did not accept the request")

    def close(self) -> None:
        self._client.shutdown()
