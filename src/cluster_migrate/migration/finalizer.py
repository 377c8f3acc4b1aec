"""Post-run reconciliation: member logs, report file and warnings."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from ..cluster import ClusterClient
from ..context import RunContext
from ..errors import FinalizeError, join_bullets
from ..logging_utils import get_logger
from .reader import MigrationStatusReader

MAX_LISTED_WARNINGS = 5


def report_file_name(migration_id: str) -> str:
    return f"migration_report_{migration_id}.txt"


class MigrationFinalizer:
    def __init__(
        self,
        client: ClusterClient,
        console: Console,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.reader = MigrationStatusReader(client)
        self.console = console
        self.logger = logger or get_logger("Migration")

    def finalize(self, ctx: RunContext, migration_id: str, output_dir: Path | str) -> Optional[Path]:
        """Pull member logs, save the report and show warnings.

        Returns the report path when one was written. Any failure is raised
        as :class:`FinalizeError`.
        """

        try:
            self.save_member_logs(ctx, migration_id)
            report_path = self.save_report(ctx, migration_id, Path(output_dir))
        except FinalizeError:
            raise
        except Exception as exc:
            raise FinalizeError(exc) from exc
        self.print_warnings(ctx, migration_id, report_path)
        return report_path

    def save_member_logs(self, ctx: RunContext, migration_id: str) -> None:
        for member_id in self.client.member_ids(ctx):
            for line in self.reader.fetch_member_logs(ctx, member_id):
                self.logger.info("[%s_%s] %s", migration_id, member_id, line)

    def save_report(self, ctx: RunContext, migration_id: str, output_dir: Path) -> Optional[Path]:
        report = self.reader.fetch_report(ctx, migration_id)
        if not report:
            return None
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / report_file_name(migration_id)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(report.encode("utf-8"))
        self.logger.info("Saved migration report to %s", path)
        return path

    def print_warnings(self, ctx: RunContext, migration_id: str, report_path: Optional[Path]) -> None:
        try:
            warnings: List[str] = self.reader.fetch_warnings(ctx, migration_id)
        except Exception as exc:
            self.logger.error("Reading warnings of migration %s: %s", migration_id, exc)
            return
        if not warnings:
            return
        if len(warnings) <= MAX_LISTED_WARNINGS:
            self.console.print(escape(join_bullets(warnings)), highlight=False)
            return
        where = f" ({report_path})" if report_path is not None else ""
        self.console.print(
            f"You have {len(warnings)} warnings that you can find in your migration report{escape(where)}.",
            highlight=False,
        )
