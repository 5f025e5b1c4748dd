# db_schema/registry.py
"""Schema registry + applier.

Applies each module's DDL and then its post-DDL migrations.
"""

from __future__ import annotations

import sqlite3
from types import ModuleType
from typing import Callable, Iterable, Mapping


# Signature compatible with LeagueRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def apply_all(
    cur: sqlite3.Cursor,
    *,
    modules: Iterable[ModuleType],
    now: str,
    schema_version: str,
    ensure_columns: EnsureColumnsFn,
) -> None:
    """Apply schema modules.

    Steps:
    1) run each module's DDL statements
    2) run migrate() for modules that define it

    executescript() would COMMIT the caller's open transaction, so the DDL is
    split into statements and executed on the cursor instead.
    """
    modules = list(modules)
    for m in modules:
        for statement in _split_statements(m.ddl(now=now, schema_version=schema_version)):
            cur.execute(statement)

    for m in modules:
        migrate = getattr(m, "migrate", None)
        if migrate is None:
            continue
        migrate(cur, ensure_columns=ensure_columns)


def _split_statements(script: str) -> list[str]:
    out: list[str] = []
    buf = ""
    for line in script.splitlines(keepends=True):
        if line.strip().startswith("--"):
            continue
        buf += line
        if sqlite3.complete_statement(buf):
            stmt = buf.strip()
            if stmt:
                out.append(stmt)
            buf = ""
    if buf.strip():
        out.append(buf.strip())
    return out
