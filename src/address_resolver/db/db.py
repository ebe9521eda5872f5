from pathlib import Path

import duckdb

MEMORY = ":memory:"


def open_connection(db_path: Path | str, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """Connect to a DuckDB file, creating its parent directory if needed."""
    if str(db_path) == MEMORY:
        return duckdb.connect(MEMORY)
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)
