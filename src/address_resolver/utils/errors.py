from typing import Any
from pydantic import ValidationError


class DatasetUnavailableError(Exception):
    """A ground-truth dataset could not be loaded. Fatal at start-up."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Dataset '{source}' unavailable: {reason}")


class DataValidationError(DatasetUnavailableError):
    def __init__(self, source: str, errors: list[dict[str, Any]], original: ValidationError | None = None):
        self.errors = errors
        self.original = original
        super().__init__(source, f"validation failed for {len(errors)} records")

    def summary(self, limit: int = 5) -> str:
        """Human-readable summary of the first few validation issues."""
        lines = []
        for err in self.errors[:limit]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            lines.append(f"- {loc}: {err.get('msg')} ({err.get('type')})")
        if len(self.errors) > limit:
            lines.append(f"... ({len(self.errors) - limit} more)")
        return "\n".join(lines)


class StatusTransitionError(Exception):
    def __init__(self, row_id: Any, current: Any, requested: Any):
        self.row_id = row_id
        self.current = current
        self.requested = requested
        super().__init__(f"Row {row_id}: cannot move from {current} to {requested}")


class ColumnDetectionError(Exception):
    def __init__(self, columns: list[str]):
        self.columns = columns
        super().__init__(f"No address columns found among {columns}")
