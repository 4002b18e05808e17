"""Protocols for dependency injection in the executor."""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class WriterProtocol(Protocol):
    """Protocol for the writer that persists export artifacts."""

    def make_data_file(
        self,
        path: str | Path,
        *,
        contents: str | None = None,
        data: Any = None,
    ) -> None:
        """Write raw contents, or data serialized as JSON, to path."""
        ...
