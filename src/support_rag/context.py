# src/support_rag/context.py
"""Per-request execution context."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ExecutionContext:
    """Scratch state and settings owned by exactly one workflow run.

    `configuration` holds per-request overrides (e.g. `use_multi_hop`,
    `max_tokens`). `shared_data` is written by stages, including sub-queries
    running concurrently; under asyncio every write to a distinct key is
    atomic, so a plain dict is sufficient.
    """

    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    configuration: Dict[str, Any] = field(default_factory=dict)
    shared_data: Dict[str, Any] = field(default_factory=dict)
    max_retries: int = 3
    timeout_seconds: float = 30.0
    debug: bool = False

    def get_config(self, key: str, default: Any = None) -> Any:
        return self.configuration.get(key, default)

    def has_config(self, key: str) -> bool:
        return key in self.configuration

    def get_shared(self, key: str, default: Any = None) -> Any:
        return self.shared_data.get(key, default)

    def set_shared(self, key: str, value: Any) -> None:
        self.shared_data[key] = value

    def has_shared(self, key: str) -> bool:
        return key in self.shared_data

    def create_child(self) -> "ExecutionContext":
        """New context with the same settings and an empty shared-data map."""
        return ExecutionContext(
            execution_id=str(uuid.uuid4()),
            session_id=self.session_id,
            user_id=self.user_id,
            configuration=dict(self.configuration),
            shared_data={},
            max_retries=self.max_retries,
            timeout_seconds=self.timeout_seconds,
            debug=self.debug,
        )
