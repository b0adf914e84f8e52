from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class FunctionCall:
    name: str
    arguments: str


@dataclass(frozen=True)
class OracleResponse:
    calls: list[FunctionCall] = field(default_factory=list)
    model_name: str = ""
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class OracleClient(Protocol):
    def complete(
        self,
        *,
        system_prompt: str,
        payload: dict[str, Any],
        function: dict[str, Any],
    ) -> OracleResponse: ...
