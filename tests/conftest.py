"""Shared fixtures: a scripted oracle and a tokenizer that needs no downloads."""

from __future__ import annotations

import json
from typing import Any

import pytest

from markdown_pipeline import settings as settings_module
from markdown_pipeline.llm.client import FunctionCall, OracleResponse


def reply(
    *,
    finished: bool = False,
    store: bool = False,
    markdown: str = "",
    next_start: int = -1,
    next_end: int = -1,
) -> str:
    """Raw `output` arguments as the oracle would send them."""
    return json.dumps(
        {
            "finished": finished,
            "store": store,
            "markdown": markdown,
            "next_start_index": next_start,
            "next_end_index": next_end,
        }
    )


FINISHED = reply(finished=True)


class ScriptedOracle:
    """
    Plays back a fixed list of steps, one per call:
    - str: arguments of a single `output` function call
    - OracleResponse: returned as-is
    - Exception: raised
    """

    def __init__(self, steps: list[Any]):
        self.steps = list(steps)
        self.requests: list[dict[str, Any]] = []
        self.functions: list[dict[str, Any]] = []
        self.system_prompts: list[str] = []

    def complete(self, *, system_prompt: str, payload: dict[str, Any], function: dict[str, Any]) -> OracleResponse:
        self.system_prompts.append(system_prompt)
        self.requests.append(payload)
        self.functions.append(function)
        if not self.steps:
            raise AssertionError(f"oracle called more times than scripted ({len(self.requests)})")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        if isinstance(step, OracleResponse):
            return step
        return OracleResponse(calls=[FunctionCall(name="output", arguments=step)], model_name="scripted")


class CharEncoding:
    """One token per character."""

    def encode(self, text: str) -> list[int]:
        return [ord(ch) for ch in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)


@pytest.fixture
def scripted_oracle():
    return ScriptedOracle


@pytest.fixture
def char_encoding() -> CharEncoding:
    return CharEncoding()


@pytest.fixture
def segments() -> list[str]:
    return [f"segment {i}" for i in range(5)]


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Settings are cached per process; isolate each test from the environment."""
    for var in ("AZURE_OPENAI_KEY", "AZURE_OPENAI_ENDPOINT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(settings_module, "_settings", None)
    yield
    monkeypatch.setattr(settings_module, "_settings", None)
