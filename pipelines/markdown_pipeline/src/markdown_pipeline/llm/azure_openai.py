from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from markdown_pipeline.errors import TransportError
from markdown_pipeline.llm.client import FunctionCall, OracleResponse


def deployment_for_model(model: str) -> str:
    """Azure deployment names cannot contain '.' or ':' ("gpt-3.5-turbo" -> "gpt-35-turbo")."""
    return model.replace(".", "").replace(":", "")


@dataclass
class AzureOpenAIClient:
    """
    Azure OpenAI chat completions client using function calling.

    - POST {endpoint}/openai/deployments/{deployment}/chat/completions?api-version=...
    - Authorization: api-key header
    - The single declared function is forced via `function_call`.

    No retries: auth, network and quota faults surface immediately as TransportError.
    """

    api_key: str
    endpoint: str
    model: str = "gpt-4"
    deployment: str | None = None
    api_version: str = "2023-07-01-preview"
    timeout_s: float = 120.0
    http2: bool = True
    transport: httpx.BaseTransport | None = field(default=None, repr=False)
    _client: httpx.Client | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> "AzureOpenAIClient":
        if self._client is None:
            self._client = self._new_client()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _new_client(self) -> httpx.Client:
        timeout = httpx.Timeout(self.timeout_s, connect=self.timeout_s, read=self.timeout_s, write=self.timeout_s)
        if self.transport is not None:
            return httpx.Client(timeout=timeout, transport=self.transport)
        return httpx.Client(timeout=timeout, http2=self.http2)

    @property
    def url(self) -> str:
        deployment = self.deployment or deployment_for_model(self.model)
        return f"{self.endpoint.rstrip('/')}/openai/deployments/{deployment}/chat/completions"

    def complete(
        self,
        *,
        system_prompt: str,
        payload: dict[str, Any],
        function: dict[str, Any],
    ) -> OracleResponse:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": json.dumps(payload)},
            ],
            "functions": [function],
            "function_call": {"name": function["name"]},
        }
        headers = {"api-key": self.api_key, "Content-Type": "application/json"}

        client = self._client
        owns_client = client is None
        if client is None:
            client = self._new_client()
        try:
            resp = client.post(url=self.url, params={"api-version": self.api_version}, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(f"chat completion failed: {exc!r}", details={"url": self.url}) from exc
        finally:
            if owns_client:
                client.close()

        if resp.status_code >= 400:
            raise TransportError(
                f"Azure OpenAI error {resp.status_code} from {self.url}",
                raw=resp.text,
                details={"status": resp.status_code},
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError("chat completion returned a non-JSON body", raw=resp.text) from exc
        if not isinstance(data, dict):
            raise TransportError("chat completion returned an unexpected body", raw=resp.text)

        choices = data.get("choices", [])
        if not isinstance(choices, list):
            raise TransportError("chat completion choices is not a list", raw=resp.text)

        calls: list[FunctionCall] = []
        for choice in choices:
            message = choice.get("message") if isinstance(choice, dict) else None
            if not isinstance(message, dict):
                raise TransportError("chat completion choice carries no message object", raw=resp.text)
            call = message.get("function_call")
            if not isinstance(call, dict):
                raise TransportError(
                    "chat completion choice carries no function call",
                    raw=str(message.get("content") or ""),
                    details={"finish_reason": choice.get("finish_reason")},
                )
            name, arguments = call.get("name"), call.get("arguments")
            if not isinstance(name, str) or not isinstance(arguments, str):
                raise TransportError("function call name and arguments must be strings", raw=resp.text)
            calls.append(FunctionCall(name=name, arguments=arguments))

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return OracleResponse(
            calls=calls,
            model_name=data.get("model") or self.model,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
