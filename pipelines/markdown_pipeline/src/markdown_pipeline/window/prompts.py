from __future__ import annotations

import json
from typing import Any

from textchunk_contracts.validate import WINDOW_REPLY_SCHEMA, WINDOW_REQUEST_SCHEMA, load_schema

OUTPUT_FUNCTION_NAME = "output"
OUTPUT_FUNCTION_DESCRIPTION = (
    "This function drives an external loop that feeds the AI chunks of data based on the responses."
)

_INSTRUCTIONS = """You MUST convert the chunks into markdown. The output MUST be a contextual part of the text and if you don't have enough text, you must make sure the output function has the property store set to false.
If the property store is set to false in the output function, you must continue to use the same start_index but request a higher end_index than before.

Do your best to clean up headers, footers and other text that doesn't add value to the actual context of the new chunk you generate.

The input will be provided by the user. You MUST only use the function output. You should try to keep the range between next_start_index and next_end_index to 3 chunks, but a maximum of up to 6 chunks."""


def build_output_function() -> dict[str, Any]:
    """The function-calling contract the oracle must answer with."""
    return {
        "name": OUTPUT_FUNCTION_NAME,
        "description": OUTPUT_FUNCTION_DESCRIPTION,
        "parameters": load_schema(WINDOW_REPLY_SCHEMA),
    }


def render_system_prompt() -> str:
    request_properties = load_schema(WINDOW_REQUEST_SCHEMA)["properties"]
    return (
        "You are an AI receiving chunks of a document in the following format:\n"
        f"{json.dumps(request_properties, indent=2)}\n\n"
        f"{_INSTRUCTIONS}"
    )
