"""Parse raw model output into validated task records."""

import json
import re
from typing import Any

from pydantic import ValidationError as SchemaError

from ..errors import ParseError
from ..models import GeneratedTask, ParsedResponse, QuarantinedRecord


# Greedy: first "[" through last "]". Bracket balance is left to the decoder.
JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


def extract_json_array(response: str) -> str | None:
    """Extract the bracketed region from response text.

    Args:
        response: Raw model output.

    Returns:
        Substring from the first "[" to the last "]", or None.
    """
    match = JSON_ARRAY_PATTERN.search(response or "")
    if match:
        return match.group(0)
    return None


def decode_task_array(response: str) -> list[Any]:
    """Decode the JSON array embedded in a model response.

    Raises:
        ParseError: If no array is found, it does not decode, or it is not a list.
    """
    json_str = extract_json_array(response)
    if json_str is None:
        raise ParseError("No JSON array found in model response")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ParseError("Model response is not valid JSON") from e

    if not isinstance(data, list):
        raise ParseError("Model response is not a JSON array")

    return data


def _describe(error: SchemaError) -> str:
    fields = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        fields.append(location or "record")
    return "invalid fields: " + ", ".join(sorted(set(fields)))


def parse_response(response: str) -> ParsedResponse:
    """Parse and validate a model response.

    Records that fail the schema are quarantined individually; order of the
    accepted records follows the model output.

    Raises:
        ParseError: If nothing decodes, or no record passes validation.
    """
    records = decode_task_array(response)
    result = ParsedResponse()

    for index, item in enumerate(records):
        if not isinstance(item, dict):
            result.quarantined.append(
                QuarantinedRecord(index=index, raw=item, reason="record is not an object")
            )
            continue
        try:
            result.tasks.append(GeneratedTask.model_validate(item))
        except SchemaError as e:
            result.quarantined.append(
                QuarantinedRecord(index=index, raw=item, reason=_describe(e))
            )

    if not result.tasks:
        raise ParseError("No valid tasks found in model response")

    return result
