"""
Parsing of the JSON printed by the command line backend.

Depending on its version and flags the CLI prints either a single result
object or an array of streamed messages whose final element has
``"type": "result"``. Both shapes are resolved here, once, into the same
:class:`GenerationResult`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from vc_ai_commits.llm.results import ErrorKind, GenerationResult


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

TYPE_FIELD = "type"
RESULT_TYPE = "result"
ERROR_FIELD = "is_error"
RESULT_FIELD = "result"


def _select_result_object(payload: Any) -> Optional[Dict[str, Any]]:
    """Return the object carrying the final result, or None for an array without one."""
    if isinstance(payload, dict):
        return payload
    for element in payload:
        if isinstance(element, dict) and element.get(TYPE_FIELD) == RESULT_TYPE:
            return element
    return None


def parse_cli_response(output: str) -> GenerationResult:
    """Normalise CLI output into a :class:`GenerationResult`.

    - Unparsable JSON, or JSON that is neither an object nor an array,
      is ``MALFORMED_RESPONSE``.
    - An array without a ``"type": "result"`` element is ``NO_RESULT_IN_ARRAY``.
    - A missing ``result`` field is ``MISSING_RESULT``, whatever ``is_error`` says.
    - ``is_error: true`` is ``REPORTED_ERROR`` with the result text as detail.
    """
    try:
        payload = json.loads(output)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("Failed to parse CLI response: %s", exc)
        return GenerationResult.failure(
            ErrorKind.MALFORMED_RESPONSE, f"Failed to parse CLI response: {exc}"
        )

    if not isinstance(payload, (dict, list)):
        return GenerationResult.failure(
            ErrorKind.MALFORMED_RESPONSE,
            f"Unexpected CLI response of type {type(payload).__name__}",
        )

    selected = _select_result_object(payload)
    if selected is None:
        return GenerationResult.failure(
            ErrorKind.NO_RESULT_IN_ARRAY, "No result message in CLI response"
        )

    is_error = selected.get(ERROR_FIELD)
    if not isinstance(is_error, bool):
        is_error = False
    result = selected.get(RESULT_FIELD)
    if isinstance(result, (int, float)) and not isinstance(result, bool):
        result = str(result)
    if not isinstance(result, str):
        return GenerationResult.failure(ErrorKind.MISSING_RESULT, "No result in CLI response")

    if is_error:
        return GenerationResult.failure(ErrorKind.REPORTED_ERROR, result)
    return GenerationResult.success(result)
