"""
Request validation issue formatting.

FastAPI validates body, path and query parameters in one pass and raises a
single RequestValidationError holding every failure. This module turns that
error list (or any pydantic error list) into flat issues:

    {"field": "body.name", "message": "...", "code": "too_small"}
"""
from collections.abc import Iterable, Sequence
from typing import Any

# FastAPI location names -> request part names used in error payloads
PART_NAMES = {
    "body": "body",
    "path": "params",
    "query": "query",
    "header": "headers",
    "cookie": "cookies",
}

ISSUE_CODES = {
    "missing": "invalid_type",
    "string_type": "invalid_type",
    "int_type": "invalid_type",
    "int_parsing": "invalid_type",
    "int_from_float": "invalid_type",
    "float_type": "invalid_type",
    "float_parsing": "invalid_type",
    "bool_type": "invalid_type",
    "bool_parsing": "invalid_type",
    "dict_type": "invalid_type",
    "model_type": "invalid_type",
    "model_attributes_type": "invalid_type",
    "list_type": "invalid_type",
    "uuid_type": "invalid_type",
    "datetime_type": "invalid_type",
    "none_required": "invalid_type",
    "string_too_short": "too_small",
    "too_short": "too_small",
    "greater_than": "too_small",
    "greater_than_equal": "too_small",
    "string_too_long": "too_big",
    "too_long": "too_big",
    "less_than": "too_big",
    "less_than_equal": "too_big",
    "string_pattern_mismatch": "invalid_format",
    "uuid_parsing": "invalid_format",
    "datetime_parsing": "invalid_format",
    "datetime_from_date_parsing": "invalid_format",
    "value_error": "invalid_format",
    "json_invalid": "invalid_format",
    "enum": "invalid_value",
    "literal_error": "invalid_value",
    "extra_forbidden": "unrecognized_keys",
}


def issue_code(error_type: str) -> str:
    """Map a pydantic error type to a client-facing issue code."""
    if error_type in ISSUE_CODES:
        return ISSUE_CODES[error_type]
    # custom errors raised with an issue code as their type
    if error_type in set(ISSUE_CODES.values()):
        return error_type
    return "custom"


def _field_path(loc: Sequence[Any], part: str | None) -> list[str]:
    segments = [str(segment) for segment in loc]
    if part is not None:
        return [part, *segments]
    if segments and segments[0] in PART_NAMES:
        segments[0] = PART_NAMES[segments[0]]
    return segments


def issues_from_errors(
    errors: Iterable[dict[str, Any]],
    part: str | None = None,
) -> list[dict[str, str]]:
    """
    Normalize pydantic errors into field issues.

    ``part`` prefixes every path when the errors come from validating a
    single request part directly; FastAPI errors already carry their part
    as the first location segment.

    All ``extra_forbidden`` errors of one object collapse into a single
    ``unrecognized_keys`` issue on the object's path naming every key.
    """
    issues: list[dict[str, str]] = []
    unrecognized: dict[str, list[str]] = {}

    for error in errors:
        path = _field_path(error.get("loc", ()), part)

        if error.get("type") == "extra_forbidden":
            parent = ".".join(path[:-1])
            if parent not in unrecognized:
                unrecognized[parent] = []
                # placeholder keeps the issue where the first extra key appeared
                issues.append({"field": parent, "message": "", "code": "unrecognized_keys"})
            unrecognized[parent].append(path[-1] if path else "")
            continue

        issues.append(
            {
                "field": ".".join(path),
                "message": error.get("msg", "Invalid value"),
                "code": issue_code(error.get("type", "")),
            }
        )

    for issue in issues:
        if issue["code"] == "unrecognized_keys" and not issue["message"]:
            keys = unrecognized[issue["field"]]
            issue["message"] = "Unrecognized key(s) in object: " + ", ".join(f"'{k}'" for k in keys)

    return issues
