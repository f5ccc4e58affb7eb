"""Validation of the JSON bodies posted by the dashboard pages."""

from __future__ import annotations

from enum import Enum
from typing import Any

from .config import SEARCH_TERM_LENGTH


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


REQUIRED_FIELDS = {
    "fieldOne": "Field One is required",
    "fieldTwo": "Field Two is required",
    "fieldThree": "Field Three is required",
}


def validate_submission(body: Any) -> tuple[dict[str, Any], dict[str, str]]:
    """
    Check a dashboard form submission.

    Returns the cleaned payload and a mapping of field name to error message;
    the payload is only meaningful when the error mapping is empty.
    """

    if not isinstance(body, dict):
        return {}, {"_": "Invalid data"}

    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    for name, message in REQUIRED_FIELDS.items():
        value = body.get(name)
        if not isinstance(value, str) or not value.strip():
            errors[name] = message
        else:
            cleaned[name] = value

    save_info = body.get("saveInfo", False)
    if not isinstance(save_info, bool):
        errors["saveInfo"] = "Save Information must be true or false"
    else:
        cleaned["saveInfo"] = save_info

    gender = body.get("gender", Gender.MALE.value)
    try:
        cleaned["gender"] = Gender(gender).value
    except ValueError:
        allowed = ", ".join(g.value for g in Gender)
        errors["gender"] = f"Gender must be one of: {allowed}"

    return cleaned, errors


def utf16_length(text: str) -> int:
    """Length as the browser counts it (`String.length`, UTF-16 code units)."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def validate_search_term(body: Any) -> str | None:
    """
    Return the search term if it is a string of exactly the required length,
    counted in UTF-16 code units so the page and the server agree on
    characters outside the Basic Multilingual Plane.
    """

    if not isinstance(body, dict):
        return None
    term = body.get("searchTerm")
    if not isinstance(term, str) or utf16_length(term) != SEARCH_TERM_LENGTH:
        return None
    return term
