"""Helpers to load the product API request contract and validate outgoing payloads."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import ValidationError


def default_contract_path() -> Path:
    """Return the path to the bundled request contract."""
    return Path(__file__).resolve().parent / "contracts" / "product_api.json"


@lru_cache(maxsize=1)
def load_contract(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the request contract as a dictionary."""
    contract_path = Path(path) if path else default_contract_path()
    return json.loads(contract_path.read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_request(
    payload: Dict[str, Any], definition: str, contract: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Validate a request body against one named definition of the contract.

    Raises ValueError with a readable message if validation fails.
    """
    contract_dict = contract or load_contract()
    defs = contract_dict.get("$defs", {})
    if definition not in defs:
        raise KeyError(f"unknown contract definition: {definition}")
    schema = {"$defs": defs, "$ref": f"#/$defs/{definition}"}
    validator = Draft202012Validator(schema, format_checker=FormatChecker())
    errors = list(validator.iter_errors(payload))
    if errors:
        raise ValueError(f"{definition} is invalid: {format_errors(errors)}")
    return payload
