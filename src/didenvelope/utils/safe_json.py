"""Strict JSON parsing for signed envelope inputs.

A DID document is signed over its literal bytes but validated over its
parsed form.  ``json.loads()`` keeps the *last* value of a duplicate key, so
a document carrying two ``"publicKey"`` members could be signed over one
key set while another parser (first-wins, or error) sees a different one.
Duplicate keys are therefore rejected at every nesting level.

``NaN``, ``Infinity`` and ``-Infinity`` are not JSON and are rejected too.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Union


def _duplicate_key_guard(label: str) -> Callable[[list], dict]:
    def build_object(pairs: list[tuple[str, Any]]) -> dict:
        obj: dict = {}
        for key, value in pairs:
            if key in obj:
                raise ValueError(f"Duplicate JSON key {key!r} in {label}")
            obj[key] = value
        return obj

    return build_object


def _non_standard_constant_guard(label: str) -> Callable[[str], Any]:
    def reject(constant: str) -> Any:
        raise ValueError(f"Non-standard JSON constant {constant} in {label}")

    return reject


def safe_json_loads(s: Union[str, bytes], label: str = "input") -> Any:
    """Parse JSON text, rejecting duplicate keys and non-standard constants.

    *label* names the input (``"document"``, ``"instruction"``) in errors.
    Malformed JSON still raises :class:`json.JSONDecodeError`.
    """
    return json.loads(
        s,
        object_pairs_hook=_duplicate_key_guard(label),
        parse_constant=_non_standard_constant_guard(label),
    )
