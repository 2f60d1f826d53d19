"""
Decentralized identifiers and the key-id relation.

Only the generic W3C DID syntax is understood here
(``did:<method>:<method-specific-id>``); method-specific rules belong to the
DID method itself.  The validator needs just two things from an identifier:
its canonical text, and whether a key id is ``<did>#<fragment>``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# did-syntax from DID Core §3.1: method-name is lowercase alnum, the
# method-specific id is idchars or pct-encoded, segments separated by ":".
_IDCHAR = r"(?:[A-Za-z0-9._-]|%[0-9A-Fa-f]{2})"
_DID_PATTERN = re.compile(
    rf"did:(?P<method>[a-z0-9]+):(?P<msid>(?:{_IDCHAR}*:)*{_IDCHAR}+)"
)


class InvalidDidError(ValueError):
    """Raised when a string is not a syntactically valid DID."""


@dataclass(frozen=True)
class Did:
    method: str
    method_specific_id: str

    @classmethod
    def parse(cls, text: str) -> "Did":
        if not isinstance(text, str):
            raise InvalidDidError(f"DID must be a string, got {type(text).__name__}")
        match = _DID_PATTERN.fullmatch(text)
        if match is None:
            raise InvalidDidError(f"Not a valid DID: {text!r}")
        return cls(method=match.group("method"), method_specific_id=match.group("msid"))

    def to_external_form(self) -> str:
        return f"did:{self.method}:{self.method_specific_id}"

    def __str__(self) -> str:
        return self.to_external_form()


def is_fragment_of(candidate_id: str, document_id: Did) -> bool:
    """True iff *candidate_id* is ``<document_id>#<non-empty fragment>``."""
    if not isinstance(candidate_id, str):
        return False
    prefix = f"{document_id}#"
    return candidate_id.startswith(prefix) and len(candidate_id) > len(prefix)
