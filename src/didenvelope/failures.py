"""
Envelope validation outcomes — typed failure kinds and the result wrapper.

Every check performed by :class:`didenvelope.envelope.DidEnvelope` reports
through one of the failure kinds below.  Callers are expected to branch on
the *kind* (``isinstance``) and surface the carried context verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .suites import CryptoSuite


# =============================================================================
# FAILURE KINDS
# =============================================================================

@dataclass(frozen=True)
class ValidationFailure:
    """Base class for every envelope validation failure."""

    @property
    def description(self) -> str:
        return "Envelope validation failed"


@dataclass(frozen=True)
class MalformedDocumentFailure(ValidationFailure):
    """The document is not well-formed, or one of its keys is unusable."""
    reason: str
    cause: Optional[Exception] = None

    @property
    def description(self) -> str:
        return f"Malformed document: {self.reason}"


@dataclass(frozen=True)
class MalformedInstructionFailure(ValidationFailure):
    """The instruction is not well-formed, or one of its signatures is unusable."""
    reason: str
    cause: Optional[Exception] = None

    @property
    def description(self) -> str:
        return f"Malformed instruction: {self.reason}"


@dataclass(frozen=True)
class NoKeysFailure(ValidationFailure):
    """The document declares no public keys."""

    @property
    def description(self) -> str:
        return "Document declares no public keys"


@dataclass(frozen=True)
class InvalidPublicKeyId(ValidationFailure):
    """A key id is not a fragment of the document's own identifier."""
    key_id: str

    @property
    def description(self) -> str:
        return f"Public key id {self.key_id!r} is not a fragment of the document id"


@dataclass(frozen=True)
class SignatureCountFailure(ValidationFailure):
    key_count: int
    signature_count: int

    @property
    def description(self) -> str:
        return (
            f"Expected {self.key_count} signature(s), "
            f"found {self.signature_count}"
        )


@dataclass(frozen=True)
class SignatureTargetFailure(ValidationFailure):
    """Keys and signatures do not correspond one-to-one.

    Raised for a signature targeting an unknown key, two signatures
    targeting the same key, or two keys sharing an id.
    """
    target: str

    @property
    def description(self) -> str:
        return f"Signature target {self.target!r} does not match exactly one key"


@dataclass(frozen=True)
class CryptoSuiteMismatchFailure(ValidationFailure):
    target: str
    key_suite: CryptoSuite
    signature_suite: CryptoSuite

    @property
    def description(self) -> str:
        return (
            f"Key {self.target!r} uses {self.key_suite.label} but its "
            f"signature uses {self.signature_suite.label}"
        )


@dataclass(frozen=True)
class InvalidTemporalRelationFailure(ValidationFailure):
    created: datetime
    updated: datetime

    @property
    def description(self) -> str:
        return (
            f"Document claims it was updated ({self.updated.isoformat()}) "
            f"before it was created ({self.created.isoformat()})"
        )


@dataclass(frozen=True)
class InvalidSignatureFailure(ValidationFailure):
    target: str

    @property
    def description(self) -> str:
        return f"Signature for {self.target!r} does not verify against the document"


# =============================================================================
# RESULT
# =============================================================================

class EnvelopeRejectedError(Exception):
    """Raised by :meth:`ValidationResult.raise_for_failure` on a rejected envelope."""

    def __init__(self, failure: ValidationFailure):
        self.failure = failure
        super().__init__(failure.description)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating an envelope.

    Attributes:
        failure: The first failing check, or ``None`` when every check passed.
    """
    failure: Optional[ValidationFailure] = None

    @property
    def valid(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.valid

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise EnvelopeRejectedError(self.failure)


SUCCESS = ValidationResult()
