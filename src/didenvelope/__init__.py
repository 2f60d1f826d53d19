"""did-envelope — authorization checks for DID document changes.

Validates that an instruction's signatures authorize it to create, update or
delete a DID document: every declared key signs the exact document bytes,
under a matching crypto suite, with well-formed material.
"""

from .version import __version__
from .config import ValidatorConfig, load_validator_config
from .envelope import DidEnvelope, validate_creation
from .failures import (
    CryptoSuiteMismatchFailure,
    EnvelopeRejectedError,
    InvalidPublicKeyId,
    InvalidSignatureFailure,
    InvalidTemporalRelationFailure,
    MalformedDocumentFailure,
    MalformedInstructionFailure,
    NoKeysFailure,
    SignatureCountFailure,
    SignatureTargetFailure,
    ValidationFailure,
    ValidationResult,
)
from .identifiers import Did
from .suites import CryptoSuite

__all__ = [
    "__version__",
    "DidEnvelope",
    "validate_creation",
    "ValidatorConfig",
    "load_validator_config",
    "ValidationResult",
    "ValidationFailure",
    "EnvelopeRejectedError",
    "MalformedDocumentFailure",
    "MalformedInstructionFailure",
    "NoKeysFailure",
    "InvalidPublicKeyId",
    "SignatureCountFailure",
    "SignatureTargetFailure",
    "CryptoSuiteMismatchFailure",
    "InvalidTemporalRelationFailure",
    "InvalidSignatureFailure",
    "CryptoSuite",
    "Did",
]
