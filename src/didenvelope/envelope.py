"""
DID envelope validation — the instruction/document pair.

An envelope couples a DID *document* (the keys bound to an identifier) with
an *instruction* (the action requested and one signature per key).  The
envelope is accepted only when the instruction is structurally and
cryptographically authorized by every key the document declares.

Checks run in a fixed order and stop at the first failure:

 1. document parses                      → MalformedDocumentFailure
 2. instruction parses                   → MalformedInstructionFailure
 3. document declares at least one key   → NoKeysFailure
 4. every key's material and suite       → MalformedDocumentFailure
 5. every key id is ``<did>#fragment``   → InvalidPublicKeyId
 6. every signature's material and suite → MalformedInstructionFailure
 7. no repeated key id or target         → SignatureTargetFailure
 8. one signature per key, none orphaned → SignatureCountFailure,
                                           SignatureTargetFailure
 9. key and signature suites agree       → CryptoSuiteMismatchFailure
10. created <= updated                   → InvalidTemporalRelationFailure
11. every signature verifies             → InvalidSignatureFailure

Signatures cover the document exactly as supplied.  The document is never
re-serialized: a ``str`` is encoded as UTF-8, ``bytes`` are used verbatim.
"""

from __future__ import annotations

import enum
import importlib.resources
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional, Union

from jsonschema import ValidationError, validate

from .config import ValidatorConfig
from .encoding import EncodedMaterial, EncodingError, MaterialRole, resolve_material
from .failures import (
    SUCCESS,
    CryptoSuiteMismatchFailure,
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
from .identifiers import Did, InvalidDidError, is_fragment_of
from .suites import CryptoSuite, InvalidKeyMaterial, UnknownSuite, VerifyingKey
from .utils.safe_json import safe_json_loads

logger = logging.getLogger("didenvelope.envelope")

Text = Union[str, bytes]


class Action(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# =============================================================================
# PARSED FORMS
# =============================================================================

@dataclass(frozen=True)
class KeyDescriptor:
    """A ``publicKey`` entry with its material decoded and suite resolved."""
    id: str
    suite_tag: str
    controller: str
    material: EncodedMaterial
    suite: CryptoSuite
    verifying_key: VerifyingKey


@dataclass(frozen=True)
class SignatureDescriptor:
    """A ``signatures`` entry with its material decoded and suite resolved."""
    target_id: str
    suite_tag: str
    material: EncodedMaterial
    suite: CryptoSuite


@dataclass(frozen=True)
class ParsedDocument:
    did: Did
    public_keys: list
    created: Optional[datetime]
    updated: Optional[datetime]
    canonical_bytes: bytes


@dataclass(frozen=True)
class ParsedInstruction:
    action: Action
    signatures: list


# =============================================================================
# HELPERS
# =============================================================================

@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    """Load a bundled JSON schema by file name."""
    ref = importlib.resources.files("didenvelope").joinpath("schemas", name)
    return json.loads(ref.read_text(encoding="utf-8"))


def _as_bytes(text: Text) -> bytes:
    if isinstance(text, bytes):
        return text
    if isinstance(text, str):
        return text.encode("utf-8")
    raise TypeError(f"Expected str or bytes, got {type(text).__name__}")


def _size(text: Text) -> str:
    unit = "bytes" if isinstance(text, bytes) else "chars"
    return f"{len(text)} {unit}"


def _schema_error(e: ValidationError) -> str:
    msg = e.message
    if e.path:
        msg += f" (at {'.'.join(str(p) for p in e.path)})"
    return msg


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# =============================================================================
# ENVELOPE
# =============================================================================

class DidEnvelope:
    """An (instruction, document) pair awaiting validation.

    Construction never fails; all problems are reported by the
    ``validate*`` methods as a :class:`~didenvelope.failures.ValidationResult`.
    Validation is pure, so the same envelope always yields the same result.
    """

    def __init__(
        self,
        instruction: Text,
        document: Text,
        config: Optional[ValidatorConfig] = None,
    ):
        self.instruction = instruction
        self.document = document
        self.config = config or ValidatorConfig()

    def __repr__(self) -> str:
        return (
            f"DidEnvelope(instruction={_size(self.instruction)}, "
            f"document={_size(self.document)})"
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def validate_creation(self) -> ValidationResult:
        """Validate an envelope whose instruction requests ``create``."""
        return self._run(Action.CREATE)

    def validate(self) -> ValidationResult:
        """Validate an envelope for whichever action its instruction declares."""
        return self._run(None)

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    def _run(self, expected: Optional[Action]) -> ValidationResult:
        failure = self._check(expected)
        if failure is None:
            return SUCCESS
        logger.debug("Envelope rejected: %s", failure.description)
        return ValidationResult(failure=failure)

    def _check(self, expected: Optional[Action]) -> Optional[ValidationFailure]:
        document = self._parse_document()
        if isinstance(document, ValidationFailure):
            return document

        instruction = self._parse_instruction()
        if isinstance(instruction, ValidationFailure):
            return instruction
        if expected is not None and instruction.action is not expected:
            return MalformedInstructionFailure(
                f"Expected action {expected.value!r}, got {instruction.action.value!r}"
            )

        if not document.public_keys:
            return NoKeysFailure()

        keys = self._resolve_keys(document)
        if isinstance(keys, ValidationFailure):
            return keys

        for key in keys:
            if not is_fragment_of(key.id, document.did):
                return InvalidPublicKeyId(key.id)

        signatures = self._resolve_signatures(instruction)
        if isinstance(signatures, ValidationFailure):
            return signatures

        pairs = _pair_up(keys, signatures)
        if isinstance(pairs, ValidationFailure):
            return pairs

        for key, signature in pairs:
            if key.suite is not signature.suite:
                return CryptoSuiteMismatchFailure(
                    target=key.id,
                    key_suite=key.suite,
                    signature_suite=signature.suite,
                )

        if document.created is not None and document.updated is not None:
            if document.created > document.updated:
                return InvalidTemporalRelationFailure(
                    created=document.created, updated=document.updated
                )

        for key, signature in pairs:
            if not key.suite.verify(
                key.verifying_key, document.canonical_bytes, signature.material.raw
            ):
                return InvalidSignatureFailure(target=key.id)

        return None

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _load_json(self, raw: bytes, label: str) -> Any:
        if len(raw) > self.config.max_input_bytes:
            raise ValueError(
                f"Input is {len(raw)} bytes, limit is {self.config.max_input_bytes}"
            )
        if self.config.strict_json:
            return safe_json_loads(raw, label)
        return json.loads(raw)

    def _parse_document(self) -> Union[ParsedDocument, ValidationFailure]:
        try:
            raw = _as_bytes(self.document)
            data = self._load_json(raw, "document")
        except (ValueError, TypeError, RecursionError) as e:
            return MalformedDocumentFailure(f"Document is not valid JSON: {e}", e)

        try:
            validate(data, load_schema("did_document.schema.json"))
        except ValidationError as e:
            return MalformedDocumentFailure(_schema_error(e), e)

        try:
            did = Did.parse(data["id"])
        except InvalidDidError as e:
            return MalformedDocumentFailure(str(e), e)

        stamps = {}
        for name in ("created", "updated"):
            value = data.get(name)
            if value is None:
                stamps[name] = None
                continue
            try:
                stamps[name] = parse_timestamp(value)
            except ValueError as e:
                return MalformedDocumentFailure(f"Invalid {name!r} timestamp: {value!r}", e)

        return ParsedDocument(
            did=did,
            public_keys=data.get("publicKey") or [],
            created=stamps["created"],
            updated=stamps["updated"],
            canonical_bytes=raw,
        )

    def _parse_instruction(self) -> Union[ParsedInstruction, ValidationFailure]:
        try:
            data = self._load_json(_as_bytes(self.instruction), "instruction")
        except (ValueError, TypeError, RecursionError) as e:
            return MalformedInstructionFailure(f"Instruction is not valid JSON: {e}", e)

        try:
            validate(data, load_schema("instruction.schema.json"))
        except ValidationError as e:
            return MalformedInstructionFailure(_schema_error(e), e)

        return ParsedInstruction(
            action=Action(data["action"]),
            signatures=data.get("signatures") or [],
        )

    # -------------------------------------------------------------------------
    # Descriptor resolution
    # -------------------------------------------------------------------------

    def _suite(self, suite: CryptoSuite, tag: str) -> CryptoSuite:
        if suite not in self.config.enabled_suites:
            raise UnknownSuite(tag)
        return suite

    def _resolve_keys(self, document: ParsedDocument) -> Union[list, ValidationFailure]:
        keys = []
        for entry in document.public_keys:
            key_id = entry["id"]
            try:
                material = resolve_material(entry, MaterialRole.KEY)
                suite = self._suite(CryptoSuite.from_key_tag(entry["type"]), entry["type"])
                verifying_key = suite.decode_key(material.raw)
            except (EncodingError, UnknownSuite, InvalidKeyMaterial) as e:
                return MalformedDocumentFailure(f"Public key {key_id!r}: {e}", e)
            keys.append(KeyDescriptor(
                id=key_id,
                suite_tag=entry["type"],
                controller=entry["controller"],
                material=material,
                suite=suite,
                verifying_key=verifying_key,
            ))
        return keys

    def _resolve_signatures(
        self, instruction: ParsedInstruction
    ) -> Union[list, ValidationFailure]:
        signatures = []
        for entry in instruction.signatures:
            target_id = entry["id"]
            try:
                material = resolve_material(entry, MaterialRole.SIGNATURE)
                suite = self._suite(
                    CryptoSuite.from_signature_tag(entry["type"]), entry["type"]
                )
            except (EncodingError, UnknownSuite) as e:
                return MalformedInstructionFailure(f"Signature {target_id!r}: {e}", e)
            signatures.append(SignatureDescriptor(
                target_id=target_id,
                suite_tag=entry["type"],
                material=material,
                suite=suite,
            ))
        return signatures


def _pair_up(
    keys: list[KeyDescriptor], signatures: list[SignatureDescriptor]
) -> Union[list[tuple[KeyDescriptor, SignatureDescriptor]], ValidationFailure]:
    """Match each key with the one signature targeting it.

    A repeated key id or a repeated signature target is a target failure
    regardless of counts.  Only duplicate-free lists of different lengths
    are a count failure.
    """
    key_ids: set[str] = set()
    for key in keys:
        if key.id in key_ids:
            return SignatureTargetFailure(target=key.id)
        key_ids.add(key.id)

    by_target: dict[str, SignatureDescriptor] = {}
    for signature in signatures:
        if signature.target_id in by_target:
            return SignatureTargetFailure(target=signature.target_id)
        by_target[signature.target_id] = signature

    if len(signatures) != len(keys):
        return SignatureCountFailure(key_count=len(keys), signature_count=len(signatures))

    for signature in signatures:
        if signature.target_id not in key_ids:
            return SignatureTargetFailure(target=signature.target_id)

    return [(key, by_target[key.id]) for key in keys]


def validate_creation(
    instruction: Text, document: Text, config: Optional[ValidatorConfig] = None
) -> ValidationResult:
    """Shorthand for ``DidEnvelope(instruction, document, config).validate_creation()``."""
    return DidEnvelope(instruction, document, config).validate_creation()
