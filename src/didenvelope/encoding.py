"""
Encoding registry — textual key and signature material to raw bytes.

Each ``publicKey`` entry of a DID document, and each ``signatures`` entry of
an instruction, carries its material in exactly one field whose name selects
the encoding, e.g. ``publicKeyBase58`` or ``signatureHex``.  This module
finds that field, rejects descriptors with none or several, and decodes the
value.

Failure modes are distinguished so callers can tell a missing field from a
conflicting one from an undecodable value:

- :class:`AmbiguousEncoding`: more than one material field
- :class:`UnrecognizedEncoding`: no material field, or an unknown one
- :class:`DecodeError`: the value is invalid for its encoding
"""

from __future__ import annotations

import base64
import binascii
import enum
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import base58
import multibase

from .jwk import JwkError, b64u_encode, jwk_to_key_bytes

PEM_BEGIN = "-----BEGIN PUBLIC KEY-----"
PEM_END = "-----END PUBLIC KEY-----"

_WHITESPACE = re.compile(r"\s+")
_HEX = re.compile(r"(?:[0-9a-fA-F]{2})*")

# Multibase encodings accepted on key and signature material
MULTIBASE_BASES = frozenset({
    "base2", "base8", "base10",
    "base16", "base16upper",
    "base32", "base32upper", "base32pad", "base32padupper",
    "base32hex", "base32hexupper", "base32hexpad", "base32hexpadupper",
    "base32z", "base36", "base36upper",
    "base58btc", "base58flickr",
    "base64", "base64pad", "base64url", "base64urlpad",
})
_BASE16 = frozenset({"base16", "base16upper"})
_RADIX_BASES = frozenset({
    "base2", "base8", "base10", "base32z", "base36", "base36upper",
    "base58btc", "base58flickr",
})


# =============================================================================
# ERRORS
# =============================================================================

class EncodingError(ValueError):
    """Base class for material resolution failures."""


class AmbiguousEncoding(EncodingError):
    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Multiple encoded material fields present: {', '.join(fields)}")


class UnrecognizedEncoding(EncodingError):
    def __init__(self, field: Optional[str] = None):
        self.field = field
        if field is None:
            msg = "No encoded material field present"
        else:
            msg = f"Unrecognized encoded material field: {field!r}"
        super().__init__(msg)


class DecodeError(EncodingError):
    def __init__(self, kind: "EncodingKind", detail: str):
        self.kind = kind
        super().__init__(f"Invalid {kind.label} value: {detail}")


# =============================================================================
# DECODERS
# =============================================================================

def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    return value


def decode_base58(value: Any) -> bytes:
    text = _require_str(value).strip()
    if not text:
        raise ValueError("empty value")
    return base58.b58decode(text)


def encode_base58(data: bytes) -> str:
    return base58.b58encode(data).decode("ascii")


def decode_base64(value: Any) -> bytes:
    """Strict RFC 4648 decoding; the URL-safe alphabet is also accepted."""
    text = _WHITESPACE.sub("", _require_str(value))
    if not text:
        raise ValueError("empty value")
    if ("-" in text or "_" in text) and not ("+" in text or "/" in text):
        text = text.replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text, validate=True)


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_hex(value: Any) -> bytes:
    text = _require_str(value).strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    if not text or not _HEX.fullmatch(text):
        raise ValueError("not an even-length hexadecimal string")
    return bytes.fromhex(text)


def encode_hex(data: bytes) -> str:
    return data.hex()


def decode_multibase(value: Any) -> bytes:
    """Decode a multibase string with py-multibase.

    The library reads the radix bases through an integer, so leading zero
    digits would vanish; such payloads are rejected as non-canonical.
    Base16 payloads fix their own byte length and keep leading zero bytes.
    """
    text = _require_str(value)
    name, data = multibase.decode(text, return_encoding=True)
    if name not in MULTIBASE_BASES:
        raise ValueError(f"unsupported multibase encoding {name!r}")
    payload = text[1:]
    if name in _BASE16:
        if len(payload) % 2:
            raise ValueError(f"odd-length {name} payload")
        return data.rjust(len(payload) // 2, b"\x00")
    if name in _RADIX_BASES and multibase.encode(name, data).decode("ascii") != text:
        raise ValueError(f"non-canonical {name} payload")
    return data


def encode_multibase(data: bytes, base_name: str = "base58btc") -> str:
    if base_name not in MULTIBASE_BASES:
        raise ValueError(f"unsupported multibase encoding {base_name!r}")
    if base_name in _RADIX_BASES and data[:1] == b"\x00":
        raise ValueError(f"{base_name} cannot carry leading zero bytes")
    return multibase.encode(base_name, data).decode("ascii")


def decode_pem(value: Any) -> bytes:
    """Strip the ``PUBLIC KEY`` armor and Base64-decode the body."""
    text = _require_str(value).strip()
    if not text.startswith(PEM_BEGIN) or not text.endswith(PEM_END):
        raise ValueError("missing BEGIN/END PUBLIC KEY armor")
    body = _WHITESPACE.sub("", text[len(PEM_BEGIN):-len(PEM_END)])
    if not body:
        raise ValueError("empty PEM body")
    return base64.b64decode(body, validate=True)


def encode_pem(data: bytes) -> str:
    body = base64.b64encode(data).decode("ascii")
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return "\n".join([PEM_BEGIN, *lines, PEM_END])


def decode_jwk(value: Any) -> bytes:
    return jwk_to_key_bytes(value)


def encode_jwk(data: bytes) -> str:
    """Wrap raw bytes as an octet-sequence JWK string."""
    return json.dumps({"kty": "oct", "k": b64u_encode(data)})


# =============================================================================
# REGISTRY
# =============================================================================

class EncodingKind(enum.Enum):
    """Supported material encodings.  Value is ``(label, field suffix)``."""

    BASE58 = ("Base58", "Base58")
    BASE64 = ("Base64", "Base64")
    HEX = ("Hex", "Hex")
    MULTIBASE = ("Multibase", "Multibase")
    PEM = ("PEM", "Pem")
    JWK = ("JWK", "Jwk")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def suffix(self) -> str:
        return self.value[1]

    def decode(self, value: Any) -> bytes:
        """Decode *value* under this encoding.

        Raises:
            DecodeError: the value is not valid for this encoding.
        """
        try:
            return _DECODERS[self](value)
        except (ValueError, TypeError, binascii.Error, JwkError) as e:
            raise DecodeError(self, str(e)) from e

    def encode(self, data: bytes) -> str:
        return _ENCODERS[self](data)


_DECODERS: dict[EncodingKind, Callable[[Any], bytes]] = {
    EncodingKind.BASE58: decode_base58,
    EncodingKind.BASE64: decode_base64,
    EncodingKind.HEX: decode_hex,
    EncodingKind.MULTIBASE: decode_multibase,
    EncodingKind.PEM: decode_pem,
    EncodingKind.JWK: decode_jwk,
}

_ENCODERS: dict[EncodingKind, Callable[[bytes], str]] = {
    EncodingKind.BASE58: encode_base58,
    EncodingKind.BASE64: encode_base64,
    EncodingKind.HEX: encode_hex,
    EncodingKind.MULTIBASE: encode_multibase,
    EncodingKind.PEM: encode_pem,
    EncodingKind.JWK: encode_jwk,
}


class MaterialRole(enum.Enum):
    """Which descriptor vocabulary a field map belongs to."""

    KEY = ("publicKey", (
        EncodingKind.BASE58,
        EncodingKind.BASE64,
        EncodingKind.HEX,
        EncodingKind.MULTIBASE,
        EncodingKind.PEM,
        EncodingKind.JWK,
    ))
    SIGNATURE = ("signature", (
        EncodingKind.BASE58,
        EncodingKind.BASE64,
        EncodingKind.HEX,
        EncodingKind.MULTIBASE,
    ))

    @property
    def prefix(self) -> str:
        return self.value[0]

    @property
    def kinds(self) -> tuple[EncodingKind, ...]:
        return self.value[1]

    def field_name(self, kind: EncodingKind) -> str:
        return self.prefix + kind.suffix

    def kind_for_field(self, field: str) -> Optional[EncodingKind]:
        return _FIELD_TABLE[self].get(field)

    def is_material_field(self, field: str) -> bool:
        return isinstance(field, str) and field.startswith(self.prefix)


_FIELD_TABLE: dict[MaterialRole, dict[str, EncodingKind]] = {
    role: {role.field_name(kind): kind for kind in role.kinds}
    for role in MaterialRole
}


@dataclass(frozen=True)
class EncodedMaterial:
    """The single material field of a descriptor, decoded."""
    kind: EncodingKind
    field: str
    raw: bytes


def resolve_material(fields: Mapping[str, Any], role: MaterialRole) -> EncodedMaterial:
    """Find and decode the one material field in *fields*.

    Any field whose name starts with the role prefix (``publicKey`` or
    ``signature``) counts as a material field, recognized or not.

    Raises:
        AmbiguousEncoding: more than one material field.
        UnrecognizedEncoding: no material field, or one with an unknown name.
        DecodeError: the value does not decode under its encoding.
    """
    present = [name for name in fields if role.is_material_field(name)]
    if len(present) > 1:
        raise AmbiguousEncoding(sorted(present))
    if not present:
        raise UnrecognizedEncoding()
    field = present[0]
    kind = role.kind_for_field(field)
    if kind is None:
        raise UnrecognizedEncoding(field)
    return EncodedMaterial(kind=kind, field=field, raw=kind.decode(fields[field]))
