"""
Crypto suite registry — algorithm families accepted on keys and signatures.

A suite is identified by two textual tags: one used on ``publicKey``
entries of a DID document (e.g. ``Ed25519VerificationKey2018``) and one used
on ``signatures`` entries of an instruction (e.g. ``Ed25519Signature2018``).
Both vocabularies map onto the same closed set of suites.

Each suite knows how to rebuild a verifying key from decoded key bytes and
how to verify a signature over a message.  Verification returns ``False``
for a wrong signature; it never raises for one.
"""

from __future__ import annotations

import enum
from typing import Callable, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

VerifyingKey = Union[Ed25519PublicKey, rsa.RSAPublicKey, ec.EllipticCurvePublicKey]

ED25519_RAW_KEY_LENGTH = 32
SECP256K1_RAW_SIGNATURE_LENGTH = 64


class UnknownSuite(LookupError):
    """Raised when a type tag names no registered crypto suite."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Unknown crypto suite type: {tag!r}")


class InvalidKeyMaterial(ValueError):
    """Raised when decoded bytes do not form a key for the declared suite."""


class CryptoSuite(enum.Enum):
    """Supported algorithm families.

    The value of each member is ``(label, key_tag, signature_tag)``.
    """

    ED25519 = ("Ed25519", "Ed25519VerificationKey2018", "Ed25519Signature2018")
    RSA = ("RSA", "RsaVerificationKey2018", "RsaSignature2018")
    ECDSA_SECP256K1 = (
        "EcdsaSecp256k1",
        "EcdsaSecp256k1VerificationKey2019",
        "EcdsaSignatureSecp256k1",
    )

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def key_tag(self) -> str:
        return self.value[1]

    @property
    def signature_tag(self) -> str:
        return self.value[2]

    @classmethod
    def from_label(cls, label: str) -> "CryptoSuite":
        for suite in cls:
            if suite.label == label:
                return suite
        raise UnknownSuite(label)

    @classmethod
    def from_key_tag(cls, tag: str) -> "CryptoSuite":
        try:
            return _BY_KEY_TAG[tag]
        except (KeyError, TypeError):
            raise UnknownSuite(tag) from None

    @classmethod
    def from_signature_tag(cls, tag: str) -> "CryptoSuite":
        try:
            return _BY_SIGNATURE_TAG[tag]
        except (KeyError, TypeError):
            raise UnknownSuite(tag) from None

    def decode_key(self, raw: bytes) -> VerifyingKey:
        """Rebuild this suite's native public key from decoded bytes."""
        return _DECODERS[self](raw)

    def verify(self, key: VerifyingKey, message: bytes, signature: bytes) -> bool:
        """Check *signature* over *message*.  False on any cryptographic mismatch."""
        return _VERIFIERS[self](key, message, signature)

    def __str__(self) -> str:
        return self.label


_BY_KEY_TAG = {suite.key_tag: suite for suite in CryptoSuite}
_BY_SIGNATURE_TAG = {suite.signature_tag: suite for suite in CryptoSuite}


# =============================================================================
# KEY DECODING
# =============================================================================

def _load_der(raw: bytes):
    try:
        return serialization.load_der_public_key(raw)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKeyMaterial(f"Not a DER-encoded public key: {e}") from e


def _decode_ed25519(raw: bytes) -> Ed25519PublicKey:
    if len(raw) == ED25519_RAW_KEY_LENGTH:
        try:
            return Ed25519PublicKey.from_public_bytes(raw)
        except ValueError as e:
            raise InvalidKeyMaterial(f"Invalid Ed25519 key: {e}") from e
    key = _load_der(raw)
    if not isinstance(key, Ed25519PublicKey):
        raise InvalidKeyMaterial(
            f"Expected Ed25519 public key, got {type(key).__name__}"
        )
    return key


def _decode_rsa(raw: bytes) -> rsa.RSAPublicKey:
    key = _load_der(raw)
    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidKeyMaterial(f"Expected RSA public key, got {type(key).__name__}")
    return key


def _decode_secp256k1(raw: bytes) -> ec.EllipticCurvePublicKey:
    # X9.62 points: 0x04 || x || y, or 0x02/0x03 || x
    if raw[:1] in (b"\x02", b"\x03", b"\x04") and len(raw) in (33, 65):
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), raw)
        except ValueError as e:
            raise InvalidKeyMaterial(f"Invalid secp256k1 point: {e}") from e
    key = _load_der(raw)
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise InvalidKeyMaterial(f"Expected EC public key, got {type(key).__name__}")
    if key.curve.name != ec.SECP256K1.name:
        raise InvalidKeyMaterial(f"Expected secp256k1 curve, got {key.curve.name}")
    return key


_DECODERS: dict[CryptoSuite, Callable[[bytes], VerifyingKey]] = {
    CryptoSuite.ED25519: _decode_ed25519,
    CryptoSuite.RSA: _decode_rsa,
    CryptoSuite.ECDSA_SECP256K1: _decode_secp256k1,
}


# =============================================================================
# SIGNATURE VERIFICATION
# =============================================================================

def _verify_ed25519(key: Ed25519PublicKey, message: bytes, signature: bytes) -> bool:
    try:
        key.verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def _verify_rsa(key: rsa.RSAPublicKey, message: bytes, signature: bytes) -> bool:
    try:
        key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
        return True
    except (InvalidSignature, ValueError):
        pass
    try:
        key.verify(
            signature,
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO),
            hashes.SHA256(),
        )
        return True
    except (InvalidSignature, ValueError):
        return False


def _verify_secp256k1(
    key: ec.EllipticCurvePublicKey, message: bytes, signature: bytes
) -> bool:
    if len(signature) == SECP256K1_RAW_SIGNATURE_LENGTH:
        # Raw r || s, as produced by JOSE-style signers
        r = int.from_bytes(signature[:32], "big")
        s = int.from_bytes(signature[32:], "big")
        signature = encode_dss_signature(r, s)
    try:
        key.verify(signature, message, ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, ValueError):
        return False


_VERIFIERS: dict[CryptoSuite, Callable[[VerifyingKey, bytes, bytes], bool]] = {
    CryptoSuite.ED25519: _verify_ed25519,
    CryptoSuite.RSA: _verify_rsa,
    CryptoSuite.ECDSA_SECP256K1: _verify_secp256k1,
}
