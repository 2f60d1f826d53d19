"""
JSON Web Key (RFC 7517) decoding for ``publicKeyJwk`` material.

A JWK is reduced to public-key bytes that the crypto suite registry can load:

- ``oct``: the ``k`` octets (Ed25519 keys published as an octet sequence
  carry their DER SubjectPublicKeyInfo here)
- ``OKP``: the raw ``x`` coordinate for ``crv: Ed25519``
- ``RSA``: ``n`` / ``e`` rebuilt into a DER SubjectPublicKeyInfo
- ``EC``: ``x`` / ``y`` on secp256k1 rebuilt into a DER SubjectPublicKeyInfo
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

_SECP256K1_NAMES = frozenset({"secp256k1", "P-256K"})


class JwkError(ValueError):
    """Raised when a JWK is malformed or uses an unsupported key type."""


def b64u_decode(s: str) -> bytes:
    if not isinstance(s, str):
        raise JwkError(f"Expected base64url string, got {type(s).__name__}")
    pad = "=" * (-len(s) % 4)
    try:
        return base64.urlsafe_b64decode(s + pad)
    except (binascii.Error, ValueError) as e:
        raise JwkError(f"Invalid base64url value: {e}") from e


def b64u_encode(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).rstrip(b"=").decode("ascii")


def _member(jwk: dict, name: str) -> bytes:
    if name not in jwk:
        raise JwkError(f"JWK of type {jwk.get('kty')!r} is missing {name!r}")
    return b64u_decode(jwk[name])


def _spki_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def parse_jwk(value: Union[str, dict]) -> dict:
    """Accept a JWK as a JSON object or as a string holding one."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise JwkError(f"JWK is not valid JSON: {e.msg}") from e
    if not isinstance(value, dict):
        raise JwkError("JWK must be a JSON object")
    return value


def jwk_to_key_bytes(value: Union[str, dict]) -> bytes:
    """Decode a JWK into public-key bytes.

    Raises:
        JwkError: malformed JWK, unsupported ``kty``/``crv``, or a point
            that is not on the curve.
    """
    jwk: dict[str, Any] = parse_jwk(value)
    kty = jwk.get("kty")

    if kty == "oct":
        return _member(jwk, "k")

    if kty == "OKP":
        if jwk.get("crv") != "Ed25519":
            raise JwkError(f"Unsupported OKP curve: {jwk.get('crv')!r}")
        return _member(jwk, "x")

    if kty == "RSA":
        n = int.from_bytes(_member(jwk, "n"), "big")
        e = int.from_bytes(_member(jwk, "e"), "big")
        try:
            return _spki_der(rsa.RSAPublicNumbers(e, n).public_key())
        except ValueError as exc:
            raise JwkError(f"Invalid RSA key parameters: {exc}") from exc

    if kty == "EC":
        crv = jwk.get("crv")
        if crv not in _SECP256K1_NAMES:
            raise JwkError(f"Unsupported EC curve: {crv!r}")
        x = int.from_bytes(_member(jwk, "x"), "big")
        y = int.from_bytes(_member(jwk, "y"), "big")
        try:
            return _spki_der(ec.EllipticCurvePublicNumbers(x, y, ec.SECP256K1()).public_key())
        except ValueError as exc:
            raise JwkError(f"Invalid EC point: {exc}") from exc

    raise JwkError(f"Unsupported JWK key type: {kty!r}")


def jwk_from_public_key(pub) -> dict:
    """Export a public key as a JWK (the inverse of :func:`jwk_to_key_bytes`)."""
    if isinstance(pub, rsa.RSAPublicKey):
        nums = pub.public_numbers()
        n = nums.n.to_bytes((nums.n.bit_length() + 7) // 8, "big")
        e = nums.e.to_bytes((nums.e.bit_length() + 7) // 8, "big")
        return {"kty": "RSA", "n": b64u_encode(n), "e": b64u_encode(e)}
    if isinstance(pub, ec.EllipticCurvePublicKey):
        if pub.curve.name != ec.SECP256K1.name:
            raise JwkError(f"Unsupported EC curve: {pub.curve.name}")
        nums = pub.public_numbers()
        return {
            "kty": "EC",
            "crv": "secp256k1",
            "x": b64u_encode(nums.x.to_bytes(32, "big")),
            "y": b64u_encode(nums.y.to_bytes(32, "big")),
        }
    if isinstance(pub, Ed25519PublicKey):
        # octet-sequence form carrying the SubjectPublicKeyInfo
        return {"kty": "oct", "k": b64u_encode(_spki_der(pub))}
    raise JwkError("Unsupported public key type")
