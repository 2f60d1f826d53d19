"""Tests for the crypto suite registry: tag lookup, key decoding, verification."""

import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from didenvelope.suites import CryptoSuite, InvalidKeyMaterial, UnknownSuite

MESSAGE = b'{"id": "did:example:123"}'


class TestTagLookup:

    @pytest.mark.parametrize("suite,key_tag,signature_tag", [
        (CryptoSuite.ED25519, "Ed25519VerificationKey2018", "Ed25519Signature2018"),
        (CryptoSuite.RSA, "RsaVerificationKey2018", "RsaSignature2018"),
        (CryptoSuite.ECDSA_SECP256K1, "EcdsaSecp256k1VerificationKey2019", "EcdsaSignatureSecp256k1"),
    ])
    def test_tags_resolve_to_same_suite(self, suite, key_tag, signature_tag):
        assert CryptoSuite.from_key_tag(key_tag) is suite
        assert CryptoSuite.from_signature_tag(signature_tag) is suite

    def test_key_tag_not_valid_as_signature_tag(self):
        with pytest.raises(UnknownSuite):
            CryptoSuite.from_signature_tag("Ed25519VerificationKey2018")

    def test_unknown_tag_carries_tag(self):
        with pytest.raises(UnknownSuite) as exc_info:
            CryptoSuite.from_key_tag("Bls12381G2Key2020")
        assert exc_info.value.tag == "Bls12381G2Key2020"

    def test_non_string_tag(self):
        with pytest.raises(UnknownSuite):
            CryptoSuite.from_key_tag(["Ed25519VerificationKey2018"])

    def test_from_label(self):
        assert CryptoSuite.from_label("EcdsaSecp256k1") is CryptoSuite.ECDSA_SECP256K1
        assert str(CryptoSuite.RSA) == "RSA"


class TestDecodeKey:

    @pytest.mark.parametrize("suite", list(CryptoSuite))
    def test_spki(self, suite, all_signers):
        signer = next(s for s in all_signers if s.suite is suite)
        key = suite.decode_key(signer.spki)
        assert key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        ) == signer.spki

    def test_raw_ed25519(self, ed25519_signer):
        raw = ed25519_signer.public_key.public_bytes(
            serialization.Encoding.Raw, serialization.PublicFormat.Raw
        )
        CryptoSuite.ED25519.decode_key(raw)

    @pytest.mark.parametrize("fmt", [
        serialization.PublicFormat.CompressedPoint,
        serialization.PublicFormat.UncompressedPoint,
    ])
    def test_secp256k1_points(self, secp256k1_signer, fmt):
        point = secp256k1_signer.public_key.public_bytes(serialization.Encoding.X962, fmt)
        key = CryptoSuite.ECDSA_SECP256K1.decode_key(point)
        assert key.public_numbers() == secp256k1_signer.public_key.public_numbers()

    def test_rsa_pkcs1(self, rsa_signer):
        pkcs1 = rsa_signer.public_key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.PKCS1
        )
        key = CryptoSuite.RSA.decode_key(pkcs1)
        assert key.public_numbers() == rsa_signer.public_key.public_numbers()

    def test_wrong_algorithm(self, rsa_signer, ed25519_signer):
        with pytest.raises(InvalidKeyMaterial):
            CryptoSuite.ED25519.decode_key(rsa_signer.spki)
        with pytest.raises(InvalidKeyMaterial):
            CryptoSuite.RSA.decode_key(ed25519_signer.spki)

    def test_wrong_curve(self):
        p256 = ec.generate_private_key(ec.SECP256R1()).public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        with pytest.raises(InvalidKeyMaterial, match="secp256k1"):
            CryptoSuite.ECDSA_SECP256K1.decode_key(p256)

    @pytest.mark.parametrize("suite", list(CryptoSuite))
    def test_garbage(self, suite):
        with pytest.raises(InvalidKeyMaterial):
            suite.decode_key(b"\x30\x03garbage")

    def test_point_not_on_curve(self):
        with pytest.raises(InvalidKeyMaterial):
            CryptoSuite.ECDSA_SECP256K1.decode_key(b"\x04" + b"\x01" * 64)


class TestVerify:

    @pytest.mark.parametrize("suite", list(CryptoSuite))
    def test_valid_signature(self, suite, all_signers):
        signer = next(s for s in all_signers if s.suite is suite)
        key = suite.decode_key(signer.spki)
        assert suite.verify(key, MESSAGE, signer.sign(MESSAGE)) is True

    @pytest.mark.parametrize("suite", list(CryptoSuite))
    def test_tampered_message(self, suite, all_signers):
        signer = next(s for s in all_signers if s.suite is suite)
        key = suite.decode_key(signer.spki)
        assert suite.verify(key, MESSAGE + b" ", signer.sign(MESSAGE)) is False

    @pytest.mark.parametrize("suite", list(CryptoSuite))
    @pytest.mark.parametrize("signature", [b"", b"\x00", os.urandom(64), os.urandom(256)])
    def test_garbage_signature_returns_false(self, suite, all_signers, signature):
        """Malformed signatures are a verification failure, never an exception."""
        signer = next(s for s in all_signers if s.suite is suite)
        key = suite.decode_key(signer.spki)
        assert suite.verify(key, MESSAGE, signature) is False
