"""Shared key-pair fixtures for the did-envelope test suite.

Key generation (RSA in particular) is slow, so the default signers are
session-scoped.  Tests that need a *second*, unrelated key of the same
suite use the ``make_signer`` factory.
"""

from dataclasses import dataclass

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from didenvelope.suites import CryptoSuite


@dataclass
class Signer:
    """A private key plus the suite it belongs to."""
    suite: CryptoSuite
    private_key: object

    @property
    def public_key(self):
        return self.private_key.public_key()

    @property
    def spki(self) -> bytes:
        """DER SubjectPublicKeyInfo of the public key."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def sign(self, data: bytes) -> bytes:
        if self.suite is CryptoSuite.ED25519:
            return self.private_key.sign(data)
        if self.suite is CryptoSuite.RSA:
            return self.private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        return self.private_key.sign(data, ec.ECDSA(hashes.SHA256()))


def _generate(suite: CryptoSuite) -> Signer:
    if suite is CryptoSuite.ED25519:
        return Signer(suite, Ed25519PrivateKey.generate())
    if suite is CryptoSuite.RSA:
        return Signer(suite, rsa.generate_private_key(public_exponent=65537, key_size=2048))
    return Signer(suite, ec.generate_private_key(ec.SECP256K1()))


@pytest.fixture(scope="session")
def ed25519_signer():
    return _generate(CryptoSuite.ED25519)


@pytest.fixture(scope="session")
def rsa_signer():
    return _generate(CryptoSuite.RSA)


@pytest.fixture(scope="session")
def secp256k1_signer():
    return _generate(CryptoSuite.ECDSA_SECP256K1)


@pytest.fixture(scope="session")
def all_signers(ed25519_signer, rsa_signer, secp256k1_signer):
    return [ed25519_signer, rsa_signer, secp256k1_signer]


@pytest.fixture
def make_signer():
    """Factory for fresh, unrelated key pairs."""
    return _generate
