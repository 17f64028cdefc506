"""KMS keys exposed as ``cryptography`` private-key handles.

The X.509 and CSR builders in ``cryptography`` sign by calling ``sign()`` on
whatever private key object they are given. These classes satisfy the RSA and
EC private-key interfaces, hash the to-be-signed bytes locally and have KMS
sign the digest, so the toolkit embeds a signature made by the KMS key without
the private half ever leaving KMS.
"""
from __future__ import annotations

from typing import Union

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding, PKCS1v15

from ..errors import SigningFailed, UnsupportedKeySpec
from .keyspec import KeyDescriptor, KeyFamily, SigningAlgorithm
from .kms import KmsOracle

_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}


class _KmsSigningMixin:
    def __init__(self, oracle: KmsOracle, key_id: str, algorithm: SigningAlgorithm, public_key):
        self._oracle = oracle
        self._key_id = key_id
        self._algorithm = algorithm
        self._public_key = public_key

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def signing_algorithm(self) -> SigningAlgorithm:
        return self._algorithm

    def _digest(self, data: bytes, hash_alg: hashes.HashAlgorithm) -> bytes:
        if not isinstance(hash_alg, hashes.HashAlgorithm) or hash_alg.name != self._algorithm.hash_name:
            raise SigningFailed(
                f"key {self._key_id} signs with {self._algorithm.kms_algorithm}, not {getattr(hash_alg, 'name', hash_alg)}"
            )
        h = hashes.Hash(hash_alg)
        h.update(data)
        return h.finalize()

    def _sign(self, data: bytes, hash_alg) -> bytes:
        return self._oracle.sign_digest(self._key_id, self._digest(data, hash_alg), self._algorithm)

    def private_numbers(self):
        raise SigningFailed("KMS private keys cannot be exported")

    def private_bytes(self, encoding, format, encryption_algorithm) -> bytes:
        raise SigningFailed("KMS private keys cannot be exported")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


class KmsRSAPrivateKey(_KmsSigningMixin, rsa.RSAPrivateKey):
    @property
    def key_size(self) -> int:
        return self._public_key.key_size

    def public_key(self) -> rsa.RSAPublicKey:
        return self._public_key

    def sign(self, data: bytes, padding: AsymmetricPadding, algorithm) -> bytes:
        if not isinstance(padding, PKCS1v15):
            raise SigningFailed(f"KMS key {self._key_id} only signs with PKCS#1 v1.5 padding")
        return self._sign(data, algorithm)

    def decrypt(self, ciphertext: bytes, padding) -> bytes:
        raise SigningFailed("KMS signing keys do not decrypt")


class KmsECPrivateKey(_KmsSigningMixin, ec.EllipticCurvePrivateKey):
    @property
    def curve(self) -> ec.EllipticCurve:
        return self._public_key.curve

    @property
    def key_size(self) -> int:
        return self._public_key.key_size

    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._public_key

    def sign(self, data: bytes, signature_algorithm: ec.EllipticCurveSignatureAlgorithm) -> bytes:
        if not isinstance(signature_algorithm, ec.ECDSA):
            raise SigningFailed(f"KMS key {self._key_id} only signs with ECDSA")
        # KMS returns DER-encoded (r, s), the form the toolkit expects
        return self._sign(data, signature_algorithm.algorithm)

    def exchange(self, algorithm, peer_public_key) -> bytes:
        raise SigningFailed("KMS signing keys do not perform key agreement")


KmsPrivateKey = Union[KmsRSAPrivateKey, KmsECPrivateKey]


def load_kms_public_key(der: bytes):
    try:
        return serialization.load_der_public_key(der)
    except ValueError as e:
        raise UnsupportedKeySpec(f"KMS returned an unreadable public key: {e}") from e


def kms_private_key(
    oracle: KmsOracle,
    descriptor: KeyDescriptor,
    algorithm: SigningAlgorithm,
    public_key,
) -> KmsPrivateKey:
    """Build the signing handle for a resolved KMS key.

    ``public_key`` is the key KMS published for ``descriptor``; it must agree
    with the key spec KMS reported.
    """
    if descriptor.family == KeyFamily.RSA:
        if not isinstance(public_key, rsa.RSAPublicKey) or str(public_key.key_size) != descriptor.size_or_curve:
            raise UnsupportedKeySpec(
                f"public key of {descriptor.key_id} does not match reported spec {descriptor.key_spec}"
            )
        return KmsRSAPrivateKey(oracle, descriptor.key_id, algorithm, public_key)
    if descriptor.family == KeyFamily.ECC:
        curve = _CURVES.get(descriptor.size_or_curve)
        if curve is None or not isinstance(public_key, ec.EllipticCurvePublicKey) or public_key.curve.name != curve.name:
            raise UnsupportedKeySpec(
                f"public key of {descriptor.key_id} does not match reported spec {descriptor.key_spec}"
            )
        return KmsECPrivateKey(oracle, descriptor.key_id, algorithm, public_key)
    raise UnsupportedKeySpec(f"unsupported key spec: {descriptor.key_spec or 'unknown'}")


__all__ = [
    "KmsRSAPrivateKey",
    "KmsECPrivateKey",
    "KmsPrivateKey",
    "kms_private_key",
    "load_kms_public_key",
]
