"""Key spec resolution for KMS signing keys.

Maps the key spec KMS reports for a key onto the one signing algorithm used
to self-sign certificates with it:

  RSA_2048 / RSA_3072 / RSA_4096  -> RSASSA_PKCS1_V1_5_SHA_256
  ECC_NIST_P256                   -> ECDSA_SHA_256
  ECC_NIST_P384                   -> ECDSA_SHA_384
  ECC_NIST_P521                   -> ECDSA_SHA_512

Every other spec (secp256k1, SM2, symmetric, HMAC) is rejected before any
signing call is made.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from cryptography.hazmat.primitives import hashes

from ..errors import IncompatibleKeyFamily, UnsupportedKeySpec, WrongKeyUsage

SIGN_VERIFY = "SIGN_VERIFY"


class KeyFamily(str, Enum):
    RSA = "RSA"
    ECC = "ECC"
    OTHER = "OTHER"


@dataclass(frozen=True)
class KeyDescriptor:
    key_id: str
    family: KeyFamily
    size_or_curve: str
    usage: str
    key_spec: str
    enabled: bool = True

    @classmethod
    def from_describe_key(cls, response: Dict[str, Any]) -> "KeyDescriptor":
        meta = response.get("KeyMetadata", response)
        # KeySpec superseded CustomerMasterKeySpec; older responses carry only the latter
        spec = meta.get("KeySpec") or meta.get("CustomerMasterKeySpec") or ""
        family, size_or_curve = _split_spec(spec)
        state = meta.get("KeyState", "Enabled")
        return cls(
            key_id=meta.get("Arn") or meta.get("KeyId", ""),
            family=family,
            size_or_curve=size_or_curve,
            usage=meta.get("KeyUsage", ""),
            key_spec=spec,
            enabled=bool(meta.get("Enabled", True)) and state == "Enabled",
        )


@dataclass(frozen=True)
class SigningAlgorithm:
    name: str
    kms_algorithm: str
    hash_name: str
    family: KeyFamily

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return _HASHES[self.hash_name]()


_HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

RSA_PKCS1_SHA256 = SigningAlgorithm("sha256WithRSAEncryption", "RSASSA_PKCS1_V1_5_SHA_256", "sha256", KeyFamily.RSA)
ECDSA_SHA256 = SigningAlgorithm("ecdsa-with-SHA256", "ECDSA_SHA_256", "sha256", KeyFamily.ECC)
ECDSA_SHA384 = SigningAlgorithm("ecdsa-with-SHA384", "ECDSA_SHA_384", "sha384", KeyFamily.ECC)
ECDSA_SHA512 = SigningAlgorithm("ecdsa-with-SHA512", "ECDSA_SHA_512", "sha512", KeyFamily.ECC)

ALGORITHMS: Dict[tuple, SigningAlgorithm] = {
    (KeyFamily.RSA, "2048"): RSA_PKCS1_SHA256,
    (KeyFamily.RSA, "3072"): RSA_PKCS1_SHA256,
    (KeyFamily.RSA, "4096"): RSA_PKCS1_SHA256,
    (KeyFamily.ECC, "P-256"): ECDSA_SHA256,
    (KeyFamily.ECC, "P-384"): ECDSA_SHA384,
    (KeyFamily.ECC, "P-521"): ECDSA_SHA512,
}


def _split_spec(spec: str) -> tuple:
    if spec.startswith("RSA_"):
        return KeyFamily.RSA, spec[len("RSA_"):]
    if spec.startswith("ECC_NIST_P"):
        return KeyFamily.ECC, "P-" + spec[len("ECC_NIST_P"):]
    if spec.startswith("ECC_"):
        # e.g. ECC_SECG_P256K1
        return KeyFamily.ECC, spec[len("ECC_"):].lower()
    return KeyFamily.OTHER, spec


def resolve(descriptor: KeyDescriptor) -> SigningAlgorithm:
    alg = ALGORITHMS.get((descriptor.family, descriptor.size_or_curve))
    if alg is None:
        raise UnsupportedKeySpec(f"unsupported key spec: {descriptor.key_spec or 'unknown'}")
    if descriptor.usage != SIGN_VERIFY:
        raise WrongKeyUsage(
            f"key {descriptor.key_id} has usage {descriptor.usage or 'unknown'}, expected {SIGN_VERIFY}"
        )
    if not descriptor.enabled:
        raise WrongKeyUsage(f"key {descriptor.key_id} is not enabled")
    return alg


def require_rsa(descriptor: KeyDescriptor) -> None:
    if descriptor.family != KeyFamily.RSA:
        raise IncompatibleKeyFamily(
            f"key {descriptor.key_id} is {descriptor.key_spec}; an RSA key is required"
        )


__all__ = [
    "KeyFamily",
    "KeyDescriptor",
    "SigningAlgorithm",
    "ALGORITHMS",
    "resolve",
    "require_rsa",
]
