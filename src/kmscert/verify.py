"""Check that a certificate carries a given KMS or file-resident public key."""
from __future__ import annotations

from dataclasses import dataclass

from .crypto import keymatch
from .crypto.kms import KmsOracle
from .utils.logging import get_logger

log = get_logger()


@dataclass(frozen=True)
class VerificationResult:
    matched: bool
    certificate_key_pem: bytes
    reference_key_pem: bytes


def _compare(cert_pem: bytes, ref_pem: bytes, reference: str) -> VerificationResult:
    matched = keymatch.equal(cert_pem, ref_pem)
    if matched:
        log.info("certificate public key matches %s", reference)
    else:
        log.warning("certificate public key does NOT match %s", reference)
    return VerificationResult(matched=matched, certificate_key_pem=cert_pem, reference_key_pem=ref_pem)


def verify_with_kms(cert_path: str, key_id: str, oracle: KmsOracle) -> VerificationResult:
    # certificate first: input file errors precede any KMS call
    cert_pem = keymatch.load_certificate_public_pem(cert_path)
    ref_pem = keymatch.canonical_public_pem(oracle.get_public_key(key_id))
    return _compare(cert_pem, ref_pem, f"KMS key {key_id}")


def verify_with_key_file(cert_path: str, key_path: str) -> VerificationResult:
    cert_pem = keymatch.load_certificate_public_pem(cert_path)
    ref_pem = keymatch.load_public_pem_from_file(key_path)
    return _compare(cert_pem, ref_pem, f"key file {key_path}")


__all__ = ["VerificationResult", "verify_with_kms", "verify_with_key_file"]
