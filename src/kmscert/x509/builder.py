"""Self-signed certificate and CSR construction.

The signing key is normally a KMS-backed handle from ``crypto.kms_key``; any
``cryptography`` RSA/EC private key works, which is what the tests use.
"""
from __future__ import annotations

import datetime
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ..crypto.keyspec import SigningAlgorithm
from ..errors import CertificateGenerationFailed, KmsCertError
from ..utils.logging import get_logger
from .request import CertificateRequest

log = get_logger()


def _extensions(request: CertificateRequest) -> List[tuple]:
    exts: List[tuple] = [(x509.BasicConstraints(ca=request.is_ca, path_length=None), True)]
    if request.san:
        exts.append((x509.SubjectAlternativeName([x509.DNSName(n) for n in request.san]), False))
    return exts


def build_certificate(
    request: CertificateRequest,
    algorithm: SigningAlgorithm,
    signing_key,
    now: Optional[datetime.datetime] = None,
) -> bytes:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    subject = request.subject_name()
    log.info(
        "issuing certificate subject=%s serial=%d days=%d ca=%s alg=%s",
        request.subject_string(), request.serial, request.validity_days, request.is_ca, algorithm.name,
    )
    try:
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(signing_key.public_key())
            .serial_number(request.serial)
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=request.validity_days))
        )
        for ext, critical in _extensions(request):
            builder = builder.add_extension(ext, critical=critical)
        cert = builder.sign(private_key=signing_key, algorithm=algorithm.hash_algorithm())
    except KmsCertError:
        raise
    except (ValueError, TypeError, OverflowError) as e:
        raise CertificateGenerationFailed(f"certificate generation failed: {e}") from e
    return cert.public_bytes(serialization.Encoding.PEM)


def build_csr(request: CertificateRequest, algorithm: SigningAlgorithm, signing_key) -> bytes:
    log.info("building CSR subject=%s alg=%s", request.subject_string(), algorithm.name)
    try:
        builder = x509.CertificateSigningRequestBuilder().subject_name(request.subject_name())
        for ext, critical in _extensions(request):
            builder = builder.add_extension(ext, critical=critical)
        csr = builder.sign(private_key=signing_key, algorithm=algorithm.hash_algorithm())
    except KmsCertError:
        raise
    except (ValueError, TypeError, OverflowError) as e:
        raise CertificateGenerationFailed(f"CSR generation failed: {e}") from e
    return csr.public_bytes(serialization.Encoding.PEM)


__all__ = ["build_certificate", "build_csr"]
