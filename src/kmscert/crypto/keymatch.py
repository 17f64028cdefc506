"""Public key comparison.

``equal`` compares PEM text byte-for-byte after line-ending and whitespace
normalization. It does not compare ASN.1 structures, so two encodings of the
same key with different line wrapping compare unequal; pass both sides
through ``canonical_public_pem`` first when their origins differ.
"""
from __future__ import annotations

import os
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from ..errors import InputFileError, UnsupportedPublicKeyFormat

PemInput = Union[str, bytes]

_SUPPORTED = (rsa.RSAPublicKey, ec.EllipticCurvePublicKey)


def normalize_pem(pem: PemInput) -> bytes:
    text = pem.decode("ascii", errors="replace") if isinstance(pem, bytes) else pem
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    return ("\n".join(lines) + "\n").encode("ascii", errors="replace")


def _check_supported(pem: bytes) -> None:
    try:
        key = serialization.load_pem_public_key(pem)
    except ValueError as e:
        raise UnsupportedPublicKeyFormat(f"not a PEM public key: {e}") from e
    if not isinstance(key, _SUPPORTED):
        raise UnsupportedPublicKeyFormat(f"unsupported public key type: {type(key).__name__}")


def equal(pem_a: PemInput, pem_b: PemInput) -> bool:
    a = normalize_pem(pem_a)
    b = normalize_pem(pem_b)
    _check_supported(a)
    _check_supported(b)
    return a == b


def canonical_public_pem(key) -> bytes:
    """Re-encode a public key (object, PEM or DER) as SubjectPublicKeyInfo PEM."""
    if isinstance(key, (str, bytes)):
        data = key.encode() if isinstance(key, str) else key
        try:
            if b"-----BEGIN" in data:
                key = serialization.load_pem_public_key(data)
            else:
                key = serialization.load_der_public_key(data)
        except ValueError as e:
            raise UnsupportedPublicKeyFormat(f"cannot parse public key: {e}") from e
    if not isinstance(key, _SUPPORTED):
        raise UnsupportedPublicKeyFormat(f"unsupported public key type: {type(key).__name__}")
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _read(path: str) -> bytes:
    if not os.path.isfile(path):
        raise InputFileError(f"file not found: {path}")
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise InputFileError(f"cannot read {path}: {e}") from e


def load_certificate_public_pem(path: str) -> bytes:
    data = _read(path)
    try:
        cert = x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise InputFileError(f"{path} is not a PEM certificate: {e}") from e
    return canonical_public_pem(cert.public_key())


def load_public_pem_from_file(path: str) -> bytes:
    """Public key of a PEM file holding a public key, private key or certificate."""
    data = _read(path)
    if b"-----BEGIN CERTIFICATE-----" in data:
        return load_certificate_public_pem(path)
    if b"PRIVATE KEY-----" in data:
        try:
            priv = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError) as e:
            raise InputFileError(f"{path}: cannot load private key: {e}") from e
        return canonical_public_pem(priv.public_key())
    try:
        pub = serialization.load_pem_public_key(data)
    except ValueError as e:
        raise InputFileError(f"{path} is not a PEM key file: {e}") from e
    return canonical_public_pem(pub)


__all__ = [
    "normalize_pem",
    "equal",
    "canonical_public_pem",
    "load_certificate_public_pem",
    "load_public_pem_from_file",
]
