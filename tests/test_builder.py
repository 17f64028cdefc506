import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.x509.oid import ExtensionOID, NameOID

from kmscert.crypto.keyspec import ECDSA_SHA256, RSA_PKCS1_SHA256
from kmscert.errors import CertificateGenerationFailed
from kmscert.x509.builder import build_certificate, build_csr
from kmscert.x509.request import CertificateRequest

NOW = datetime.datetime(2025, 3, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


def _p256(ec_keys):
    return ec_keys["ECC_NIST_P256"]


def test_one_day_validity_no_san(ec_keys):
    req = CertificateRequest(common_name="example.com", validity_days=1)
    cert = x509.load_pem_x509_certificate(build_certificate(req, ECDSA_SHA256, _p256(ec_keys), now=NOW))
    assert cert.not_valid_before_utc == NOW
    assert cert.not_valid_after_utc - cert.not_valid_before_utc == datetime.timedelta(days=1)
    with pytest.raises(x509.ExtensionNotFound):
        cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)


def test_three_sans_in_input_order(ec_keys):
    names = ("c.example.com", "a.example.com", "b.example.com")
    req = CertificateRequest(common_name="example.com", san=names)
    cert = x509.load_pem_x509_certificate(build_certificate(req, ECDSA_SHA256, _p256(ec_keys), now=NOW))
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    assert san.critical is False
    assert tuple(san.value.get_values_for_type(x509.DNSName)) == names


@pytest.mark.parametrize("is_ca", [False, True])
def test_basic_constraints_always_critical(ec_keys, is_ca):
    req = CertificateRequest(common_name="example.com", is_ca=is_ca)
    cert = x509.load_pem_x509_certificate(build_certificate(req, ECDSA_SHA256, _p256(ec_keys)))
    bc = cert.extensions.get_extension_for_class(x509.BasicConstraints)
    assert bc.critical is True
    assert bc.value.ca is is_ca


def test_self_signed_with_serial_and_subject_order(rsa_key):
    req = CertificateRequest(common_name="svc", country="DE", organization="Acme", email="a@acme.test", serial=42)
    pem = build_certificate(req, RSA_PKCS1_SHA256, rsa_key, now=NOW)
    assert pem.startswith(b"-----BEGIN CERTIFICATE-----")
    cert = x509.load_pem_x509_certificate(pem)
    assert cert.serial_number == 42
    assert cert.issuer == cert.subject
    assert [a.oid for a in cert.subject] == [
        NameOID.COUNTRY_NAME,
        NameOID.ORGANIZATION_NAME,
        NameOID.COMMON_NAME,
        NameOID.EMAIL_ADDRESS,
    ]
    rsa_key.public_key().verify(
        cert.signature, cert.tbs_certificate_bytes, padding.PKCS1v15(), cert.signature_hash_algorithm
    )


def test_default_serial_is_one(ec_keys):
    cert = x509.load_pem_x509_certificate(
        build_certificate(CertificateRequest(common_name="x"), ECDSA_SHA256, _p256(ec_keys))
    )
    assert cert.serial_number == 1


def test_oversized_serial_is_generation_failure(ec_keys):
    req = CertificateRequest(common_name="x", serial=2 ** 200)
    with pytest.raises(CertificateGenerationFailed):
        build_certificate(req, ECDSA_SHA256, _p256(ec_keys))


def test_csr_carries_subject_and_extensions(ec_keys):
    key = _p256(ec_keys)
    req = CertificateRequest(common_name="example.com", san=("example.com",))
    csr = x509.load_pem_x509_csr(build_csr(req, ECDSA_SHA256, key))
    assert csr.is_signature_valid
    assert csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "example.com"
    assert csr.extensions.get_extension_for_class(x509.BasicConstraints).critical is True
    assert isinstance(csr.public_key(), ec.EllipticCurvePublicKey)


def test_validity_past_calendar_end_is_generation_failure(ec_keys):
    req = CertificateRequest(common_name="x", validity_days=3_000_000)
    with pytest.raises(CertificateGenerationFailed):
        build_certificate(req, ECDSA_SHA256, _p256(ec_keys), now=NOW)
