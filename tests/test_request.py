import os
import subprocess
import sys
from pathlib import Path

import pytest
from cryptography.x509.oid import NameOID
from pydantic import ValidationError

from kmscert import config
from kmscert.x509.request import CertificateRequest


def test_subject_order_optional_fields_around_cn():
    req = CertificateRequest(
        common_name="example.com",
        email="ops@example.com",
        organizational_unit="Platform",
        organization="Example Corp",
        locality="Seattle",
        state="WA",
        country="US",
    )
    oids = [a.oid for a in req.subject_attributes()]
    assert oids == [
        NameOID.COUNTRY_NAME,
        NameOID.STATE_OR_PROVINCE_NAME,
        NameOID.LOCALITY_NAME,
        NameOID.ORGANIZATION_NAME,
        NameOID.ORGANIZATIONAL_UNIT_NAME,
        NameOID.COMMON_NAME,
        NameOID.EMAIL_ADDRESS,
    ]
    assert req.subject_string() == (
        "/C=US/ST=WA/L=Seattle/O=Example Corp/OU=Platform/CN=example.com/emailAddress=ops@example.com"
    )


def test_cn_only_subject():
    req = CertificateRequest(common_name="solo")
    assert req.subject_string() == "/CN=solo"


def test_defaults():
    req = CertificateRequest(common_name="example.com")
    assert req.serial == 1
    assert req.validity_days == config.DEFAULT_VALIDITY_DAYS
    assert req.is_ca is False
    assert req.san == ()


def test_san_config_line():
    assert CertificateRequest(common_name="a").san_config() is None
    req = CertificateRequest(common_name="a", san=("a.example.com", "b.example.com", "c.example.com"))
    assert req.san_config() == "subjectAltName = DNS:a.example.com,DNS:b.example.com,DNS:c.example.com"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"common_name": ""},
        {"common_name": "x", "validity_days": 0},
        {"common_name": "x", "serial": 0},
        {"common_name": "x", "country": "USA"},
        {"common_name": "x", "san": ("ok.example.com", " ")},
    ],
)
def test_invalid_requests(kwargs):
    with pytest.raises(ValidationError):
        CertificateRequest(**kwargs)


def test_request_is_immutable():
    req = CertificateRequest(common_name="x")
    with pytest.raises(ValidationError):
        req.common_name = "y"


def test_validity_default_follows_environment():
    src = Path(__file__).resolve().parents[1] / "src"
    env = dict(os.environ, KMSCERT_VALIDITY_DAYS="30", PYTHONPATH=str(src))
    out = subprocess.run(
        [
            sys.executable,
            "-c",
            "from kmscert.x509.request import CertificateRequest;"
            "print(CertificateRequest(common_name='x').validity_days)",
        ],
        env=env,
        capture_output=True,
        text=True,
        check=True,
    )
    assert out.stdout.strip() == "30"
