from __future__ import annotations

from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import DEFAULT_VALIDITY_DAYS


class CertificateRequest(BaseModel):
    """Subject, extensions and validity of a certificate to issue."""

    model_config = ConfigDict(frozen=True)

    common_name: str = Field(min_length=1)
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    state: Optional[str] = None
    locality: Optional[str] = None
    organization: Optional[str] = None
    organizational_unit: Optional[str] = None
    email: Optional[str] = None
    san: Tuple[str, ...] = ()
    validity_days: int = Field(default=DEFAULT_VALIDITY_DAYS, gt=0)
    serial: int = Field(default=1, ge=1)
    is_ca: bool = False

    @field_validator("san")
    @classmethod
    def _no_blank_san(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if any(not name.strip() for name in v):
            raise ValueError("SAN entries must be non-empty DNS names")
        return v

    def subject_attributes(self) -> List[x509.NameAttribute]:
        # C, ST, L, O, OU precede CN; emailAddress follows it. Certificates
        # issued earlier use this order, keep it.
        attrs: List[x509.NameAttribute] = []
        for oid, value in (
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (NameOID.LOCALITY_NAME, self.locality),
            (NameOID.ORGANIZATION_NAME, self.organization),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
        ):
            if value:
                attrs.append(x509.NameAttribute(oid, value))
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, self.common_name))
        if self.email:
            attrs.append(x509.NameAttribute(NameOID.EMAIL_ADDRESS, self.email))
        return attrs

    def subject_name(self) -> x509.Name:
        return x509.Name(self.subject_attributes())

    def subject_string(self) -> str:
        """OpenSSL-style ``/C=../CN=..`` rendering, in emission order."""
        short = {
            NameOID.COUNTRY_NAME: "C",
            NameOID.STATE_OR_PROVINCE_NAME: "ST",
            NameOID.LOCALITY_NAME: "L",
            NameOID.ORGANIZATION_NAME: "O",
            NameOID.ORGANIZATIONAL_UNIT_NAME: "OU",
            NameOID.COMMON_NAME: "CN",
            NameOID.EMAIL_ADDRESS: "emailAddress",
        }
        return "".join(f"/{short[a.oid]}={a.value}" for a in self.subject_attributes())

    def san_config(self) -> Optional[str]:
        """``subjectAltName = DNS:a,DNS:b`` line, or None when there are no SANs."""
        if not self.san:
            return None
        return "subjectAltName = " + ",".join(f"DNS:{name}" for name in self.san)
