from __future__ import annotations

import argparse
import sys

from pydantic import ValidationError

from .config import DEFAULT_OUTPUT, DEFAULT_REGION, DEFAULT_VALIDITY_DAYS, EngineConfig
from .errors import EXIT_FAILURE, EXIT_OK, KmsCertError
from .issue import IssuanceConfig, issue_certificate
from .x509.request import CertificateRequest


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "kmscert-issue",
        description="Issue a self-signed X.509 certificate signed by an AWS KMS key",
    )
    p.add_argument("-k", "--kms-key-id", dest="kms_key_id", required=True)
    p.add_argument("-c", "--cert-common-name", dest="common_name", required=True)
    p.add_argument("-v", "--validity-days", dest="validity_days", type=int, default=DEFAULT_VALIDITY_DAYS)
    p.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help="destination, e.g. file:cert.pem or json:myCert")
    p.add_argument("--cert-country", dest="country")
    p.add_argument("--cert-state", dest="state")
    p.add_argument("--cert-locality", dest="locality")
    p.add_argument("--cert-org", dest="organization")
    p.add_argument("--cert-org-unit", dest="organizational_unit")
    p.add_argument("--cert-email", dest="email")
    p.add_argument("--cert-san", dest="san", action="append", default=[])
    p.add_argument("--cert-serial", dest="serial", type=int, default=1)
    p.add_argument("--cert-ca", dest="is_ca", action="store_true")
    p.add_argument("--region", default=DEFAULT_REGION)
    p.add_argument("--require-rsa", action="store_true", help="fail unless the KMS key is RSA")
    p.add_argument("--csr", dest="csr_only", action="store_true", help="emit a CSR instead of a certificate")
    p.add_argument("--pkcs11-label", dest="label", help="engine slot label")
    p.add_argument("--engine-config", dest="config_path", help="YAML file of engine slots")
    p.add_argument("--debug", action="store_true")
    return p


def config_from_args(args: argparse.Namespace) -> IssuanceConfig:
    request = CertificateRequest(
        common_name=args.common_name,
        country=args.country,
        state=args.state,
        locality=args.locality,
        organization=args.organization,
        organizational_unit=args.organizational_unit,
        email=args.email,
        san=tuple(args.san),
        validity_days=args.validity_days,
        serial=args.serial,
        is_ca=args.is_ca,
    )
    return IssuanceConfig(
        kms_key_id=args.kms_key_id,
        request=request,
        output=args.output,
        region=args.region,
        require_rsa=args.require_rsa,
        csr_only=args.csr_only,
        engine=EngineConfig(label=args.label, debug=args.debug, config_path=args.config_path),
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
    except ValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(x) for x in err.get("loc", ()))
        print(f"error: invalid {loc or 'input'}: {err.get('msg')}", file=sys.stderr)
        return EXIT_FAILURE
    try:
        issue_certificate(config)
    except KmsCertError as e:
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
