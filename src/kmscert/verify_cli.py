from __future__ import annotations

import argparse
import sys

from .config import DEFAULT_REGION
from .crypto.kms import KmsOracle
from .errors import EXIT_MISMATCH, EXIT_OK, KmsCertError
from .verify import VerificationResult, verify_with_key_file, verify_with_kms


def _report(result: VerificationResult, reference: str) -> int:
    if result.matched:
        print(f"OK: certificate public key matches {reference}")
        return EXIT_OK
    print(f"WARNING: certificate public key does not match {reference}")
    return EXIT_MISMATCH


def cmd_kms(args: argparse.Namespace) -> int:
    result = verify_with_kms(args.cert, args.kms_key_id, KmsOracle(region=args.region))
    return _report(result, f"KMS key {args.kms_key_id}")


def cmd_file(args: argparse.Namespace) -> int:
    result = verify_with_key_file(args.cert, args.key)
    return _report(result, f"key file {args.key}")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("kmscert-verify", description="Check a certificate's public key")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_kms = sub.add_parser("kms", help="compare against a KMS key")
    p_kms.add_argument("--cert", required=True)
    p_kms.add_argument("-k", "--kms-key-id", dest="kms_key_id", required=True)
    p_kms.add_argument("--region", default=DEFAULT_REGION)
    p_kms.set_defaults(func=cmd_kms)

    p_file = sub.add_parser("file", help="compare against a local key or certificate file")
    p_file.add_argument("--cert", required=True)
    p_file.add_argument("--key", required=True)
    p_file.set_defaults(func=cmd_file)

    args = p.parse_args(argv)
    try:
        return args.func(args)
    except KmsCertError as e:
        print(f"error: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
