"""Error taxonomy shared by the issuance and verification pipelines."""
from __future__ import annotations

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INPUT_FILE = 2
EXIT_MISMATCH = 3


class KmsCertError(Exception):
    """Base class; ``exit_code`` is what the CLIs terminate with."""

    exit_code = EXIT_FAILURE


class InputValidationError(KmsCertError):
    """Missing or malformed caller input, raised before any KMS call."""


class DestinationParseError(InputValidationError):
    """Output destination string does not match any sink grammar."""


class InputFileError(InputValidationError):
    """Input file is missing, unreadable or not in the expected format."""

    exit_code = EXIT_INPUT_FILE


class KeySpecError(KmsCertError):
    pass


class UnsupportedKeySpec(KeySpecError):
    pass


class WrongKeyUsage(KeySpecError):
    pass


class IncompatibleKeyFamily(KeySpecError):
    pass


class OracleCallFailed(KmsCertError):
    """A KMS call (describe, get-public-key, sign) failed. Never retried."""


class SigningFailed(OracleCallFailed):
    pass


class CertificateGenerationFailed(KmsCertError):
    pass


class UnsupportedPublicKeyFormat(KmsCertError):
    pass


class SinkWriteFailed(KmsCertError):
    pass


__all__ = [
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_INPUT_FILE",
    "EXIT_MISMATCH",
    "KmsCertError",
    "InputValidationError",
    "DestinationParseError",
    "InputFileError",
    "KeySpecError",
    "UnsupportedKeySpec",
    "WrongKeyUsage",
    "IncompatibleKeyFamily",
    "OracleCallFailed",
    "SigningFailed",
    "CertificateGenerationFailed",
    "UnsupportedPublicKeyFormat",
    "SinkWriteFailed",
]
