"""Issuance pipeline: resolve the KMS key, self-sign with it, write the result."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_OUTPUT, DEFAULT_REGION, EngineConfig, select_slot
from .crypto.keyspec import require_rsa, resolve
from .crypto.kms import KmsOracle
from .crypto.kms_key import kms_private_key, load_kms_public_key
from .errors import SinkWriteFailed
from .sinks.targets import parse_destination
from .sinks.writers import SinkClients, write
from .utils.logging import get_logger
from .x509.builder import build_certificate, build_csr
from .x509.request import CertificateRequest


class IssuanceConfig(BaseModel):
    """One issuance run, built once from parsed arguments."""

    model_config = ConfigDict(frozen=True)

    kms_key_id: str = Field(min_length=1)
    request: CertificateRequest
    output: str = DEFAULT_OUTPUT
    region: Optional[str] = DEFAULT_REGION
    require_rsa: bool = False
    csr_only: bool = False
    engine: EngineConfig = EngineConfig()


def issue_certificate(
    config: IssuanceConfig,
    oracle: Optional[KmsOracle] = None,
    clients: Optional[SinkClients] = None,
) -> bytes:
    """Issue a certificate (or CSR) for ``config.kms_key_id`` and write it.

    Returns the PEM that was written.
    """
    log = get_logger(debug=config.engine.debug)
    target = parse_destination(config.output)

    region = config.region
    slot = select_slot(config.engine, config.kms_key_id)
    if slot is not None and slot.aws_region:
        region = slot.aws_region
    if oracle is None:
        oracle = KmsOracle(region=region)

    descriptor = oracle.describe_key(config.kms_key_id)
    log.info("key %s: spec=%s usage=%s", descriptor.key_id, descriptor.key_spec, descriptor.usage)
    if config.require_rsa:
        require_rsa(descriptor)
    algorithm = resolve(descriptor)

    public_key = load_kms_public_key(oracle.get_public_key(config.kms_key_id))
    signing_key = kms_private_key(oracle, descriptor, algorithm, public_key)

    if config.csr_only:
        pem = build_csr(config.request, algorithm, signing_key)
    else:
        pem = build_certificate(config.request, algorithm, signing_key)

    try:
        write(target, pem, clients)
    except SinkWriteFailed:
        # keep the signed artifact recoverable
        log.error("output failed; signed PEM follows so it is not lost:\n%s", pem.decode("ascii"))
        raise
    return pem


__all__ = ["IssuanceConfig", "issue_certificate"]
