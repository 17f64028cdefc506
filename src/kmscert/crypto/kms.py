"""Thin client over the KMS operations the pipelines consume.

Only three calls are used: DescribeKey, GetPublicKey and Sign. Failures are
mapped onto ``OracleCallFailed`` / ``SigningFailed`` and never retried here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import OracleCallFailed, SigningFailed
from ..utils.logging import get_logger
from .keyspec import KeyDescriptor, SigningAlgorithm

log = get_logger()


def _error_code(e: Exception) -> str:
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Code", "ClientError")
    return type(e).__name__


@dataclass
class KmsOracle:
    """KMS-backed signing oracle.

    ``client`` is any object with the boto3 KMS client surface; when omitted a
    client is created for ``region`` on first use.
    """

    region: Optional[str] = None
    client: Any = field(default=None, repr=False)

    def _kms(self):
        if self.client is None:
            try:
                self.client = boto3.client("kms", region_name=self.region)
            except BotoCoreError as e:
                raise OracleCallFailed(f"cannot create KMS client: {e}") from e
        return self.client

    def describe_key(self, key_id: str) -> KeyDescriptor:
        log.debug("kms DescribeKey %s", key_id)
        try:
            resp = self._kms().describe_key(KeyId=key_id)
        except (ClientError, BotoCoreError) as e:
            raise OracleCallFailed(f"DescribeKey {key_id} failed: {_error_code(e)}: {e}") from e
        return KeyDescriptor.from_describe_key(resp)

    def get_public_key(self, key_id: str) -> bytes:
        """Return the DER-encoded SubjectPublicKeyInfo of ``key_id``."""
        log.debug("kms GetPublicKey %s", key_id)
        try:
            resp = self._kms().get_public_key(KeyId=key_id)
        except (ClientError, BotoCoreError) as e:
            raise OracleCallFailed(f"GetPublicKey {key_id} failed: {_error_code(e)}: {e}") from e
        return resp["PublicKey"]

    def sign_digest(self, key_id: str, digest: bytes, algorithm: SigningAlgorithm) -> bytes:
        log.debug("kms Sign %s %s (%d-byte digest)", key_id, algorithm.kms_algorithm, len(digest))
        try:
            resp = self._kms().sign(
                KeyId=key_id,
                Message=digest,
                MessageType="DIGEST",
                SigningAlgorithm=algorithm.kms_algorithm,
            )
        except (ClientError, BotoCoreError) as e:
            raise SigningFailed(f"Sign with {key_id} failed: {_error_code(e)}: {e}") from e
        return resp["Signature"]


__all__ = ["KmsOracle"]
