"""Write a finished certificate to exactly one destination.

Files are replaced atomically. HTTP, S3, SNS and SQS are sent once with no
retry. Secrets Manager and SSM are upserts: the writer probes for the entry
and only the service's documented not-found error counts as absence. Any
other probe failure is a write failure. DynamoDB ``put_item`` already
upserts.
"""
from __future__ import annotations

import os
import stat
import sys
import tempfile
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from ..config import HTTP_TIMEOUT_SEC
from ..errors import SinkWriteFailed
from ..utils.logging import get_logger
from .targets import (
    DynamoDbJsonTarget,
    DynamoDbTarget,
    FileJsonTarget,
    FileTarget,
    HttpJsonTarget,
    HttpTarget,
    S3JsonTarget,
    S3Target,
    SecretsManagerJsonTarget,
    SecretsManagerTarget,
    SinkTarget,
    SnsJsonTarget,
    SnsTarget,
    SqsJsonTarget,
    SqsTarget,
    SsmJsonTarget,
    SsmTarget,
    StdoutJsonTarget,
    StdoutTarget,
)

log = get_logger()

SSM_STANDARD_MAX = 4096


@dataclass
class SinkClients:
    """Backend clients for the writers.

    ``overrides`` maps an AWS service name to a ready client (tests pass
    fakes here); other services get a boto3 client per region, created on
    first use. ``http`` may be a preconfigured ``httpx.Client``.
    """

    overrides: Dict[str, Any] = field(default_factory=dict)
    http: Optional[httpx.Client] = None
    _cache: Dict[Tuple[str, str], Any] = field(default_factory=dict, repr=False)

    def aws(self, service: str, region: str):
        if service in self.overrides:
            return self.overrides[service]
        key = (service, region)
        if key not in self._cache:
            self._cache[key] = boto3.client(service, region_name=region)
        return self._cache[key]


def _is_code(e: ClientError, *codes: str) -> bool:
    return e.response.get("Error", {}).get("Code") in codes


def _write_stdout(target: StdoutTarget, payload: str, clients: SinkClients) -> None:
    sys.stdout.write(payload if payload.endswith("\n") else payload + "\n")
    sys.stdout.flush()


def _file_mode(path: str) -> int:
    """Mode an overwrite should leave: the existing file's, else the umask default."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _write_file(target: FileTarget, payload: str, clients: SinkClients) -> None:
    path = os.path.abspath(target.path)
    directory = os.path.dirname(path)
    fd, tmp = tempfile.mkstemp(prefix=".kmscert-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="ascii") as f:
            f.write(payload)
        os.chmod(tmp, _file_mode(path))
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


def _write_http(target: HttpTarget, payload: str, clients: SinkClients) -> None:
    is_json = isinstance(target, HttpJsonTarget)
    headers = {"Content-Type": "application/json" if is_json else "application/x-pem-file"}
    if clients.http is not None:
        resp = clients.http.post(target.url, content=payload.encode(), headers=headers)
    else:
        with httpx.Client(timeout=HTTP_TIMEOUT_SEC) as client:
            resp = client.post(target.url, content=payload.encode(), headers=headers)
    if not 200 <= resp.status_code < 300:
        raise SinkWriteFailed(f"POST {target.url} returned HTTP {resp.status_code}")


def _write_s3(target: S3Target, payload: str, clients: SinkClients) -> None:
    content_type = "application/json" if isinstance(target, S3JsonTarget) else "application/x-pem-file"
    clients.aws("s3", target.region).put_object(
        Bucket=target.bucket, Key=target.key, Body=payload.encode(), ContentType=content_type
    )


def _write_secretsmanager(target: SecretsManagerTarget, payload: str, clients: SinkClients) -> None:
    sm = clients.aws("secretsmanager", target.region)
    try:
        sm.describe_secret(SecretId=target.secret_name)
        exists = True
    except ClientError as e:
        if not _is_code(e, "ResourceNotFoundException"):
            raise
        exists = False
    if exists:
        log.debug("secret %s exists, updating", target.secret_name)
        sm.put_secret_value(SecretId=target.secret_name, SecretString=payload)
    else:
        log.debug("secret %s not found, creating", target.secret_name)
        sm.create_secret(Name=target.secret_name, SecretString=payload)


def _write_sns(target: SnsTarget, payload: str, clients: SinkClients) -> None:
    clients.aws("sns", target.region).publish(TopicArn=target.topic_arn, Message=payload)


def _write_sqs(target: SqsTarget, payload: str, clients: SinkClients) -> None:
    clients.aws("sqs", target.region).send_message(QueueUrl=target.queue_url, MessageBody=payload)


def _write_ssm(target: SsmTarget, payload: str, clients: SinkClients) -> None:
    ssm = clients.aws("ssm", target.region)
    try:
        ssm.get_parameter(Name=target.parameter_name)
        exists = True
    except ClientError as e:
        if not _is_code(e, "ParameterNotFound"):
            raise
        exists = False
    advanced = len(payload.encode()) > SSM_STANDARD_MAX
    if exists:
        log.debug("parameter %s exists, overwriting", target.parameter_name)
        # Type is fixed at creation; Tier may be raised but never lowered
        params = {"Tier": "Advanced"} if advanced else {}
        ssm.put_parameter(Name=target.parameter_name, Value=payload, Overwrite=True, **params)
    else:
        log.debug("parameter %s not found, creating", target.parameter_name)
        ssm.put_parameter(
            Name=target.parameter_name,
            Value=payload,
            Type="SecureString",
            Tier="Advanced" if advanced else "Standard",
            Overwrite=False,
        )


def _write_dynamodb(target: DynamoDbTarget, payload: str, clients: SinkClients) -> None:
    item = {
        target.hash_key: {"S": target.hash_value},
        target.attribute: {"S": payload},
    }
    if target.sort_key:
        item[target.sort_key] = {"S": target.sort_value}
    clients.aws("dynamodb", target.region).put_item(TableName=target.table, Item=item)


_WRITERS: Dict[type, Callable[[Any, str, SinkClients], None]] = {
    StdoutTarget: _write_stdout,
    StdoutJsonTarget: _write_stdout,
    FileTarget: _write_file,
    FileJsonTarget: _write_file,
    HttpTarget: _write_http,
    HttpJsonTarget: _write_http,
    S3Target: _write_s3,
    S3JsonTarget: _write_s3,
    SecretsManagerTarget: _write_secretsmanager,
    SecretsManagerJsonTarget: _write_secretsmanager,
    SnsTarget: _write_sns,
    SnsJsonTarget: _write_sns,
    SqsTarget: _write_sqs,
    SqsJsonTarget: _write_sqs,
    SsmTarget: _write_ssm,
    SsmJsonTarget: _write_ssm,
    DynamoDbTarget: _write_dynamodb,
    DynamoDbJsonTarget: _write_dynamodb,
}


def write(target: SinkTarget, certificate: bytes, clients: Optional[SinkClients] = None) -> None:
    writer = _WRITERS.get(type(target))
    if writer is None:
        raise SinkWriteFailed(f"no writer registered for {type(target).__name__}")
    clients = clients or SinkClients()
    try:
        writer(target, target.payload(certificate), clients)
    except SinkWriteFailed:
        raise
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "ClientError")
        raise SinkWriteFailed(f"{type(target).__name__}: {code}: {e}") from e
    except (BotoCoreError, httpx.HTTPError, OSError) as e:
        raise SinkWriteFailed(f"{type(target).__name__}: {e}") from e
    log.info("certificate written to %s", type(target).__name__)


__all__ = ["SinkClients", "write"]
