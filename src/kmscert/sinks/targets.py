"""Output destinations and their string grammar.

A destination string is ``<kind>[:json]:<fields>`` with fields separated by
``|``; JSON-wrapped kinds accept an optional trailing field name for the
wrapper key (default ``certificate``)::

    stdout
    json[:<field>]
    file:<path>
    file:json:<path>[|<field>]
    http:<url>
    http:json:<url>[|<field>]
    s3:<region>|<bucket>|<key>
    s3:json:<region>|<bucket>|<key>[|<field>]
    secretsmanager:<region>|<secret-name>
    secretsmanager:json:<region>|<secret-name>[|<field>]
    sns:<region>|<topic-arn>
    sns:json:<region>|<topic-arn>[|<field>]
    sqs:<region>|<queue-url>
    sqs:json:<region>|<queue-url>[|<field>]
    ssm:<region>|<parameter-name>
    ssm:json:<region>|<parameter-name>[|<field>]
    dynamodb:<region>|<table>|<hash-key>|<hash-value>[|<sort-key>|<sort-value>]|<attribute>
    dynamodb:json:<region>|<table>|<hash-key>|<hash-value>[|<sort-key>|<sort-value>]|<attribute>[|<field>]

The longest matching prefix wins, so ``s3:json:`` is tried before ``s3:``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..config import DEFAULT_JSON_FIELD
from ..errors import DestinationParseError


@dataclass(frozen=True)
class SinkTarget:
    def payload(self, certificate: bytes) -> str:
        return certificate.decode("ascii")


class JsonWrapped:
    field: str

    def payload(self, certificate: bytes) -> str:
        return json.dumps({self.field: certificate.decode("ascii")})


@dataclass(frozen=True)
class StdoutTarget(SinkTarget):
    pass


@dataclass(frozen=True)
class StdoutJsonTarget(JsonWrapped, SinkTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class FileTarget(SinkTarget):
    path: str


@dataclass(frozen=True)
class FileJsonTarget(JsonWrapped, FileTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class HttpTarget(SinkTarget):
    url: str


@dataclass(frozen=True)
class HttpJsonTarget(JsonWrapped, HttpTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class S3Target(SinkTarget):
    region: str
    bucket: str
    key: str


@dataclass(frozen=True)
class S3JsonTarget(JsonWrapped, S3Target):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class SecretsManagerTarget(SinkTarget):
    region: str
    secret_name: str


@dataclass(frozen=True)
class SecretsManagerJsonTarget(JsonWrapped, SecretsManagerTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class SnsTarget(SinkTarget):
    region: str
    topic_arn: str


@dataclass(frozen=True)
class SnsJsonTarget(JsonWrapped, SnsTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class SqsTarget(SinkTarget):
    region: str
    queue_url: str


@dataclass(frozen=True)
class SqsJsonTarget(JsonWrapped, SqsTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class SsmTarget(SinkTarget):
    region: str
    parameter_name: str


@dataclass(frozen=True)
class SsmJsonTarget(JsonWrapped, SsmTarget):
    field: str = DEFAULT_JSON_FIELD


@dataclass(frozen=True)
class DynamoDbTarget(SinkTarget):
    region: str
    table: str
    hash_key: str
    hash_value: str
    sort_key: Optional[str]
    sort_value: Optional[str]
    attribute: str


@dataclass(frozen=True)
class DynamoDbJsonTarget(JsonWrapped, DynamoDbTarget):
    field: str = DEFAULT_JSON_FIELD


def _split(dest: str, rest: str, required: int, optional: int = 0) -> List[str]:
    parts = rest.split("|")
    if not required <= len(parts) <= required + optional:
        want = str(required) if not optional else f"{required}-{required + optional}"
        raise DestinationParseError(f"{dest!r}: expected {want} '|'-separated fields, got {len(parts)}")
    if any(not p for p in parts):
        raise DestinationParseError(f"{dest!r}: empty field")
    return parts


def _json_field(parts: List[str], index: int) -> str:
    return parts[index] if len(parts) > index else DEFAULT_JSON_FIELD


def _stdout(dest: str, rest: str) -> SinkTarget:
    if rest:
        raise DestinationParseError(f"{dest!r}: stdout takes no fields")
    return StdoutTarget()


def _stdout_json(dest: str, rest: str) -> SinkTarget:
    if rest.startswith(":"):
        field = rest[1:]
        if not field:
            raise DestinationParseError(f"{dest!r}: empty JSON field name")
        return StdoutJsonTarget(field=field)
    if rest:
        raise DestinationParseError(f"unrecognized output destination: {dest!r}")
    return StdoutJsonTarget()


def _file(dest: str, rest: str) -> SinkTarget:
    return FileTarget(*_split(dest, rest, 1))


def _file_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 1, 1)
    return FileJsonTarget(p[0], field=_json_field(p, 1))


def _http(dest: str, rest: str) -> SinkTarget:
    return HttpTarget(*_split(dest, rest, 1))


def _http_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 1, 1)
    return HttpJsonTarget(p[0], field=_json_field(p, 1))


def _s3(dest: str, rest: str) -> SinkTarget:
    return S3Target(*_split(dest, rest, 3))


def _s3_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 3, 1)
    return S3JsonTarget(*p[:3], field=_json_field(p, 3))


def _secretsmanager(dest: str, rest: str) -> SinkTarget:
    return SecretsManagerTarget(*_split(dest, rest, 2))


def _secretsmanager_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 2, 1)
    return SecretsManagerJsonTarget(*p[:2], field=_json_field(p, 2))


def _sns(dest: str, rest: str) -> SinkTarget:
    return SnsTarget(*_split(dest, rest, 2))


def _sns_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 2, 1)
    return SnsJsonTarget(*p[:2], field=_json_field(p, 2))


def _sqs(dest: str, rest: str) -> SinkTarget:
    return SqsTarget(*_split(dest, rest, 2))


def _sqs_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 2, 1)
    return SqsJsonTarget(*p[:2], field=_json_field(p, 2))


def _ssm(dest: str, rest: str) -> SinkTarget:
    return SsmTarget(*_split(dest, rest, 2))


def _ssm_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 2, 1)
    return SsmJsonTarget(*p[:2], field=_json_field(p, 2))


def _dynamo_fields(dest: str, p: List[str]) -> Tuple[str, ...]:
    # region|table|hash-key|hash-value[|sort-key|sort-value]|attribute
    if len(p) == 5:
        return (p[0], p[1], p[2], p[3], None, None, p[4])
    if len(p) == 7:
        return tuple(p)
    raise DestinationParseError(f"{dest!r}: expected 5 or 7 '|'-separated fields, got {len(p)}")


def _dynamodb(dest: str, rest: str) -> SinkTarget:
    return DynamoDbTarget(*_dynamo_fields(dest, _split(dest, rest, 5, 2)))


def _dynamodb_json(dest: str, rest: str) -> SinkTarget:
    p = _split(dest, rest, 5, 3)
    # 6 and 8 fields carry a trailing JSON field name
    if len(p) in (6, 8):
        return DynamoDbJsonTarget(*_dynamo_fields(dest, p[:-1]), field=p[-1])
    return DynamoDbJsonTarget(*_dynamo_fields(dest, p))


_PARSERS: List[Tuple[str, Callable[[str, str], SinkTarget]]] = sorted(
    [
        ("stdout", _stdout),
        ("json", _stdout_json),
        ("file:", _file),
        ("file:json:", _file_json),
        ("http:", _http),
        ("http:json:", _http_json),
        ("s3:", _s3),
        ("s3:json:", _s3_json),
        ("secretsmanager:", _secretsmanager),
        ("secretsmanager:json:", _secretsmanager_json),
        ("sns:", _sns),
        ("sns:json:", _sns_json),
        ("sqs:", _sqs),
        ("sqs:json:", _sqs_json),
        ("ssm:", _ssm),
        ("ssm:json:", _ssm_json),
        ("dynamodb:", _dynamodb),
        ("dynamodb:json:", _dynamodb_json),
    ],
    key=lambda item: len(item[0]),
    reverse=True,
)


def parse_destination(dest: str) -> SinkTarget:
    dest = (dest or "").strip()
    for prefix, parser in _PARSERS:
        if dest.startswith(prefix):
            return parser(dest, dest[len(prefix):])
    raise DestinationParseError(f"unrecognized output destination: {dest!r}")


__all__ = [
    "SinkTarget",
    "JsonWrapped",
    "StdoutTarget",
    "StdoutJsonTarget",
    "FileTarget",
    "FileJsonTarget",
    "HttpTarget",
    "HttpJsonTarget",
    "S3Target",
    "S3JsonTarget",
    "SecretsManagerTarget",
    "SecretsManagerJsonTarget",
    "SnsTarget",
    "SnsJsonTarget",
    "SqsTarget",
    "SqsJsonTarget",
    "SsmTarget",
    "SsmJsonTarget",
    "DynamoDbTarget",
    "DynamoDbJsonTarget",
    "parse_destination",
]
