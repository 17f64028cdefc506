from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from kmscert.crypto.kms import KmsOracle
from kmscert.sinks.writers import SinkClients

REGION = "us-east-1"
ARN_PREFIX = "arn:aws:kms:us-east-1:111122223333:key/"

_HASH_BY_ALG = {
    "RSASSA_PKCS1_V1_5_SHA_256": hashes.SHA256,
    "ECDSA_SHA_256": hashes.SHA256,
    "ECDSA_SHA_384": hashes.SHA384,
    "ECDSA_SHA_512": hashes.SHA512,
}


def client_error(code: str, op: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, op)


class FakeKmsClient:
    """In-memory stand-in for the boto3 KMS client, backed by local keys."""

    def __init__(self):
        self.keys: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.sign_error: Optional[Exception] = None

    def add_key(self, key_id, private_key, spec, usage="SIGN_VERIFY", state="Enabled"):
        self.keys[key_id] = {"private": private_key, "spec": spec, "usage": usage, "state": state}

    def _entry(self, key_id: str, op: str):
        key_id = key_id[len(ARN_PREFIX):] if key_id.startswith(ARN_PREFIX) else key_id
        if key_id not in self.keys:
            raise client_error("NotFoundException", op, f"Key '{key_id}' does not exist")
        return key_id, self.keys[key_id]

    def describe_key(self, KeyId):
        self.calls.append(("DescribeKey", KeyId))
        key_id, e = self._entry(KeyId, "DescribeKey")
        return {
            "KeyMetadata": {
                "KeyId": key_id,
                "Arn": ARN_PREFIX + key_id,
                "KeySpec": e["spec"],
                "KeyUsage": e["usage"],
                "KeyState": e["state"],
                "Enabled": e["state"] == "Enabled",
            }
        }

    def get_public_key(self, KeyId):
        self.calls.append(("GetPublicKey", KeyId))
        key_id, e = self._entry(KeyId, "GetPublicKey")
        der = e["private"].public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return {"KeyId": ARN_PREFIX + key_id, "PublicKey": der, "KeySpec": e["spec"], "KeyUsage": e["usage"]}

    def sign(self, KeyId, Message, MessageType, SigningAlgorithm):
        self.calls.append(("Sign", KeyId))
        if self.sign_error is not None:
            raise self.sign_error
        key_id, e = self._entry(KeyId, "Sign")
        assert MessageType == "DIGEST"
        prehashed = Prehashed(_HASH_BY_ALG[SigningAlgorithm]())
        priv = e["private"]
        if isinstance(priv, rsa.RSAPrivateKey):
            sig = priv.sign(Message, padding.PKCS1v15(), prehashed)
        else:
            sig = priv.sign(Message, ec.ECDSA(prehashed))
        return {"KeyId": ARN_PREFIX + key_id, "Signature": sig, "SigningAlgorithm": SigningAlgorithm}

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]


class FakeSecretsManager:
    def __init__(self):
        self.secrets: Dict[str, str] = {}
        self.calls: List[str] = []
        self.describe_error: Optional[Exception] = None

    def describe_secret(self, SecretId):
        self.calls.append("DescribeSecret")
        if self.describe_error is not None:
            raise self.describe_error
        if SecretId not in self.secrets:
            raise client_error("ResourceNotFoundException", "DescribeSecret")
        return {"Name": SecretId}

    def create_secret(self, Name, SecretString):
        self.calls.append("CreateSecret")
        if Name in self.secrets:
            raise client_error("ResourceExistsException", "CreateSecret")
        self.secrets[Name] = SecretString
        return {"Name": Name}

    def put_secret_value(self, SecretId, SecretString):
        self.calls.append("PutSecretValue")
        self.secrets[SecretId] = SecretString
        return {"Name": SecretId}


class FakeSsm:
    def __init__(self):
        self.parameters: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.get_error: Optional[Exception] = None

    def get_parameter(self, Name):
        self.calls.append("GetParameter")
        if self.get_error is not None:
            raise self.get_error
        if Name not in self.parameters:
            raise client_error("ParameterNotFound", "GetParameter")
        return {"Parameter": {"Name": Name, "Value": self.parameters[Name]["Value"]}}

    def put_parameter(self, Name, Value, Overwrite=False, **kw):
        self.calls.append("PutParameter")
        current = self.parameters.get(Name)
        if current is not None and not Overwrite:
            raise client_error("ParameterAlreadyExists", "PutParameter")
        if current is not None and current["StoredTier"] == "Advanced" and kw.get("Tier") == "Standard":
            raise client_error("ValidationException", "PutParameter", "cannot downgrade parameter tier")
        tier = kw.get("Tier") or (current["StoredTier"] if current else "Standard")
        self.parameters[Name] = {"Value": Value, "Overwrite": Overwrite, "StoredTier": tier, **kw}
        return {"Version": 1}


class FakeS3:
    def __init__(self):
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.objects[(Bucket, Key)] = {"Body": Body, "ContentType": ContentType}
        return {}


class FakeSns:
    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def publish(self, TopicArn, Message):
        self.messages.append((TopicArn, Message))
        return {"MessageId": str(len(self.messages))}


class FakeSqs:
    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def send_message(self, QueueUrl, MessageBody):
        self.messages.append((QueueUrl, MessageBody))
        return {"MessageId": str(len(self.messages))}


class FakeDynamoDb:
    def __init__(self):
        self.items: Dict[str, List[Dict[str, Any]]] = {}
        self.put_error: Optional[Exception] = None

    def put_item(self, TableName, Item):
        if self.put_error is not None:
            raise self.put_error
        self.items.setdefault(TableName, []).append(Item)
        return {}


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_keys():
    return {
        "ECC_NIST_P256": ec.generate_private_key(ec.SECP256R1()),
        "ECC_NIST_P384": ec.generate_private_key(ec.SECP384R1()),
        "ECC_NIST_P521": ec.generate_private_key(ec.SECP521R1()),
    }


@pytest.fixture
def fake_kms(rsa_key, ec_keys):
    kms = FakeKmsClient()
    kms.add_key("rsa-key", rsa_key, "RSA_2048")
    for spec, key in ec_keys.items():
        kms.add_key(spec.lower().replace("_", "-"), key, spec)
    return kms


@pytest.fixture
def oracle(fake_kms):
    return KmsOracle(region=REGION, client=fake_kms)


@pytest.fixture
def aws_fakes():
    return {
        "secretsmanager": FakeSecretsManager(),
        "ssm": FakeSsm(),
        "s3": FakeS3(),
        "sns": FakeSns(),
        "sqs": FakeSqs(),
        "dynamodb": FakeDynamoDb(),
    }


@pytest.fixture
def sink_clients(aws_fakes):
    return SinkClients(overrides=aws_fakes)
