"""Runtime configuration.

Process-wide defaults come from the environment (and an optional ``.env``).
Engine slots come from an optional YAML file named on the command line.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import InputValidationError

load_dotenv()

DEFAULT_OUTPUT = os.getenv("KMSCERT_DEFAULT_OUTPUT", "file:self_signed_certificate.pem")
DEFAULT_VALIDITY_DAYS = int(os.getenv("KMSCERT_VALIDITY_DAYS", "9125"))
DEFAULT_JSON_FIELD = os.getenv("KMSCERT_JSON_FIELD", "certificate")
HTTP_TIMEOUT_SEC = float(os.getenv("KMSCERT_HTTP_TIMEOUT_SEC", "10"))
DEFAULT_REGION = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
LOG_LEVEL = os.getenv("KMSCERT_LOG_LEVEL", "INFO")


class EngineSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    kms_key_id: Optional[str] = None
    aws_region: Optional[str] = None


class EngineConfig(BaseModel):
    """Signing engine selection: slot label, debug switch, slot file path."""

    model_config = ConfigDict(frozen=True)

    label: Optional[str] = None
    debug: bool = False
    config_path: Optional[str] = None


def load_engine_slots(path: str) -> List[EngineSlot]:
    """Read engine slots from a YAML (or JSON) file.

    Accepts either ``{"slots": [...]}`` or a bare list of slot mappings.
    """
    if not os.path.exists(path):
        raise InputValidationError(f"engine config not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InputValidationError(f"cannot read engine config {path}: {e}") from e
    raw = data.get("slots", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise InputValidationError(f"engine config {path}: 'slots' must be a list")
    try:
        return [EngineSlot(**s) for s in raw]
    except (TypeError, ValidationError) as e:
        raise InputValidationError(f"engine config {path}: invalid slot: {e}") from e


def select_slot(engine: EngineConfig, kms_key_id: str) -> Optional[EngineSlot]:
    """Return the slot named by ``engine.label``, checked against the key id."""
    if not engine.label:
        return None
    if not engine.config_path:
        raise InputValidationError("--pkcs11-label requires an engine config file")
    slots: Dict[str, EngineSlot] = {s.label: s for s in load_engine_slots(engine.config_path)}
    slot = slots.get(engine.label)
    if slot is None:
        raise InputValidationError(f"no engine slot labelled {engine.label!r} in {engine.config_path}")
    if slot.kms_key_id and slot.kms_key_id != kms_key_id:
        raise InputValidationError(
            f"engine slot {engine.label!r} is bound to {slot.kms_key_id}, not {kms_key_id}"
        )
    return slot
