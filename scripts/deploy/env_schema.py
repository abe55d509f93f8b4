"""Deterministic environment variable schema for App Service deployment.

This module is the single source of truth for:
- which deploy-time keys exist
- their defaults
- how `.env.deploy` and the process environment are merged and validated

Design goals:
- No heuristic classification.
- Unknown keys in `.env.deploy` are an error.
- Fail fast with clear error messages.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

from dotenv import dotenv_values


class VarsEnum(str, Enum):
    # App Service sizing / runtime
    AZURE_APPSERVICE_SKU = "AZURE_APPSERVICE_SKU"
    AZURE_WEBAPP_RUNTIME = "AZURE_WEBAPP_RUNTIME"
    AZURE_WEBAPP_RUNTIME_VERSION = "AZURE_WEBAPP_RUNTIME_VERSION"

    # Naming conflict handling
    AZURE_WEBAPP_NAME_ATTEMPTS = "AZURE_WEBAPP_NAME_ATTEMPTS"

    # Post-deploy probe
    AZURE_WEBAPP_PROBE_TIMEOUT = "AZURE_WEBAPP_PROBE_TIMEOUT"

    # Hooks
    DEPLOY_HOOKS_MODULE = "DEPLOY_HOOKS_MODULE"
    DEPLOY_HOOKS_SOFT_FAIL = "DEPLOY_HOOKS_SOFT_FAIL"


@dataclass(frozen=True)
class EnvKeySpec:
    key: VarsEnum
    mandatory: bool
    default: str | None = None


class EnvValidationError(ValueError):
    def __init__(self, *, context: str, problems: list[str]):
        super().__init__("; ".join(problems))
        self.context = context
        self.problems = problems

    def format(self) -> str:
        lines = [f"[env] validation failed: {self.context}"]
        for p in self.problems:
            lines.append(f"- {p}")
        return "\n".join(lines)


DEPLOY_SCHEMA: tuple[EnvKeySpec, ...] = (
    EnvKeySpec(key=VarsEnum.AZURE_APPSERVICE_SKU, mandatory=True, default="F1"),
    EnvKeySpec(key=VarsEnum.AZURE_WEBAPP_RUNTIME, mandatory=True, default="PYTHON"),
    EnvKeySpec(key=VarsEnum.AZURE_WEBAPP_RUNTIME_VERSION, mandatory=True, default="3.11"),
    EnvKeySpec(key=VarsEnum.AZURE_WEBAPP_NAME_ATTEMPTS, mandatory=True, default="3"),
    EnvKeySpec(key=VarsEnum.AZURE_WEBAPP_PROBE_TIMEOUT, mandatory=True, default="120"),
    EnvKeySpec(key=VarsEnum.DEPLOY_HOOKS_MODULE, mandatory=False),
    EnvKeySpec(key=VarsEnum.DEPLOY_HOOKS_SOFT_FAIL, mandatory=False, default="false"),
)

# F1, D1, B1..B3, S1..S3, P1V2..P3V3, I1V2, ...
_SKU_RE = re.compile(r"^[A-Z]{1,2}\d(V\d)?$")

# scripts/deploy/env_schema.py -> repo root is 2 parents up.
REPO_ROOT = Path(__file__).resolve().parents[2]
DEPLOY_ENV_FILENAME = ".env.deploy"


def _schema_keys(schema: Iterable[EnvKeySpec]) -> set[str]:
    return {spec.key.value for spec in schema}


def parse_dotenv_file(path: Path) -> dict[str, str]:
    """Parse dotenv file strictly.

    - Comments are ignored.
    - Keys are preserved even if they have empty values (""), so we can detect unknown keys.
    """
    kv: dict[str, str] = {}
    raw = dotenv_values(path)
    for k, v in raw.items():
        if k is None:
            continue
        key = str(k).strip()
        if not key:
            continue
        kv[key] = "" if v is None else str(v).strip()
    return kv


def validate_known_keys(schema: Iterable[EnvKeySpec], kv: Mapping[str, str], *, context: str) -> None:
    allowed = _schema_keys(schema)
    unknown = sorted([k for k in kv.keys() if k not in allowed])
    if unknown:
        raise EnvValidationError(
            context=context,
            problems=["Unknown key(s): " + ", ".join(unknown)],
        )


def apply_defaults(schema: Iterable[EnvKeySpec], kv: dict[str, str]) -> dict[str, str]:
    out = dict(kv)
    for spec in schema:
        if str(out.get(spec.key.value) or "").strip():
            continue
        if spec.default is None:
            continue
        out[spec.key.value] = spec.default
    return out


def validate_required(schema: Iterable[EnvKeySpec], kv: Mapping[str, str], *, context: str) -> None:
    missing: list[str] = []
    for spec in schema:
        if not spec.mandatory:
            continue
        if not str(kv.get(spec.key.value) or "").strip():
            missing.append(spec.key.value)
    if missing:
        raise EnvValidationError(context=context, problems=["Missing mandatory key(s): " + ", ".join(sorted(missing))])


def truthy(val: str | None) -> bool:
    v = str(val or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def _positive_int(val: str | None) -> bool:
    try:
        return int(str(val or "").strip()) >= 1
    except ValueError:
        return False


def validate_cross_field_rules(*, deploy_kv: Mapping[str, str], context: str) -> None:
    """Extra validation for rules that can't be expressed with (mandatory/default) alone."""
    problems: list[str] = []

    sku = str(deploy_kv.get(VarsEnum.AZURE_APPSERVICE_SKU.value) or "").strip()
    if sku and not _SKU_RE.match(sku.upper()):
        problems.append(f"{VarsEnum.AZURE_APPSERVICE_SKU.value}={sku!r} is not an App Service pricing tier (e.g. F1, B1, P1V3)")

    for key in (VarsEnum.AZURE_WEBAPP_NAME_ATTEMPTS, VarsEnum.AZURE_WEBAPP_PROBE_TIMEOUT):
        raw = deploy_kv.get(key.value)
        if raw is not None and str(raw).strip() and not _positive_int(raw):
            problems.append(f"{key.value} must be a positive integer (got {raw!r})")

    if problems:
        raise EnvValidationError(context=context, problems=problems)


def env_subset(schema: Iterable[EnvKeySpec]) -> dict[str, str]:
    """Non-empty process env values for the schema's keys."""
    out: dict[str, str] = {}
    for k in _schema_keys(schema):
        v = os.getenv(k)
        if v is None or not str(v).strip():
            continue
        out[k] = str(v).strip()
    return out


def load_deploy_settings(deploy_env_path: Path | None) -> dict[str, str]:
    """Merge `.env.deploy` (if present) with process env, apply defaults and validate.

    Process env wins over file values. Raises EnvValidationError.
    """
    name = deploy_env_path.name if deploy_env_path is not None else "<none>"
    context = f"deploy ({name} + env)"

    file_kv: dict[str, str] = {}
    if deploy_env_path is not None and deploy_env_path.exists():
        file_kv = parse_dotenv_file(deploy_env_path)
        validate_known_keys(DEPLOY_SCHEMA, file_kv, context=context)

    merged = dict(file_kv)
    merged.update(env_subset(DEPLOY_SCHEMA))
    merged = apply_defaults(DEPLOY_SCHEMA, merged)

    validate_required(DEPLOY_SCHEMA, merged, context=context)
    validate_cross_field_rules(deploy_kv=merged, context=context)
    return merged


def default_deploy_env_path() -> Path:
    return REPO_ROOT / DEPLOY_ENV_FILENAME


def apply_overrides(settings: Mapping[str, str], overrides: Mapping[VarsEnum, object | None], *, context: str) -> dict[str, str]:
    """Layer non-empty CLI values on top of resolved settings and re-validate.

    Raises EnvValidationError.
    """
    merged = dict(settings)
    for key, value in overrides.items():
        if value is None or not str(value).strip():
            continue
        merged[key.value] = str(value).strip()

    validate_required(DEPLOY_SCHEMA, merged, context=context)
    validate_cross_field_rules(deploy_kv=merged, context=context)
    return merged


def get_spec(schema: Iterable[EnvKeySpec], key: VarsEnum) -> EnvKeySpec:
    for spec in schema:
        if spec.key == key:
            return spec
    raise KeyError(key)
