"""Deployment request model and App Service name derivation."""

from __future__ import annotations

import random
import string
from dataclasses import dataclass
from pathlib import Path

SUFFIX_LENGTH = 5
PLAN_SUFFIX = "-plan"


@dataclass(frozen=True)
class DeploymentRequest:
    resource_group: str
    app_name: str
    location: str
    source_path: Path


@dataclass(frozen=True)
class DerivedConfig:
    plan_name: str
    sku: str
    runtime: str
    webapp_name: str


def random_suffix(length: int = SUFFIX_LENGTH, *, rng: random.Random | None = None) -> str:
    # Not a secret; only lowers the odds of a global hostname collision.
    r = rng or random
    return "".join(r.choice(string.ascii_letters) for _ in range(length))


def randomize_app_name(app_name: str, *, rng: random.Random | None = None) -> str:
    """Return `<app_name>-<5 letters>`, lower-cased.

    Nothing here checks availability against Azure; `az webapp create` may
    still reject the result.
    """
    return f"{app_name}-{random_suffix(rng=rng)}".lower()


def plan_name_for(app_name: str) -> str:
    return f"{app_name}{PLAN_SUFFIX}"


def runtime_tag(runtime_name: str, runtime_version: str) -> str:
    """Compose the `az webapp create --runtime` value, e.g. PYTHON:3.11."""
    return f"{runtime_name.strip().upper()}:{runtime_version.strip()}"


def derive_config(
    request: DeploymentRequest,
    *,
    sku: str,
    runtime_name: str,
    runtime_version: str,
    rng: random.Random | None = None,
) -> DerivedConfig:
    return DerivedConfig(
        plan_name=plan_name_for(request.app_name),
        sku=sku.strip().upper(),
        runtime=runtime_tag(runtime_name, runtime_version),
        webapp_name=randomize_app_name(request.app_name, rng=rng),
    )
