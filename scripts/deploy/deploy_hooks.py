"""Optional customization hooks for the App Service deploy pipeline.

A hooks module may define any subset of the methods in `DeployHooksProtocol`,
either as module-level functions or on an object returned by `get_hooks()`.
"""

from __future__ import annotations

import argparse
import importlib
import importlib.util
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, MutableMapping, Protocol, runtime_checkable

try:
    from scripts.deploy.env_schema import VarsEnum, truthy
except ImportError:
    from env_schema import VarsEnum, truthy


DEFAULT_HOOKS_RELPATH = Path("scripts") / "deploy" / "deploy_customizations.py"


@dataclass
class DeployContext:
    """Context passed to every hook.

    `env` is the merged deploy settings mapping; hooks may read it but changes
    after settings are resolved have no effect on the run.
    """
    repo_root: Path
    env: MutableMapping[str, str]
    args: argparse.Namespace

    def log(self, msg: str) -> None:
        print(f"🪝 [hook] {msg}")


@dataclass
class DeployPlan:
    """What the pipeline is about to do. Hooks may edit it in `pre_provision`."""
    resource_group: str
    location: str
    app_name: str
    webapp_name: str
    plan_name: str
    sku: str
    runtime: str
    source_path: Path
    archive_path: Path | None = None
    extra_metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DeployHooksProtocol(Protocol):
    def pre_provision(self, ctx: DeployContext, plan: DeployPlan) -> None: ...
    def post_provision(self, ctx: DeployContext, plan: DeployPlan, webapp: dict) -> None: ...
    def pre_package(self, ctx: DeployContext, plan: DeployPlan) -> None: ...
    def post_deploy(self, ctx: DeployContext, plan: DeployPlan, url: str) -> None: ...
    def on_error(self, ctx: DeployContext, exc: BaseException) -> None: ...


class DeployHooks:
    """Holds the loaded hooks object (if any) and dispatches calls to it."""

    def __init__(self, impl: Any | None, soft_fail: bool = False):
        self._impl = impl
        self._soft_fail = soft_fail

    def call(self, hook_name: str, *args, **kwargs) -> Any:
        if not self._impl:
            return None

        method = getattr(self._impl, hook_name, None)
        if not method:
            return None

        try:
            return method(*args, **kwargs)
        except Exception as e:
            if self._soft_fail:
                print(f"⚠️  [hook] Hook '{hook_name}' failed: {e} (soft-fail enabled)", file=sys.stderr)
                return None
            print(f"❌ [hook] Hook '{hook_name}' failed: {e}", file=sys.stderr)
            raise


def _load_module_from_file(path: Path) -> Any:
    spec = importlib.util.spec_from_file_location("deploy_customizations", path)
    if not spec or not spec.loader:
        raise ImportError(f"Could not load spec from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules["deploy_customizations"] = module
    spec.loader.exec_module(module)
    return module


def load_hooks(repo_root: Path, module_path: str | None = None, soft_fail: bool | None = None) -> DeployHooks:
    """Load hooks.

    Resolution order:
    1. `module_path` argument, then DEPLOY_HOOKS_MODULE -> must load.
    2. `scripts/deploy/deploy_customizations.py` under `repo_root` if present.
    3. Nothing -> no-op hooks.

    Values containing a path separator or ending in `.py` load from file;
    anything else is imported as a dotted module name.
    """
    if soft_fail is None:
        soft_fail = truthy(os.getenv(VarsEnum.DEPLOY_HOOKS_SOFT_FAIL.value))

    target = (module_path or os.getenv(VarsEnum.DEPLOY_HOOKS_MODULE.value) or "").strip()
    if not target:
        default_file = repo_root / DEFAULT_HOOKS_RELPATH
        if not default_file.exists():
            return DeployHooks(None, soft_fail=soft_fail)
        target = str(default_file.resolve())

    print(f"🪝 [hooks] Loading hooks from: {target}")

    try:
        if target.endswith(".py") or "/" in target or "\\" in target:
            path_obj = Path(target).resolve()
            if not path_obj.exists():
                raise FileNotFoundError(f"Hook module not found at: {path_obj}")
            module = _load_module_from_file(path_obj)
        else:
            module = importlib.import_module(target)

        impl = module.get_hooks() if hasattr(module, "get_hooks") else module
        return DeployHooks(impl, soft_fail=soft_fail)

    except Exception as e:
        if soft_fail:
            print(f"⚠️  [hooks] Failed to load hooks from {target}: {e} (soft-fail enabled)", file=sys.stderr)
            return DeployHooks(None, soft_fail=soft_fail)
        raise ImportError(f"Failed to load hooks from {target}: {e}") from e
