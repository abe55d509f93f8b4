#!/usr/bin/env python3
"""Provision an Azure App Service web app and zip-deploy a local directory to it.

Flow:
- Check `az login` state and that the source directory exists.
- Derive plan name (<app>-plan), SKU, runtime and a randomized web app name
  (<app>-<5 letters>, lower-cased).
- Ensure the resource group (idempotent), create the plan and the web app.
- Zip the source directory into <tempdir>/<webapp>.zip.
- `az webapp deploy --type zip` to the production slot.
- Delete the archive and print https://<default-hostname>.

Notes:
- Plan and web app creation are unconditional; re-running against an
  existing plan updates it.
- Nothing is rolled back on failure. The resource group (and anything created
  before the failing step) stays in place, and so does the temp archive.
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

import requests

# Add scripts dir to path to allow importing sibling modules when running as a script.
sys.path.append(str(Path(__file__).parent))

try:
    from scripts.deploy import appservice_naming as naming
    from scripts.deploy import appservice_package as packaging
    from scripts.deploy import appservice_provision as provision
    from scripts.deploy import azure_utils
    from scripts.deploy import deploy_hooks
    from scripts.deploy.env_schema import (
        DEPLOY_SCHEMA,
        EnvValidationError,
        VarsEnum,
        apply_overrides,
        default_deploy_env_path,
        get_spec,
        load_deploy_settings,
        truthy,
    )
except ImportError:
    import appservice_naming as naming
    import appservice_package as packaging
    import appservice_provision as provision
    import azure_utils
    import deploy_hooks
    from env_schema import (
        DEPLOY_SCHEMA,
        EnvValidationError,
        VarsEnum,
        apply_overrides,
        default_deploy_env_path,
        get_spec,
        load_deploy_settings,
        truthy,
    )


def validate_source_path(raw: str) -> Path:
    path = Path(raw).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"Source path not found: {path}")
    if not path.is_dir():
        raise SystemExit(f"Source path is not a directory: {path}")
    # The archive must not be written inside the tree being zipped.
    staging = packaging.archive_dir().resolve()
    if staging == path or path in staging.parents:
        raise SystemExit(f"Source path {path} contains the archive directory {staging}; deploy from a subdirectory.")
    return path


def create_webapp_with_retry(plan: deploy_hooks.DeployPlan, *, attempts: int) -> dict:
    """Create the web app, drawing a fresh name suffix on global name conflicts.

    Updates `plan.webapp_name` to the name that was actually created.
    """
    for attempt in range(1, attempts + 1):
        try:
            return provision.create_webapp(
                resource_group=plan.resource_group,
                plan_name=plan.plan_name,
                name=plan.webapp_name,
                runtime=plan.runtime,
            )
        except subprocess.CalledProcessError as e:
            if not provision.is_name_conflict(getattr(e, "stderr", None)):
                raise
            if attempt >= attempts:
                raise SystemExit(
                    f"Web app name '{plan.webapp_name}' is already taken and {attempts} attempt(s) "
                    f"with random suffixes failed. Choose a different --app-name."
                ) from e
            taken = plan.webapp_name
            plan.webapp_name = naming.randomize_app_name(plan.app_name)
            print(
                f"⚠️  [webapp] Name '{taken}' is not available (attempt {attempt}/{attempts}); "
                f"retrying as '{plan.webapp_name}'"
            )
    raise AssertionError("unreachable")


def zip_deploy(*, resource_group: str, webapp_name: str, archive_path: Path) -> None:
    print(f"🚀 [deploy] Publishing {archive_path.name} to '{webapp_name}' (production slot)...")
    run_args = [
        "webapp",
        "deploy",
        "--resource-group",
        resource_group,
        "--name",
        webapp_name,
        "--src-path",
        str(archive_path),
        "--type",
        "zip",
        "--output",
        "none",
    ]
    azure_utils.run_az_command(run_args, capture_output=False)


def build_app_url(webapp: dict, *, resource_group: str) -> str:
    hostname = str(webapp.get("defaultHostName") or "").strip()
    if not hostname:
        hostname = provision.get_default_hostname(resource_group=resource_group, name=str(webapp.get("name") or ""))
    if not hostname:
        raise SystemExit(f"Could not determine default hostname for web app '{webapp.get('name')}'")
    return f"https://{hostname}"


def probe_site(url: str, *, timeout_s: int, interval_s: float = 5.0) -> bool:
    """Poll `url` until it answers with a non-5xx status or `timeout_s` elapses."""
    deadline = time.monotonic() + timeout_s
    attempt = 0
    while True:
        attempt += 1
        try:
            resp = requests.get(url, timeout=10)
            if resp.status_code < 500:
                print(f"✅ [probe] {url} answered HTTP {resp.status_code}")
                return True
            detail = f"HTTP {resp.status_code}"
        except requests.RequestException as e:
            detail = type(e).__name__

        if time.monotonic() + interval_s > deadline:
            print(f"⚠️  [probe] {url} not ready after {timeout_s}s (last: {detail})", file=sys.stderr)
            return False
        print(f"⏳ [probe] attempt {attempt}: {detail}; waiting {interval_s:.0f}s")
        time.sleep(interval_s)


def run_deploy(
    plan: deploy_hooks.DeployPlan,
    *,
    ctx: deploy_hooks.DeployContext,
    hooks: deploy_hooks.DeployHooks,
    name_attempts: int,
    temp_dir: Path | None = None,
) -> str:
    """Provision, package and publish. Returns the public URL."""
    hooks.call("pre_provision", ctx, plan)

    account = azure_utils.get_az_account_info()
    if account.get("id"):
        print(f"[deploy] subscription: {account.get('name') or account['id']} ({account['id']})")

    provision.ensure_resource_group(plan.resource_group, plan.location)
    provision.create_service_plan(
        resource_group=plan.resource_group,
        name=plan.plan_name,
        location=plan.location,
        sku=plan.sku,
    )
    webapp = create_webapp_with_retry(plan, attempts=name_attempts)
    hooks.call("post_provision", ctx, plan, webapp)

    plan.archive_path = packaging.archive_path_for(plan.webapp_name, temp_dir)
    hooks.call("pre_package", ctx, plan)
    archive = packaging.package_source(plan.source_path, plan.archive_path)

    zip_deploy(resource_group=plan.resource_group, webapp_name=plan.webapp_name, archive_path=archive)

    packaging.remove_archive(archive)
    print(f"🧹 [package] Removed {archive}")

    webapp.setdefault("name", plan.webapp_name)
    url = build_app_url(webapp, resource_group=plan.resource_group)
    hooks.call("post_deploy", ctx, plan, url)
    return url


def _default_help(key: VarsEnum) -> str:
    return f"default: {key.value} or {get_spec(DEPLOY_SCHEMA, key).default}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision an Azure App Service web app and zip-deploy a directory to it")

    parser.add_argument("--resource-group", "-g", required=True)
    parser.add_argument("--app-name", "-n", required=True, help="Base app name; a random 5-letter suffix is appended")
    parser.add_argument("--location", "-l", required=True, help="Azure region, e.g. westeurope")
    parser.add_argument("--source-path", "-p", required=True, help="Local directory to zip and deploy")

    parser.add_argument("--sku", default=None, help=f"App Service plan tier ({_default_help(VarsEnum.AZURE_APPSERVICE_SKU)})")
    parser.add_argument("--runtime-name", default=None, help=f"Runtime stack name ({_default_help(VarsEnum.AZURE_WEBAPP_RUNTIME)})")
    parser.add_argument(
        "--runtime-version",
        default=None,
        help=f"Runtime version ({_default_help(VarsEnum.AZURE_WEBAPP_RUNTIME_VERSION)})",
    )
    parser.add_argument(
        "--name-attempts",
        type=int,
        default=None,
        help=f"Web app name attempts on naming conflicts ({_default_help(VarsEnum.AZURE_WEBAPP_NAME_ATTEMPTS)})",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Deploy env file with optional overrides (default: repo root .env.deploy)",
    )
    parser.add_argument("--hooks-module", default=None, help="Python module or file with deploy hooks")
    parser.add_argument("--hooks-soft-fail", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument(
        "--probe",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Poll the site URL after deploy until it responds (default: off)",
    )
    parser.add_argument(
        "--probe-timeout",
        type=int,
        default=None,
        help=f"Seconds to wait for the site ({_default_help(VarsEnum.AZURE_WEBAPP_PROBE_TIMEOUT)})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if not azure_utils.az_logged_in():
        raise SystemExit("Not logged into Azure. Run: az login")

    source_path = validate_source_path(args.source_path)

    # scripts/deploy/appservice_deploy.py -> repo root is 2 parents up.
    repo_root = Path(__file__).resolve().parents[2]
    deploy_env_path = Path(args.env_file).expanduser().resolve() if args.env_file else default_deploy_env_path()
    if args.env_file and not deploy_env_path.exists():
        raise SystemExit(f"Deploy env file not found: {deploy_env_path}")

    try:
        settings = load_deploy_settings(deploy_env_path)
    except EnvValidationError as e:
        print(e.format(), file=sys.stderr)
        raise SystemExit(2)

    try:
        settings = apply_overrides(
            settings,
            {
                VarsEnum.AZURE_APPSERVICE_SKU: args.sku,
                VarsEnum.AZURE_WEBAPP_RUNTIME: args.runtime_name,
                VarsEnum.AZURE_WEBAPP_RUNTIME_VERSION: args.runtime_version,
                VarsEnum.AZURE_WEBAPP_NAME_ATTEMPTS: args.name_attempts,
                VarsEnum.AZURE_WEBAPP_PROBE_TIMEOUT: args.probe_timeout,
            },
            context="deploy (CLI + env)",
        )
    except EnvValidationError as e:
        print(e.format(), file=sys.stderr)
        raise SystemExit(2)

    sku = settings[VarsEnum.AZURE_APPSERVICE_SKU.value]
    runtime_name = settings[VarsEnum.AZURE_WEBAPP_RUNTIME.value]
    runtime_version = settings[VarsEnum.AZURE_WEBAPP_RUNTIME_VERSION.value]
    name_attempts = int(settings[VarsEnum.AZURE_WEBAPP_NAME_ATTEMPTS.value])
    probe_timeout = int(settings[VarsEnum.AZURE_WEBAPP_PROBE_TIMEOUT.value])

    hooks_soft_fail = args.hooks_soft_fail
    if hooks_soft_fail is None:
        hooks_soft_fail = truthy(settings.get(VarsEnum.DEPLOY_HOOKS_SOFT_FAIL.value))
    hooks = deploy_hooks.load_hooks(
        repo_root,
        module_path=args.hooks_module or settings.get(VarsEnum.DEPLOY_HOOKS_MODULE.value),
        soft_fail=hooks_soft_fail,
    )

    request = naming.DeploymentRequest(
        resource_group=args.resource_group.strip(),
        app_name=args.app_name.strip(),
        location=args.location.strip(),
        source_path=source_path,
    )
    config = naming.derive_config(request, sku=sku, runtime_name=runtime_name, runtime_version=runtime_version)
    plan = deploy_hooks.DeployPlan(
        resource_group=request.resource_group,
        location=request.location,
        app_name=request.app_name,
        webapp_name=config.webapp_name,
        plan_name=config.plan_name,
        sku=config.sku,
        runtime=config.runtime,
        source_path=request.source_path,
    )
    ctx = deploy_hooks.DeployContext(repo_root=repo_root, env=settings, args=args)

    print(f"[deploy] resource group: {plan.resource_group} ({plan.location})")
    print(f"[deploy] plan: {plan.plan_name} ({plan.sku}), runtime: {plan.runtime}")
    print(f"[deploy] web app: {plan.webapp_name}")

    try:
        url = run_deploy(plan, ctx=ctx, hooks=hooks, name_attempts=name_attempts)
    except (Exception, SystemExit) as e:
        hooks.call("on_error", ctx, e)
        raise

    print("\n[done] Deployed.")
    print(f"  {url}")
    for key, value in sorted(plan.extra_metadata.items()):
        print(f"  {key}: {value}")

    if args.probe:
        probe_site(url, timeout_s=probe_timeout)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
