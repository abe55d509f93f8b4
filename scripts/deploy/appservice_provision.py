"""Resource group / App Service plan / web app provisioning via the Azure CLI."""

from __future__ import annotations

try:
    from scripts.deploy.azure_utils import run_az_command
except ImportError:
    from azure_utils import run_az_command


# Substrings `az webapp create` uses when the global site name is taken.
# A bare 409 "Conflict" is not one of them; ARM also returns it for
# operations already in progress.
_NAME_CONFLICT_MARKERS = (
    "already exists",
    "already taken",
    "is not available",
)


def resource_group_exists(name: str) -> bool:
    res = run_az_command(["group", "exists", "--name", name], capture_output=True)
    # `az group exists` prints a bare JSON boolean.
    if isinstance(res, bool):
        return res
    return str(res or "").strip().lower() == "true"


def ensure_resource_group(name: str, location: str) -> bool:
    """Create the resource group if it is missing. Returns True when it was created."""
    if resource_group_exists(name):
        print(f"ℹ️  [rg] Resource group '{name}' already exists; skipping creation.")
        return False

    print(f"📦 [rg] Creating resource group '{name}' in {location}")
    run_az_command(
        ["group", "create", "--name", name, "--location", location, "--output", "none"],
        capture_output=False,
    )
    return True


def create_service_plan(*, resource_group: str, name: str, location: str, sku: str) -> dict | None:
    """Create (or update) a Linux App Service plan. No existence check."""
    print(f"📋 [plan] Creating App Service plan '{name}' ({sku})")
    res = run_az_command(
        [
            "appservice",
            "plan",
            "create",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--location",
            location,
            "--sku",
            sku,
            "--is-linux",
            "--output",
            "json",
        ],
        capture_output=True,
    )
    return res if isinstance(res, dict) else None


def create_webapp(*, resource_group: str, plan_name: str, name: str, runtime: str) -> dict:
    """Create a web app bound to `plan_name`. No existence check."""
    print(f"🌐 [webapp] Creating web app '{name}' (runtime {runtime})")
    res = run_az_command(
        [
            "webapp",
            "create",
            "--resource-group",
            resource_group,
            "--plan",
            plan_name,
            "--name",
            name,
            "--runtime",
            runtime,
            "--output",
            "json",
        ],
        capture_output=True,
    )
    return res if isinstance(res, dict) else {"name": name}


def get_default_hostname(*, resource_group: str, name: str) -> str:
    res = run_az_command(
        ["webapp", "show", "--resource-group", resource_group, "--name", name, "--query", "defaultHostName", "-o", "tsv"],
        capture_output=True,
        verbose=False,
    )
    return str(res or "").strip()


def is_name_conflict(stderr: str | None) -> bool:
    err = stderr or ""
    return any(marker in err for marker in _NAME_CONFLICT_MARKERS)
