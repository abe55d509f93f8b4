#!/usr/bin/env python3
"""Shared Azure CLI utilities."""

from __future__ import annotations

import json
import shutil
import subprocess
import sys


def run_az_command(args: list[str], *, capture_output: bool = True, ignore_errors: bool = False, verbose: bool = True) -> dict | list | str | None:
    """Run an azure cli command."""
    cmd = ["az"] + args
    if verbose:
        print(f"[az] {' '.join(cmd)}")

    # Check if az is installed
    if not shutil.which("az"):
        if ignore_errors:
            return None
        raise RuntimeError("Azure CLI (az) not found. Please install it.")

    result = subprocess.run(
        cmd,
        stdout=subprocess.PIPE if capture_output else None,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )

    if result.returncode != 0:
        if ignore_errors:
            return None

        if result.stdout:
            print(result.stdout.rstrip(), file=sys.stderr)
        if result.stderr:
            print(result.stderr.rstrip(), file=sys.stderr)

        raise subprocess.CalledProcessError(result.returncode, cmd, output=result.stdout, stderr=result.stderr)

    if capture_output and result.stdout:
        out = result.stdout.strip()
        if not out:
            return None
        try:
            return json.loads(out)
        except json.JSONDecodeError:
            return out

    return None


def az_logged_in() -> bool:
    """True when the Azure CLI has an active account context."""
    res = run_az_command(["account", "show", "--output", "json"], ignore_errors=True, verbose=False)
    return isinstance(res, dict) and bool(res.get("id"))


def get_az_account_info() -> dict[str, str]:
    """Return dictionary with 'id' (subscription), 'name' and 'tenantId'."""
    try:
        res = run_az_command(["account", "show", "--output", "json"], capture_output=True, verbose=False)
        if isinstance(res, dict):
            return {
                "id": str(res.get("id") or ""),
                "name": str(res.get("name") or ""),
                "tenantId": str(res.get("tenantId") or ""),
            }
    except (RuntimeError, subprocess.CalledProcessError):
        pass
    return {"id": "", "name": "", "tenantId": ""}
