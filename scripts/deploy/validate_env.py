#!/usr/bin/env python3
"""Validate `.env.deploy` (plus process env overrides) against the deploy schema.

Run it before `appservice_deploy.py`, locally or in CI.

Strict by default:
- unknown keys => error
- invalid SKU / non-integer counters => error
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add scripts dir to path to allow importing sibling modules when running as a script.
sys.path.append(str(Path(__file__).parent))

try:
    from scripts.deploy.env_schema import EnvValidationError, default_deploy_env_path, load_deploy_settings
except ImportError:
    from env_schema import EnvValidationError, default_deploy_env_path, load_deploy_settings


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Validate .env.deploy against the App Service deploy schema")
    ap.add_argument("--deploy", default=None, help="Path to deploy env file (default: repo root .env.deploy)")
    ap.add_argument(
        "--no-deploy-file",
        action="store_true",
        help="Skip reading the deploy env file (validate process env and defaults only)",
    )
    ap.add_argument("--show", action="store_true", help="Print the resolved settings")

    args = ap.parse_args(argv)

    if args.no_deploy_file:
        deploy_path = None
    elif args.deploy:
        deploy_path = Path(args.deploy).expanduser().resolve()
        if not deploy_path.exists():
            raise SystemExit(f"[env] Missing deploy env file: {deploy_path}")
    else:
        deploy_path = default_deploy_env_path()

    print(f"[env] validating {deploy_path if deploy_path is not None else 'process env + defaults'}")

    try:
        settings = load_deploy_settings(deploy_path)
    except EnvValidationError as e:
        print(e.format(), file=sys.stderr)
        raise SystemExit(2)

    if args.show:
        for key in sorted(settings):
            print(f"{key}={settings[key]}")

    print("[env] ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
