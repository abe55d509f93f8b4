from __future__ import annotations

import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).parents[2]


def pytest_configure() -> None:
    # Tests import the deploy scripts as `scripts.deploy.*`.
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))
    # argparse wraps --help output to the terminal width; pin it so help-text
    # assertions don't depend on the console the suite runs in.
    os.environ["COLUMNS"] = "200"
