"""Zip the app source directory into a temp archive for zip-deploy."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path


def archive_dir(temp_dir: Path | None = None) -> Path:
    return Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())


def archive_path_for(webapp_name: str, temp_dir: Path | None = None) -> Path:
    return archive_dir(temp_dir) / f"{webapp_name}.zip"


def remove_archive(archive_path: Path) -> None:
    archive_path.unlink(missing_ok=True)


def package_source(source_dir: Path, archive_path: Path) -> Path:
    """Zip everything under `source_dir` (recursively) into `archive_path`.

    A previous archive at the same path is removed first so stale content is
    never uploaded.
    """
    if archive_path.exists():
        print(f"🧹 [package] Removing previous archive: {archive_path}")
        remove_archive(archive_path)

    print(f"🗜️  [package] Compressing {source_dir} -> {archive_path}")
    # make_archive appends the extension itself.
    base_name = str(archive_path.with_suffix(""))
    created = shutil.make_archive(base_name, "zip", root_dir=str(source_dir))
    return Path(created)
