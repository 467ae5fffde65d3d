from __future__ import annotations

import sys
from pathlib import Path


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_output(text: str, path: Path | None = None) -> None:
    if path is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    ensure_dir(path.parent)
    path.write_text(text, encoding="utf-8")
