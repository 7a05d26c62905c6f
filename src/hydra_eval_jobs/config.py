"""Configuration: hydra.conf options and per-run evaluation options."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_ENV_VAR = "HYDRA_CONFIG"


class HydraConfig:
    """Options read from the file named by ``$HYDRA_CONFIG``.

    The file holds one ``key = value`` pair per line; ``#`` starts a comment.
    A missing file simply yields no options.
    """

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = os.environ.get(CONFIG_ENV_VAR, "")
        self.path = Path(path) if path else None
        self.options: dict[str, str] = {}
        if self.path is not None and self.path.is_file():
            self.options = parse_config(self.path.read_text(encoding="utf-8"))

    def get_str_option(self, key: str, default: str = "") -> str:
        return self.options.get(key, default)


def parse_config(text: str) -> dict[str, str]:
    """Parse ``key = value`` lines; later keys override earlier ones."""
    options: dict[str, str] = {}
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        options[key] = value.strip()
    return options


@dataclass
class EvalOptions:
    """Settings for a single discovery run."""

    gc_roots_dir: str = ""  # empty disables GC root registration
    dry_run: bool = False  # no mutating store calls
    auto_args: dict[str, Any] = field(default_factory=dict)
    search_path: list[str] = field(default_factory=list)
    verbose: bool = False
