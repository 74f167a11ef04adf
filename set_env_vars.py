"""Apply a .env file to the process environment before the server starts.

``main.py`` calls ``load()`` on startup. From a shell,
``python set_env_vars.py --env-file prod.env`` reports which DoubtSolver
settings the file supplies and which are still missing.
"""
from __future__ import annotations

import os
import pathlib

KNOWN_KEYS = (
    "DOUBTSOLVER_LOG_LEVEL",
    "DOUBTSOLVER_PORT",
    "DOUBTSOLVER_ERROR_EXCERPT_CHARS",
    "DOUBTSOLVER_LANGUAGE",
)

_QUOTES = ("'", '"')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def read_pairs(path: str | os.PathLike[str]) -> dict[str, str]:
    """Parse ``KEY=value`` lines; comments, ``export`` prefixes and quotes are handled.

    A missing file yields no pairs.
    """
    env_path = pathlib.Path(path)
    if not env_path.is_file():
        return {}
    pairs: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[7:].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        pairs[key] = _unquote(value.strip())
    return pairs


def load(path: str = ".env", override: bool = False) -> dict[str, str]:
    """Copy the pairs from ``path`` into ``os.environ`` and return the ones applied.

    Variables already set in the environment win unless ``override`` is true.
    """
    applied = {
        key: value
        for key, value in read_pairs(path).items()
        if override or key not in os.environ
    }
    os.environ.update(applied)
    return applied


def status() -> dict[str, bool]:
    return {key: bool(os.environ.get(key)) for key in KNOWN_KEYS}


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Report which DoubtSolver settings a .env file provides.")
    parser.add_argument("--env-file", "-e", default=".env", help="Path to .env file")
    parser.add_argument("--override", action="store_true", help="Let the file win over the current environment")
    args = parser.parse_args()

    applied = load(args.env_file, override=args.override)
    print(f"Applied {len(applied)} variable(s) from {args.env_file}")
    for key, present in status().items():
        print(f"  {key}: {'set' if present else 'missing'}")
