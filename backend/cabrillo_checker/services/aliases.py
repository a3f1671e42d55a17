"""Multiplier alias table loaded from the reference CSV dataset.

Operators type locations as free text ("new york", "Santa Clara", "SCLA"),
so every token is upper-cased and whitespace-collapsed before lookup. The
table is built once per process and never mutated afterwards; concurrent
readers can share it freely.
"""

from __future__ import annotations

import csv
import re
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from ..core.config import get_settings
from ..exceptions import ConfigurationError

# Returned for tokens the table does not know
UNKNOWN_MULTIPLIER = "????"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_token(token: str) -> str:
    """Upper-case ``token`` and collapse internal whitespace runs."""
    return _WHITESPACE_RE.sub(" ", token.strip().upper())


class AliasTable(Mapping[str, str]):
    """Read-only mapping from a normalized location token to its abbreviation."""

    def __init__(self, aliases: Mapping[str, str]):
        self._aliases = MappingProxyType(
            {normalize_token(k): normalize_token(v) for k, v in aliases.items()}
        )

    def __getitem__(self, key: str) -> str:
        return self._aliases[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)

    def lookup(self, token: str | None) -> str | None:
        """Return the canonical abbreviation for ``token`` or ``None``."""
        if token is None:
            return None
        return self._aliases.get(normalize_token(token))

    def normalize(self, token: str) -> str:
        """Return the canonical abbreviation, or ``UNKNOWN_MULTIPLIER``."""
        return self.lookup(token) or UNKNOWN_MULTIPLIER


def parse_alias_rows(rows: Iterable[list[str]], source: str = "<aliases>") -> AliasTable:
    """Build an :class:`AliasTable` from ``token,abbreviation`` rows.

    Blank rows are skipped. Any other row that does not hold exactly two
    non-empty columns is a fatal configuration error.
    """

    aliases: dict[str, str] = {}
    for lineno, row in enumerate(rows, start=1):
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) != 2 or not row[0].strip() or not row[1].strip():
            raise ConfigurationError(f"{source}:{lineno}: malformed alias row {row!r}")
        aliases[normalize_token(row[0])] = normalize_token(row[1])
    return AliasTable(aliases)


def load_alias_table(path: Path) -> AliasTable:
    try:
        with open(path, "r", encoding="ascii", newline="") as f:
            return parse_alias_rows(csv.reader(f), source=str(path))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ConfigurationError(f"Could not read alias table {path}: {e}") from e


@lru_cache(maxsize=1)
def get_alias_table() -> AliasTable:
    """Return the process-wide alias table named by the settings."""
    return load_alias_table(get_settings().aliases_path)
