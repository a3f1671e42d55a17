# Ensure the backend directory is on sys.path so tests can import cabrillo_checker
import sys
from pathlib import Path

import pytest

# tests/ -> cabrillo_checker/ -> backend/
BACKEND_DIR = Path(__file__).resolve().parents[2]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from cabrillo_checker.core.config import Settings  # noqa: E402
from cabrillo_checker.services.aliases import AliasTable  # noqa: E402


@pytest.fixture
def aliases() -> AliasTable:
    return AliasTable(
        {
            "NEW YORK": "NY",
            "NY": "NY",
            "CALIFORNIA": "CA",
            "CA": "CA",
            "SANTA CLARA": "SCLA",
            "SCLA": "SCLA",
            "ALAM": "ALAM",
            "ALAMEDA": "ALAM",
            "ON": "ON",
            "TX": "TX",
            "DX": "DX",
        }
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()
