from __future__ import annotations

import os
import re
from pathlib import Path
from typing import List, Optional, TextIO, Union

from ..core.config import Settings, get_settings
from ..models.document import CabrilloLog

CABRILLO_VERSION = "3.0"

_LINE_BREAK_RE = re.compile(r"\r\n?")


def _normal(text: Optional[str]) -> str:
    return " ".join(text.split()).upper() if text else ""


def _put(lines: List[str], tag: str, value: Optional[str]) -> None:
    if value is not None and value.strip():
        lines.append(f"{tag}: {value.strip()}")


def cabrillo_lines(doc: CabrilloLog, settings: Optional[Settings] = None) -> List[str]:
    """Return the canonical Cabrillo lines for ``doc`` in fixed tag order."""
    settings = settings or get_settings()
    lines = [
        f"START-OF-LOG: {CABRILLO_VERSION}",
        f"CALLSIGN: {doc.log_callsign or ''}".rstrip(),
        f"CATEGORY-ASSISTED: {doc.log_assisted}",
        f"CATEGORY-OPERATOR: {doc.log_operator}",
        f"CATEGORY-POWER: {doc.log_power}".rstrip(),
        f"CATEGORY-TRANSMITTER: {doc.log_transmitter}".rstrip(),
        f"CONTEST: {doc.contest or settings.contest_id}",
        f"NAME: {doc.name or ''}".rstrip(),
    ]
    _put(lines, "CATEGORY-BAND", _normal(doc.band))
    _put(lines, "CATEGORY-MODE", _normal(doc.category_mode))
    _put(lines, "CATEGORY-STATION", _normal(doc.station_text))
    _put(lines, "CATEGORY-TIME", doc.time_period)
    if doc.certificate is not None:
        lines.append("CERTIFICATE: " + ("YES" if doc.certificate else "NO"))
    _put(lines, "CLAIMED-SCORE", doc.claimed_score)
    _put(lines, "CLUB", " ".join(doc.club.split()) if doc.club else None)
    _put(lines, "CREATED-BY", doc.creator)
    _put(lines, "EMAIL", doc.log_email)
    # LOCATION falls back to the ARRL section, then the IOTA island name
    for location in (doc.location, doc.section, doc.iota):
        if location and location.strip():
            _put(lines, "LOCATION", location)
            break
    for line in doc.address:
        _put(lines, "ADDRESS", line)
    _put(lines, "ADDRESS-CITY", doc.city)
    _put(lines, "ADDRESS-STATE-PROVINCE", doc.state_province)
    _put(lines, "ADDRESS-POSTALCODE", doc.postcode)
    _put(lines, "ADDRESS-COUNTRY", doc.country)
    _put(lines, "OPERATORS", doc.normalized_operators)
    for line in doc.offtimes:
        lines.append(("OFFTIME: " + line.strip()).rstrip())
    for line in doc.soapbox:
        lines.append(("SOAPBOX: " + line.strip()).rstrip())
    for line in doc.x_lines:
        lines.append(line.strip())
    for qso in doc.qsos:
        lines.append(qso.to_cabrillo_line())
    lines.append("END-OF-LOG:")
    # Wrapped free-text values keep their breaks, always written as LF
    return [_LINE_BREAK_RE.sub("\n", line) for line in lines]


def format_cabrillo(doc: CabrilloLog, settings: Optional[Settings] = None) -> str:
    return "".join(line + "\n" for line in cabrillo_lines(doc, settings))


def write_cabrillo(doc: CabrilloLog, out: Union[str, Path, TextIO], settings: Optional[Settings] = None) -> None:
    """Write the canonical form of ``doc`` to a path or an open text stream."""
    text = format_cabrillo(doc, settings)
    if not isinstance(out, (str, Path)):
        out.write(text)
        return

    path = str(out)
    # Use temporary file for atomic write
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="ascii", errors="strict", newline="\n") as f:
            f.write(text)
        os.replace(tmp, path)
    except Exception:
        # Clean up temp file if write failed
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
