"""Post-parse passes run once over a fully parsed document.

Order matters: serial placeholders are settled first, then missing
locations are filled, and finally QSO times are checked against the
contest window.
"""

from __future__ import annotations

from collections import Counter
from typing import Callable, Optional

from ..core.config import Settings, get_settings
from ..models.document import CabrilloLog
from ..models.exchange import Exchange
from ..models.qso import QSO

# Signal reports some loggers put in the serial column
PLACEHOLDER_SERIALS = (59, 599)

# Received location for QSOs whose log never gave one
MISSING_LOCATION = "XXXX"

ExchangeGetter = Callable[[QSO], Exchange]


def _sent(qso: QSO) -> Exchange:
    return qso.sent


def _received(qso: QSO) -> Exchange:
    return qso.received


def placeholder_serial(doc: CabrilloLog, side: ExchangeGetter, ratio: float = 0.75) -> Optional[int]:
    """Return the signal-report placeholder used on ``side`` by a supermajority of QSOs."""
    if not doc.qsos:
        return None
    counts = Counter(side(q).serial for q in doc.qsos if side(q).serial in PLACEHOLDER_SERIALS)
    if not counts or sum(counts.values()) < ratio * len(doc.qsos):
        return None
    return counts.most_common(1)[0][0]


def backfill_serials(doc: CabrilloLog, side: ExchangeGetter, ratio: float = 0.75) -> Optional[int]:
    value = placeholder_serial(doc, side, ratio)
    if value is not None:
        for qso in doc.qsos:
            if side(qso).serial is None:
                side(qso).serial = value
    return value


def fill_locations(doc: CabrilloLog) -> None:
    default_sent = doc.default_sent_location()
    for qso in doc.qsos:
        if qso.sent.location is None:
            qso.sent.location = default_sent
        if qso.received.location is None:
            qso.received.location = MISSING_LOCATION


def check_times(doc: CabrilloLog, settings: Settings) -> None:
    for qso in doc.qsos:
        if qso.when < settings.contest_start:
            doc.report(f"QSO date {qso.when} before contest start")
        if qso.when > settings.contest_end:
            doc.report(f"QSO date {qso.when} after contest end")


def review_qsos(doc: CabrilloLog, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    backfill_serials(doc, _sent, settings.placeholder_ratio)
    backfill_serials(doc, _received, settings.placeholder_ratio)
    fill_locations(doc)
    check_times(doc, settings)
