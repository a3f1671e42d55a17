"""In-memory model of one Cabrillo submission.

The document owns every exchange, QSO and category profile built while a
single file is parsed. Two category profiles are kept side by side: the one
the station declared in its header (``log_category``) and a corrected one
supplied by X- lines or by an external authority (``corrected_category``).
Reported values always prefer the corrected profile field by field.
"""

from __future__ import annotations

import logging
import re
from enum import Enum, IntEnum
from typing import List, Optional, Set

from ..exceptions import ValidationError
from ..services.aliases import UNKNOWN_MULTIPLIER, AliasTable, get_alias_table, normalize_token
from .category import CategoryProfile, OperatorCount, Power, TransmitterCount
from .qso import QSO

logger = logging.getLogger(__name__)

KNOWN_SPECIAL_CATEGORIES = frozenset({"COUNTY", "MOBILE", "NEW_CONTESTER", "SCHOOL", "YL", "YOUTH"})

# A county contest expects a county as the sent multiplier; a bare state
# abbreviation still resolves but is flagged for review.
AMBIGUOUS_SENT_MULTIPLIERS = frozenset({"CA"})

_CALLSIGN_RE = re.compile(r"\A[A-Z0-9/]+\Z")
_OPERATOR_SPLIT_RE = re.compile(r"\s*,\s*|\s+")


class ParseState(IntEnum):
    BEFORE_START = 0
    HEADER = 1
    BODY = 2
    ENDED = 3


class Side(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class CabrilloLog:
    def __init__(self, source: str = "<string>", aliases: Optional[AliasTable] = None):
        self.source = source
        self.aliases = aliases if aliases is not None else get_alias_table()
        self.state = ParseState.BEFORE_START
        self.clean_parse = True
        self.diagnostics: List[str] = []
        self._warned_missing_start = False

        self.version: Optional[str] = None
        self.callsign: Optional[str] = None
        self.callsign_from_qso = False
        self.contest: Optional[str] = None
        self.certificate: Optional[bool] = None
        self.claimed: Optional[str] = None
        self.section: Optional[str] = None
        self.location: Optional[str] = None
        self.club: Optional[str] = None
        self.iota: Optional[str] = None
        self.creator: Optional[str] = None
        self.name: Optional[str] = None
        self.band: Optional[str] = None
        self.category_mode: Optional[str] = None
        self.station_text: Optional[str] = None
        self.dxpedition: Optional[str] = None
        self.time_period: Optional[str] = None
        self.address: List[str] = []
        self.city: Optional[str] = None
        self.state_province: Optional[str] = None
        self.postcode: Optional[str] = None
        self.country: Optional[str] = None
        self.operators: Optional[str] = None
        self.offtimes: List[str] = []
        self.soapbox: List[str] = []
        self.x_lines: List[str] = []

        self.log_category = CategoryProfile()
        self.corrected_category = CategoryProfile()
        self.special_categories: Set[str] = set()
        self.corrected_callsign: Optional[str] = None
        self.log_id: Optional[int] = None

        self.bad_sent_multipliers: Set[str] = set()
        self.bad_received_multipliers: Set[str] = set()
        self.qsos: List[QSO] = []

    # Diagnostics

    def report(self, message: str) -> None:
        """Record a recoverable anomaly without interrupting the parse."""
        line = f"{self.source}: {message}"
        self.diagnostics.append(line)
        logger.warning(line)

    def mark_unclean(self, message: str) -> None:
        self.clean_parse = False
        self.report(message)

    def transition(self, expected: ParseState, new: ParseState) -> None:
        """Move the envelope state, warning about out-of-order records.

        The new state is always applied; real logs regularly put header
        lines after QSOs or omit START-OF-LOG entirely.
        """
        if (
            self.state == ParseState.BEFORE_START
            and expected > ParseState.BEFORE_START
            and not self._warned_missing_start
        ):
            self._warned_missing_start = True
            self.report("record found before START-OF-LOG")
        if self.state > expected:
            self.report(
                f"Unexpected state transition {self.state.value} {expected.value} {new.value}"
            )
        self.state = new

    # Multipliers

    def normalize_multiplier(self, token: str, side: Side = Side.RECEIVED) -> str:
        """Resolve a location token, remembering unresolved ones per side."""
        normalized = normalize_token(token)
        resolved = self.aliases.normalize(normalized)
        bad = self.bad_sent_multipliers if side is Side.SENT else self.bad_received_multipliers
        if resolved == UNKNOWN_MULTIPLIER:
            bad.add(normalized)
            self.report(f"Unknown {side.value} multiplier '{normalized}'")
        elif side is Side.SENT and resolved in AMBIGUOUS_SENT_MULTIPLIERS:
            bad.add(resolved)
        return resolved

    def default_sent_location(self) -> Optional[str]:
        """Sent location to fill into QSOs that lack one."""
        for candidate in (self.corrected_category.sent_location, self.log_category.sent_location):
            resolved = self.aliases.lookup(candidate)
            if resolved:
                return resolved
        return None

    # Categories

    @property
    def conflicted(self) -> bool:
        return self.corrected_category.conflicted(self.log_category)

    def has_special_category(self, name: str) -> bool:
        return name in self.special_categories

    def add_special_category(self, name: str) -> None:
        name = name.upper()
        if name in KNOWN_SPECIAL_CATEGORIES:
            self.special_categories.add(name)
        else:
            self.report(f"Unknown special category {name}")

    def _resolved(self, field: str):
        value = getattr(self.corrected_category, field)
        if value is None:
            value = getattr(self.log_category, field)
        return value

    @property
    def log_callsign(self) -> Optional[str]:
        if self.corrected_callsign and (
            _CALLSIGN_RE.match(self.corrected_callsign) or not self.callsign
        ):
            return self.corrected_callsign
        return self.callsign

    @property
    def log_assisted(self) -> str:
        return "ASSISTED" if self._resolved("assisted") else "NON-ASSISTED"

    @property
    def log_operator(self) -> str:
        numop = self._resolved("operator_count")
        if numop is OperatorCount.SINGLE:
            return "SINGLE-OP"
        if numop is OperatorCount.MULTI:
            return "MULTI-OP"
        return "CHECKLOG"

    @property
    def operating_class(self) -> str:
        numop = self._resolved("operator_count")
        if numop is OperatorCount.SINGLE:
            return "SINGLE_ASSISTED" if self._resolved("assisted") else "SINGLE"
        if numop is OperatorCount.MULTI:
            if self._resolved("transmitter_count") is TransmitterCount.ONE:
                return "MULTI_SINGLE"
            return "MULTI_MULTI"
        return "CHECKLOG"

    @property
    def log_power(self) -> str:
        power = self._resolved("power")
        return power.value.upper() if power else ""

    @property
    def log_transmitter(self) -> str:
        numtrans = self._resolved("transmitter_count")
        return numtrans.value.upper() if numtrans else ""

    @property
    def log_email(self) -> Optional[str]:
        email = self.corrected_category.email
        if email and len(email) > 1:
            return email
        return self.log_category.email

    @property
    def claimed_score(self) -> Optional[str]:
        if not self.claimed or not self.claimed.strip():
            return None
        digits = re.match(r"\d*", re.sub(r"\s+|[,.]", "", self.claimed)).group(0)
        return str(int(digits)) if digits else "0"

    @property
    def normalized_operators(self) -> str:
        if not self.operators:
            return ""
        return " ".join(_OPERATOR_SPLIT_RE.split(self.operators.strip()))

    @property
    def operator_list(self) -> Optional[List[str]]:
        ops = (self.operators or "").strip().upper()
        if not ops:
            return None
        return _OPERATOR_SPLIT_RE.split(ops)

    # Corrections supplied by an external authority

    def set_corrected_callsign(self, value: Optional[str]) -> None:
        if value:
            self.corrected_callsign = value.strip().upper()

    def set_corrected_comments(self, value: Optional[str]) -> None:
        if value and value.strip():
            self.corrected_category.comment = value.strip()

    def set_corrected_sent_location(self, value: Optional[str]) -> None:
        self.corrected_category.sent_location = value

    def apply_operator_class(self, value: str) -> None:
        """Set the corrected profile from a combined operator class."""
        cat = self.corrected_category
        value = value.strip().lower()
        if value in ("single", "single-op"):
            cat.assisted = False
            cat.operator_count = OperatorCount.SINGLE
            cat.transmitter_count = TransmitterCount.ONE
        elif value == "single-assisted":
            cat.assisted = True
            cat.operator_count = OperatorCount.SINGLE
            cat.transmitter_count = TransmitterCount.ONE
        elif value == "multi-single":
            cat.assisted = True
            cat.operator_count = OperatorCount.MULTI
            cat.transmitter_count = TransmitterCount.ONE
        elif value == "multi-multi":
            cat.assisted = True
            cat.operator_count = OperatorCount.MULTI
            cat.transmitter_count = TransmitterCount.UNLIMITED
        elif value == "checklog":
            cat.assisted = True
            cat.operator_count = OperatorCount.CHECKLOG
            cat.transmitter_count = TransmitterCount.UNLIMITED
        else:
            raise ValidationError(f"Unknown operator class {value!r}")

    def set_corrected_power(self, value: str) -> None:
        try:
            self.corrected_category.power = {"Low": Power.LOW, "High": Power.HIGH, "QRP": Power.QRP}[value]
        except KeyError:
            raise ValidationError(f"Unknown corrected power {value!r}") from None

    def __repr__(self) -> str:
        return f"CabrilloLog(source={self.source!r}, callsign={self.callsign!r}, qsos={len(self.qsos)})"
