"""Ordered rule table that recognizes Cabrillo records.

Each logical record is tested against ``RULES`` top to bottom and the first
matching rule wins: it advances the envelope state (if it has a transition)
and then mutates the document. A record no rule matches is left to the
caller to report; it never aborts the parse.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from ..exceptions import DataParsingError
from ..models.category import OperatorCount, Power, StationType, TransmitterCount, power_from_watts
from ..models.document import CabrilloLog, ParseState, Side
from ..models.qso import QSO, parse_annotations
from ..services.aliases import UNKNOWN_MULTIPLIER, normalize_token

Action = Callable[[CabrilloLog, "re.Match[str]"], None]

HEADER = (ParseState.HEADER, ParseState.HEADER)

_FLAGS = re.IGNORECASE | re.DOTALL
_WS_RE = re.compile(r"\s+")

CALL = r"[a-z0-9]+(?:/[a-z0-9]+(?:/[a-z0-9]+)?)?"

QSO_RE = re.compile(
    r"\AQSO: +(?P<freq>\d+) +(?P<mode>[a-z]{2,3})"
    r" +(?P<date>\d{4}[-/]\d{1,2}[-/]\d{1,2}) +(?P<time>\d{4})"
    rf" +(?P<sent_call>{CALL}) +(?P<sent_serial>\d+) +(?P<sent_loc>[a-z0-9]+)"
    rf" +(?P<recv_call>{CALL}) +(?P<recv_serial>\d+) +(?P<recv_loc>[a-z0-9]+)"
    r"(?: +(?P<transceiver>\d+) *| *)(?:\{GP(?P<annotations>.*)GP\})?\Z",
    _FLAGS,
)


@dataclass(frozen=True)
class LineRule:
    name: str
    pattern: "re.Pattern[str]"
    action: Optional[Action] = None
    transition: Optional[Tuple[ParseState, ParseState]] = None


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text.strip())


def _hours_bucket(hours: int) -> str:
    if hours <= 6:
        hours = 6
    elif hours <= 12:
        hours = 12
    else:
        hours = 24
    return f"{hours}-HOURS"


def parse_qso_time(date: str, time: str) -> datetime:
    """Combine a QSO date and HHMM time into an aware UTC datetime.

    Times with an impossible minute or hour are clamped (minute to 59, hour
    to 23) before a second attempt, which also accepts two-digit years.
    """

    date = date.replace("/", "-")
    hhmm = int(time)
    try:
        return datetime.strptime(f"{date} {hhmm:04d}", "%Y-%m-%d %H%M").replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    hour, minute = min(hhmm // 100, 23), min(hhmm % 100, 59)
    fmt = "%y-%m-%d %H%M" if re.fullmatch(r"\d{2}-\d{1,2}-\d{1,2}", date) else "%Y-%m-%d %H%M"
    try:
        return datetime.strptime(f"{date} {hour:02d}{minute:02d}", fmt).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise DataParsingError(f"Bad QSO date/time {date} {time}: {e}") from e


# Header actions


def _start_of_log(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1):
        doc.version = m.group(1)


def _callsign(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1) and not doc.callsign_from_qso:
        doc.callsign = m.group(1).upper()


def _assisted(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1):
        doc.log_category.assisted = m.group(2) is None


def _not_assisted(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.assisted = False


def _band(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.band = m.group(1) or None


def _dxpedition(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.dxpedition = m.group(1) or None


def _category_mode(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.category_mode = m.group(1).upper()


def _category_mode_phone(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.category_mode = "SSB"


def _operator(count: OperatorCount, transmitters: Optional[TransmitterCount] = None) -> Action:
    def action(doc: CabrilloLog, m: "re.Match[str]") -> None:
        doc.log_category.operator_count = count
        if transmitters is not None:
            doc.log_category.transmitter_count = transmitters

    return action


def _power(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.power = m.group(1).lower()


def _power_watts(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.power = power_from_watts(int(m.group(1)))


def _power_local(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.power = Power.LOW


def _station_fixed(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.station_text = m.group(1).upper()
    doc.log_category.station_type = m.group(1).lower()


def _station_mobile(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.station_type = m.group(1).lower()
    doc.add_special_category("MOBILE")


def _station_school(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.station_type = StationType.SCHOOL
    doc.add_special_category("SCHOOL")


def _station_home(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.station_type = StationType.FIXED


def _station_expedition(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.station_type = StationType.EXPEDITION
    doc.add_special_category("COUNTY")


def _time_period(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group("hours"):
        doc.time_period = _hours_bucket(int(m.group("hours")))


def _category(doc: CabrilloLog, m: "re.Match[str]") -> None:
    process_categories(doc, m.group(1).upper())


def _transmitter(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1):
        value = m.group(1).upper()
        if value == "ONE":
            doc.log_category.transmitter_count = TransmitterCount.ONE
        elif value == "SWL":
            doc.log_category.transmitter_count = TransmitterCount.SWL
        else:
            doc.log_category.transmitter_count = TransmitterCount.UNLIMITED


def _overlay(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1):
        process_overlay(doc, m.group(1).upper())


def _certificate(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.certificate = m.group(1).upper() == "YES"


def _claimed(doc: CabrilloLog, m: "re.Match[str]") -> None:
    if m.group(1):
        doc.claimed = m.group(1)


def _declared_location(attr: str) -> Action:
    def action(doc: CabrilloLog, m: "re.Match[str]") -> None:
        value = m.group(1)
        if value is None:
            return
        value = normalize_token(value)
        setattr(doc, attr, value)
        resolved = doc.aliases.lookup(value)
        if resolved:
            doc.log_category.sent_location = resolved

    return action


def _text(attr: str, collapse: bool = False) -> Action:
    def action(doc: CabrilloLog, m: "re.Match[str]") -> None:
        value = m.group(1)
        setattr(doc, attr, _collapse(value) if collapse else value.strip())

    return action


def _append(attr: str) -> Action:
    def action(doc: CabrilloLog, m: "re.Match[str]") -> None:
        getattr(doc, attr).append(m.group(1).strip())

    return action


def _email(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.log_category.email = m.group(1).strip()


# X- extension actions. The raw line is always kept for the writer.


def _keep_x_line(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)


def _x_email(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    doc.corrected_category.email = m.group(1).strip()


def _x_sent_location(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    value = m.group(1).strip()
    if value:
        doc.set_corrected_sent_location(value)


def _x_phone(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    value = m.group(1).strip()
    if value:
        doc.corrected_category.phone = value


def _x_power(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    doc.corrected_category.power = m.group(1).lower()


def _x_categories(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    for cat in m.group(1).upper().split():
        doc.add_special_category(cat)


def _x_opclass(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    doc.apply_operator_class(m.group(1))


def _x_id(doc: CabrilloLog, m: "re.Match[str]") -> None:
    doc.x_lines.append(m.string)
    doc.log_id = int(m.group(1))


def _qso(doc: CabrilloLog, m: "re.Match[str]") -> None:
    qso = QSO(freq_khz=int(m.group("freq")), when=parse_qso_time(m.group("date"), m.group("time")))
    qso.set_mode(m.group("mode"))

    qso.sent.callsign = m.group("sent_call").upper()
    if doc.callsign is None:
        doc.callsign = qso.sent.callsign
        doc.callsign_from_qso = True
    qso.sent.serial = m.group("sent_serial")
    qso.sent.location_raw = normalize_token(m.group("sent_loc"))
    qso.sent.location = doc.normalize_multiplier(m.group("sent_loc"), Side.SENT)
    if qso.sent.location != UNKNOWN_MULTIPLIER and not doc.log_category.sent_location:
        doc.log_category.sent_location = qso.sent.location

    qso.received.callsign = m.group("recv_call").upper()
    qso.received.serial = m.group("recv_serial")
    qso.received.location_raw = normalize_token(m.group("recv_loc"))
    qso.received.location = doc.normalize_multiplier(m.group("recv_loc"), Side.RECEIVED)

    if m.group("transceiver"):
        qso.transceiver = int(m.group("transceiver"))
    if m.group("annotations"):
        qso.annotations = parse_annotations(m.group("annotations"))
    doc.qsos.append(qso)


def _rule(
    name: str,
    pattern: str,
    action: Optional[Action] = None,
    transition: Optional[Tuple[ParseState, ParseState]] = HEADER,
) -> LineRule:
    return LineRule(name, re.compile(pattern, _FLAGS), action, transition)


RULES: Tuple[LineRule, ...] = (
    _rule("start-of-log", r"\Astart-of-log:\s*([23]\.0)?\s*\Z", _start_of_log,
          (ParseState.BEFORE_START, ParseState.HEADER)),
    _rule("end-of-log", r"\Aend-of-log:\s*\Z", None, (ParseState.BODY, ParseState.ENDED)),
    _rule("callsign", rf"\Acallsign:\s*({CALL})?\s*\Z", _callsign),
    _rule("category-assisted", r"\Acategory-assisted:\s*((non-|un)?assis?ted)?\s*\Z", _assisted),
    _rule("category-assisted-no", r"\Acategory-assisted:\s*no(\s+assisted)?\s*\Z", _not_assisted),
    _rule("category-band", r"\Acategory-band:\s*(\S*)\s*\Z", _band),
    _rule("category-dxpedition", r"\Acategory-dxpedition:\s*(\S*)\s*\Z", _dxpedition),
    _rule("category-mode", r"\Acategory-mode:\s*(ssb|cw|rtty|mixed|fm)\s*\Z", _category_mode),
    _rule("category-mode-ph", r"\Acategory-mode:\s*ph\s*\Z", _category_mode_phone),
    _rule("category-operator-single",
          r"\Acategory-operator:\s*(single-op|single\s+operator|single)\s*\Z",
          _operator(OperatorCount.SINGLE)),
    _rule("category-operator-checklog", r"\Acategory-operator:\s*checklog\s*\Z",
          _operator(OperatorCount.CHECKLOG)),
    _rule("category-operator-multi", r"\Acategory-operator:\s*(multi-op|multiple|multi)\s*\Z",
          _operator(OperatorCount.MULTI)),
    _rule("category-operator-multi-single", r"\Acategory-operator:\s*multi-single\s*\Z",
          _operator(OperatorCount.MULTI, TransmitterCount.ONE)),
    _rule("category-operator-multi-multi", r"\Acategory-operator:\s*multi-multi\s*\Z",
          _operator(OperatorCount.MULTI, TransmitterCount.UNLIMITED)),
    _rule("category-power", r"\Acategory-power:\s*(low|qrp|high)\s*\Z", _power),
    _rule("category-power-watts", r"\Acategory-power:\s*(\d+)(\s*w)?\s*\Z", _power_watts),
    _rule("category-power-local", r"\Acategory-power:\s*(lo(cal)?)\s*\Z", _power_local),
    _rule("category-power-empty", r"\Acategory-power:\s*\Z"),
    _rule("category-station-fixed", r"\Acategory-station:\s*(fixed|portable|hq)\s*\Z", _station_fixed),
    _rule("category-station-mobile", r"\Acategory-station:\s*(mobile|rover)\s*\Z", _station_mobile),
    _rule("category-station-school", r"\Acategory-station:\s*school\s*\Z", _station_school),
    _rule("category-station-home", r"\Acategory-station:\s*home\s*\Z", _station_home),
    _rule("category-station-expedition",
          r"\Acategory-station:\s*((county-)?expedition)\s*\Z", _station_expedition),
    _rule("category-station-empty", r"\Acategory-station:\s*\Z"),
    _rule("category-time", r"\Acategory-time:\s*(?:(?P<hours>\d+)(?:[- ]hours?)?)?\s*\Z", _time_period),
    _rule("category", r"\Acategory:\s*(.*)\Z", _category),
    _rule("category-transmitter",
          r"\Acategory-transmitter:\s*(one|two|limited|unlimited|swl)?\s*\Z", _transmitter),
    _rule("category-overlay", r"\Acategory-overlay:\s*(\S+(?:\s+\S+)*)?\s*\Z", _overlay),
    _rule("certificate", r"\Acertificate:\s*(yes|no)\s*\Z", _certificate),
    _rule("claimed-score", r"\Aclaimed-score:\s*(\S*)", _claimed),
    _rule("arrl-section", r"\Aarrl-section:\s*(\S+)?\s*\Z", _declared_location("section")),
    _rule("club", r"\A(?:team|club(?:-name)?):\s*(.*)\Z", _text("club", collapse=True)),
    _rule("iota-island-name", r"\Aiota-island-name:\s*(.*)\Z", _text("iota", collapse=True)),
    _rule("contest", r"\Acontest:\s*(.*)\Z", _text("contest")),
    _rule("created-by", r"\Acreated-by:\s*(.*)\Z", _text("creator")),
    _rule("email", r"\A(?:e-?mail|address-email):\s*(.*)\Z", _email),
    _rule("location", r"\Alocation:\s*(.*)\Z", _declared_location("location")),
    _rule("name", r"\A(?:category-)?name:\s*(.*)\Z", _text("name", collapse=True)),
    _rule("address", r"\Aaddress:\s*(.*)\Z", _append("address")),
    _rule("address-city", r"\Aaddress-city:\s*(.*)\Z", _text("city")),
    _rule("address-state-province", r"\A(?:address-)?state-province:\s*(.*)\Z", _text("state_province")),
    _rule("address-postalcode", r"\Aaddress-postalcode:\s*(.*)\Z", _text("postcode")),
    _rule("address-country", r"\Aaddress-country:\s*(.*)\Z", _text("country")),
    _rule("operators", r"\Aoperators:\s*(.*)\Z", _text("operators")),
    _rule("offtime", r"\Aofftime:\s*(.*)\Z", _append("offtimes")),
    _rule("x-ssbsprint-email", r"\Ax-ssbsprint-email:\s*(.*)\Z", _x_email, None),
    _rule("x-cqp-email", r"\Ax-cqp-email:\s*(.*)\Z", _x_email, None),
    _rule("x-cqp-sentqth", r"\Ax-cqp-sentqth:\s*(.*)\Z", _x_sent_location, None),
    _rule("x-cqp-phone", r"\Ax-cqp-phone:\s*(.*)\Z", _x_phone, None),
    _rule("x-cqp-power", r"\Ax-cqp-power:\s*(qrp|low|high)\s*\Z", _x_power, None),
    _rule("x-cqp-categories", r"\Ax-cqp-categories:\s*(.*)\Z", _x_categories, None),
    _rule("x-cqp-opclass",
          r"\Ax-cqp-opclass:\s*(checklog|multi-single|multi-multi|single-assisted|single)\s*\Z",
          _x_opclass, None),
    _rule("x-cqp-id", r"\Ax-cqp-id:\s*(\d+)\s*\Z", _x_id, None),
    _rule("x-extension", r"\Ax(?:-[a-z0-9]+)+:.*\Z", _keep_x_line, None),
    _rule("soapbox", r"\Asoapbox:\s*(.*)\Z", _append("soapbox")),
    LineRule("qso", QSO_RE, _qso, (ParseState.BODY, ParseState.BODY)),
)


def match_rule(line: str) -> Optional[Tuple[LineRule, "re.Match[str]"]]:
    for rule in RULES:
        m = rule.pattern.match(line)
        if m:
            return rule, m
    return None


def dispatch(doc: CabrilloLog, line: str) -> Optional[LineRule]:
    """Apply the first rule matching ``line`` to ``doc``.

    Returns the rule that handled the record, or ``None`` if nothing matched.
    Errors raised by a rule action (bad mode, impossible date) propagate.
    """

    found = match_rule(line)
    if found is None:
        return None
    rule, m = found
    if rule.transition is not None:
        doc.transition(*rule.transition)
    if rule.action is not None:
        rule.action(doc, m)
    return rule


# Free-form CATEGORY: and CATEGORY-OVERLAY: values

_INERT_OVERLAYS = frozenset(
    {"CLASSIC", "EXPERT", "OVER-50", "ROOKIE", "TB-WIRES", "GENERAL", "FIXED", "STATION"}
)
_CATEGORY_SPLIT_RE = re.compile(r"[-!\s]+")
_INERT_CATEGORY_RE = re.compile(r"OP|CLUB|50|OVER")
_BAND_TOKEN_RE = re.compile(r"10M|15M|20M|40M|80M")
# Short forms only count as whole tokens, so "40M-SSB" is left alone
_MULTI_MULTI_RE = re.compile(r"MULTI-MULTI|(?<![A-Z0-9])M-M(?![A-Z0-9])")
_MULTI_SINGLE_RE = re.compile(r"MULTI-SINGLE|(?<![A-Z0-9])M-S(?![A-Z0-9])")


def process_overlay(doc: CabrilloLog, text: str) -> None:
    for tok in text.split():
        if tok == "SINGLE-OP":
            doc.log_category.operator_count = OperatorCount.SINGLE
        elif tok not in _INERT_OVERLAYS:
            doc.report(f"Unknown overlay '{tok}'")


def process_categories(doc: CabrilloLog, text: str) -> None:
    """Interpret a combined ``CATEGORY:`` value such as ``SINGLE-OP LOW CW``."""
    cat = doc.log_category
    if _MULTI_MULTI_RE.search(text):
        cat.operator_count = OperatorCount.MULTI
        cat.transmitter_count = TransmitterCount.UNLIMITED
        text = _MULTI_MULTI_RE.sub(" ", text)
    if _MULTI_SINGLE_RE.search(text):
        cat.operator_count = OperatorCount.MULTI
        cat.transmitter_count = TransmitterCount.ONE
        text = _MULTI_SINGLE_RE.sub(" ", text)
    if re.search(r"NON-ASSIS?TED", text):
        cat.assisted = False
        text = re.sub(r"NON-ASSIS?TED", " ", text)
    text = text.replace("POWER", " ")

    for tok in _CATEGORY_SPLIT_RE.split(text):
        if tok in ("", "AND"):
            continue
        if tok in ("SINGLE", "SO"):
            cat.operator_count = OperatorCount.SINGLE
        elif tok == "MULTI":
            cat.operator_count = OperatorCount.MULTI
        elif tok == "CHECKLOG":
            cat.operator_count = OperatorCount.CHECKLOG
        elif tok in ("ONE", "LIMITED"):
            cat.transmitter_count = TransmitterCount.ONE
        elif tok == "TWO":
            cat.transmitter_count = TransmitterCount.UNLIMITED
        elif tok == "MM":
            cat.operator_count = OperatorCount.MULTI
            cat.transmitter_count = TransmitterCount.UNLIMITED
        elif tok == "MS":
            cat.operator_count = OperatorCount.MULTI
            cat.transmitter_count = TransmitterCount.ONE
        elif tok == "SCHOOL":
            cat.station_type = StationType.SCHOOL
        elif tok in ("HIGH", "LOW", "QRP"):
            cat.power = tok.lower()
        elif tok in ("LO", "LP", "LOWW"):
            cat.power = Power.LOW
        elif tok in ("MEDIUM", "HP"):
            cat.power = Power.HIGH
        elif tok == "ASSISTED":
            cat.assisted = True
        elif tok == "ALL":
            doc.band = "ALL"
        elif tok == "15":
            doc.band = "15m"
        elif tok == "COUNTY":
            doc.add_special_category("COUNTY")
        elif tok in ("MOBILE", "ROVER"):
            cat.station_type = StationType.MOBILE
            doc.add_special_category("MOBILE")
        elif tok in ("MIXED", "SSB", "CW"):
            doc.category_mode = tok
        elif tok == "YL":
            doc.add_special_category("YL")
        elif _INERT_CATEGORY_RE.search(tok):
            pass
        elif _BAND_TOKEN_RE.search(tok):
            doc.band = tok
        elif "PHONE" in tok:
            doc.category_mode = "SSB"
        else:
            doc.report(f"Unknown category token '{tok}'")
