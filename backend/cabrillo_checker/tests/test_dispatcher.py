from datetime import datetime, timezone

import pytest

from cabrillo_checker.cabrillo_io.dispatcher import dispatch, parse_qso_time
from cabrillo_checker.exceptions import DataParsingError, ValidationError
from cabrillo_checker.models.category import OperatorCount, Power, StationType, TransmitterCount
from cabrillo_checker.models.document import CabrilloLog, ParseState
from cabrillo_checker.models.mode import Mode
from cabrillo_checker.services.aliases import AliasTable


@pytest.fixture
def doc(aliases: AliasTable) -> CabrilloLog:
    d = CabrilloLog(aliases=aliases)
    dispatch(d, "START-OF-LOG: 3.0")
    return d


def test_start_and_end_drive_envelope(doc: CabrilloLog) -> None:
    assert doc.state is ParseState.HEADER
    assert doc.version == "3.0"
    dispatch(doc, "QSO: 14035 CW 2019-10-05 1601 W6YX 1 SCLA K1ABC 1 NY")
    assert doc.state is ParseState.BODY
    dispatch(doc, "END-OF-LOG:")
    assert doc.state is ParseState.ENDED
    assert doc.diagnostics == []


def test_out_of_order_header_warns_but_applies(doc: CabrilloLog) -> None:
    dispatch(doc, "QSO: 14035 CW 2019-10-05 1601 W6YX 1 SCLA K1ABC 1 NY")
    dispatch(doc, "CATEGORY-POWER: LOW")
    assert doc.log_category.power is Power.LOW
    assert doc.state is ParseState.HEADER
    assert any("Unexpected state transition" in d for d in doc.diagnostics)


def test_unknown_line_returns_none(doc: CabrilloLog) -> None:
    assert dispatch(doc, "BOGUS-TAG: something") is None


def test_callsign_line(doc: CabrilloLog) -> None:
    dispatch(doc, "CALLSIGN: w6yx/p")
    assert doc.callsign == "W6YX/P"


def test_callsign_line_does_not_override_callsign_from_qso(aliases: AliasTable) -> None:
    d = CabrilloLog(aliases=aliases)
    dispatch(d, "QSO: 14035 CW 2019-10-05 1601 W6YX 1 SCLA K1ABC 1 NY")
    dispatch(d, "CALLSIGN: K6ZZZ")
    assert d.callsign == "W6YX"


@pytest.mark.parametrize(
    "line, expected",
    [
        ("CATEGORY-ASSISTED: ASSISTED", True),
        ("CATEGORY-ASSISTED: NON-ASSISTED", False),
        ("CATEGORY-ASSISTED: UNASSISTED", False),
        ("CATEGORY-ASSISTED: NO", False),
    ],
)
def test_assisted(doc: CabrilloLog, line: str, expected: bool) -> None:
    dispatch(doc, line)
    assert doc.log_category.assisted is expected


@pytest.mark.parametrize(
    "line, count, transmitters",
    [
        ("CATEGORY-OPERATOR: SINGLE-OP", OperatorCount.SINGLE, None),
        ("CATEGORY-OPERATOR: CHECKLOG", OperatorCount.CHECKLOG, None),
        ("CATEGORY-OPERATOR: MULTI-OP", OperatorCount.MULTI, None),
        ("CATEGORY-OPERATOR: MULTI-SINGLE", OperatorCount.MULTI, TransmitterCount.ONE),
        ("CATEGORY-OPERATOR: MULTI-MULTI", OperatorCount.MULTI, TransmitterCount.UNLIMITED),
    ],
)
def test_operator(doc: CabrilloLog, line: str, count: OperatorCount, transmitters) -> None:
    dispatch(doc, line)
    assert doc.log_category.operator_count is count
    assert doc.log_category.transmitter_count is transmitters


@pytest.mark.parametrize(
    "line, expected",
    [
        ("CATEGORY-POWER: HIGH", Power.HIGH),
        ("CATEGORY-POWER: qrp", Power.QRP),
        ("CATEGORY-POWER: 5W", Power.QRP),
        ("CATEGORY-POWER: 100", Power.LOW),
        ("CATEGORY-POWER: 1500 w", Power.HIGH),
        ("CATEGORY-POWER: LOCAL", Power.LOW),
    ],
)
def test_power(doc: CabrilloLog, line: str, expected: Power) -> None:
    dispatch(doc, line)
    assert doc.log_category.power is expected


@pytest.mark.parametrize(
    "line, expected",
    [
        ("CATEGORY-TIME: 6-HOURS", "6-HOURS"),
        ("CATEGORY-TIME: 8 HOURS", "12-HOURS"),
        ("CATEGORY-TIME: 24", "24-HOURS"),
        ("CATEGORY-TIME: 13", "24-HOURS"),
    ],
)
def test_time_period_rounds_up(doc: CabrilloLog, line: str, expected: str) -> None:
    dispatch(doc, line)
    assert doc.time_period == expected


def test_transmitter(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY-TRANSMITTER: SWL")
    assert doc.log_category.transmitter_count is TransmitterCount.SWL
    dispatch(doc, "CATEGORY-TRANSMITTER: TWO")
    assert doc.log_category.transmitter_count is TransmitterCount.UNLIMITED


def test_station_lines(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY-STATION: PORTABLE")
    assert doc.station_text == "PORTABLE"
    assert doc.log_category.station_type is StationType.PORTABLE
    dispatch(doc, "CATEGORY-STATION: COUNTY-EXPEDITION")
    assert doc.log_category.station_type is StationType.EXPEDITION
    assert doc.has_special_category("COUNTY")
    dispatch(doc, "CATEGORY-STATION: ROVER")
    assert doc.has_special_category("MOBILE")


def test_combined_category_line(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY: Single-Op Low CW non-assisted")
    cat = doc.log_category
    assert cat.operator_count is OperatorCount.SINGLE
    assert cat.power is Power.LOW
    assert cat.assisted is False
    assert doc.category_mode == "CW"
    assert doc.diagnostics == []


def test_combined_category_multi_tokens_and_unknown(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY: M-M HIGH 40M YL WIZARD")
    cat = doc.log_category
    assert cat.operator_count is OperatorCount.MULTI
    assert cat.transmitter_count is TransmitterCount.UNLIMITED
    assert cat.power is Power.HIGH
    assert doc.band == "40M"
    assert doc.has_special_category("YL")
    assert any("WIZARD" in d for d in doc.diagnostics)


def test_band_mode_token_is_not_read_as_multi_single(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY: SINGLE-OP 40M-SSB LOW")
    cat = doc.log_category
    assert cat.operator_count is OperatorCount.SINGLE
    assert cat.transmitter_count is None
    assert cat.power is Power.LOW
    assert doc.band == "40M"
    assert doc.category_mode == "SSB"
    assert doc.diagnostics == []


@pytest.mark.parametrize(
    "line, transmitters",
    [
        ("CATEGORY: M-S LOW", TransmitterCount.ONE),
        ("CATEGORY: MULTI-SINGLE LOW", TransmitterCount.ONE),
        ("CATEGORY: M-M LOW", TransmitterCount.UNLIMITED),
    ],
)
def test_combined_multi_short_forms(doc: CabrilloLog, line: str, transmitters: TransmitterCount) -> None:
    dispatch(doc, line)
    assert doc.log_category.operator_count is OperatorCount.MULTI
    assert doc.log_category.transmitter_count is transmitters
    assert doc.diagnostics == []


def test_overlay(doc: CabrilloLog) -> None:
    dispatch(doc, "CATEGORY-OVERLAY: ROOKIE SINGLE-OP BANANA")
    assert doc.log_category.operator_count is OperatorCount.SINGLE
    assert len(doc.diagnostics) == 1
    assert "BANANA" in doc.diagnostics[0]


def test_metadata_lines(doc: CabrilloLog) -> None:
    for line in [
        "CERTIFICATE: YES",
        "CLAIMED-SCORE: 12,345",
        "CLUB: Northern   California  Contest Club",
        "CREATED-BY: N1MM Logger+ 1.0",
        "E-MAIL: op@example.com",
        "NAME: Jane   Doe",
        "ADDRESS: 1 Main St",
        "ADDRESS: Apt 2",
        "ADDRESS-CITY: Palo Alto",
        "STATE-PROVINCE: CA",
        "ADDRESS-POSTALCODE: 94301",
        "ADDRESS-COUNTRY: USA",
        "OPERATORS: W6YX, k6abc  n6xyz",
        "OFFTIME: 2019-10-05 2000 2019-10-05 2100",
        "SOAPBOX: Fun!",
        "CONTEST: CA-QSO-PARTY",
    ]:
        assert dispatch(doc, line) is not None, line
    assert doc.certificate is True
    assert doc.claimed_score == "12345"
    assert doc.club == "Northern California Contest Club"
    assert doc.creator == "N1MM Logger+ 1.0"
    assert doc.log_category.email == "op@example.com"
    assert doc.name == "Jane Doe"
    assert doc.address == ["1 Main St", "Apt 2"]
    assert doc.state_province == "CA"
    assert doc.normalized_operators == "W6YX k6abc n6xyz"
    assert doc.operator_list == ["W6YX", "K6ABC", "N6XYZ"]
    assert doc.offtimes == ["2019-10-05 2000 2019-10-05 2100"]
    assert doc.soapbox == ["Fun!"]
    assert doc.contest == "CA-QSO-PARTY"


def test_location_sets_declared_sent_location(doc: CabrilloLog) -> None:
    dispatch(doc, "LOCATION: santa  clara")
    assert doc.location == "SANTA CLARA"
    assert doc.log_category.sent_location == "SCLA"


def test_extension_lines_fill_corrected_profile(doc: CabrilloLog) -> None:
    lines = [
        "X-CQP-OPCLASS: MULTI-SINGLE",
        "X-CQP-POWER: HIGH",
        "X-CQP-SENTQTH: Alameda",
        "X-CQP-PHONE: 555-1212",
        "X-CQP-EMAIL: fixed@example.com",
        "X-CQP-CATEGORIES: YL YOUTH PIRATE",
        "X-CQP-ID: 42",
        "X-N1MM-STUFF: keep me",
    ]
    for line in lines:
        dispatch(doc, line)
    corrected = doc.corrected_category
    assert corrected.operator_count is OperatorCount.MULTI
    assert corrected.transmitter_count is TransmitterCount.ONE
    assert corrected.power is Power.HIGH
    assert corrected.sent_location == "Alameda"
    assert corrected.phone == "555-1212"
    assert corrected.email == "fixed@example.com"
    assert doc.special_categories == {"YL", "YOUTH"}
    assert any("PIRATE" in d for d in doc.diagnostics)
    assert doc.log_id == 42
    assert doc.x_lines == lines
    assert doc.default_sent_location() == "ALAM"
    # X- lines do not move the envelope
    assert doc.state is ParseState.HEADER


def test_qso_line_fields(doc: CabrilloLog) -> None:
    dispatch(doc, "QSO: 14035 cw 2019-10-05 1601 w6yx 007 scla K1ABC 12 new 2")
    qso = doc.qsos[0]
    assert qso.freq_khz == 14035
    assert qso.mode is Mode.CW
    assert qso.mode_original == "CW"
    assert qso.when == datetime(2019, 10, 5, 16, 1, tzinfo=timezone.utc)
    assert qso.sent.callsign == "W6YX"
    assert qso.sent.serial == 7
    assert qso.sent.serial_leading_zero is True
    assert qso.sent.location == "SCLA"
    assert qso.received.serial == 12
    assert qso.received.serial_leading_zero is False
    assert qso.received.location_raw == "NEW"
    assert qso.received.location == "????"
    assert qso.transceiver == 2
    assert doc.bad_received_multipliers == {"NEW"}
    assert doc.log_category.sent_location == "SCLA"
    assert doc.callsign == "W6YX"


def test_qso_annotation_block(doc: CabrilloLog) -> None:
    dispatch(
        doc,
        "QSO: 7040 PH 2019/10/5 1700 W6YX 2 SCLA N5XX 3 TX "
        "{GP DUPE = D; Err_NIL = 1; Err_unique = 0; Err_nr = 3; NOTE =  busted   call ; EMPTY = ;GP}",
    )
    qso = doc.qsos[0]
    assert qso.mode is Mode.PHONE
    assert qso.transceiver is None
    assert qso.annotations == {
        "DUPE": True,
        "Err_NIL": True,
        "Err_unique": False,
        "Err_nr": 3,
        "NOTE": "busted call",
    }


def test_qso_with_unknown_mode_raises(doc: CabrilloLog) -> None:
    with pytest.raises(ValidationError):
        dispatch(doc, "QSO: 14035 XX 2019-10-05 1601 W6YX 1 SCLA K1ABC 1 NY")
    assert doc.qsos == []


def test_parse_qso_time_clamps_bad_minutes() -> None:
    assert parse_qso_time("2019-10-05", "1675") == datetime(2019, 10, 5, 16, 59, tzinfo=timezone.utc)
    assert parse_qso_time("2019/10/05", "2500") == datetime(2019, 10, 5, 23, 0, tzinfo=timezone.utc)
    assert parse_qso_time("19-10-05", "1200") == datetime(2019, 10, 5, 12, 0, tzinfo=timezone.utc)


def test_parse_qso_time_rejects_impossible_date() -> None:
    with pytest.raises(DataParsingError):
        parse_qso_time("2019-13-45", "1200")
