from typing import Optional, Union

from ..services.aliases import UNKNOWN_MULTIPLIER


class Exchange:
    """One side (sent or received) of a contact exchange.

    ``serial_leading_zero`` is decided when the serial is assigned from text
    and is never recomputed, so a zero-padded ``007`` keeps its padding even
    after the numeric value is replaced by a normalization pass.
    """

    def __init__(
        self,
        callsign: Optional[str] = None,
        serial: Union[int, str, None] = None,
        location_raw: Optional[str] = None,
        location: Optional[str] = None,
    ):
        self.callsign = callsign
        self.serial_leading_zero: Optional[bool] = None
        self._serial: Optional[int] = None
        if serial is not None:
            self.serial = serial
        self.location_raw = location_raw
        self.location = location

    @property
    def serial(self) -> Optional[int]:
        return self._serial

    @serial.setter
    def serial(self, value: Union[int, str, None]) -> None:
        if value is None:
            self._serial = None
            return
        if isinstance(value, str):
            text = value.strip()
            self.serial_leading_zero = text.startswith("0")
            self._serial = int(text) if text.isdigit() else 0
        else:
            self._serial = int(value)

    def format(self) -> str:
        serial = self._serial or 0
        if self.serial_leading_zero:
            return "%-13s %04d %-11s" % (self.callsign or "", serial, self._written_location())
        return "%-13s %4d %-11s" % (self.callsign or "", serial, self._written_location())

    def _written_location(self) -> str:
        # Unresolved multipliers are written as the operator typed them
        if self.location and self.location != UNKNOWN_MULTIPLIER:
            return self.location
        return self.location_raw or self.location or ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Exchange):
            return NotImplemented
        return (
            self.callsign == other.callsign
            and self._serial == other._serial
            and self.serial_leading_zero == other.serial_leading_zero
            and self.location_raw == other.location_raw
            and self.location == other.location
        )

    def __repr__(self) -> str:
        return (
            f"Exchange(callsign={self.callsign!r}, serial={self._serial!r}, "
            f"leading_zero={self.serial_leading_zero!r}, location={self.location!r})"
        )
