"""Cabrillo API routes for checking and canonicalizing uploaded logs."""

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse

from ...cabrillo_io.reader import parse_cabrillo
from ...cabrillo_io.writer import format_cabrillo
from ...exceptions import FileProcessingError, ValidationError
from ...models.document import CabrilloLog
from ...models.exchange import Exchange
from ...schemas.cabrillo import CabrilloCheckResultModel, ExchangeModel, QSOModel

router = APIRouter(prefix="/cabrillo", tags=["cabrillo"])


async def _parse_upload(file: UploadFile) -> CabrilloLog:
    raw = await file.read()
    try:
        text = raw.decode("ascii")
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=400, detail=f"{file.filename} is not ASCII text: {e}"
        ) from e
    try:
        return parse_cabrillo(text, source=file.filename or "<upload>")
    except (FileProcessingError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _exchange_model(exch: Exchange) -> ExchangeModel:
    return ExchangeModel(
        callsign=exch.callsign,
        serial=exch.serial,
        serial_leading_zero=exch.serial_leading_zero,
        location_raw=exch.location_raw,
        location=exch.location,
    )


@router.post(
    "/check",
    response_model=CabrilloCheckResultModel,
    summary="Parse a Cabrillo upload and report its contents",
)
async def check_log(file: UploadFile = File(...)) -> CabrilloCheckResultModel:
    """Parse an uploaded Cabrillo log and return reconciled categories,
    QSOs and every diagnostic raised while reading it.

    Args:
        file: Cabrillo log uploaded via multipart/form-data.
    """
    doc = await _parse_upload(file)
    return CabrilloCheckResultModel(
        filename=doc.source,
        callsign=doc.log_callsign,
        clean_parse=doc.clean_parse,
        conflicted=doc.conflicted,
        operating_class=doc.operating_class,
        assisted=doc.log_assisted,
        operator=doc.log_operator,
        power=doc.log_power,
        transmitter=doc.log_transmitter,
        email=doc.log_email,
        special_categories=sorted(doc.special_categories),
        total_qsos=len(doc.qsos),
        bad_sent_multipliers=sorted(doc.bad_sent_multipliers),
        bad_received_multipliers=sorted(doc.bad_received_multipliers),
        diagnostics=doc.diagnostics,
        qsos=[
            QSOModel(
                freq_khz=q.freq_khz,
                mode=q.mode.value,
                mode_original=q.mode_original,
                when=q.when,
                sent=_exchange_model(q.sent),
                received=_exchange_model(q.received),
                transceiver=q.transceiver,
                annotations=q.annotations,
            )
            for q in doc.qsos
        ],
    )


@router.post(
    "/canonical",
    response_class=PlainTextResponse,
    summary="Rewrite a Cabrillo upload in canonical form",
)
async def canonical_log(file: UploadFile = File(...)) -> str:
    doc = await _parse_upload(file)
    return format_cabrillo(doc)
