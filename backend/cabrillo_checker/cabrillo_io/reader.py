"""Parse driver: text or file in, normalized :class:`CabrilloLog` out."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..core.config import Settings, get_settings
from ..exceptions import CabrilloCheckerError, FileProcessingError
from ..models.document import CabrilloLog
from ..services.aliases import AliasTable
from .dispatcher import dispatch
from .normalizer import review_qsos
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

QSO_PREFIX_RE = re.compile(r"\AQSO:", re.IGNORECASE)
# Characters outside this set are blanked before a QSO line is retried
UNSAFE_QSO_CHARS_RE = re.compile(r"[^-a-zA-Z/0-9 :]")


def _process_record(doc: CabrilloLog, record: str) -> None:
    line = record.rstrip()
    if not line.strip():
        return
    error: Optional[CabrilloCheckerError] = None
    try:
        if dispatch(doc, line) is not None:
            return
    except CabrilloCheckerError as e:
        error = e

    if QSO_PREFIX_RE.match(line):
        stripped = UNSAFE_QSO_CHARS_RE.sub(" ", line).rstrip()
        try:
            if dispatch(doc, stripped) is not None:
                doc.report(f"QSO line recovered after removing stray characters: '{line}'")
                return
        except CabrilloCheckerError as e:
            error = e

    if error is not None:
        doc.mark_unclean(f"Bad line: '{line}' ({error})")
    else:
        doc.mark_unclean(f"Unknown line: '{line}'")


def parse_cabrillo(
    content: str,
    source: str = "<string>",
    settings: Optional[Settings] = None,
    aliases: Optional[AliasTable] = None,
    normalize: bool = True,
) -> CabrilloLog:
    """Parse Cabrillo ``content`` into a document.

    Args:
        content: Full text of the submission.
        source: Name used in diagnostics.
        settings: Contest window and thresholds; defaults to ``get_settings()``.
        aliases: Multiplier alias table; defaults to the process-wide table.
        normalize: Run the post-parse passes (serial and location
            backfill, contest window check).

    Raises:
        FileProcessingError: the content is binary or ADIF.
    """

    settings = settings or get_settings()
    doc = CabrilloLog(source=source, aliases=aliases)
    for record in tokenize(content, source):
        _process_record(doc, record)
    if normalize:
        review_qsos(doc, settings)
    logger.debug("Parsed %s: %d QSOs, clean=%s", source, len(doc.qsos), doc.clean_parse)
    return doc


def read_cabrillo(
    path: Union[str, Path],
    settings: Optional[Settings] = None,
    aliases: Optional[AliasTable] = None,
) -> CabrilloLog:
    """Read and parse the Cabrillo file at ``path``.

    Only ASCII content is accepted.
    """

    path = Path(path)
    try:
        content = path.read_bytes().decode("ascii")
    except UnicodeDecodeError as e:
        raise FileProcessingError(f"File {path} is not ASCII text: {e}") from e
    except OSError as e:
        raise FileProcessingError(f"Could not read {path}: {e}") from e
    return parse_cabrillo(content, source=str(path), settings=settings, aliases=aliases)
