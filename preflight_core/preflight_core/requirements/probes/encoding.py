"""Transcoding defect probe.

Some transcoder builds truncate (or pad) their output when asked to drop
unencodable characters from a long input.  The probe feeds a multi-byte
character followed by 9000 ASCII bytes through the transcoder in
ignore-errors mode; a correct transcoder returns exactly the 9000 ASCII
bytes.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable

from preflight_core.requirements.models import ProbeOutcome

logger = logging.getLogger(__name__)

Transcoder = Callable[[bytes, str, str], "bytes | None"]

FILLER_LENGTH = 9000
PROBE_INPUT = "α".encode("utf-8") + b"a" * FILLER_LENGTH

DEFECT_MESSAGE = (
    "The installed transcoder truncates or pads output when dropping unencodable "
    "characters (see glibc iconv bug #13541)."
)
IGNORE_UNSUPPORTED_MESSAGE = (
    "The installed transcoder does not support ignoring unencodable characters, "
    "making it unusable for transcoding purposes."
)
RECOMMENDED_MESSAGE = "A transcoder is recommended for more robust character set conversion support."


def codecs_transcoder(data: bytes, source: str, target: str) -> bytes:
    """Transcode *data* with :mod:`codecs`, dropping unencodable characters."""
    return codecs.decode(data, source, "ignore").encode(target, "ignore")


def default_transcoder() -> Transcoder | None:
    """Return the codecs transcoder when both codecs are registered."""
    try:
        codecs.lookup("utf-8")
        codecs.lookup("ascii")
    except LookupError:
        return None
    return codecs_transcoder


def check_transcoding(
    transcoder: Transcoder | None,
    source: str = "utf-8",
    target: str = "ascii",
) -> ProbeOutcome:
    """Run the truncation probe against *transcoder*.

    Returns
    -------
    ProbeOutcome
        True with a recommendation when the output is exactly
        :data:`FILLER_LENGTH` bytes; False with a defect message when it is
        shorter or longer; False with an explanation when the transcoder
        cannot ignore errors, fails with a ValueError or OSError, or is
        missing.
    """
    if transcoder is None:
        return ProbeOutcome(False, RECOMMENDED_MESSAGE)

    try:
        output = transcoder(PROBE_INPUT, source, target)
    except (UnicodeError, LookupError) as exc:
        logger.debug("Transcoder rejected ignore mode: %s", exc)
        return ProbeOutcome(False, IGNORE_UNSUPPORTED_MESSAGE)
    except (ValueError, OSError) as exc:
        logger.debug("Transcoder failed: %s", exc)
        return ProbeOutcome(False, IGNORE_UNSUPPORTED_MESSAGE)

    if output is None:
        return ProbeOutcome(False, IGNORE_UNSUPPORTED_MESSAGE)

    if len(output) != FILLER_LENGTH:
        logger.debug("Transcoder returned %d bytes, expected %d", len(output), FILLER_LENGTH)
        return ProbeOutcome(False, DEFECT_MESSAGE)

    return ProbeOutcome(True, RECOMMENDED_MESSAGE)
