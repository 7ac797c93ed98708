import base64
import uuid
from collections.abc import Sequence
from io import BytesIO

import qrcode
import structlog

from common.exceptions import ErrorCode, ValidationFailedError

logger = structlog.get_logger(__name__)

QR_SEPARATOR = "|"


def build_qr_payload(participant_id: uuid.UUID, codes: Sequence[str]) -> str:
    """``<participant id>|<code>|<code>...``, scanned at the door."""
    return QR_SEPARATOR.join([str(participant_id), *codes])


def parse_qr_payload(payload: str) -> tuple[uuid.UUID, list[str]]:
    """Split a scanned payload back into the participant id and registration codes."""
    participant_part, *codes = [part.strip() for part in payload.strip().split(QR_SEPARATOR)]
    try:
        participant_id = uuid.UUID(participant_part)
    except ValueError as e:
        raise ValidationFailedError(ErrorCode.INVALID_QR_PAYLOAD, "The scanned QR code is not valid.") from e
    return participant_id, [code for code in codes if code]


def render_qr_code(payload: str) -> str | None:
    """Render the payload as a base64 PNG.

    Returns None when rendering fails; a missing QR image never fails the request.
    """
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buffered = BytesIO()
        img.save(buffered, "PNG")
    except Exception:
        logger.exception("qr_render_failed", payload_length=len(payload))
        return None
    return base64.b64encode(buffered.getvalue()).decode("utf-8")
