# Purpose: Auto-detect which bank QR payload format a string uses and dispatch
# to its codec. Only VietQR is known today; callers may pass extra formats.

from typing import Any, Callable, NamedTuple, Optional

from qr_detector import detect_first_qr_code
from qr_generator import IMAGE_SIZE, generate_vietqr, render_qr_image
from qr_parser import can_decode, parse_vietqr
from vietqr_model import VietQR


class PayloadFormat(NamedTuple):
    """Codec capabilities of one payload family. `decode` returns None when it cannot decode."""
    name: str
    can_decode: Callable[[str], bool]
    decode: Callable[[str], Optional[Any]]
    encode: Callable[[Any], str]


VIETQR_FORMAT = PayloadFormat(VietQR.qr_code_type, can_decode, parse_vietqr, generate_vietqr)

PAYLOAD_FORMATS = (VIETQR_FORMAT,)


def detect_format(qr_content, formats=PAYLOAD_FORMATS):
    """Returns the first format whose can_decode accepts the content, or None."""
    for payload_format in formats:
        if payload_format.can_decode(qr_content):
            return payload_format
    return None


def parse_bank_qr(qr_content, formats=PAYLOAD_FORMATS):
    payload_format = detect_format(qr_content, formats)
    if payload_format is None:
        return None
    return payload_format.decode(qr_content)


def parse_bank_qr_image(image, formats=PAYLOAD_FORMATS):
    """Detects the first QR code in an image and parses it. None if nothing usable is found."""
    qr_content = detect_first_qr_code(image)
    if qr_content is None:
        return None
    return parse_bank_qr(qr_content, formats)


def _format_for(record, formats):
    record_type = getattr(record, "qr_code_type", None)
    for payload_format in formats:
        if payload_format.name == record_type:
            return payload_format
    raise ValueError(f"Unsupported QR code type: {record_type!r}")


def generate_bank_qr_string(record, formats=PAYLOAD_FORMATS):
    return _format_for(record, formats).encode(record)


def generate_bank_qr_image(record, size=IMAGE_SIZE, error_correction="H", formats=PAYLOAD_FORMATS):
    return render_qr_image(generate_bank_qr_string(record, formats), size=size,
                           error_correction=error_correction)
