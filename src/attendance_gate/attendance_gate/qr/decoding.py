from __future__ import annotations

from typing import BinaryIO

from PIL import Image, UnidentifiedImageError
from pyzbar.pyzbar import decode as pyzbar_decode

from ..core.enums import RejectReason
from ..core.exceptions import ValidationError


def decode_qr_image(stream: BinaryIO) -> str:
    """Return the text of the first QR code found in an uploaded picture."""
    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("uploaded file is not an image", reason=RejectReason.MISSING_FIELD)

    decoded = pyzbar_decode(img)
    if not decoded:
        raise ValidationError("no QR code found in image", reason=RejectReason.MISSING_FIELD)
    return decoded[0].data.decode("utf-8").strip()
