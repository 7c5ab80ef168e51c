"""Verification payloads and their QR rendering.

PAYLOAD FORMATS
----------------
Printed QR codes outlive any deployment, so these shapes are frozen:

  letter       → ``{PUBLIC_BASE_URL}/verify/{letter_id}``
  certificate  → compact JSON, keys in this order:
                 {"type":"certificate","eventId":…,"claimId":…,
                  "recipientName":…,"callSign":…,"valid":true}
                 callSign is left out entirely when the claim has none.

The workflows store the payload string on the letter/claim.  Images are
rendered on request by a QrEncoder; rendering never feeds back into any
fingerprint.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from io import BytesIO
from typing import Literal, Protocol
from uuid import UUID

import qrcode
from qrcode.constants import (
    ERROR_CORRECT_H,
    ERROR_CORRECT_L,
    ERROR_CORRECT_M,
    ERROR_CORRECT_Q,
)
from qrcode.image.pil import PilImage

from docseal.core.config import SETTINGS

ErrorCorrectionLevel = Literal["L", "M", "Q", "H"]

_ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


def letter_verification_url(letter_id: UUID | str, base_url: str | None = None) -> str:
    base = (base_url or SETTINGS.public_base_url).rstrip("/")
    return f"{base}/verify/{letter_id}"


def certificate_payload(
    *,
    event_id: UUID | str,
    claim_id: UUID | str,
    recipient_name: str,
    call_sign: str | None = None,
) -> str:
    payload: dict[str, object] = {
        "type": "certificate",
        "eventId": str(event_id),
        "claimId": str(claim_id),
        "recipientName": recipient_name,
    }
    if call_sign:
        payload["callSign"] = call_sign
    payload["valid"] = True
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class QrOptions:
    error_correction: ErrorCorrectionLevel = "H"
    size: int = 256  # target edge length in pixels
    border: int = 2  # quiet zone, in modules
    dark: str = "#1a1a2e"
    light: str = "#ffffff"


class QrEncoder(Protocol):
    def encode_as_image(self, payload: str, options: QrOptions | None = None) -> bytes: ...


class PngQrEncoder:
    """Render payloads as PNG bytes with the ``qrcode`` library."""

    def encode_as_image(self, payload: str, options: QrOptions | None = None) -> bytes:
        opts = options or QrOptions()
        if opts.error_correction not in _ERROR_CORRECTION:
            raise ValueError(
                f"error_correction must be L|M|Q|H (got {opts.error_correction!r})"
            )

        qr = qrcode.QRCode(
            error_correction=_ERROR_CORRECTION[opts.error_correction],
            border=opts.border,
            image_factory=PilImage,
        )
        qr.add_data(payload)
        qr.make(fit=True)

        # The symbol version is only known after make(); size the modules
        # so the whole image is at most opts.size pixels wide.
        modules = qr.modules_count + 2 * opts.border
        qr.box_size = max(1, opts.size // modules)

        img = qr.make_image(fill_color=opts.dark, back_color=opts.light)
        buffered = BytesIO()
        img.save(buffered, format="PNG")
        return buffered.getvalue()


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


qr_encoder: QrEncoder = PngQrEncoder()
