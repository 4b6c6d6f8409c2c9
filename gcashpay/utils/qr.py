from __future__ import annotations

from io import BytesIO

import qrcode
from PIL import Image


def generate_qr_png(data: str, *, size: int = 400, border: int = 2) -> bytes:
    """Render ``data`` (a GCash number) as a square PNG QR code.

    Used when no QR image is configured for the receiving account.
    """
    if not isinstance(data, str) or not data.strip():
        raise ValueError("data must be a non-empty string")

    qr = qrcode.QRCode(box_size=10, border=max(0, int(border)))
    qr.add_data(data.strip())
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    if img.size != (size, size):
        img = img.resize((size, size), Image.NEAREST)

    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


__all__ = ["generate_qr_png"]
