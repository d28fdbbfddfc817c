"""QR artifact rendering for short URLs.

The core only depends on the QRRenderer protocol: ``await render(text)``
returns an opaque artifact reference. QRCodeRenderer is the default
implementation and produces a PNG data URL with the ``qrcode`` library.
Rendering is CPU bound, so it runs in a worker thread.
"""

import asyncio
import base64
from io import BytesIO
from typing import Protocol

import qrcode
from qrcode.image.pil import PilImage

from bytelink.config import Settings, get_settings

__all__ = ["QRRenderer", "QRCodeRenderer"]


class QRRenderer(Protocol):
    async def render(self, text: str) -> str: ...


class QRCodeRenderer:
    """Render short URLs as ``data:image/png;base64,...`` strings."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def render(self, text: str) -> str:
        return await asyncio.to_thread(self.render_sync, text)

    def render_sync(self, text: str) -> str:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self._settings.QR_BOX_SIZE,
            border=self._settings.QR_BORDER,
        )
        qr.add_data(text)
        qr.make(fit=True)

        img = qr.make_image(
            image_factory=PilImage,
            fill_color=self._settings.QR_FILL_COLOR,
            back_color=self._settings.QR_BACK_COLOR,
        )
        buffered = BytesIO()
        img.save(buffered, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("utf-8")
