"""
devices.py - OS-facing capabilities injected into the service.

The codec, engine and reconciler never import these; the service receives a
clipboard and a QR decoder, so tests can pass fakes.
"""

from typing import IO, Protocol
import logging
import os
import sys

from totp_core.errors import InvalidURI

logger = logging.getLogger(__name__)


class Clipboard(Protocol):
    def copy(self, text: str) -> None: ...


class QRDecoder(Protocol):
    def decode(self, path: str) -> str: ...


class SystemClipboard:
    """Clipboard backed by pyperclip (xclip/xsel, pbcopy, or the Windows API)."""

    def copy(self, text: str) -> None:
        import pyperclip

        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise OSError(f"Clipboard unavailable: {e}") from e


class OpenCVQRDecoder:
    """
    Reads the first QR code in an image file with OpenCV.

    The classic QRCodeDetector misses some dense payloads (long otpauth URIs),
    so QRCodeDetectorAruco is tried when it finds nothing.
    """

    def decode(self, path: str) -> str:
        import cv2

        if not os.path.isfile(path):
            raise InvalidURI(f"Image not found: {path}")
        image = cv2.imread(path)
        if image is None:
            raise InvalidURI(f"Could not read image: {path}")

        for name in ("QRCodeDetector", "QRCodeDetectorAruco"):
            detector_cls = getattr(cv2, name, None)
            if detector_cls is None:
                continue
            data = detector_cls().detectAndDecode(image)[0]
            if data:
                logger.debug("Decoded QR payload from %s with %s (%d chars)", path, name, len(data))
                return data
        raise InvalidURI("No QR codes found in the image")


def render_qr_ascii(text: str, out: IO[str] | None = None) -> None:
    """Print a QR code for `text` to the terminal using block characters."""
    import qrcode

    qr = qrcode.QRCode(border=2)
    qr.add_data(text)
    qr.make(fit=True)
    qr.print_ascii(out=out or sys.stdout, invert=True)


def render_qr_png(text: str) -> bytes:
    """PNG bytes of a QR code for `text` (used by the HTTP API)."""
    import io

    import qrcode

    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
