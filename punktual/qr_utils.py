import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.image.svg import SvgPathImage

MEDIA_TYPES = {"png": "image/png", "svg": "image/svg+xml"}


def render_qr(data: str, image_format: str = "png", box_size: int = 10) -> bytes:
    """QR code for a short URL, as PNG (printed flyers) or SVG (web embeds)."""
    qr = qrcode.QRCode(version=None, box_size=box_size, border=4, error_correction=ERROR_CORRECT_M)
    qr.add_data(data)
    qr.make(fit=True)

    buf = BytesIO()
    if image_format == "svg":
        qr.make_image(image_factory=SvgPathImage).save(buf)
    else:
        qr.make_image(fill_color="black", back_color="white").save(buf)
    return buf.getvalue()


def generate_qr_base64(data: str, image_format: str = "png") -> str:
    return base64.b64encode(render_qr(data, image_format)).decode()
