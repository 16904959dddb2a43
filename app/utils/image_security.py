import base64
import binascii
import io
import logging
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from app.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ImageSecurityUtils:
    # Allowed image MIME types
    ALLOWED_MIME_TYPES = {
        'image/jpeg',
        'image/png',
        'image/gif',
        'image/webp'
    }

    # Pillow format name -> MIME type
    FORMAT_MIME_TYPES = {
        'JPEG': 'image/jpeg',
        'PNG': 'image/png',
        'GIF': 'image/gif',
        'WEBP': 'image/webp',
    }

    # Maximum file size (5MB)
    MAX_FILE_SIZE = 5 * 1024 * 1024

    # Maximum image dimensions
    MAX_IMAGE_DIMENSIONS = (2048, 2048)

    BLOCKED_HOSTNAMES = {'localhost', '127.0.0.1', '::1', '0.0.0.0'}

    PRIVATE_NETWORKS = (
        '10.',
        '172.16.', '172.17.', '172.18.', '172.19.',
        '172.20.', '172.21.', '172.22.', '172.23.',
        '172.24.', '172.25.', '172.26.', '172.27.',
        '172.28.', '172.29.', '172.30.', '172.31.',
        '192.168.',
        'fc00:',
        'fe80:'
    )

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """Only public http(s) hosts on standard ports are accepted."""
        try:
            parsed = urlparse(url)

            if parsed.scheme not in ('http', 'https'):
                return False

            hostname = parsed.hostname.lower() if parsed.hostname else ''
            if not hostname or hostname in cls.BLOCKED_HOSTNAMES:
                return False

            if hostname.startswith(cls.PRIVATE_NETWORKS):
                return False

            if parsed.port and parsed.port not in (80, 443):
                return False

            return True
        except ValueError as e:
            logger.warning(f"URL validation error: {str(e)}")
            return False

    @classmethod
    def decode_data_url(cls, data_url: str) -> bytes:
        """Split a ``data:image/...;base64,`` URL and return the raw bytes."""
        if not data_url.startswith('data:image/') or ',' not in data_url:
            raise ValidationError("Invalid image data URL")

        header, data = data_url.split(',', 1)
        if ';base64' not in header:
            raise ValidationError("Image data URL must be base64 encoded")

        mime_type = header[5:header.index(';')]
        if mime_type not in cls.ALLOWED_MIME_TYPES:
            raise ValidationError("Invalid image format")

        try:
            decoded = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Invalid base64 image data")

        if len(decoded) > cls.MAX_FILE_SIZE:
            raise ValidationError("Image too large")
        return decoded

    @classmethod
    def inspect_image(cls, image_data: bytes) -> str:
        """Open the bytes with Pillow, check dimensions and return the detected MIME type."""
        try:
            with Image.open(io.BytesIO(image_data)) as img:
                mime_type = cls.FORMAT_MIME_TYPES.get(img.format)
                width, height = img.size
        except (UnidentifiedImageError, OSError):
            raise ValidationError("Image could not be decoded")

        if mime_type is None:
            raise ValidationError("Invalid image format")
        if width > cls.MAX_IMAGE_DIMENSIONS[0] or height > cls.MAX_IMAGE_DIMENSIONS[1]:
            raise ValidationError("Image dimensions too large")
        return mime_type

    @classmethod
    def validate_image_source(cls, image_source: str) -> str:
        """Accept either a public image URL or a base64 data URL; return the value to store."""
        image_source = image_source.strip()
        if image_source.startswith('data:'):
            image_data = cls.decode_data_url(image_source)
            mime_type = cls.inspect_image(image_data)
            encoded = base64.b64encode(image_data).decode('ascii')
            return f"data:{mime_type};base64,{encoded}"

        if not cls.validate_url(image_source):
            raise ValidationError("Invalid image URL")
        return image_source
