"""
Constants for build shares.
"""
import string


class ShareType:
    """
    How a share is presented to the recipient.
    """
    LINK = 'link'
    QRCODE = 'qrcode'

    CHOICES = [
        (LINK, 'Link'),
        (QRCODE, 'QR code'),
    ]

    @classmethod
    def get_all_types(cls):
        return [cls.LINK, cls.QRCODE]


SHARE_CODE_LENGTH = 12
SHARE_CODE_CHARS = string.ascii_letters + string.digits
SECRET_LENGTH = 8
SECRET_CHARS = string.ascii_uppercase + string.digits

# Bounds for the requested link lifetime
MIN_EXPIRES_IN_DAYS = 1
MAX_EXPIRES_IN_DAYS = 30
DEFAULT_EXPIRES_IN_DAYS = 7
