import re
from typing import Optional

# PS2506DS148 format: PS + YYMM + DOMAIN + XXX
CERTIFICATE_ID_PATTERN = re.compile(r"^PS\d{4}[A-Z]{2,4}\d{3}$", re.ASCII)
CERTIFICATE_ID_FORMAT_HINT = "Expected format: PS2506DS148"


def normalize_certificate_id(certificate_id: Optional[str]) -> Optional[str]:
    """
    Trim and uppercase a candidate certificate ID, None when nothing is left
    """
    if certificate_id is None:
        return None

    normalized = certificate_id.strip().upper()
    return normalized or None


def is_valid_certificate_id(certificate_id: Optional[str]) -> bool:
    """
    Check the public certificate ID shape after normalization
    """
    normalized = normalize_certificate_id(certificate_id)
    if normalized is None:
        return False

    return CERTIFICATE_ID_PATTERN.fullmatch(normalized) is not None
