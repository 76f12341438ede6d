import re
from typing import Optional
from urllib.parse import quote


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    email = email.strip()
    # simple but effective email check
    return re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email) is not None


def redeem_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/card/{quote(code, safe='')}"


def qr_image_url(base_url: str, data: str) -> str:
    return f"{base_url.rstrip('/')}/api/qr?data={quote(data, safe='')}"
