"""
Phone normalization for M-Pesa: every accepted input becomes the 254XXXXXXXXX form.
"""
from errors import InvalidPhoneFormat

COUNTRY_CODE = "254"


def normalize_phone(phone: str) -> str:
    """
    Strip "+" and spaces, then map the leading pattern:
    "0..." -> "254...", "7..." -> "2547...", "254..." unchanged.
    Anything else raises InvalidPhoneFormat.
    """
    cleaned = (phone or "").replace("+", "").replace(" ", "")
    if cleaned.startswith("0"):
        return COUNTRY_CODE + cleaned[1:]
    if cleaned.startswith("7"):
        return COUNTRY_CODE + cleaned
    if cleaned.startswith(COUNTRY_CODE):
        return cleaned
    raise InvalidPhoneFormat(f"Invalid phone number format: {cleaned}")
