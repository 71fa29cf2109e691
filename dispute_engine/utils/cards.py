"""Card number utilities."""

import re


def validate_card_number(card_number: str) -> bool:
    """Validate a primary account number with the Luhn checksum.

    Accepted formats:
    - 4111111111111111
    - 4111 1111 1111 1111
    - 4111-1111-1111-1111

    Args:
        card_number: Card number to validate

    Returns:
        bool: True if 13-19 digits and the checksum passes
    """
    cleaned = re.sub(r"[\s\-]", "", card_number)

    if not cleaned.isdigit() or not 13 <= len(cleaned) <= 19:
        return False

    total = 0
    for index, char in enumerate(reversed(cleaned)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def mask_card_number(card_number: str, visible_chars: int = 4) -> str:
    """Mask a card number showing only the last few digits.

    Args:
        card_number: Card number to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '************1111'
    """
    cleaned = re.sub(r"[\s\-]", "", card_number)
    if len(cleaned) <= visible_chars:
        return "*" * len(cleaned)

    masked_length = len(cleaned) - visible_chars
    return "*" * masked_length + cleaned[-visible_chars:]
