"""
FDI two-digit tooth notation helpers.

First digit is the quadrant (1-4 permanent, 5-8 deciduous), second digit the
position within the quadrant (1-8).
"""

from typing import Optional

UPPER_QUADRANTS = frozenset({1, 2, 5, 6})
LOWER_QUADRANTS = frozenset({3, 4, 7, 8})
PERMANENT_QUADRANTS = frozenset({1, 2, 3, 4})

# Quadrants mirrored across the facial midline
CONTRALATERAL_QUADRANTS = {
    "1": "2", "2": "1",
    "3": "4", "4": "3",
    "5": "6", "6": "5",
    "7": "8", "8": "7",
}

VALID_POSITIONS = frozenset("12345678")
VALID_QUADRANT_DIGITS = frozenset("12345678")


def get_quadrant(tooth: object) -> Optional[int]:
    """Quadrant digit of a well-formed FDI code, else None."""
    # Plain ASCII digits only: str.isdigit() also accepts superscripts such as "²".
    if not isinstance(tooth, str) or len(tooth) != 2:
        return None
    if tooth[0] not in VALID_QUADRANT_DIGITS or tooth[1] not in VALID_POSITIONS:
        return None
    return int(tooth[0])


def is_valid_fdi_code(tooth: object, allow_deciduous: bool = True) -> bool:
    """
    Check a tooth code against the FDI two-digit notation.

    Args:
        tooth: Candidate code (anything the model produced)
        allow_deciduous: Accept quadrants 5-8

    Returns:
        True for e.g. "11" or "48"; False for "19", "99", "0", "abc"
    """
    quadrant = get_quadrant(tooth)
    if quadrant is None:
        return False
    return allow_deciduous or quadrant in PERMANENT_QUADRANTS


def is_upper_arch(tooth: str) -> bool:
    return get_quadrant(tooth) in UPPER_QUADRANTS


def is_lower_arch(tooth: str) -> bool:
    return get_quadrant(tooth) in LOWER_QUADRANTS


def get_contralateral_tooth(tooth: object) -> Optional[str]:
    """
    Mirror a tooth across the facial midline: "14" -> "24", "46" -> "36".

    Returns None for anything that is not a two-character code with a
    quadrant in 1-8 and a position in 1-8.
    """
    if not isinstance(tooth, str) or len(tooth) != 2:
        return None
    quadrant, position = tooth[0], tooth[1]
    mirrored = CONTRALATERAL_QUADRANTS.get(quadrant)
    if mirrored is None or position not in VALID_POSITIONS:
        return None
    return mirrored + position
