"""
Investment methodology enumeration.

Each trading agent follows exactly one methodology.
"""

from enum import StrEnum


class Methodology(StrEnum):
    """
    Allowed agent methodologies.
    """

    VALUE = "value"
    GROWTH = "growth"
    TECHNICAL = "technical"
    MACRO = "macro"
    SENTIMENT = "sentiment"
    RISK = "risk"
    QUANT = "quant"
    CONTRARIAN = "contrarian"
