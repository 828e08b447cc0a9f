"""
Token estimation without a tokenizer.

CJK ideographs pack more meaning per token than Latin text, so they are
counted separately: tokens = ceil(cjk / 2.5 + other / 4).
"""

import re

# CJK Unified Ideographs block
_CJK_PATTERN = re.compile(r'[\u4e00-\u9fff]')


def count_chars(text: str) -> tuple[int, int]:
    """Return (cjk_count, other_count) for text."""
    if not text:
        return 0, 0
    cjk = len(_CJK_PATTERN.findall(text))
    return cjk, len(text) - cjk


def tokens_from_counts(cjk_count: int, other_count: int) -> int:
    """
    Token estimate for pre-counted characters.

    Evaluated as ceil((8 * cjk + 5 * other) / 20), the same value as
    ceil(cjk / 2.5 + other / 4) without float rounding.
    """
    return -(-(8 * cjk_count + 5 * other_count) // 20)


def estimate_tokens(text: str) -> int:
    """
    Approximate the provider-billed token count of text.

    Args:
        text: Any text (None and "" count as zero)

    Returns:
        Non-negative integer estimate
    """
    return tokens_from_counts(*count_chars(text))
