"""Repository name canonicalization.

Requested names are written by humans ("Payments API", "PaymentsApi") and
turned into kebab-case identifiers ("payments-api") before they are looked
up or created.
"""

from typing import Optional


WHITESPACE = frozenset(" \t\r\n")
SEGMENT_SEPARATOR = "-"


def sanitize_repository_name(raw: str) -> str:
    """Convert a display-style name into kebab-case.

    Letters are lowercased. A separator is inserted before an uppercase
    letter that follows a lowercase letter or a digit, so "PascalCase"
    becomes "pascal-case" and "UPPERCASE" stays one word. Whitespace runs
    separate words with a single "-" and vanish at either end. A literal
    "-" is kept as is. The function never fails and performs no character
    set validation.

    Args:
        raw: The name as written in the issue.

    Returns:
        The kebab-case name.

    Example:
        >>> sanitize_repository_name("Pascal01Case02")
        'pascal01-case02'
        >>> sanitize_repository_name("with   spaces")
        'with-spaces'
    """
    result = []
    previous = ""
    pending_separator = False

    for char in raw:
        if char in WHITESPACE:
            pending_separator = bool(result) and result[-1] != SEGMENT_SEPARATOR
            continue

        if char == SEGMENT_SEPARATOR:
            result.append(char)
            pending_separator = False
            previous = char
            continue

        case_boundary = char.isupper() and (previous.islower() or previous.isdigit())
        if (pending_separator or case_boundary) and result and result[-1] != SEGMENT_SEPARATOR:
            result.append(SEGMENT_SEPARATOR)

        result.append(char.lower())
        pending_separator = False
        previous = char

    return "".join(result)


def common_prefix(name: str, template_name: str) -> Optional[str]:
    """Longest run of leading "-"-separated segments shared by two names.

    Returns:
        The shared segments joined by "-", or None if the first segments
        already differ.

    Example:
        >>> common_prefix("payments-api", "payments-template")
        'payments'
    """
    shared = []
    for left, right in zip(name.split(SEGMENT_SEPARATOR), template_name.split(SEGMENT_SEPARATOR)):
        if left != right:
            break
        shared.append(left)

    if not shared or not any(shared):
        return None
    return SEGMENT_SEPARATOR.join(shared)
