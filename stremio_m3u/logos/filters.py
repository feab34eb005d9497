"""
Candidate filter for Wikimedia logo files

Wikimedia search results for "ESPN logo" include stadium photos, posters,
retired logos and fan-made concepts alongside the real thing. This module
decides from the file title alone whether a candidate is worth resolving.

Rules (all must pass):
1. Image extension: svg, png, jpg or jpeg
2. The name says it is a logo: contains "logo", "wordmark" or "brand"
3. No blocklisted term marking a non-canonical or stale asset
4. Relevance: a significant word of the search term (or its initials)
   occurs in the file name
5. Recency: a recency marker is present, or the name carries no 4-digit
   year at all. A dated file without a marker is assumed to be outdated.
"""

import re
from typing import List

VALID_EXTENSIONS_PATTERN = re.compile(r'\.(svg|png|jpg|jpeg)$', re.IGNORECASE)

LOGO_MARKERS = ('logo', 'wordmark', 'brand')

EXCLUDED_TERMS = (
    'screenshot', 'poster', 'banner', 'wallpaper', 'icon', 'favicon',
    'old', 'former', 'previous', 'historic', 'vintage', 'retro',
    'concept', 'draft', 'proposal', 'mockup', 'variant',
)

RECENCY_MARKERS = (
    '2026', '2025', '2024', '2023', '2022', '2021', '2020',
    'current', 'new',
)

YEAR_PATTERN = re.compile(r'\d{4}')

# Strips "logo" and anything after it from a search term
LOGO_SUFFIX_PATTERN = re.compile(r'\s+logo.*$')


def extract_search_words(search_term: str) -> List[str]:
    """
    Split a search term into the words used for relevance matching

    "Cable News Network logo" -> ["cable", "news", "network"]

    Args:
        search_term: Term that produced the candidate

    Returns:
        Lower-cased words with the trailing "logo..." suffix removed
    """
    term = LOGO_SUFFIX_PATTERN.sub('', search_term.lower())
    return term.split()


def matches_search_term(file_name: str, search_term: str) -> bool:
    """
    Check whether a file name is relevant to the search term

    A word longer than two characters must appear in the name. Multi-word
    network names are also matched by their initials, so "Cable News
    Network" accepts "CNN_logo.svg".

    Args:
        file_name: Candidate file title
        search_term: Term that produced the candidate

    Returns:
        True if the candidate is relevant
    """
    name = file_name.lower()
    words = extract_search_words(search_term)

    if any(len(word) > 2 and word in name for word in words):
        return True

    significant = [word for word in words if len(word) > 2]
    if len(significant) >= 3:
        initials = ''.join(word[0] for word in significant)
        if initials in name:
            return True

    return False


def is_valid_logo_file(file_name: str, search_term: str) -> bool:
    """
    Decide whether a Wikimedia file title is an acceptable channel logo

    Pure and deterministic; see the module docstring for the rules.

    Args:
        file_name: Candidate file title (e.g. "File:NBC_logo.svg")
        search_term: Search term that returned the candidate

    Returns:
        True if the candidate should be resolved to an image URL
    """
    name = file_name.lower()

    if not VALID_EXTENSIONS_PATTERN.search(name):
        return False

    if not any(marker in name for marker in LOGO_MARKERS):
        return False

    if any(term in name for term in EXCLUDED_TERMS):
        return False

    if not matches_search_term(name, search_term):
        return False

    is_current = any(marker in name for marker in RECENCY_MARKERS)
    return is_current or not YEAR_PATTERN.search(name)
