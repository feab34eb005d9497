"""
Channel name variations for logo search

Free-text channel names from addons are often abbreviations ("ESPN", "HGTV")
or carry regional suffixes ("NBC_EAST"). Wikimedia Commons indexes logo files
under both the abbreviation and the full network name, so searching for both
finds far more canonical logos than the raw name alone.

The module is pure: no I/O, no state, deterministic output.
"""

from typing import Dict, List

from ..utils.helpers import normalize_whitespace

# Abbreviation/keyword -> full network names, in search priority order.
# Keys are matched as case-insensitive substrings of the channel name.
CHANNEL_VARIATIONS: Dict[str, List[str]] = {
    'nbc': ['NBC logo', 'National Broadcasting Company logo'],
    'cbs': ['CBS logo', 'Columbia Broadcasting System logo'],
    'abc': ['ABC logo', 'American Broadcasting Company logo'],
    'fox': ['Fox logo', 'Fox Broadcasting Company logo'],
    'cnn': ['CNN logo', 'Cable News Network logo'],
    'espn': ['ESPN logo', 'Entertainment Sports Programming Network logo'],
    'hbo': ['HBO logo', 'Home Box Office logo'],
    'mtv': ['MTV logo', 'Music Television logo'],
    'vh1': ['VH1 logo', 'Video Hits One logo'],
    'discovery': ['Discovery Channel logo', 'Discovery logo'],
    'history': ['History Channel logo', 'History logo'],
    'national geographic': ['National Geographic logo', 'Nat Geo logo', 'National Geographic Channel logo'],
    'nat geo': ['National Geographic logo', 'Nat Geo logo', 'National Geographic Channel logo'],
    'cartoon network': ['Cartoon Network logo'],
    'nickelodeon': ['Nickelodeon logo', 'Nick logo'],
    'disney': ['Disney Channel logo', 'Disney logo'],
    'food network': ['Food Network logo'],
    'hgtv': ['HGTV logo', 'Home Garden Television logo'],
    'animal planet': ['Animal Planet logo'],
    'comedy central': ['Comedy Central logo'],
    'adult swim': ['Adult Swim logo'],
    'tnt': ['TNT logo', 'Turner Network Television logo'],
    'tbs': ['TBS logo', 'Turner Broadcasting System logo'],
    'usa': ['USA Network logo', 'USA logo'],
    'syfy': ['Syfy logo', 'Sci-Fi Channel logo'],
    'amc': ['AMC logo', 'American Movie Classics logo'],
    'bravo': ['Bravo logo', 'Bravo TV logo'],
    'lifetime': ['Lifetime logo', 'Lifetime Television logo'],
    'tlc': ['TLC logo', 'The Learning Channel logo'],
    'weather channel': ['Weather Channel logo', 'The Weather Channel logo'],
    'travel channel': ['Travel Channel logo'],
    'cooking channel': ['Cooking Channel logo'],
    'diy': ['DIY Network logo', 'Do It Yourself Network logo'],
    'golf channel': ['Golf Channel logo', 'The Golf Channel logo'],
    'science channel': ['Science Channel logo', 'The Science Channel logo'],
    'oxygen': ['Oxygen logo', 'Oxygen Network logo'],
    'we tv': ['WE tv logo', "Women's Entertainment logo"],
    'own': ['OWN logo', 'Oprah Winfrey Network logo'],
    'bet': ['BET logo', 'Black Entertainment Television logo'],
    'cmt': ['CMT logo', 'Country Music Television logo'],
    'fuse': ['Fuse logo', 'Fuse TV logo'],
    'showtime': ['Showtime logo', 'Showtime Networks logo'],
    'starz': ['Starz logo', 'Starz Entertainment logo'],
    'cinemax': ['Cinemax logo', 'HBO Cinemax logo'],
    'epix': ['Epix logo', 'MGM Epix logo'],
    'msnbc': ['MSNBC logo', 'Microsoft NBC logo'],
    'cnbc': ['CNBC logo', 'Consumer News Business Channel logo'],
    'bloomberg': ['Bloomberg logo', 'Bloomberg Television logo'],
    'newsmax': ['Newsmax logo', 'Newsmax TV logo'],
    'oan': ['OAN logo', 'One America News logo'],
    'pbs': ['PBS logo', 'Public Broadcasting Service logo'],
    'cw': ['CW logo', 'The CW logo'],
    'fx': ['FX logo', 'FX Networks logo'],
    'fxx': ['FXX logo', 'FXX Networks logo'],
}

# Suffixes appended to the channel name, in priority order
BASE_TERM_TEMPLATES = (
    '{name}',
    '{name} logo',
    '{name} television logo',
    '{name} TV logo',
    '{name} network logo',
    '{name} channel logo',
)


def get_channel_variations(channel_name: str) -> List[str]:
    """
    Look up full-name search phrases for a channel

    Every table entry whose key occurs in the lower-cased name contributes
    all of its phrases, in table order. "MSNBC" therefore picks up the
    "nbc" and "msnbc" entries.

    Args:
        channel_name: Channel name (any case)

    Returns:
        Matching phrases, possibly with duplicates
    """
    name = channel_name.lower()
    variations = []
    for key, phrases in CHANNEL_VARIATIONS.items():
        if key in name:
            variations.extend(phrases)
    return variations


def generate_search_terms(channel_name: str) -> List[str]:
    """
    Build the ordered list of Wikimedia search terms for a channel

    The exact name comes first, followed by the suffixed base terms and then
    the table-derived synonyms. Exact duplicates are removed keeping the
    first occurrence, so earlier terms keep their priority.

    Args:
        channel_name: Channel title as supplied by the addon

    Returns:
        De-duplicated search terms, highest priority first
    """
    clean_name = normalize_whitespace(channel_name)

    terms = [template.format(name=clean_name) for template in BASE_TERM_TEMPLATES]
    terms.extend(get_channel_variations(clean_name))

    # dict preserves insertion order
    return list(dict.fromkeys(terms))
