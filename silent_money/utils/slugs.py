"""URL slug generation for ideas, franchises and categories."""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w-]+")


def idea_slug(title: str) -> str:
    """
    Slug for an income idea.

    Lowercases, collapses every run of characters outside [a-z0-9] into a
    single hyphen, and trims hyphens from both ends.

        >>> idea_slug("Rent Your Rooftop (Solar!)")
        'rent-your-rooftop-solar'
    """
    return _NON_ALNUM.sub("-", title.lower()).strip("-")


def name_slug(name: str) -> str:
    """
    Slug for a franchise or category.

    Lowercases, turns whitespace runs into hyphens, then drops anything
    that is not a word character or hyphen.

        >>> name_slug("Food & Beverage")
        'food--beverage'
    """
    slug = _WHITESPACE.sub("-", name.strip().lower())
    return _NON_WORD.sub("", slug)
