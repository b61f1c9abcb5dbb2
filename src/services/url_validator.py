"""Noise filter for candidate media URLs."""


def is_valid_media_url(candidate: str | None) -> bool:
    """Return True if ``candidate`` looks like a fetchable/storable URL.

    Only filters obvious noise (empty attributes, ``data:`` URIs, unresolved
    relative paths). The ``http`` prefix check is deliberately loose and
    case-sensitive, so ``httpfoo://x`` passes while ``HTTP://x`` does not.
    """
    if not isinstance(candidate, str):
        return False
    if not candidate.strip():
        return False
    return candidate.startswith("http")
