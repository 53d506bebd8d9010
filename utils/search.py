"""Type-ahead matching for the county and project type search boxes."""

from rapidfuzz import fuzz, process

MIN_TERM_LENGTH = 1
FUZZY_THRESHOLD = 10


def rank_options(
    searchterm: str,
    options: list[tuple[str, str]],
    limit: int = 20,
    score_cutoff: int = 70,
) -> list[tuple[str, str]]:
    """
    Rank (label, value) options against a typed term.

    Substring matches come first, prefix matches ahead of the rest. When
    fewer than ``FUZZY_THRESHOLD`` options contain the term, RapidFuzz fills
    in close spellings (``Fayete`` still finds ``Fayette``).

    Args:
        searchterm: Text typed so far
        options: Candidate (label, value) pairs
        limit: Maximum number of results
        score_cutoff: Minimum fuzzy score for the fill-in matches

    Returns:
        List of (label, value) tuples, best first
    """
    if not searchterm or len(searchterm.strip()) < MIN_TERM_LENGTH:
        return list(options[:limit])

    term = searchterm.strip().lower()
    exact = [opt for opt in options if term in opt[0].lower()]
    exact.sort(key=lambda opt: (not opt[0].lower().startswith(term), opt[0]))

    if len(exact) < FUZZY_THRESHOLD:
        fuzzy_matches = process.extract(
            searchterm,
            options,
            scorer=fuzz.WRatio,
            limit=limit,
            score_cutoff=score_cutoff,
            processor=lambda x: x[0].lower() if isinstance(x, tuple) else str(x).lower(),
        )
        seen = {value for _, value in exact}
        for match, _score, _ in fuzzy_matches:
            if match[1] not in seen:
                exact.append(match)
                seen.add(match[1])

    return exact[:limit]
