"""PROPFIND multistatus parsing.

WebDAV servers disagree on namespace prefixes and some emit XML that a
strict parser rejects, so hrefs are found by substring scanning instead
of parsing the document.

Each ``<response>`` carries an href followed by its properties. For every
href we look at a bounded window after it for a ``collection`` marker to
decide whether the entry is a directory.
"""

from urllib.parse import unquote

from .models import ListingEntry

# (opening tag, closing tag) for each href spelling seen in the wild
HREF_TAGS = [
    ("<d:href>", "</d:href>"),
    ("<D:href>", "</D:href>"),
    ("<href>", "</href>"),
]

COLLECTION_MARKERS = ("<d:collection", "<D:collection", "<collection")

# How far past an href we look for a collection marker
LOOKAHEAD = 500


def _next_href(body: str, start: int) -> int:
    """Position of the next href opening tag of any spelling, or len(body)."""
    positions = [body.find(tag, start) for tag, _ in HREF_TAGS]
    found = [pos for pos in positions if pos != -1]
    return min(found) if found else len(body)


def _scan_hrefs(body: str, start_tag: str, end_tag: str):
    """Yield (href content, end position) for every start_tag...end_tag pair."""
    pos = 0
    while True:
        start = body.find(start_tag, pos)
        if start == -1:
            return
        content_start = start + len(start_tag)
        end = body.find(end_tag, content_start)
        if end == -1:
            return
        yield body[content_start:end], end + len(end_tag)
        pos = end + len(end_tag)


def parse_multistatus(body: str) -> list[ListingEntry]:
    """Extract the children of a Depth: 1 PROPFIND response.

    Rules:
    - The first href of each spelling is the queried collection itself
      and is skipped.
    - The name is the last path segment of the URL-decoded href.
    - An entry is a collection if its href ends with "/" or a collection
      marker appears within LOOKAHEAD characters after it (stopping at
      the next href, so a neighbour's marker is never picked up).
    - Names starting with "." and empty names are dropped.
    - Duplicate names are reported once, first occurrence wins.

    Args:
        body: Raw multistatus response body.

    Returns:
        Entries in document order.
    """
    entries: list[ListingEntry] = []
    seen: set[str] = set()

    for start_tag, end_tag in HREF_TAGS:
        first = True
        for href, end in _scan_hrefs(body, start_tag, end_tag):
            if first:
                first = False
                continue

            decoded = unquote(href.strip())
            name = decoded.rstrip("/").rsplit("/", 1)[-1]
            if not name or name.startswith(".") or name in seen:
                continue

            window_end = min(end + LOOKAHEAD, _next_href(body, end))
            window = body[end:window_end]
            is_collection = decoded.endswith("/") or any(
                marker in window for marker in COLLECTION_MARKERS
            )

            seen.add(name)
            entries.append(ListingEntry(name=name, is_collection=is_collection))

    return entries
