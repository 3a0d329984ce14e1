"""
MODULE OVERVIEW:
Address helpers shared by the client and the CLI glue.

WHAT IS HAPPENING HERE:
The stream address is always `<base>?room=<room>`. The base is validated once
(only ws:// and wss:// survive), and every permission check is made against the
http/https twin of the stream address, because that is the scheme permission
collaborators understand. Room discovery from a hosting page URL also lives
here: the room may sit in the query string, after a `?` inside the fragment, or
in the fragment itself.
"""
from urllib.parse import parse_qs

import httpx

STREAM_SCHEMES = {"ws", "wss"}
PERMISSION_SCHEMES = {"ws": "http", "wss": "https"}

def normalize_room(room) -> str:
    return str(room or "").strip()

def normalize_ws_base(candidate: str | None, default: str) -> str:
    """Return `candidate` if it is a usable ws/wss URL, else `default`."""
    raw = (candidate or "").strip()
    if not raw:
        return default
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL:
        return default
    if url.scheme not in STREAM_SCHEMES or not url.host:
        return default
    return str(url)

def build_ws_url(base: str, room: str) -> str:
    """
    Set (or overwrite) the `room` query parameter on `base`.
    Raises ValueError when `base` is not a ws/wss URL with a host.
    """
    try:
        url = httpx.URL(base)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid stream base {base!r}: {e}") from e
    if url.scheme not in STREAM_SCHEMES or not url.host:
        raise ValueError(f"invalid stream base {base!r}")
    return str(url.copy_set_param("room", room))

def to_permission_url(ws_url: str) -> str:
    """ws -> http, wss -> https. Returns "" when the address cannot be parsed."""
    try:
        url = httpx.URL(ws_url)
    except httpx.InvalidURL:
        return ""
    scheme = PERMISSION_SCHEMES.get(url.scheme)
    if scheme is None:
        return str(url) if url.scheme in PERMISSION_SCHEMES.values() else ""
    return str(url.copy_with(scheme=scheme))

def query_param(search: str, name: str) -> str:
    """Read `name` from a query string such as "?a=b&room=ST-1". Missing -> ""."""
    values = parse_qs((search or "").lstrip("?"), keep_blank_values=True).get(name)
    return values[0] if values else ""

def room_from_location(location: str) -> str:
    """Find the room parameter in a page URL: query string first, then the fragment."""
    location = location or ""
    before_hash, _, fragment = location.partition("#")
    _, _, search = before_hash.partition("?")

    room = query_param(search, "room")
    if room:
        return normalize_room(room)

    if "?" in fragment:
        room = query_param(fragment[fragment.index("?"):], "room")
        if room:
            return normalize_room(room)

    return normalize_room(query_param(fragment, "room"))
