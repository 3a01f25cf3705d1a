from __future__ import annotations

from urllib.parse import parse_qs, urlparse

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def video_id_from(value: str) -> str:
    """Accept a bare video id or a YouTube link and return the id."""
    candidate = value.strip()
    if "/" not in candidate:
        return candidate

    parsed = urlparse(candidate if "://" in candidate else f"https://{candidate}")
    netloc = parsed.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]

    if netloc == "youtu.be":
        return parsed.path.strip("/").split("/")[0]

    query_id = parse_qs(parsed.query).get("v")
    if query_id:
        return query_id[0].strip()

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) >= 2 and parts[0] in ("shorts", "embed", "live"):
        return parts[1]
    return candidate


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)
