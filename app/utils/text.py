import math
import re
import secrets

WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r"<[^>]+>")
_NON_SLUG_RE = re.compile(r"[^a-z0-9\s-]")
_SPACES_RE = re.compile(r"[\s-]+")


def strip_html(content: str) -> str:
    return _TAG_RE.sub(" ", content or "")


def reading_time(content: str) -> int:
    """Minutes needed to read ``content`` at 200 wpm, never less than one."""
    words = len(strip_html(content).split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def slug_base(title: str) -> str:
    base = _NON_SLUG_RE.sub("", (title or "").lower())
    base = _SPACES_RE.sub("-", base.strip()).strip("-")
    return base[:200] or "post"


def slugify(title: str) -> str:
    return f"{slug_base(title)}-{secrets.token_hex(3)}"


def normalize_tags(tags) -> list:
    """Trim, drop empties and case-insensitive duplicates, keep first-seen order."""
    seen = set()
    result = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        result.append(tag[:50])
    return result
