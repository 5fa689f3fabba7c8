from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import SplitResult, urlsplit


class UrlKind(Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    INVALID = "invalid"


@dataclass(frozen=True)
class ParsedUrl:
    kind: UrlKind
    value: str
    parts: Optional[SplitResult] = None

    @property
    def is_root_relative(self) -> bool:
        """``/path`` style reference; ``//host/path`` is a network path, not root-relative."""
        return (
            self.kind == UrlKind.RELATIVE
            and self.value.startswith("/")
            and not self.value.startswith("//")
        )


def parse_url_reference(value: str) -> ParsedUrl:
    """Classify an attribute value as an absolute URL, a relative reference, or garbage."""
    try:
        parts = urlsplit(value.strip())
        # .port raises on a malformed authority
        parts.port
    except ValueError:
        return ParsedUrl(kind=UrlKind.INVALID, value=value)

    if parts.scheme:
        return ParsedUrl(kind=UrlKind.ABSOLUTE, value=value, parts=parts)
    return ParsedUrl(kind=UrlKind.RELATIVE, value=value, parts=parts)
