import html
from typing import List, Optional, Protocol, Tuple

Attributes = List[Tuple[str, Optional[str]]]


class Element:
    """
    A start tag seen by the streaming HTML rewriter.

    Visitors may change attributes or prepend content; an element nobody
    touched is written back exactly as it appeared in the source.
    """

    def __init__(
        self, tag: str, attrs: Attributes, raw: str, self_closing: bool = False
    ):
        self.tag = tag
        self.attrs = list(attrs)
        self.raw = raw
        self.self_closing = self_closing
        self.modified = False
        self._prepended: List[str] = []

    def get_attribute(self, name: str) -> Optional[str]:
        for attr_name, value in self.attrs:
            if attr_name == name:
                return value
        return None

    def has_attribute(self, name: str) -> bool:
        return any(attr_name == name for attr_name, _ in self.attrs)

    def set_attribute(self, name: str, value: str) -> None:
        for i, (attr_name, _) in enumerate(self.attrs):
            if attr_name == name:
                self.attrs[i] = (name, value)
                break
        else:
            self.attrs.append((name, value))
        self.modified = True

    def prepend(self, content: str, html_content: bool = False) -> None:
        """Insert content right after the start tag, before the existing children."""
        self._prepended.append(content if html_content else html.escape(content))

    def start_tag(self) -> str:
        if not self.modified and self.raw:
            return self.raw

        parts = [f"<{self.tag}"]
        for name, value in self.attrs:
            if value is None:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{html.escape(value, quote=True)}"')
        parts.append(" />" if self.self_closing else ">")
        return "".join(parts)

    def serialize(self) -> str:
        return self.start_tag() + "".join(self._prepended)


class ElementVisitor(Protocol):
    def on_element(self, element: Element) -> None: ...
