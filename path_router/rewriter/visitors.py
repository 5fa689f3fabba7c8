import html
import logging
from typing import Optional

from path_router.models import RewriteContext
from path_router.rewriter.element import Element
from path_router.rewriter.url_parse import ParsedUrl, UrlKind, parse_url_reference

logger = logging.getLogger("uvicorn.error")

URL_ATTRIBUTES = ("href", "src")


class AttributeRewriter:
    """
    Point ``href`` / ``src`` values back at the proxy.

    Absolute URLs under the upstream base are moved to the proxy's origin and
    path prefix; root-relative paths get the path prefix. Everything else is
    left as it is. ``meta`` content only gets the absolute rewrite.
    """

    def __init__(self, context: RewriteContext):
        self.context = context
        self._public_base = f"{context.source_origin}{context.source_path_prefix}"

    def rewrite_absolute_url(self, parsed: ParsedUrl) -> Optional[str]:
        target_base = self.context.target_base
        value = parsed.value
        if value[: len(target_base)].lower() != target_base.lower():
            return None

        rest = value[len(target_base):]
        if rest and rest[0] not in "/?#":
            # https://u.example/basement is not under https://u.example/base
            return None
        return f"{self._public_base}{rest}"

    def rewrite_relative_url(self, parsed: ParsedUrl) -> Optional[str]:
        if parsed.is_root_relative:
            return f"{self.context.source_path_prefix}{parsed.value}"
        return None

    def _rewrite(self, value: str, allow_relative: bool = True) -> Optional[str]:
        parsed = parse_url_reference(value)
        if parsed.kind == UrlKind.ABSOLUTE:
            return self.rewrite_absolute_url(parsed)
        if parsed.kind == UrlKind.RELATIVE and allow_relative:
            return self.rewrite_relative_url(parsed)
        if parsed.kind == UrlKind.INVALID:
            logger.debug(f"[Rewriter] Leaving malformed URL untouched: {value!r}")
        return None

    def on_element(self, element: Element) -> None:
        for name in URL_ATTRIBUTES:
            value = element.get_attribute(name)
            if not value:
                continue
            rewritten = self._rewrite(value)
            if rewritten is not None:
                element.set_attribute(name, rewritten)

        if element.tag == "meta":
            content = element.get_attribute("content")
            if content:
                rewritten = self._rewrite(content, allow_relative=False)
                if rewritten is not None:
                    element.set_attribute("content", rewritten)


class BaseTagInjector:
    """Add ``<base href="PREFIX/">`` as the first child of ``<head>``."""

    def __init__(self, base_path: str):
        self.base_path = base_path

    @property
    def base_href(self) -> str:
        return f"{self.base_path.rstrip('/')}/"

    def on_element(self, element: Element) -> None:
        if element.tag != "head":
            return
        element.prepend(
            f'<base href="{html.escape(self.base_href, quote=True)}">',
            html_content=True,
        )
