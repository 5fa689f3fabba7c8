"""
Single-pass streaming HTML transform.

Markup is fed to an incremental parser chunk by chunk. Every start tag is
handed to the visitors registered for its selector (``*`` or a tag name) and
then written back out. Text, comments and declarations are re-emitted as
parsed. Output is drained after every chunk so the document is never held in
memory whole.
"""

import html
from html.parser import HTMLParser
from typing import AsyncIterator, List, Tuple

from path_router.models import RewriteContext
from path_router.rewriter.element import Attributes, Element, ElementVisitor
from path_router.rewriter.visitors import AttributeRewriter, BaseTagInjector

ANY_ELEMENT = "*"

# Elements whose text the parser hands over decoded even in raw-text mode
RCDATA_ELEMENTS = ("title", "textarea")


class HTMLStreamRewriter(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._visitors: List[Tuple[str, ElementVisitor]] = []
        self._output: List[str] = []

    def on(self, selector: str, visitor: ElementVisitor) -> "HTMLStreamRewriter":
        self._visitors.append((selector.lower(), visitor))
        return self

    def drain(self) -> str:
        """Return the markup produced since the last drain."""
        out = "".join(self._output)
        self._output.clear()
        return out

    def _visit(self, tag: str, attrs: Attributes, self_closing: bool) -> None:
        element = Element(tag, attrs, self.get_starttag_text() or "", self_closing)
        for selector, visitor in self._visitors:
            if selector == ANY_ELEMENT or selector == tag:
                visitor.on_element(element)
        self._output.append(element.serialize())

    def handle_starttag(self, tag, attrs):
        self._visit(tag, attrs, self_closing=False)

    def handle_startendtag(self, tag, attrs):
        self._visit(tag, attrs, self_closing=True)

    def handle_endtag(self, tag):
        self._output.append(f"</{tag}>")

    def handle_data(self, data):
        # Text arrives with references decoded; script and style bodies arrive raw
        if self.cdata_elem is None or self.cdata_elem in RCDATA_ELEMENTS:
            data = html.escape(data, quote=False)
        self._output.append(data)

    def handle_comment(self, data):
        # Bogus comments such as <!foo> arrive here too and come out as <!--foo-->
        self._output.append(f"<!--{data}-->")

    def handle_decl(self, decl):
        self._output.append(f"<!{decl}>")

    def handle_pi(self, data):
        self._output.append(f"<?{data}>")

    def unknown_decl(self, data):
        self._output.append(f"<![{data}]>")


def build_html_rewriter(context: RewriteContext) -> HTMLStreamRewriter:
    return (
        HTMLStreamRewriter()
        .on(ANY_ELEMENT, AttributeRewriter(context))
        .on("head", BaseTagInjector(context.source_path_prefix))
    )


async def rewrite_html_stream(
    chunks: AsyncIterator[str], context: RewriteContext
) -> AsyncIterator[str]:
    """Rewrite an HTML text stream, yielding output as soon as it is available."""
    rewriter = build_html_rewriter(context)
    async for chunk in chunks:
        rewriter.feed(chunk)
        out = rewriter.drain()
        if out:
            yield out

    rewriter.close()
    out = rewriter.drain()
    if out:
        yield out
