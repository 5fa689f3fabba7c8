from path_router.rewriter.html_stream import (
    HTMLStreamRewriter,
    build_html_rewriter,
    rewrite_html_stream,
)
from path_router.rewriter.visitors import AttributeRewriter, BaseTagInjector

__all__ = [
    "AttributeRewriter",
    "BaseTagInjector",
    "HTMLStreamRewriter",
    "build_html_rewriter",
    "rewrite_html_stream",
]
