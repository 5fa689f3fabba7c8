import pytest

from path_router.models import RewriteContext
from path_router.rewriter.html_stream import (
    HTMLStreamRewriter,
    build_html_rewriter,
    rewrite_html_stream,
)

CONTEXT = RewriteContext(
    source_path_prefix="/p",
    source_origin="https://original.example",
    target_base="https://u.example/base",
)


async def _chunks(*parts):
    for part in parts:
        yield part


async def _rewrite(*parts, context=CONTEXT):
    return [out async for out in rewrite_html_stream(_chunks(*parts), context)]


def _rewrite_sync(markup, context=CONTEXT):
    rewriter = build_html_rewriter(context)
    rewriter.feed(markup)
    rewriter.close()
    return rewriter.drain()


class TestRewriteHtml:
    def test_full_document(self):
        markup = (
            "<!DOCTYPE html><html><head><title>T</title></head>"
            '<body><a href="https://u.example/base/x">x</a>'
            '<img src="/img.png" alt="Logo"></body></html>'
        )
        assert _rewrite_sync(markup) == (
            '<!DOCTYPE html><html><head><base href="/p/"><title>T</title></head>'
            '<body><a href="https://original.example/p/x">x</a>'
            '<img src="/p/img.png" alt="Logo"></body></html>'
        )

    def test_base_injected_once_before_existing_head_content(self):
        out = _rewrite_sync('<html><head lang="en"><meta charset="utf-8"></head></html>')
        assert out == '<html><head lang="en"><base href="/p/"><meta charset="utf-8"></head></html>'
        assert out.count("<base ") == 1

    def test_base_href_with_trailing_slash_prefix(self):
        context = RewriteContext(
            source_path_prefix="/p/",
            source_origin="https://original.example",
            target_base="https://u.example",
        )
        out = _rewrite_sync("<head></head>", context=context)
        assert out == '<head><base href="/p/"></head>'

    def test_no_head_no_base(self):
        assert _rewrite_sync("<p>fragment</p>") == "<p>fragment</p>"

    def test_uppercase_head(self):
        assert _rewrite_sync("<HEAD></HEAD>") == '<HEAD><base href="/p/"></head>'

    def test_untouched_markup_kept_verbatim(self):
        markup = (
            "<a href='page.html' class=nav>p</a>"
            '<a href="#top">t</a>'
            '<a href="mailto:a@b.c">m</a>'
            '<script src="//cdn.example/x.js"></script>'
            '<a href="https://other.example/x">o</a>'
        )
        assert _rewrite_sync(markup) == markup

    def test_self_closing_tag(self):
        assert _rewrite_sync('<img src="/a.png"/>') == '<img src="/p/a.png" />'

    def test_text_and_entities(self):
        markup = "<p>a &amp; b &lt;c&gt;</p>"
        assert _rewrite_sync(markup) == markup

    def test_bare_ampersand_in_text_stays_plain(self):
        assert _rewrite_sync("<p>AT&T rocks</p>") == "<p>AT&amp;T rocks</p>"

    def test_script_body_passes_through(self):
        markup = "<script>var s = \"<a href='/x'>\" && 1 < 2;</script>"
        assert _rewrite_sync(markup) == markup

    def test_comment_passes_through(self):
        markup = '<!-- <a href="/x"> --><a href="/y">y</a>'
        assert _rewrite_sync(markup) == '<!-- <a href="/x"> --><a href="/p/y">y</a>'

    def test_bogus_comment_normalized(self):
        assert _rewrite_sync("<p>a<!foo>b</p>") == "<p>a<!--foo-->b</p>"

    def test_escaped_attribute_roundtrip(self):
        out = _rewrite_sync('<a href="/search?a=1&amp;b=2">s</a>')
        assert out == '<a href="/p/search?a=1&amp;b=2">s</a>'

    def test_meta_content(self):
        out = _rewrite_sync(
            '<meta property="og:url" content="https://u.example/base/page">'
            '<meta name="x" content="/relative">'
        )
        assert out == (
            '<meta property="og:url" content="https://original.example/p/page">'
            '<meta name="x" content="/relative">'
        )

    def test_malformed_attribute_does_not_stop_the_stream(self):
        out = _rewrite_sync('<a href="http://[::1/x">bad</a><img src="/ok.png">')
        assert out == '<a href="http://[::1/x">bad</a><img src="/p/ok.png">'


class TestStreaming:
    @pytest.mark.asyncio
    async def test_tags_split_across_chunks(self):
        outputs = await _rewrite("<html><he", 'ad><a hr', 'ef="/x">y</a></head></html>')
        assert "".join(outputs) == (
            '<html><head><base href="/p/"><a href="/p/x">y</a></head></html>'
        )

    @pytest.mark.asyncio
    async def test_output_emitted_per_chunk(self):
        outputs = await _rewrite("<html><head></head>", "<body>", '<img src="/a.png">', "</body></html>")
        assert len(outputs) >= 3
        assert outputs[0].startswith('<html><head><base href="/p/">')
        assert "".join(outputs).endswith('<img src="/p/a.png"></body></html>')

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await _rewrite() == []

    @pytest.mark.asyncio
    async def test_trailing_text_flushed_on_close(self):
        outputs = await _rewrite("<p>", "unterminated")
        assert "".join(outputs) == "<p>unterminated"


class TestVisitorDispatch:
    def test_selector_matches_tag_name(self):
        seen = []

        class Recorder:
            def on_element(self, element):
                seen.append(element.tag)

        rewriter = HTMLStreamRewriter().on("a", Recorder())
        rewriter.feed('<div><a href="x">1</a><span></span><A>2</A></div>')
        rewriter.close()

        assert seen == ["a", "a"]

    def test_wildcard_sees_every_element(self):
        seen = []

        class Recorder:
            def on_element(self, element):
                seen.append(element.tag)

        rewriter = HTMLStreamRewriter().on("*", Recorder())
        rewriter.feed("<div><a>1</a><br/></div>")
        rewriter.close()

        assert seen == ["div", "a", "br"]
