from __future__ import annotations

from adapters.caption_formatting import UNKNOWN_AUTHOR, format_author_link, format_caption, format_tags


def test_format_author_link_escapes_label_and_url() -> None:
    link = format_author_link("https://example.com/?a=1&b=2", "Tom & Jerry")
    assert link == '<a href="https://example.com/?a=1&amp;b=2">Tom &amp; Jerry</a>'


def test_format_author_link_without_url_or_label() -> None:
    assert format_author_link(None, "alice") == "alice"
    assert format_author_link("https://example.com", "") == UNKNOWN_AUTHOR


def test_format_tags_strips_dashes_and_skips_blanks() -> None:
    assert format_tags(["sci-fi", "", "R-18"]) == "#scifi #R18"
    assert format_tags([]) == ""


def test_format_caption_full_layout() -> None:
    caption = format_caption(
        "<a href=\"https://www.pixiv.net/users/1\">alice</a>",
        "Title",
        "Pixiv",
        "https://www.pixiv.net/artworks/2",
        tags=["cat"],
    )
    assert caption == (
        '<a href="https://www.pixiv.net/users/1">alice</a>:\n\n'
        "Title\n\n"
        "#cat\n\n"
        'from <a href="https://www.pixiv.net/artworks/2">Pixiv</a>'
    )


def test_format_caption_without_body_or_tags() -> None:
    caption = format_caption(UNKNOWN_AUTHOR, "", "Twitter", "https://twitter.com/a/status/1")
    assert caption == f'{UNKNOWN_AUTHOR}\n\nfrom <a href="https://twitter.com/a/status/1">Twitter</a>'
