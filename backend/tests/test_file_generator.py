"""
Unit tests for markdown file generation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from links_connector.models.link_post import GeneratedFile, LinkPost
from links_connector.services.file_generator import (
    FileGenerationError,
    clean_subject,
    generate_link_file,
    make_slug,
)

NOW = datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc)


def _make_post(**overrides) -> LinkPost:
    fields = {"url": "https://example.com/a", "tags": ["tech", "web"], "body": "Check this out."}
    fields.update(overrides)
    return LinkPost(**fields)


class TestMakeSlug:
    def test_lowercases_and_hyphenates(self):
        assert make_slug("My Cool Find") == "my-cool-find"

    def test_keeps_first_four_words(self):
        assert make_slug("One Two Three Four Five Six") == "one-two-three-four"

    def test_strips_punctuation(self):
        assert make_slug("Hello, World! (2024)") == "hello-world-2024"

    def test_collapses_whitespace(self):
        assert make_slug("a   b\tc") == "a-b-c"

    def test_non_ascii_only_subject_gives_empty_slug(self):
        assert make_slug("日本語") == ""


class TestGenerateLinkFile:
    def test_file_name_uses_date_and_slug(self):
        generated = generate_link_file("My Cool Find", _make_post(), now=NOW)
        assert generated.file_name == "content/posts/links/2024-01-02-my-cool-find.md"

    def test_renders_front_matter_and_body(self):
        generated = generate_link_file("My Cool Find", _make_post(), now=NOW)

        assert generated.content == (
            "+++\n"
            'title = "Link: My Cool Find"\n'
            'date = "2024-01-02"\n'
            "\n"
            "[taxonomies]\n"
            'type = ["posts"]\n'
            'tags = ["tech","web"]\n'
            "+++\n"
            "\n"
            "### [My Cool Find](https://example.com/a)\n"
            "Check this out.\n"
        )

    def test_date_is_taken_in_utc(self):
        late_evening = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        generated = generate_link_file("Late Post", _make_post(), now=late_evening)
        assert generated.file_name == "content/posts/links/2024-01-02-late-post.md"

    def test_defaults_to_current_date(self):
        generated = generate_link_file("Today", _make_post())
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        assert generated.file_name == f"content/posts/links/{today}-today.md"

    def test_subject_is_sanitized(self):
        generated = generate_link_file("<b>Bold</b> $move", _make_post(), now=NOW)
        assert "### [bBold/b move](https://example.com/a)" in generated.content
        assert generated.file_name.endswith("-bboldb-move.md")

    def test_multiline_subject_stays_on_one_heading_line(self):
        generated = generate_link_file("Line one\nline  two", _make_post(), now=NOW)

        assert "### [Line one line two](https://example.com/a)\n" in generated.content
        assert 'title = "Link: Line one line two"' in generated.content
        assert generated.file_name.endswith("-line-one-line-two.md")

    def test_quotes_in_title_are_escaped(self):
        generated = generate_link_file('Say "hi"', _make_post(), now=NOW)
        assert 'title = "Link: Say \\"hi\\""' in generated.content

    def test_returns_generated_file_model(self):
        generated = generate_link_file("My Cool Find", _make_post(), now=NOW)
        assert isinstance(generated, GeneratedFile)

    def test_empty_subject_fails(self):
        with pytest.raises(FileGenerationError):
            generate_link_file("", _make_post(), now=NOW)
        with pytest.raises(FileGenerationError):
            generate_link_file("<>$", _make_post(), now=NOW)
        with pytest.raises(FileGenerationError):
            generate_link_file(None, _make_post(), now=NOW)

    def test_empty_slug_fails(self):
        with pytest.raises(FileGenerationError):
            generate_link_file("!!!", _make_post(), now=NOW)

    def test_overlong_path_fails(self):
        with pytest.raises(FileGenerationError):
            generate_link_file("a" * 200, _make_post(), now=NOW)


class TestCleanSubject:
    def test_folds_whitespace_runs(self):
        assert clean_subject("  Line one\r\n\tline two  ") == "Line one line two"

    def test_sanitizes_markup(self):
        assert clean_subject("<b>Hi</b>") == "bHi/b"

    def test_non_string_gives_empty(self):
        assert clean_subject(None) == ""
