import pytest

from reference_remover import MATCHERS, ReferenceTarget, remove_references, strip_references

URL = "https://example.com/uploads/v.mp4"
PATH = "/uploads/v.mp4"

UNRELATED = (
    '<!-- wp:paragraph -->\n'
    '<p>Keep <a href="https://example.com/uploads/other.mp4">this one</a>.</p>\n'
    '<!-- /wp:paragraph -->'
)


def matcher(name):
    return next(m for m in MATCHERS if m.name == name)


def test_shortcode_on_its_own_line_takes_the_line_with_it():
    body = f'<p>intro</p>\n[video src="{URL}"][/video]\n<p>outro</p>'

    new_body, changed = remove_references(body, 42, URL)

    assert changed is True
    assert new_body == "<p>intro</p>\n<p>outro</p>"


def test_every_reference_form_is_removed_and_the_rest_is_untouched():
    body = "\n\n".join(
        [
            UNRELATED,
            '<!-- wp:video {"id":42} -->\n'
            f'<figure class="wp-block-video"><video controls src="{URL}"></video></figure>\n'
            '<!-- /wp:video -->',
            f'[video width="640" src="{URL}"][/video]',
            f'<video controls>\n  <source type="video/mp4" src="{PATH}">\n</video>',
            f'<p>See <a class="dl" href="{URL}">the clip</a> here.</p>',
            "<p>Outro</p>",
        ]
    )

    new_body, removed = strip_references(body, 42, URL)

    assert removed == 4
    assert new_body == UNRELATED + "\n\n<p>See  here.</p>\n\n<p>Outro</p>"


def test_removal_is_idempotent():
    body = f'<p>a</p>\n<video src="{URL}"></video>\n<p>b</p>'

    once, changed_once = remove_references(body, 42, URL)
    twice, changed_twice = remove_references(once, 42, URL)

    assert changed_once is True
    assert changed_twice is False
    assert twice == once


def test_untouched_body_is_returned_byte_for_byte():
    body = "<p></p>\n\n\n\n<p>Nothing   to see</p>\r\n[video src=\"https://example.com/other.mp4\"][/video]"

    new_body, changed = remove_references(body, 42, URL)

    assert changed is False
    assert new_body == body


@pytest.mark.parametrize(
    "template",
    [
        '[video src="{ref}"][/video]',
        "<video src='{ref}'></video>",
        '<video controls><source src="{ref}" type="video/mp4"></video>',
        '<a href="{ref}">download</a>',
        '<!-- wp:video -->\n<figure><video src="{ref}"></video></figure>\n<!-- /wp:video -->',
    ],
)
def test_path_only_references_match_like_full_urls(template):
    full = f"<p>a</p>\n{template.format(ref=URL)}\n<p>b</p>"
    relative = f"<p>a</p>\n{template.format(ref=PATH)}\n<p>b</p>"

    assert remove_references(full, 42, URL) == ("<p>a</p>\n<p>b</p>", True)
    assert remove_references(relative, 42, URL) == ("<p>a</p>\n<p>b</p>", True)


def test_block_matched_by_id_regardless_of_its_contents():
    body = (
        "<p>a</p>\n"
        '<!-- wp:video {"id":42,"className":"hero"} -->\n'
        '<figure class="wp-block-video"><video src="https://cdn.example.net/renamed.mp4"></video></figure>\n'
        "<!-- /wp:video -->\n"
        "<p>b</p>"
    )

    assert remove_references(body, 42, URL) == ("<p>a</p>\n<p>b</p>", True)


def test_block_id_must_match_the_whole_number():
    body = '<!-- wp:video {"id":420} -->\n<figure></figure>\n<!-- /wp:video -->'

    assert remove_references(body, 42, URL) == (body, False)


def test_url_block_never_swallows_a_neighbouring_block():
    keep = (
        '<!-- wp:video {"id":7} -->\n'
        '<figure><video src="https://example.com/uploads/keep.mp4"></video></figure>\n'
        "<!-- /wp:video -->"
    )
    drop = (
        "<!-- wp:video -->\n"
        f'<figure><video src="{URL}"></video></figure>\n'
        "<!-- /wp:video -->"
    )

    new_body, changed = remove_references(f"{keep}\n{drop}", 42, URL)

    assert changed is True
    assert new_body == keep


def test_video_element_does_not_span_into_the_next_video():
    keep = '<video controls><source src="https://example.com/keep.mp4"></video>'
    drop = f'<video controls><source src="{URL}"></video>'

    new_body, _ = remove_references(f"{keep}\n{drop}", 42, URL)

    assert new_body == keep


def test_tag_and_attribute_case_and_order_are_ignored():
    body = f"<p>a</p>\n<VIDEO Controls Poster=\"p.jpg\" SRC='{URL}'>\n</Video>\n<p>b</p>"

    assert remove_references(body, 42, URL) == ("<p>a</p>\n<p>b</p>", True)


def test_url_comparison_is_exact():
    body = (
        f'[video src="{URL}0"][/video]\n'
        f'<a href="{URL.upper()}">x</a>\n'
        '<a data-href="https://example.com/uploads/v.mp4" href="/elsewhere">y</a>'
    )

    assert remove_references(body, 42, URL) == (body, False)


def test_urls_with_pattern_characters_are_escaped():
    url = "https://example.com/up(1)/v+1.mp4?x=[a]"
    body = f'<p>before</p>\n<p><a href="{url}">x</a></p>\n<p>after</p>'

    assert remove_references(body, 42, url) == ("<p>before</p>\n<p>after</p>", True)


def test_html_escaped_query_strings_are_matched():
    url = "https://example.com/v.mp4?a=1&b=2"
    body = '<p>x</p>\n<video src="https://example.com/v.mp4?a=1&amp;b=2"></video>'

    assert remove_references(body, 42, url) == ("<p>x</p>", True)


def test_shortcode_format_attributes_and_self_closing_form():
    body = f'<p>a</p>\n[video mp4="{URL}" poster="p.jpg"]\n<p>b</p>'

    assert remove_references(body, 42, URL) == ("<p>a</p>\n<p>b</p>", True)


def test_empty_url_only_removes_blocks_keyed_by_id():
    body = (
        '<!-- wp:video {"id":42} -->\n<figure></figure>\n<!-- /wp:video -->\n'
        '<a href="">empty link</a>'
    )

    assert remove_references(body, 42, None) == ('<a href="">empty link</a>', True)


def test_emptied_wrappers_and_blank_lines_are_collapsed():
    body = (
        "<!-- wp:paragraph -->\n<p>keep</p>\n<!-- /wp:paragraph -->\n\n"
        "<!-- wp:paragraph -->\n"
        f'<p><a href="{URL}">gone</a></p>\n'
        "<!-- /wp:paragraph -->\n\n\n\n"
        "<p>end</p>"
    )

    new_body, changed = remove_references(body, 42, URL)

    assert changed is True
    assert new_body == "<!-- wp:paragraph -->\n<p>keep</p>\n<!-- /wp:paragraph -->\n\n<p>end</p>"


@pytest.mark.parametrize(
    "name, fragment",
    [
        ("video_block_by_id", '<!-- wp:video {"id":42} --><figure></figure><!-- /wp:video -->'),
        ("video_block_by_url", f'<!-- wp:video --><figure><video src="{URL}"></video></figure><!-- /wp:video -->'),
        ("video_shortcode", f'[video src="{URL}"][/video]'),
        ("video_element", f'<video src="{URL}"></video>'),
        ("video_link", f'<a href="{URL}">clip</a>'),
    ],
)
def test_each_matcher_removes_its_own_form(name, fragment):
    target = ReferenceTarget.for_media(42, URL)

    new_body, hits = matcher(name).remove(f"before {fragment} after", target)

    assert hits == 1
    assert new_body == "before  after"


def test_matchers_ignore_forms_that_are_not_theirs():
    target = ReferenceTarget.for_media(42, URL)
    body = f'<a href="{URL}">clip</a>'

    assert matcher("video_shortcode").remove(body, target) == (body, 0)
    assert matcher("video_element").remove(body, target) == (body, 0)


def test_url_block_ignores_other_hosts_sharing_the_path():
    body = (
        "<p>a</p>\n"
        "<!-- wp:video -->\n"
        '<figure><video src="https://cdn.other.org/media/v.mp4"></video></figure>\n'
        "<!-- /wp:video -->\n"
        "<p>b</p>"
    )

    assert remove_references(body, 42, "https://example.com/v.mp4") == (body, False)


def test_url_block_still_matches_a_relative_path_in_its_markup():
    body = (
        "<p>a</p>\n"
        "<!-- wp:video -->\n"
        "<figure><video controls>\n  <source src=/uploads/v.mp4>\n</video></figure>\n"
        "<!-- /wp:video -->\n"
        "<p>b</p>"
    )

    assert remove_references(body, 42, URL) == ("<p>a</p>\n<p>b</p>", True)


def test_blank_lines_collapse_in_crlf_bodies():
    body = f'<p>a</p>\r\n\r\n<a href="{URL}">x</a>\r\n\r\n\r\n\r\n<p>b</p>'

    new_body, changed = remove_references(body, 42, URL)

    assert changed is True
    assert new_body == "<p>a</p>\r\n\r\n<p>b</p>"


def test_reference_on_the_last_line_takes_the_preceding_line_break():
    body = f'<p>x</p>\r\n<video src="{URL}"></video>'

    assert remove_references(body, 42, URL) == ("<p>x</p>", True)


def test_reference_that_is_the_whole_body_leaves_it_empty():
    assert remove_references(f'[video src="{URL}"][/video]', 42, URL) == ("", True)
