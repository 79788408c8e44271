import pytest

from aggrest import LinkHeader

NEXT = "https://api.github.com/user/9287/repos?page=3&per_page=100"
PREV = "https://api.github.com/user/9287/repos?page=1&per_page=100"


def test_single_link_header_string() -> None:
    links = LinkHeader(f'<{NEXT}>; rel="next"')
    assert links.next == NEXT
    assert links.prev is None


def test_multiple_links_in_one_string() -> None:
    links = LinkHeader(f'<{NEXT}>; rel="next",<{PREV}>; rel="prev"; pet="cat"')
    assert links.next == NEXT
    assert links.prev == PREV


def test_links_containing_commas() -> None:
    links = LinkHeader(f'<{NEXT},5>; rel="next",<{PREV},5>; rel="prev"; pet="cat,dog"')
    assert links.next == f"{NEXT},5"
    assert links.prev == f"{PREV},5"


def test_list_of_header_values() -> None:
    links = LinkHeader([f'<{NEXT}>; rel="next"', f'<{PREV}>; rel="prev"; pet="cat"'])
    assert links.next == NEXT
    assert links.prev == PREV
    assert links.get_rel("first") is None


@pytest.mark.parametrize("header", [None, "", "no links here", []])
def test_no_links(header) -> None:
    links = LinkHeader(header)
    assert links.next is None
    assert links.prev is None
