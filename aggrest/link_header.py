"""
Parse "Link" headers by their "rel" tags, eg. the pagination links of a resource list:

    links = LinkHeader(response.headers.getlist("Link"))
    next_page = links.next
"""
import re
from typing import Dict, List, Optional, Union

SPLIT_RE = re.compile(r'(<[^>]+>;(?:\s*[^=]+="[^"]*";?)*),')
LINK_RE = re.compile(r'<(?P<uri>[^>]+)>;.*rel="(?P<rel>[^"]+)"')


class LinkHeader:
    """
    :param header: a list of Link header values or a single string of comma separated links
    """

    def __init__(self, header: Union[str, List[str], None]) -> None:
        self.header = header
        self._links: Optional[Dict[str, str]] = None

    def _parse(self) -> Dict[str, str]:
        """
        Parse the header lazily into {rel: uri}
        """
        if self._links is not None:
            return self._links
        self._links = {}
        headers = self.header
        if isinstance(headers, str):
            headers = [part for part in SPLIT_RE.split(headers) if part.strip()]
        if not isinstance(headers, (list, tuple)):
            return self._links
        for header in headers:
            match = LINK_RE.search(header)
            if match:
                self._links[match.group("rel")] = match.group("uri")
        return self._links

    def get_rel(self, rel: str) -> Optional[str]:
        """
        :param rel: a "rel" tag
        :return: the uri of the link or None if there is no such link
        """
        return self._parse().get(rel)

    @property
    def next(self) -> Optional[str]:
        return self.get_rel("next")

    @property
    def prev(self) -> Optional[str]:
        return self.get_rel("prev")
