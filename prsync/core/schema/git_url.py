import posixpath
import re
from typing import Tuple
from urllib.parse import urlsplit

from prsync.core.exceptions import InvalidURL

SCP_RX = re.compile(r'^([A-Za-z0-9\-_.]+)@([A-Za-z0-9\-_.]+):(.*)$')


class GitURL:
    """A git remote URL compared by its canonical (host, path) pair.

    Accepts scp-like remotes (``git@github.com:owner/repo.git``) as well as
    any URI with a scheme (``ssh://``, ``git://``, ``https://``). The host
    drops a leading ``www.``; the path is lowercased, has repeated slashes
    collapsed and loses its ``.git`` suffix and leading slash.
    """

    __slots__ = ('_raw', '_host', '_path', '_scheme')

    def __init__(self, url: str) -> None:
        if isinstance(url, GitURL):
            url = url.raw
        self._raw = url
        self._scheme, self._host, self._path = self._canonicalize(url)

    @staticmethod
    def _canonicalize(url: str) -> Tuple[str, str, str]:
        match = SCP_RX.match(url or '')
        if match:
            scheme = 'ssh'
            host = match.group(2)
            path = '/' + match.group(3)
        else:
            try:
                parts = urlsplit(url or '')
            except ValueError as error:
                raise InvalidURL(url) from error
            if not parts.scheme:
                raise InvalidURL(url)
            scheme = parts.scheme.lower()
            host = parts.hostname or ''
            path = parts.path

        host = host.lower()
        if host.startswith('www.'):
            host = host[len('www.'):]

        path = re.sub(r'/+', '/', path)
        if path:
            path = posixpath.normpath(path)
            if path == '.':
                path = ''
        path = path.lower()
        if path.endswith('.git'):
            path = path[:-len('.git')]
        return scheme, host, path.lstrip('/')

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def host(self) -> str:
        return self._host

    @property
    def path(self) -> str:
        return self._path

    @property
    def full_path(self) -> str:
        return f'{self._host}/{self._path}'

    @property
    def key(self) -> Tuple[str, str]:
        return (self._host, self._path)

    def same(self, url: 'str | GitURL') -> bool:
        other = url if isinstance(url, GitURL) else GitURL(url)
        return self.key == other.key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GitURL):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f'GitURL({self._raw!r})'

    def __str__(self) -> str:
        return self._raw
