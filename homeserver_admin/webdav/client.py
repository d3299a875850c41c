import base64
import logging
from typing import Dict, Optional, Union
from urllib.parse import quote

import requests

from . import paths
from .errors import WebDavConfigurationError, WebDavNetworkError, WebDavRequestError
from .models import WebDavListing
from .propfind import PROPFIND_BODY, VALID_DEPTHS, parse_propfind

logger = logging.getLogger("homeserver_admin.webdav")

# Methods the proxy can only receive tunnelled through POST.
OVERRIDE_METHODS = ("PROPFIND", "MKCOL", "MOVE", "COPY")
METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"


def basic_authorization(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class WebDavClient:
    """
    WebDAV primitives against the homeserver, one HTTP request per call.

    ``base_url`` is either the upstream mount (``http://hs:6288/dav``) or the
    admin proxy route (``http://localhost:8089/api/webdav``). Against the
    proxy, set ``method_override`` so PROPFIND/MKCOL/MOVE/COPY travel as POST;
    credentials are then added by the proxy and may be omitted here.
    """

    def __init__(self,
                 base_url: str,
                 username: Optional[str] = None,
                 password: Optional[str] = None,
                 method_override: bool = False,
                 timeout: Optional[float] = None):
        self.base_url = (base_url or "").rstrip("/")
        self.username = username
        self.password = password
        self.method_override = method_override
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{quote(paths.mount_relative(path), safe='/')}"

    def _request(self, method: str, path: str,
                 headers: Optional[Dict[str, str]] = None,
                 data: Union[str, bytes, None] = None) -> requests.Response:
        if not self.base_url:
            raise WebDavConfigurationError("WebDAV not configured")

        url = self.url_for(path)
        headers = dict(headers or {})
        if self.username is not None:
            headers["Authorization"] = basic_authorization(self.username, self.password or "")

        http_method = method
        if self.method_override and method in OVERRIDE_METHODS:
            headers[METHOD_OVERRIDE_HEADER] = method
            http_method = "POST"

        if isinstance(data, str):
            data = data.encode("utf-8")

        logger.debug("%s %s", method, url)
        try:
            resp = requests.request(http_method, url, headers=headers, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise WebDavNetworkError(f"Failed to reach {url}: {e}", url=url) from e

        if not 200 <= resp.status_code < 300:
            raise WebDavRequestError(
                f"Request failed: {resp.status_code} {resp.reason or ''}".rstrip(),
                status=resp.status_code,
                body=resp.text,
            )
        return resp

    def list_directory(self, path: str, depth: Union[int, str] = 1) -> WebDavListing:
        """List a collection with PROPFIND.

        ``depth`` is 0 (the collection only), 1 (its children) or "infinity".
        """
        depth = str(depth)
        if depth not in VALID_DEPTHS:
            raise ValueError(f"Invalid PROPFIND depth: {depth!r}")

        directory = paths.as_directory(path)
        resp = self._request("PROPFIND", directory, headers={
            "Depth": depth,
            "Content-Type": "application/xml",
        }, data=PROPFIND_BODY)

        entries = parse_propfind(resp.content, directory, base_url=self.base_url)
        return WebDavListing(path=directory, entries=tuple(entries))

    def read_file(self, path: str) -> str:
        resp = self._request("GET", path)
        if "charset" not in resp.headers.get("Content-Type", "").lower():
            resp.encoding = "utf-8"
        return resp.text

    def write_file(self, path: str, content: Union[str, bytes], content_type: str = "text/plain") -> None:
        self._request("PUT", path, headers={"Content-Type": content_type}, data=content)

    def delete_entry(self, path: str) -> None:
        self._request("DELETE", path)

    def create_directory(self, path: str) -> None:
        self._request("MKCOL", paths.as_directory(path))

    def move(self, source_path: str, destination_path: str) -> None:
        self._request("MOVE", source_path, headers={"Destination": self.url_for(destination_path)})

    def copy(self, source_path: str, destination_path: str) -> None:
        self._request("COPY", source_path, headers={"Destination": self.url_for(destination_path)})
