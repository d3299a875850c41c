"""Directory navigation state for the admin file browser.

Every operation reports failure by storing a :class:`WebDavError` in
``last_error`` and returning a falsy value, so callers can render the error
without wrapping each call in ``try``.
"""
import logging
import re
import threading
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

from . import paths
from .client import WebDavClient
from .errors import WebDavError
from .models import WebDavEntry, WebDavListing

logger = logging.getLogger("homeserver_admin.webdav")

SORT_FIELDS = ("name", "size", "date", "type")
_PUB_DIR = re.compile(r"^/[^/]+/pub/?$")


def can_create_in(path: str) -> bool:
    """Writes are only allowed inside a user's ``/pub/`` tree."""
    return "/pub/" in path or bool(_PUB_DIR.match(path))


def normalize_entry_path(raw: str) -> str:
    """Turn a pasted URL or ``/dav/...`` path into a bare entry path.

    ``https://hs.example/dav/alice/pub/x`` -> ``alice/pub/x``
    """
    value = raw.strip()
    if not value:
        return ""
    if re.match(r"^https?://", value, re.IGNORECASE):
        value = urlsplit(value).path
    for marker in ("/dav/", "/webdav/"):
        if marker in value:
            value = value.split(marker, 1)[1]
    value = value.lstrip("/")
    value = re.sub(r"^dav/+", "", value)
    value = re.sub(r"^webdav/+", "", value)
    return value


def format_file_size(size: Optional[int]) -> str:
    if not size:
        return "-"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{size} B"
    return f"{value:.1f} {units[unit]}"


def sort_entries(entries: Iterable[WebDavEntry], field: str = "type", descending: bool = False) -> List[WebDavEntry]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {field}")
    entries = list(entries)
    if field == "type":
        # Collections stay ahead of files in both directions
        dirs = sorted((e for e in entries if e.is_collection), key=lambda e: e.display_name, reverse=descending)
        files = sorted((e for e in entries if not e.is_collection), key=lambda e: e.display_name, reverse=descending)
        return dirs + files
    keys = {
        "name": lambda e: e.display_name,
        "size": lambda e: e.content_length or 0,
        "date": lambda e: e.last_modified or "",
    }
    return sorted(entries, key=keys[field], reverse=descending)


class FileBrowser:
    """Keeps the current directory of a :class:`WebDavClient` and its listing."""

    def __init__(self, client: WebDavClient, initial_path: str = "/"):
        self.client = client
        self.current_path = paths.as_directory(initial_path)
        self.entries: Tuple[WebDavEntry, ...] = ()
        self.last_error: Optional[WebDavError] = None
        self.is_loading = False
        self._generation = 0
        self._lock = threading.Lock()

    def _fail(self, e: Exception) -> None:
        if not isinstance(e, WebDavError):
            e = WebDavError(str(e), status=0)
        logger.warning("WebDAV operation failed (%s): %s", e.status, e.message)
        self.last_error = e

    def load(self, path: Optional[str] = None) -> Optional[WebDavListing]:
        """List ``path`` (default: the current directory) and make it current.

        A listing that finishes after a newer ``load`` started is dropped and
        ``None`` is returned for it.
        """
        target = paths.as_directory(path if path is not None else self.current_path)
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.current_path = target
            self.entries = ()
            self.is_loading = True
            self.last_error = None

        try:
            listing = self.client.list_directory(target)
        except Exception as e:
            with self._lock:
                if generation == self._generation:
                    self._fail(e)
                    self.is_loading = False
            return None

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale listing of %s", target)
                return None
            self.entries = listing.entries
            self.is_loading = False
        return listing

    def navigate(self, path: str) -> Optional[WebDavListing]:
        return self.load(path)

    def up(self) -> Optional[WebDavListing]:
        return self.load(paths.parent(self.current_path))

    def breadcrumbs(self) -> List[Tuple[str, str]]:
        parts = [p for p in self.current_path.split("/") if p]
        crumbs = [("/", "/")]
        for i, part in enumerate(parts):
            crumb = "/" + "/".join(parts[:i + 1])
            crumbs.append((part, crumb + "/" if i < len(parts) - 1 else crumb))
        return crumbs

    def can_create_files(self) -> bool:
        return can_create_in(self.current_path)

    def visible_entries(self, query: str = "", sort_field: str = "type", descending: bool = False) -> List[WebDavEntry]:
        query = query.strip().lower()
        entries = [e for e in self.entries if not query or query in e.display_name.lower()]
        return sort_entries(entries, sort_field, descending)

    def _check_writable(self, name: str, what: str) -> bool:
        if not name.strip() or "/" in name.strip("/"):
            self._fail(WebDavError(f"Invalid {what} name: {name!r}"))
            return False
        if not self.can_create_files():
            self._fail(WebDavError(
                f"Cannot create {what}s at root level. Navigate to a user's /pub/ directory first."))
            return False
        return True

    def _run(self, operation, *args) -> bool:
        self.last_error = None
        try:
            operation(*args)
        except Exception as e:
            self._fail(e)
            return False
        return True

    def open_file(self, entry: WebDavEntry) -> Optional[str]:
        """Enter a collection, or return a file's text."""
        if entry.is_collection:
            self.load(entry.path)
            return None
        self.last_error = None
        try:
            return self.client.read_file(entry.path)
        except Exception as e:
            self._fail(e)
            return None

    def save_file(self, entry: WebDavEntry, content: str) -> bool:
        if not self._run(self.client.write_file, entry.path, content):
            return False
        self.load()
        return True

    def upload(self, name: str, content: str, content_type: str = "text/plain") -> bool:
        if not self._check_writable(name, "file"):
            return False
        target = paths.join(self.current_path, name.strip())
        if not self._run(self.client.write_file, target, content, content_type):
            return False
        self.load()
        return True

    def make_directory(self, name: str) -> bool:
        if not self._check_writable(name, "directory"):
            return False
        target = paths.join(self.current_path, name.strip(), collection=True)
        if not self._run(self.client.create_directory, target):
            return False
        self.load()
        return True

    def delete(self, entry: WebDavEntry) -> bool:
        if not self._run(self.client.delete_entry, entry.path):
            return False
        self.load()
        return True

    def delete_path(self, raw: str) -> bool:
        """Delete a pasted path or URL such as ``https://hs/dav/alice/pub/x``."""
        path = normalize_entry_path(raw)
        if not path:
            self._fail(WebDavError("Enter a path to delete"))
            return False
        if not self._run(self.client.delete_entry, "/" + path):
            return False
        self.load()
        return True

    def rename(self, entry: WebDavEntry, new_name: str) -> bool:
        """Rename ``entry`` inside its parent collection with MOVE."""
        new_name = new_name.strip()
        if not new_name or "/" in new_name.strip("/"):
            self._fail(WebDavError(f"Invalid name: {new_name!r}"))
            return False
        target = paths.join(paths.parent(entry.path), new_name, collection=entry.is_collection)
        if not self._run(self.client.move, entry.path, target):
            return False
        self.load()
        return True
