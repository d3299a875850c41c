"""Mount-relative WebDAV paths.

The homeserver exposes its WebDAV tree under a ``/dav`` mount point. Everything
the client hands back to callers is expressed relative to that mount, so
``/dav/alice/pub/`` and ``http://hs.example/dav/alice/pub/`` both become
``/alice/pub/``. All stripping of the mount prefix goes through
:func:`mount_relative`; nothing else in the package slices ``/dav`` off by hand.
"""
from typing import NewType, Optional, Sequence
from urllib.parse import quote, unquote, urlsplit

DAV_MOUNT = "/dav"

DavPath = NewType("DavPath", str)


def _has_prefix(path: str, prefix: str) -> bool:
    """True if ``prefix`` is a leading run of whole segments of ``path``."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return False
    return path == prefix or path.startswith(prefix + "/")


def _strip_prefix(path: str, prefix: str) -> str:
    prefix = prefix.rstrip("/")
    return path[len(prefix):]


def mount_relative(raw: str) -> DavPath:
    """Normalize ``raw`` into a path relative to the WebDAV mount.

    Leading ``/dav`` segments are removed repeatedly, so doubly prefixed hrefs
    from naive servers resolve too. The result always starts with ``/``. The
    trailing slash, if any, is kept: it carries collection semantics.
    """
    path = raw or "/"
    if not path.startswith("/"):
        path = "/" + path
    while _has_prefix(path, DAV_MOUNT):
        path = _strip_prefix(path, DAV_MOUNT) or "/"
    return DavPath(path)


def as_directory(path: str) -> DavPath:
    """Mount-relative form of ``path`` with exactly one trailing slash."""
    path = mount_relative(path)
    return DavPath(path if path.endswith("/") else path + "/")


def join(directory: str, name: str, collection: bool = False) -> DavPath:
    """Child path of ``directory`` named ``name``."""
    path = as_directory(directory) + name.strip("/")
    return as_directory(path) if collection else mount_relative(path)


def parent(path: str) -> DavPath:
    """Parent collection of ``path``; the root is its own parent."""
    trimmed = mount_relative(path).rstrip("/")
    if not trimmed:
        return DavPath("/")
    return as_directory(trimmed.rsplit("/", 1)[0] or "/")


def compare_key(path: str) -> str:
    """Form used to decide whether two paths name the same resource."""
    return mount_relative(path).rstrip("/") or "/"


def last_segment(path: str) -> str:
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else ""


def is_mount_root(path: str) -> bool:
    """True for the bare mount point itself (``/``, ``/dav`` or ``/dav/``)."""
    return path.rstrip("/") in ("", DAV_MOUNT)


def href_path(href: str, base_url: Optional[str] = None) -> str:
    """Path portion of ``href`` with the client's base URL removed.

    The result still carries any ``/dav`` prefix the server put in it; pass
    it through :func:`mount_relative` to get a :data:`DavPath`.
    """
    path = href
    if base_url:
        base = base_url.rstrip("/")
        base_path = urlsplit(base).path if "://" in base else base
        if _has_prefix(path, base):
            path = _strip_prefix(path, base)
        elif "://" in path:
            path = urlsplit(path).path
            if _has_prefix(path, base_path) and not _has_prefix(base_path, DAV_MOUNT):
                path = _strip_prefix(path, base_path)
        elif base_path and _has_prefix(path, base_path) and not _has_prefix(base_path, DAV_MOUNT):
            path = _strip_prefix(path, base_path)
    elif "://" in path:
        path = urlsplit(path).path
    return path or "/"


def href_to_path(href: str, base_url: Optional[str] = None) -> DavPath:
    return mount_relative(unquote(href_path(href, base_url)))


def upstream_path(segments: Sequence[str], directory: bool = False) -> str:
    """Path on the upstream server for the given mount-relative segments.

    Empty segments address the mount root ``/dav/``. ``directory`` requests a
    trailing slash, which the homeserver needs for collection operations.
    """
    parts = [quote(s) for s in segments if s]
    if not parts:
        return DAV_MOUNT + "/"
    path = DAV_MOUNT + "/" + "/".join(parts)
    return path + "/" if directory else path
