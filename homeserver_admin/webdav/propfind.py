"""PROPFIND request body and multistatus response parsing."""
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Union

from . import paths
from .models import DEFAULT_CONTENT_TYPE, DIRECTORY_CONTENT_TYPE, WebDavEntry

logger = logging.getLogger("homeserver_admin.webdav")

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8"?>
<d:propfind xmlns:d="DAV:">
  <d:prop>
    <d:displayname/>
    <d:getcontenttype/>
    <d:getcontentlength/>
    <d:getlastmodified/>
    <d:resourcetype/>
  </d:prop>
</d:propfind>"""

VALID_DEPTHS = ("0", "1", "infinity")


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _first(element: ET.Element, name: str) -> Optional[ET.Element]:
    # Namespace prefixes vary between servers (d:, D:, lp1:, none), match on local name.
    for child in element.iter():
        if child is not element and _local_name(child.tag) == name:
            return child
    return None


def _text(element: ET.Element, name: str) -> str:
    found = _first(element, name)
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def _is_collection(response: ET.Element) -> bool:
    resourcetype = _first(response, "resourcetype")
    return resourcetype is not None and _first(resourcetype, "collection") is not None


def _content_length(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        return None


def _is_self(path: str, display_name: str, base_path: str) -> bool:
    path_key = paths.compare_key(path)
    base_key = paths.compare_key(base_path)
    if path_key == base_key:
        return True
    # Some servers format the self href differently; kept alongside the key check.
    base_name = paths.last_segment(base_path)
    return bool(base_name) and display_name == base_name and path_key == base_key


def parse_propfind(body: Union[str, bytes], base_path: str, base_url: Optional[str] = None) -> List[WebDavEntry]:
    """Turn a multistatus document into the sorted children of ``base_path``.

    Malformed XML yields an empty list. The entry describing ``base_path``
    itself is never returned.
    """
    try:
        root = ET.fromstring(body.strip())
    except ET.ParseError as e:
        logger.warning("XML parsing error in PROPFIND response: %s", e)
        return []

    entries = []
    for response in root.iter():
        if _local_name(response.tag) != "response":
            continue

        href = _text(response, "href")
        display_name = _text(response, "displayname")
        content_type = _text(response, "getcontenttype")
        content_length = _text(response, "getcontentlength")
        last_modified = _text(response, "getlastmodified") or None
        is_collection = _is_collection(response)

        path = paths.href_to_path(href, base_url)
        if _is_self(path, display_name, base_path):
            continue
        if paths.is_mount_root(path):
            continue
        if is_collection:
            path = paths.as_directory(path)

        entries.append(WebDavEntry(
            href=href,
            display_name=display_name or paths.last_segment(path) or path,
            content_type=DIRECTORY_CONTENT_TYPE if is_collection else (content_type or DEFAULT_CONTENT_TYPE),
            is_collection=is_collection,
            path=path,
            content_length=None if is_collection else _content_length(content_length),
            last_modified=last_modified,
        ))

    entries.sort(key=WebDavEntry.sort_key)
    return entries
