import pytest
from homeserver_admin.webdav.propfind import parse_propfind


def _response(href, collection=False, name="", length=None, ctype="", modified=None):
    props = [f"<d:displayname>{name}</d:displayname>" if name else "<d:displayname/>"]
    if ctype:
        props.append(f"<d:getcontenttype>{ctype}</d:getcontenttype>")
    if length is not None:
        props.append(f"<d:getcontentlength>{length}</d:getcontentlength>")
    if modified:
        props.append(f"<d:getlastmodified>{modified}</d:getlastmodified>")
    props.append("<d:resourcetype><d:collection/></d:resourcetype>" if collection else "<d:resourcetype/>")
    return f"""
  <d:response>
    <d:href>{href}</d:href>
    <d:propstat>
      <d:prop>{''.join(props)}</d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
  </d:response>"""


def _multistatus(*responses):
    return ('<?xml version="1.0" encoding="utf-8"?>\n<d:multistatus xmlns:d="DAV:">'
            + "".join(responses) + "\n</d:multistatus>")


def test_end_to_end_listing():
    body = _multistatus(
        _response("/dav/alice/pub/", collection=True),
        _response("/dav/alice/pub/notes.txt", length=42, ctype="text/plain",
                  modified="Mon, 19 Oct 2026 10:00:00 GMT"),
    )
    entries = parse_propfind(body, "/alice/pub/")
    assert len(entries) == 1
    entry = entries[0]
    assert entry.path == "/alice/pub/notes.txt"
    assert entry.is_collection is False
    assert entry.content_length == 42
    assert entry.display_name == "notes.txt"
    assert entry.content_type == "text/plain"
    assert entry.last_modified == "Mon, 19 Oct 2026 10:00:00 GMT"
    assert entry.href == "/dav/alice/pub/notes.txt"


@pytest.mark.parametrize("self_href", [
    "/dav/alice/pub/",
    "/dav/alice/pub",
    "/alice/pub/",
    "/alice/pub",
    "http://hs.example/dav/alice/pub/",
    "http://hs.example/dav/alice/pub",
    "https://elsewhere.example:6286/alice/pub/",
    "/dav/dav/alice/pub/",
])
def test_self_entry_excluded(self_href):
    body = _multistatus(
        _response(self_href, collection=True, name="pub"),
        _response("/dav/alice/pub/docs/", collection=True),
        _response("/dav/alice/pub/a.txt", length=1),
    )
    entries = parse_propfind(body, "/alice/pub/", base_url="http://hs.example/dav")
    assert [e.path for e in entries] == ["/alice/pub/docs/", "/alice/pub/a.txt"]


def test_self_entry_excluded_when_base_has_no_trailing_slash():
    body = _multistatus(
        _response("/dav/alice/pub/", collection=True),
        _response("/dav/alice/pub/a.txt"),
    )
    entries = parse_propfind(body, "/alice/pub")
    assert [e.path for e in entries] == ["/alice/pub/a.txt"]


def test_root_listing_excludes_mount_root():
    body = _multistatus(
        _response("/dav/", collection=True),
        _response("/dav/alice/", collection=True),
        _response("/dav/bob/", collection=True),
    )
    entries = parse_propfind(body, "/")
    assert [e.path for e in entries] == ["/alice/", "/bob/"]


def test_mount_root_entry_in_child_listing_is_skipped():
    body = _multistatus(
        _response("/dav/", collection=True),
        _response("/dav/alice/pub/", collection=True),
        _response("/dav/alice/pub/a.txt"),
    )
    entries = parse_propfind(body, "/alice/pub/")
    assert [e.path for e in entries] == ["/alice/pub/a.txt"]


def test_sort_order_collections_first():
    body = _multistatus(
        _response("/dav/x/", collection=True),
        _response("/dav/x/date", length=4),
        _response("/dav/x/banana/", collection=True),
        _response("/dav/x/cherry", length=6),
        _response("/dav/x/apple/", collection=True),
    )
    entries = parse_propfind(body, "/x/")
    assert [e.display_name for e in entries] == ["apple", "banana", "cherry", "date"]
    assert [e.is_collection for e in entries] == [True, True, False, False]


def test_collections_get_trailing_slash_and_directory_type():
    body = _multistatus(
        _response("/dav/x/", collection=True),
        _response("/dav/x/docs", collection=True, ctype="httpd/unix-directory", length=4096),
    )
    [entry] = parse_propfind(body, "/x/")
    assert entry.path == "/x/docs/"
    assert entry.content_type == "directory"
    assert entry.content_length is None


def test_server_display_name_is_kept():
    body = _multistatus(
        _response("/dav/x/", collection=True),
        _response("/dav/x/r1.txt", name="Report One"),
    )
    [entry] = parse_propfind(body, "/x/")
    assert entry.display_name == "Report One"
    assert entry.content_type == "application/octet-stream"


def test_full_url_hrefs_are_reduced_to_paths():
    body = _multistatus(
        _response("http://hs.example/dav/alice/pub/", collection=True),
        _response("http://hs.example/dav/alice/pub/photo.jpg", ctype="image/jpeg", length=2048),
    )
    [entry] = parse_propfind(body, "/alice/pub/", base_url="http://hs.example/dav")
    assert entry.path == "/alice/pub/photo.jpg"
    assert entry.href == "http://hs.example/dav/alice/pub/photo.jpg"


def test_uppercase_namespace_prefix():
    body = """<?xml version="1.0" encoding="UTF-8"?>
<D:multistatus xmlns:D="DAV:">
  <D:response>
    <D:href>/dav/x/</D:href>
    <D:propstat><D:prop><D:resourcetype><D:collection/></D:resourcetype></D:prop></D:propstat>
  </D:response>
  <D:response>
    <D:href>/dav/x/y.txt</D:href>
    <D:propstat><D:prop><D:getcontentlength>7</D:getcontentlength><D:resourcetype/></D:prop></D:propstat>
  </D:response>
</D:multistatus>"""
    [entry] = parse_propfind(body.encode("utf-8"), "/x/")
    assert entry.path == "/x/y.txt"
    assert entry.content_length == 7


def test_non_numeric_length_is_ignored():
    body = _multistatus(
        _response("/dav/x/", collection=True),
        _response("/dav/x/y.bin", length="lots"),
    )
    [entry] = parse_propfind(body, "/x/")
    assert entry.content_length is None


@pytest.mark.parametrize("body", [
    "",
    "not xml at all",
    "<d:multistatus xmlns:d='DAV:'><d:response>",
    b"<?xml version='1.0'?><unclosed>",
])
def test_malformed_xml_gives_empty_listing(body):
    assert parse_propfind(body, "/x/") == []


def test_leading_whitespace_before_declaration():
    body = "\n    " + _multistatus(_response("/dav/x/", collection=True), _response("/dav/x/a"))
    assert [e.path for e in parse_propfind(body, "/x/")] == ["/x/a"]
