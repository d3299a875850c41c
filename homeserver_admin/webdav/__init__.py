"""WebDAV client, multistatus parsing and mount-relative paths."""
from .client import WebDavClient, basic_authorization
from .errors import WebDavConfigurationError, WebDavError, WebDavNetworkError, WebDavRequestError
from .models import ForwardHeaders, WebDavEntry, WebDavListing
from .paths import DavPath, mount_relative
from .propfind import parse_propfind

__all__ = [
    "WebDavClient",
    "basic_authorization",
    "WebDavError",
    "WebDavConfigurationError",
    "WebDavNetworkError",
    "WebDavRequestError",
    "ForwardHeaders",
    "WebDavEntry",
    "WebDavListing",
    "DavPath",
    "mount_relative",
    "parse_propfind",
]
