from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple

DIRECTORY_CONTENT_TYPE = "directory"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# --- Listing ---

@dataclass(frozen=True)
class WebDavEntry:
    href: str
    display_name: str
    content_type: str
    is_collection: bool
    path: str
    content_length: Optional[int] = None
    last_modified: Optional[str] = None

    def sort_key(self) -> Tuple[bool, str]:
        return (not self.is_collection, self.display_name)


@dataclass(frozen=True)
class WebDavListing:
    path: str
    entries: Tuple[WebDavEntry, ...] = ()

    def __iter__(self) -> Iterator[WebDavEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# --- Proxy ---

@dataclass(frozen=True)
class ForwardHeaders:
    """The only headers the proxy ever sends upstream."""
    authorization: str
    depth: Optional[str] = None
    content_type: Optional[str] = None
    destination: Optional[str] = None

    @classmethod
    def from_inbound(cls, headers: Mapping[str, str], authorization: str) -> "ForwardHeaders":
        return cls(
            authorization=authorization,
            depth=headers.get("Depth") or None,
            content_type=headers.get("Content-Type") or None,
            destination=headers.get("Destination") or None,
        )

    def as_dict(self) -> Dict[str, str]:
        out = {"Authorization": self.authorization}
        if self.depth:
            out["Depth"] = self.depth
        if self.content_type:
            out["Content-Type"] = self.content_type
        if self.destination:
            out["Destination"] = self.destination
        return out
