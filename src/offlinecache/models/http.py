from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urldefrag

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    import httpx

_WIRE_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


class FetchRequest(BaseModel):
    """An inbound request as seen by the interception layer."""

    model_config = ConfigDict(frozen=True)

    url: str  # Absolute
    method: str = "GET"
    headers: dict[str, str] = {}
    body: bytes | None = None

    @property
    def identity(self) -> str:
        """Store key: the URL without its fragment."""
        return urldefrag(self.url).url

    @property
    def cacheable(self) -> bool:
        return self.method.upper() == "GET"


class StoredResponse(BaseModel):
    """Immutable snapshot of a response, body fully buffered."""

    model_config = ConfigDict(frozen=True)

    url: str
    status: int
    headers: dict[str, str] = {}
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def clone(self) -> StoredResponse:
        """Independent copy for the store; the caller keeps the original."""
        return self.model_copy(deep=True)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> StoredResponse:
        # Caller must have read the body (aread) before snapshotting. The body is
        # stored decoded, so headers describing the wire encoding are dropped.
        headers = {
            name: value
            for name, value in response.headers.items()
            if name not in _WIRE_HEADERS
        }
        return cls(
            url=str(response.url),
            status=response.status_code,
            headers=headers,
            body=response.content,
        )
