from __future__ import annotations

import logging
from dataclasses import dataclass

from itsdangerous import BadData, URLSafeTimedSerializer

from app.custbook.constants import PAGE_TOKEN_SALT
from app.custbook.errors import InvalidCursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageToken:
    """
    Opaque continuation token. Callers hand it back unchanged; only the store decodes it.
    """

    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_param(cls, raw: str | None) -> PageToken | None:
        """Wrap a query-string value; blank means "first page"."""
        raw = (raw or "").strip()
        return cls(raw) if raw else None


@dataclass(frozen=True)
class CursorCodec:
    """
    Signs the listing position (last primary key on the page) into a URL-safe token.

    Tokens are bound to the secret key and salt, so a token from another deployment
    or a hand-edited one fails to decode. `max_age` of 0/None disables expiry.
    """

    secret_key: str
    salt: str = PAGE_TOKEN_SALT
    max_age: int | None = None

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(self.secret_key, salt=self.salt)

    def encode(self, after: int) -> PageToken:
        return PageToken(self._serializer().dumps({"after": int(after)}))

    def decode(self, token: PageToken) -> int:
        try:
            payload = self._serializer().loads(token.value, max_age=self.max_age or None)
        except BadData as e:
            logger.warning("Rejected page token: %s", e.__class__.__name__)
            raise InvalidCursor("Page token is invalid or expired; restart from the first page.") from e

        after = payload.get("after") if isinstance(payload, dict) else None
        if isinstance(after, bool) or not isinstance(after, int) or after < 0:
            raise InvalidCursor("Page token is malformed; restart from the first page.")
        return after
