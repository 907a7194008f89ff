from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.custbook.constants import ID_FIELD
from app.custbook.cursor import CursorCodec, PageToken
from app.custbook.errors import NotFound, StoreError
from app.custbook.models import CustomerRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: PageToken | None = None

    def to_envelope(self) -> dict[str, Any]:
        envelope: dict[str, Any] = {"items": list(self.items)}
        if self.next_page_token is not None:
            envelope["nextPageToken"] = self.next_page_token.value
        return envelope


class RecordStore:
    """
    Document-store contract used by the customer service.
    Records are plain dicts; `id` is assigned by the store and never taken from a payload.
    """

    def list(self, page_size: int, page_token: PageToken | None = None) -> Page:
        raise NotImplementedError

    def create(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def read(self, record_id: str) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, record_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def delete(self, record_id: str) -> None:
        raise NotImplementedError


def _attributes(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k != ID_FIELD}


@dataclass(frozen=True)
class SqlRecordStore(RecordStore):
    s: Session
    codec: CursorCodec

    @contextmanager
    def _guard(self, action: str) -> Generator[None, None, None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.s.rollback()
            logger.error("Record store %s failed: %s", action, e)
            raise StoreError(f"Record store {action} failed.") from e

    @staticmethod
    def _dump(payload: Mapping[str, Any]) -> str:
        try:
            return json.dumps(_attributes(payload), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Record is not serializable: {e}") from e

    @staticmethod
    def _to_record(row: CustomerRecord) -> dict[str, Any]:
        data = json.loads(row.data_json or "{}")
        return {ID_FIELD: row.id, **_attributes(data)}

    def _get_row(self, record_id: str) -> CustomerRecord:
        row = self.s.query(CustomerRecord).filter(CustomerRecord.id == record_id).one_or_none()
        if row is None:
            raise NotFound(record_id)
        return row

    def list(self, page_size: int, page_token: PageToken | None = None) -> Page:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        after = self.codec.decode(page_token) if page_token is not None else 0

        with self._guard("list"):
            # One extra row tells us whether anything exists past this page.
            rows = (
                self.s.query(CustomerRecord)
                .filter(CustomerRecord.pk > after)
                .order_by(CustomerRecord.pk.asc())
                .limit(page_size + 1)
                .all()
            )
            has_more = len(rows) > page_size
            rows = rows[:page_size]
            items = [self._to_record(r) for r in rows]
        next_token = self.codec.encode(rows[-1].pk) if has_more else None
        return Page(items=items, next_page_token=next_token)

    def create(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        data_json = self._dump(payload)
        now = datetime.utcnow()
        row = CustomerRecord(id=uuid.uuid4().hex, data_json=data_json, created_at=now, updated_at=now)
        with self._guard("create"):
            self.s.add(row)
            self.s.commit()
            record = self._to_record(row)
        return record

    def read(self, record_id: str) -> dict[str, Any]:
        with self._guard("read"):
            return self._to_record(self._get_row(record_id))

    def update(self, record_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        data_json = self._dump(payload)
        with self._guard("update"):
            row = self._get_row(record_id)
            row.data_json = data_json
            row.updated_at = datetime.utcnow()
            self.s.commit()
            record = self._to_record(row)
        return record

    def delete(self, record_id: str) -> None:
        with self._guard("delete"):
            row = self._get_row(record_id)
            self.s.delete(row)
            self.s.commit()
