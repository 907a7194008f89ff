"""
Customer CRUD orchestration.

Writes that carry an image run in two phases: upload first, then persist the record
with the resulting URL. There is no compensating step: if the store write fails after
a successful upload, the uploaded object stays behind (logged as an orphan). A record
never points at an image that failed to upload.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.custbook.constants import ID_FIELD, IMAGE_URL_FIELD, PAGE_SIZE
from app.custbook.cursor import PageToken
from app.custbook.errors import FieldError, InvalidPayload, NotFound, StoreError, UploadFailed
from app.custbook.images import AssetUploader, ImageAsset
from app.custbook.store import Page, RecordStore

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool, type(None))


def validate_customer_payload(payload: Any) -> list[FieldError]:
    if not isinstance(payload, Mapping):
        return [FieldError("payload", "Customer payload must be an object.")]
    errs: list[FieldError] = []
    for k, v in payload.items():
        if not isinstance(k, str) or not k.strip():
            errs.append(FieldError(str(k), "Field names must be non-empty strings."))
        elif not isinstance(v, _SCALAR_TYPES):
            errs.append(FieldError(k, "Field values must be scalars (string, number, boolean or null)."))
        elif isinstance(v, float) and not math.isfinite(v):
            errs.append(FieldError(k, "Field values must be finite numbers."))
    return errs


@dataclass(frozen=True)
class CustomerService:
    store: RecordStore
    uploader: AssetUploader | None = None
    page_size: int = PAGE_SIZE

    def list(self, page_token: PageToken | None = None) -> Page:
        page = self.store.list(self.page_size, page_token)
        return Page(items=list(page.items), next_page_token=page.next_page_token)

    def read(self, customer_id: str) -> dict[str, Any]:
        return self.store.read(customer_id)

    def create(self, payload: Mapping[str, Any], asset: ImageAsset | None = None) -> dict[str, Any]:
        data = self._prepare(payload)
        uploaded_key = self._attach_image(data, asset)
        try:
            record = self.store.create(data)
        except StoreError:
            self._log_orphan(uploaded_key, action="create")
            raise
        logger.info("Customer created id=%s image=%s", record.get(ID_FIELD), bool(uploaded_key))
        return record

    def update(
        self,
        customer_id: str,
        payload: Mapping[str, Any],
        asset: ImageAsset | None = None,
    ) -> dict[str, Any]:
        data = self._prepare(payload)
        # Existence check runs before the upload so a bad id never leaves an orphaned image.
        self.store.read(customer_id)
        uploaded_key = self._attach_image(data, asset)
        try:
            record = self.store.update(customer_id, data)
        except (StoreError, NotFound):
            # NotFound here means the record vanished between the existence check and the write.
            self._log_orphan(uploaded_key, action="update", customer_id=customer_id)
            raise
        logger.info("Customer updated id=%s image=%s", customer_id, bool(uploaded_key))
        return record

    def delete(self, customer_id: str) -> None:
        self.store.delete(customer_id)
        logger.info("Customer deleted id=%s", customer_id)

    def _prepare(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        errs = validate_customer_payload(payload)
        if errs:
            raise InvalidPayload(errs)
        return {k: v for k, v in payload.items() if k != ID_FIELD}

    def _attach_image(self, data: dict[str, Any], asset: ImageAsset | None) -> str | None:
        """Upload `asset` (if any) and point `data[imageUrl]` at it. Returns the object key."""
        if asset is None:
            return None
        if self.uploader is None:
            raise UploadFailed("Image uploads are not configured.")
        result = self.uploader.upload(asset)
        data[IMAGE_URL_FIELD] = result.public_url
        return result.key

    @staticmethod
    def _log_orphan(key: str | None, *, action: str, customer_id: str | None = None) -> None:
        if key:
            logger.error("Customer %s failed after upload; orphaned image key=%s id=%s", action, key, customer_id)
