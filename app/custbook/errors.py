from __future__ import annotations

from dataclasses import dataclass


class CustomerError(Exception):
    """Base for failures surfaced to callers of the customer service."""

    status_code = 500
    code = "error"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class NotFound(CustomerError):
    status_code = 404
    code = "not_found"

    def __init__(self, record_id: str):
        super().__init__(f"Customer {record_id!r} not found.")
        self.record_id = record_id


class InvalidCursor(CustomerError):
    status_code = 400
    code = "invalid_cursor"


class UploadFailed(CustomerError):
    status_code = 502
    code = "upload_failed"


class InvalidImage(UploadFailed):
    """The image itself was rejected (empty or over the size limit); nothing was stored."""

    status_code = 400
    code = "invalid_image"


class StoreError(CustomerError):
    status_code = 500
    code = "store_error"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class InvalidPayload(CustomerError):
    status_code = 400
    code = "invalid_payload"

    def __init__(self, errors: list[FieldError]):
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors) or "Invalid payload.")
        self.errors = errors

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["fields"] = {e.field: e.message for e in self.errors}
        return d
