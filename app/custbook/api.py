from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from app.custbook.constants import IMAGE_FORM_FIELD
from app.custbook.cursor import CursorCodec, PageToken
from app.custbook.db import db_session
from app.custbook.errors import CustomerError
from app.custbook.images import AssetUploader, ImageAsset, asset_from_file
from app.custbook.service import CustomerService
from app.custbook.storage import storage_from_config
from app.custbook.store import SqlRecordStore

bp = Blueprint("customers_api", __name__)


def customer_service() -> CustomerService:
    """Build a service for the current request from the request-scoped session and configured storage."""
    cfg = current_app.config
    codec = CursorCodec(secret_key=cfg["SECRET_KEY"], max_age=cfg.get("PAGE_TOKEN_MAX_AGE") or None)
    return CustomerService(
        store=SqlRecordStore(db_session(), codec),
        uploader=AssetUploader(storage_from_config(cfg)),
    )


def request_payload() -> tuple[Any, ImageAsset | None]:
    """
    JSON bodies carry fields only; form posts may also bind an image file.
    """
    if request.is_json:
        return request.get_json(silent=True), None
    payload = {k: v for k, v in request.form.items() if k != IMAGE_FORM_FIELD}
    return payload, asset_from_file(request.files.get(IMAGE_FORM_FIELD))


@bp.errorhandler(CustomerError)
def _customer_error(e: CustomerError):
    return jsonify(e.to_dict()), e.status_code


@bp.get("")
def customers_list():
    """Retrieve a page of customers (up to ten at a time)."""
    page = customer_service().list(PageToken.from_param(request.args.get("pageToken")))
    return jsonify(page.to_envelope())


@bp.post("")
def customers_create():
    payload, asset = request_payload()
    customer = customer_service().create(payload, asset)
    return jsonify(customer), 201


@bp.get("/<customer_id>")
def customer_read(customer_id: str):
    return jsonify(customer_service().read(customer_id))


@bp.put("/<customer_id>")
def customer_update(customer_id: str):
    payload, asset = request_payload()
    return jsonify(customer_service().update(customer_id, payload, asset))


@bp.delete("/<customer_id>")
def customer_delete(customer_id: str):
    customer_service().delete(customer_id)
    return "OK", 200
