from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.custbook.api import customer_service, request_payload
from app.custbook.cursor import PageToken
from app.custbook.errors import InvalidCursor, InvalidPayload, NotFound, UploadFailed

bp = Blueprint("customers", __name__)

# Fields rendered on the add/edit form; any other posted field is stored as-is.
FORM_FIELDS = (
    ("name", "Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("address", "Address"),
    ("notes", "Notes"),
)


def _as_dict(payload) -> dict:
    return dict(payload) if isinstance(payload, dict) else {}


@bp.errorhandler(NotFound)
def _not_found(e: NotFound):
    return render_template("errors/404.html", message=str(e)), 404


@bp.get("")
def customers_list():
    """Display a page of customers (up to ten at a time)."""
    try:
        page = customer_service().list(PageToken.from_param(request.args.get("pageToken")))
    except InvalidCursor as e:
        flash(str(e), "warning")
        return redirect(url_for("customers.customers_list"))
    return render_template(
        "customers/list.html",
        customers=page.items,
        next_page_token=page.next_page_token,
    )


@bp.get("/add")
def customers_add_get():
    return render_template("customers/form.html", customer={}, action="Add", fields=FORM_FIELDS)


@bp.post("/add")
def customers_add_post():
    payload, asset = request_payload()
    try:
        c = customer_service().create(payload, asset)
    except (InvalidPayload, UploadFailed) as e:
        flash(str(e), "danger")
        return render_template("customers/form.html", customer=_as_dict(payload), action="Add", fields=FORM_FIELDS), e.status_code
    flash("Customer saved.", "success")
    return redirect(url_for("customers.customer_detail", customer_id=c["id"]))


@bp.get("/<customer_id>")
def customer_detail(customer_id: str):
    c = customer_service().read(customer_id)
    return render_template("customers/view.html", customer=c, fields=FORM_FIELDS)


@bp.get("/<customer_id>/edit")
def customer_edit_get(customer_id: str):
    c = customer_service().read(customer_id)
    return render_template("customers/form.html", customer=c, action="Edit", fields=FORM_FIELDS)


@bp.post("/<customer_id>/edit")
def customer_edit_post(customer_id: str):
    payload, asset = request_payload()
    try:
        c = customer_service().update(customer_id, payload, asset)
    except (InvalidPayload, UploadFailed) as e:
        flash(str(e), "danger")
        customer = {**_as_dict(payload), "id": customer_id}
        return render_template("customers/form.html", customer=customer, action="Edit", fields=FORM_FIELDS), e.status_code
    flash("Customer updated.", "success")
    return redirect(url_for("customers.customer_detail", customer_id=c["id"]))


@bp.post("/<customer_id>/delete")
def customer_delete(customer_id: str):
    customer_service().delete(customer_id)
    flash("Customer deleted.", "success")
    return redirect(url_for("customers.customers_list"))
