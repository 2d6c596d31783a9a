# Overview: Flask API routes for inter-location transfers; parses input and returns JSON responses.

# backend/stockledger/routes/transfers.py
import uuid

from flask import Blueprint

from ..extensions import db
from ..models import Transfer
from ..services import transfer_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import arg_datetime, arg_limit, arg_uuid, json_body

TRANSFER_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "from_location_id", "to_location_id", "user_id", "quantity", "note", "transfer_date",
    },
    required_on_create={"product_id", "from_location_id", "to_location_id", "user_id", "quantity"},
)

transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.post("")
def record_transfer():
    """
    Move stock between two locations.

    Request body:
    {
        "product_id": UUID,
        "from_location_id": UUID,
        "to_location_id": UUID,   // must differ from from_location_id
        "user_id": UUID,
        "quantity": int,          // > 0
        "note": str               // optional
    }

    Returns:
        201: Transfer created (TRANSFER_OUT + TRANSFER_IN movements)
        400: Invalid request
        404: Referenced entity not found
        409: Insufficient stock at source
    """
    patch = validate_payload(model=Transfer, payload=json_body(), policy=TRANSFER_POLICY, partial=False)
    transfer = transfer_service.record_transfer(**patch)
    db.session.commit()
    return transfer.to_dict(), 201


@transfers_bp.get("")
def list_transfers():
    """?location_id= matches either end of the transfer."""
    transfers = transfer_service.list_transfers(
        product_id=arg_uuid("product_id"),
        location_id=arg_uuid("location_id"),
        user_id=arg_uuid("user_id"),
        start=arg_datetime("start"),
        end=arg_datetime("end", end_of_day=True),
        limit=arg_limit(),
    )
    return {"items": [t.to_dict() for t in transfers], "count": len(transfers)}


@transfers_bp.get("/<uuid:transfer_id>")
def get_transfer(transfer_id: uuid.UUID):
    return transfer_service.get_transfer(transfer_id).to_dict()
