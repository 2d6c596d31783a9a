from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z


class Location(db.Model):
    """
    A physical place where stock is held (warehouse, shop floor, bar).

    Stock, movements and inventory sessions are all keyed by location.
    """
    __tablename__ = "locations"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(100), nullable=False, unique=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "name": self.name,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    """
    Vendor products are purchased from.

    Email is unique when specified; name is always unique.
    """
    __tablename__ = "suppliers"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(100), nullable=False, unique=True)
    contact_info = db.Column(db.Text, nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(50), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "name": self.name,
            "contact_info": self.contact_info,
            "phone_number": self.phone_number,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }
