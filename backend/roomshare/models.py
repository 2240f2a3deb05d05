from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, Date, DateTime, Boolean, Text,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .extensions import db

POST_TYPES = ("rent", "roommate")

REQUEST_STATUSES = (
    "pending",
    "pending_user_approval",
    "pending_landlord_approval",
    "approved",
    "rejected",
    "cancelled",
)
OPEN_REQUEST_STATUSES = ("pending", "pending_user_approval", "pending_landlord_approval")

INVOICE_TYPES = ("initial_payment", "monthly_rent", "deposit")


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class Room(TimestampMixin, db.Model):
    __tablename__ = "room"
    __table_args__ = (
        CheckConstraint("max_occupancy >= 1", name="ck_room_max_occupancy"),
        CheckConstraint(
            "current_occupancy >= 0 AND current_occupancy <= max_occupancy",
            name="ck_room_current_occupancy",
        ),
    )

    id = Column(Integer, primary_key=True)
    landlord_id = Column(Integer, nullable=False, index=True)
    room_number = Column(String(40), nullable=False)
    monthly_rent = Column(Numeric(14, 2), nullable=False)
    deposit = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    max_occupancy = Column(Integer, nullable=False, default=1)
    current_occupancy = Column(Integer, nullable=False, default=0)
    version_id = Column(Integer, nullable=False)

    posts = relationship("Post", backref="room", lazy=True)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_empty(self):
        return (self.current_occupancy or 0) == 0

    @property
    def available_slots(self):
        return max((self.max_occupancy or 0) - (self.current_occupancy or 0), 0)


class Post(TimestampMixin, db.Model):
    __tablename__ = "post"

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("room.id"), nullable=False, index=True)
    author_id = Column(Integer, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    post_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")


class RentalRequest(TimestampMixin, db.Model):
    __tablename__ = "rental_request"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("post.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("room.id"), nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    request_type = Column(String(20), nullable=False)
    requested_move_in_date = Column(Date, nullable=False)
    requested_duration = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(40), nullable=False, default="pending")
    contract_id = Column(Integer, nullable=True, index=True)

    occupant_id = Column(Integer, nullable=True)
    occupant_response = Column(Text, nullable=True)
    landlord_response = Column(Text, nullable=True)
    cancel_reason = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    version_id = Column(Integer, nullable=False)

    post = relationship("Post", lazy=True)
    room = relationship("Room", lazy=True)

    __mapper_args__ = {"version_id_col": version_id}


class Contract(TimestampMixin, db.Model):
    __tablename__ = "contract"

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("room.id"), nullable=False, index=True)
    landlord_id = Column(Integer, nullable=False, index=True)
    request_id = Column(Integer, ForeignKey("rental_request.id"), nullable=False, unique=True)
    post_id = Column(Integer, ForeignKey("post.id"), nullable=True)
    contract_type = Column(String(20), nullable=False, default="single")
    status = Column(String(20), nullable=False, default="active")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    monthly_rent = Column(Numeric(14, 2), nullable=False)
    deposit = Column(Numeric(14, 2), nullable=False)
    terminated_at = Column(DateTime, nullable=True)
    termination_reason = Column(Text, nullable=True)
    deposit_forfeited = Column(Boolean, nullable=False, default=False)
    version_id = Column(Integer, nullable=False)

    room = relationship("Room", lazy=True)
    tenants = relationship("ContractTenant", backref="contract", lazy=True, order_by="ContractTenant.id")
    invoices = relationship("Invoice", backref="contract", lazy=True, order_by="Invoice.id")

    __mapper_args__ = {"version_id_col": version_id}

    def active_tenants(self):
        return [t for t in self.tenants if t.status == "active"]

    def has_tenant(self, user_id):
        return any(t.tenant_id == user_id for t in self.tenants)


class ContractTenant(db.Model):
    __tablename__ = "contract_tenant"
    __table_args__ = (UniqueConstraint("contract_id", "tenant_id", name="uq_contract_tenant"),)

    id = Column(Integer, primary_key=True)
    contract_id = Column(Integer, ForeignKey("contract.id"), nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    move_in_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="active")


class Invoice(TimestampMixin, db.Model):
    __tablename__ = "invoice"

    id = Column(Integer, primary_key=True)
    contract_id = Column(Integer, ForeignKey("contract.id"), nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    invoice_type = Column(String(30), nullable=False)
    billing_period = Column(String(7), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="VND")
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    paid_at = Column(DateTime, nullable=True)
    payment_reference = Column(String(120), nullable=True)
    note = Column(Text, nullable=True)
    version_id = Column(Integer, nullable=False)

    items = relationship(
        "InvoiceItem", backref="invoice", lazy=True,
        cascade="all, delete-orphan", order_by="InvoiceItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}


class InvoiceItem(db.Model):
    __tablename__ = "invoice_item"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoice.id"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    item_type = Column(String(30), nullable=False, default="other")
    amount = Column(Numeric(14, 2), nullable=False)
