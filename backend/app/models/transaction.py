from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    VOIDED = "voided"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    E_WALLET = "e-wallet"
    GIFT_CERTIFICATE = "gift-certificate"


class DiscountType(str, enum.Enum):
    SENIOR = "senior"
    PWD = "pwd"
    EMPLOYEE = "employee"
    NAAC = "naac"
    OTHER = "other"


class Transaction(Base):
    """A completed (or voided) POS sale written by the checkout flow.

    Status, payment method and discount type are stored as plain strings:
    historical rows carry values outside the current enums and reports must
    still classify them.
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("stores.id"), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    shift_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("shifts.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    receipt_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    tax: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    discount_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    payment_method: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PaymentMethod.CASH.value
    )
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    order_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    delivery_platform: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # BIR-specific breakdown captured at checkout
    vat_sales: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    vat_exempt_sales: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    zero_rated_sales: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    senior_citizen_discount: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    pwd_discount: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )

    __table_args__ = (
        Index("ix_transactions_store_created", "store_id", "created_at"),
        Index("ix_transactions_status", "status"),
        Index("ix_transactions_user", "user_id"),
        Index("ix_transactions_receipt", "receipt_number"),
    )
