"""
Transaction vocabulary: payer buckets and transaction types
"""
from decimal import Decimal
from typing import Optional

from ourlittleworld.application.errors import ValidationError

# Payer buckets - the partition key for allocation and attribution
PAYER_HIS = "HIS"
PAYER_HERS = "HERS"
PAYER_SHARED = "SHARED"
PAYERS = (PAYER_HIS, PAYER_HERS, PAYER_SHARED)

TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"
TRANSACTION_TYPES = (TYPE_INCOME, TYPE_EXPENSE)


class TransactionValidationError(ValidationError):
    """Invalid transaction input"""
    pass


def normalize_payer(value: Optional[str]) -> str:
    """Case-insensitive payer parsing ("his" -> "HIS")"""
    if not value or not isinstance(value, str):
        raise TransactionValidationError("payer is required")
    payer = value.strip().upper()
    if payer not in PAYERS:
        raise TransactionValidationError(f"Invalid payer: {value}. Use HIS, HERS or SHARED")
    return payer


def normalize_type(value: Optional[str]) -> str:
    """Missing type means EXPENSE; anything else must be INCOME or EXPENSE"""
    if value is None or value == "":
        return TYPE_EXPENSE
    tx_type = str(value).strip().upper()
    if tx_type not in TRANSACTION_TYPES:
        raise TransactionValidationError("Invalid transaction type")
    return tx_type


def require_positive_amount(amount: Decimal) -> Decimal:
    if amount <= 0:
        raise TransactionValidationError("Amount must be greater than zero")
    return amount


def require_category(category: Optional[str]) -> str:
    category = (category or "").strip()
    if not category:
        raise TransactionValidationError("category is required")
    return category

