from .domain.models.payment_transaction import Transaction, TransactionItem


__all__ = [
    "Transaction",
    "TransactionItem",
]
