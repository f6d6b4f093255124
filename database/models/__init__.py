"""Модели базы данных"""
from .user import User
from .product import Product
from .auction import Auction, AuctionStatus
from .bid import Bid
from .payment import PaymentAttempt, PaymentStatus
from .transaction import Transaction, TransactionStatus
from .extension_history import ExtensionHistory

__all__ = [
    "User",
    "Product",
    "Auction",
    "AuctionStatus",
    "Bid",
    "PaymentAttempt",
    "PaymentStatus",
    "Transaction",
    "TransactionStatus",
    "ExtensionHistory",
]
