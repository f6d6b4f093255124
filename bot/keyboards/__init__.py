"""Клавиатуры бота"""
from .auction import get_bid_keyboard
from .payments import get_payment_keyboard

__all__ = [
    "get_bid_keyboard",
    "get_payment_keyboard",
]
