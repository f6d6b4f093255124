"""Клавиатуры для аукционов"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

# Шаги быстрых ставок в процентах от текущей цены
QUICK_BID_STEPS = (10, 20, 50)


def quick_bid_amounts(current_price: int) -> list[int]:
    """Суммы быстрых ставок; каждая строго выше текущей цены"""
    return [current_price + max(1, current_price * step // 100) for step in QUICK_BID_STEPS]


def get_bid_keyboard(auction_id: int, current_price: int) -> InlineKeyboardMarkup:
    """Клавиатура для ставки"""
    builder = InlineKeyboardBuilder()
    for amount in quick_bid_amounts(current_price):
        builder.add(InlineKeyboardButton(
            text=f"{amount:,}",
            callback_data=f"bid:amount:{auction_id}:{amount}"
        ))
    # Каждая кнопка в своей строке
    builder.adjust(1)
    return builder.as_markup()
