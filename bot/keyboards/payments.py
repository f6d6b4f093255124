"""Клавиатуры для оплаты лота"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder


def get_payment_keyboard(product_id: int, amount: int) -> InlineKeyboardMarkup:
    """Кнопки подтверждения оплаты выигранного лота и отказа от покупки"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text=f"✅ Подтвердить оплату {amount:,}",
        callback_data=f"pay:{product_id}:{amount}"
    ))
    builder.add(InlineKeyboardButton(
        text="🚫 Отказаться от покупки",
        callback_data=f"payrefuse:{product_id}"
    ))
    builder.adjust(1)
    return builder.as_markup()
