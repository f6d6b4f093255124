"""Тексты ответов пользователю"""
from typing import Optional

from services.errors import ErrorKind

ERROR_MESSAGES = {
    ErrorKind.AUCTION_NOT_FOUND: "❌ Аукцион не найден",
    ErrorKind.AUCTION_NOT_ACTIVE: "❌ Аукцион уже завершён, ставки не принимаются",
    ErrorKind.OWNER_CANNOT_BID: "❌ Нельзя делать ставки на свой лот",
    ErrorKind.BID_TOO_LOW: "❌ Ставка должна быть выше текущей цены",
    ErrorKind.NO_BIDS_ON_AUCTION: "❌ На аукционе нет ставок",
    ErrorKind.UNAUTHORIZED_PAYMENT: "❌ Оплата по этому лоту ожидается не от вас",
    ErrorKind.PAYMENT_WINDOW_EXPIRED: "⏰ Время на оплату истекло, лот передан следующему участнику",
    ErrorKind.INVALID_PAYMENT_AMOUNT: "❌ Сумма не совпадает с вашей ставкой, оплата отклонена",
    ErrorKind.NO_ELIGIBLE_BIDDER_REMAINING: "❌ Не осталось участников, которые могут оплатить лот",
    ErrorKind.PAYMENT_ATTEMPT_NOT_FOUND: "❌ По этому лоту нет ожидающей оплаты",
    ErrorKind.AUCTION_NOT_AWAITING_PAYMENT: "❌ Аукцион не ожидает оплаты",
    ErrorKind.RETRY_LIMIT_REACHED: "❌ Исчерпано число попыток оплаты, аукцион не состоялся",
    ErrorKind.INVALID_AUCTION_DURATION: "❌ Недопустимая длительность аукциона",
}

CONFLICT_MESSAGE = "⚠️ Сейчас много запросов, попробуйте ещё раз"

BID_USAGE = "Использование: /bid &lt;номер аукциона&gt; &lt;сумма&gt;"
PAY_USAGE = "Использование: /pay &lt;номер товара&gt; &lt;сумма&gt;"
NEW_AUCTION_USAGE = "Использование: /newauction &lt;начальная цена&gt; &lt;длительность в минутах&gt; &lt;название&gt;"


def describe_error(kind: ErrorKind) -> str:
    """Сообщение для пользователя по виду отказа"""
    return ERROR_MESSAGES.get(kind, "❌ Не удалось выполнить операцию")


def parse_int_args(text: Optional[str], count: int) -> Optional[list[int]]:
    """Разобрать аргументы команды вида "/cmd 1 2".

    Возвращает None, если аргументов не столько, сколько нужно,
    или они не целые положительные числа.
    """
    if not text:
        return None
    parts = text.split()[1:]
    if len(parts) != count:
        return None
    try:
        values = [int(part) for part in parts]
    except ValueError:
        return None
    if any(value <= 0 for value in values):
        return None
    return values


def parse_callback_ints(data: Optional[str], prefix: str, count: int) -> Optional[list[int]]:
    """Разобрать callback_data вида "prefix:1:2" """
    if not data or not data.startswith(prefix):
        return None
    parts = data[len(prefix):].split(":")
    if len(parts) != count:
        return None
    try:
        return [int(part) for part in parts]
    except ValueError:
        return None


def parse_new_auction(text: Optional[str]) -> Optional[tuple[int, int, str]]:
    """Разобрать "/newauction <начальная цена> <минуты> <название>" """
    if not text:
        return None
    parts = text.split(maxsplit=3)
    if len(parts) != 4:
        return None
    try:
        start_price, duration_minutes = int(parts[1]), int(parts[2])
    except ValueError:
        return None
    title = parts[3].strip()
    if not title:
        return None
    return start_price, duration_minutes, title
