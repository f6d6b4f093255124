"""Модель попытки оплаты"""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, String, Index, UniqueConstraint, text
import enum
from database.connection import Base, IdType


class PaymentStatus(str, enum.Enum):
    """Статус попытки оплаты"""
    PENDING = "pending"  # Ожидает подтверждения
    SUCCESS = "success"  # Оплачено
    FAILED = "failed"  # Отклонено или истекло окно оплаты


class PaymentAttempt(Base):
    """Возможность оплатить лот, выданная одному участнику торгов.

    Первая попытка достаётся лидеру торгов, каждая следующая -
    очередному участнику по убыванию ставки. Из PENDING статус
    меняется ровно один раз.
    """
    __tablename__ = "payment_attempts"

    id = Column(IdType, primary_key=True, index=True)
    auction_id = Column(BigInteger, ForeignKey("auctions.id"), nullable=False, index=True)
    bidder_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(50), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    attempt_time = Column(DateTime(timezone=True), nullable=False)
    expiry_time = Column(DateTime(timezone=True), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Сумма к оплате (ставка участника)
    confirmed_amount = Column(Integer, nullable=True)  # Сумма, подтверждённая участником
    version_id = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("auction_id", "attempt_number", name="uq_payment_attempts_auction_number"),
        # Не более одной ожидающей попытки на аукцион
        Index(
            "uq_payment_attempts_one_pending",
            "auction_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    __mapper_args__ = {"version_id_col": version_id}
