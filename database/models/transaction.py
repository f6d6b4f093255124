"""Модель транзакции"""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, String
import enum
from database.connection import Base, IdType


class TransactionStatus(str, enum.Enum):
    """Итог подтверждения оплаты"""
    SUCCESS = "success"
    FAILED = "failed"


class Transaction(Base):
    """Неизменяемая запись об итоге попытки оплаты"""
    __tablename__ = "transactions"

    id = Column(IdType, primary_key=True, index=True)
    payment_attempt_id = Column(BigInteger, ForeignKey("payment_attempts.id"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    amount = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
