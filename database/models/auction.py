"""Модель аукциона"""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class AuctionStatus(str, enum.Enum):
    """Статус аукциона"""
    ACTIVE = "active"  # Идут торги
    PENDING_PAYMENT = "pending_payment"  # Ожидает оплаты от победителя
    COMPLETED = "completed"  # Оплачен
    FAILED = "failed"  # Нет ставок или никто не оплатил


class Auction(Base):
    """Модель аукциона"""
    __tablename__ = "auctions"

    id = Column(IdType, primary_key=True, index=True)
    product_id = Column(BigInteger, ForeignKey("products.id"), unique=True, nullable=False, index=True)
    start_price = Column(Integer, nullable=False)  # Начальная цена
    status = Column(String(50), default=AuctionStatus.ACTIVE.value, nullable=False, index=True)
    expiry_time = Column(DateTime(timezone=True), nullable=False, index=True)
    # Текущая лидирующая ставка; ссылка на bids создаётся после обеих таблиц
    highest_bid_id = Column(
        BigInteger,
        ForeignKey("bids.id", use_alter=True, name="fk_auctions_highest_bid_id"),
        nullable=True,
    )
    extension_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    version_id = Column(Integer, nullable=False)

    # Связи
    product = relationship("Product", lazy="joined")

    __mapper_args__ = {"version_id_col": version_id}
