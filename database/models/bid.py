"""Модель ставки"""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, Index
from database.connection import Base, IdType


class Bid(Base):
    """Модель ставки на аукционе. После создания не изменяется."""
    __tablename__ = "bids"

    id = Column(IdType, primary_key=True, index=True)
    auction_id = Column(BigInteger, ForeignKey("auctions.id"), nullable=False, index=True)
    bidder_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Сумма ставки
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index("ix_bids_auction_amount", "auction_id", "amount"),
    )
