"""Модель истории продлений аукциона"""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey
from database.connection import Base, IdType


class ExtensionHistory(Base):
    """Запись о продлении аукциона из-за поздней ставки"""
    __tablename__ = "extension_history"

    id = Column(IdType, primary_key=True, index=True)
    auction_id = Column(BigInteger, ForeignKey("auctions.id"), nullable=False, index=True)
    extended_at = Column(DateTime(timezone=True), nullable=False)
    previous_expiry = Column(DateTime(timezone=True), nullable=False)
    new_expiry = Column(DateTime(timezone=True), nullable=False)
