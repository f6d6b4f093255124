"""Модель товара"""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from database.connection import Base, IdType


class Product(Base):
    """Модель товара, выставляемого на аукцион"""
    __tablename__ = "products"

    id = Column(IdType, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)  # Владелец лота
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
