import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Integer, LargeBinary, Numeric, String, Text, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class TransactionType(str, enum.Enum):
    LOAD = "LOAD"
    SPEND = "SPEND"
    REFUND = "REFUND"


class Student(Base):
    __tablename__ = "student"
    __table_args__ = (
        CheckConstraint("semester >= 1", name="ck_student_semester"),
    )

    id = Column(Integer, primary_key=True, index=True)
    version = Column(Integer, nullable=False, default=0, server_default="0")
    matriculation_number = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    semester = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    wallet = relationship(
        "Wallet", back_populates="student", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )
    transactions = relationship(
        "Transaction", back_populates="student", order_by="Transaction.id",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    file = relationship(
        "StudentFile", back_populates="student", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )


class Wallet(Base):
    __tablename__ = "wallet"

    id = Column(Integer, primary_key=True, index=True)
    version = Column(Integer, nullable=False, default=0, server_default="0")
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    auto_reload_enabled = Column(Boolean, nullable=False, default=False)
    auto_reload_threshold = Column(Numeric(12, 2), nullable=False, default=0)
    auto_reload_amount = Column(Numeric(12, 2), nullable=False, default=0)
    last_reloaded = Column(DateTime(timezone=True), nullable=True)
    student_id = Column(Integer, ForeignKey("student.id", ondelete="CASCADE"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="wallet")


class Transaction(Base):
    __tablename__ = "transaction"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(TransactionType, name="transaction_type"), nullable=False)
    reference = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    student_id = Column(Integer, ForeignKey("student.id", ondelete="CASCADE"), nullable=False, index=True)

    student = relationship("Student", back_populates="transactions")


class StudentFile(Base):
    __tablename__ = "student_file"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String, nullable=False)
    data = Column(LargeBinary, nullable=False)
    mimetype = Column(String, nullable=True)
    student_id = Column(Integer, ForeignKey("student.id", ondelete="CASCADE"), nullable=False, unique=True)

    student = relationship("Student", back_populates="file")
