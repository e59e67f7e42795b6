from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import ExamPurchaseStatusEnum

class ExamPurchase(Base):
    __tablename__ = "exam_purchases"
    __table_args__ = (
        UniqueConstraint("academy_id", "exam_id", name="uq_exam_purchases_academy_exam"),
        CheckConstraint("used_quantity >= 0 AND used_quantity <= quantity", name="ck_exam_purchases_used_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    used_quantity = Column(Integer, nullable=False, default=0)
    total_price = Column(Float, nullable=False, default=0)
    status = Column(Enum(ExamPurchaseStatusEnum), nullable=False, default=ExamPurchaseStatusEnum.ACTIVE)
    payment_id = Column(String, nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    academy = relationship("Academy", back_populates="purchases")
    exam = relationship("Exam")
    payments = relationship("ExamPurchasePayment", back_populates="purchase", cascade="all, delete-orphan")

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - self.used_quantity


class ExamPurchasePayment(Base):
    __tablename__ = "exam_purchase_payments"

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("exam_purchases.id"), nullable=False, index=True)
    payment_id = Column(String, unique=True, index=True, nullable=False)
    quantity = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    purchase = relationship("ExamPurchase", back_populates="payments")
