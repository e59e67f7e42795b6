from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import ExamStatusEnum

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    passing_score = Column(Float, nullable=False)
    price = Column(Float, nullable=False, default=0)
    status = Column(Enum(ExamStatusEnum), nullable=False, default=ExamStatusEnum.DRAFT)
    exam_date = Column(DateTime, nullable=True)
    exam_time = Column(String, nullable=True)  # "HH:MM"
    certificate_template_id = Column(Integer, ForeignKey("certificate_templates.id"), nullable=True)
    manual_review = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    academy = relationship("Academy", back_populates="exams")
    certificate_template = relationship("CertificateTemplate")
    questions = relationship(
        "Question", back_populates="exam", cascade="all, delete-orphan", order_by="Question.id"
    )
    enrollments = relationship("Enrollment", back_populates="exam")

    @property
    def is_published(self) -> bool:
        return self.status == ExamStatusEnum.PUBLISHED

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)
