from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import EnrollmentStatusEnum

class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_enrollments_student_exam"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    status = Column(Enum(EnrollmentStatusEnum), nullable=False, default=EnrollmentStatusEnum.PURCHASED)
    started_at = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=True)  # fixed at start from the exam duration
    completed_at = Column(DateTime, nullable=True)
    score = Column(Integer, nullable=True)
    certificate_id = Column(String, nullable=True)  # certificate number once issued
    is_assigned = Column(Boolean, nullable=False, default=False)
    assigned_by_academy_id = Column(Integer, ForeignKey("academies.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    student = relationship("User", back_populates="enrollments")
    exam = relationship("Exam", back_populates="enrollments")
    attempts = relationship("Attempt", back_populates="enrollment", cascade="all, delete-orphan")
    certificate = relationship("Certificate", back_populates="enrollment", uselist=False)
