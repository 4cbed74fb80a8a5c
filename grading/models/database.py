"""
Database models for grading results.

One row per graded submission in ``grading_records`` and one row per test case
in ``grading_test_results``. Rows are only ever inserted, so a crash during a
run keeps every record written before it.
"""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, ForeignKey, Text, JSON
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class GradingRecordModel(Base):
    """
    Outcome of grading a single submission.

    ``max_score`` is the sum of all configured test weights, whether the
    tests ran or not.
    """
    __tablename__ = "grading_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(64), nullable=False, index=True)

    # Submission identity
    submission_id = Column(String(255), nullable=False, index=True)
    submission_name = Column(String(255), nullable=False)
    source_dir = Column(String(1000), nullable=False)
    repository_url = Column(String(500), nullable=True)

    # Outcome
    server_started = Column(Boolean, nullable=False, default=False)
    total_score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False, default=0.0)
    grade = Column(String(2), nullable=False)
    errors = Column(JSON, nullable=False, default=list)
    server_log = Column(Text, nullable=True)

    graded_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    tests = relationship(
        "TestResultModel",
        back_populates="record",
        order_by="TestResultModel.position",
        cascade="all, delete-orphan",
    )


class TestResultModel(Base):
    """Single weighted test case result belonging to a grading record."""
    __test__ = False
    __tablename__ = "grading_test_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("grading_records.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    name = Column(String(255), nullable=False)
    passed = Column(Boolean, nullable=False)
    skipped = Column(Boolean, nullable=False, default=False)
    points = Column(Integer, nullable=False)
    max_points = Column(Integer, nullable=False)
    detail = Column(Text, nullable=True)

    record = relationship("GradingRecordModel", back_populates="tests")
