"""SQLAlchemy ORM model for tasks table"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
)

from app.db.base import Base


class Task(Base):
    """
    SQLAlchemy ORM model for the tasks table.
    Timestamps are written by the repository so that updated_at can be
    guaranteed to advance on every mutation.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"),
        CheckConstraint("length(title) > 0", name="ck_tasks_title_not_empty"),
    )

    # Primary key; SQLite only autoincrements a plain INTEGER PRIMARY KEY
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)

    # Task information
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True, index=True)
    priority = Column(String(10), nullable=False, default="medium")
    completed = Column(Boolean, nullable=False, default=False, index=True)

    # Ordered list of tag strings, serialized as JSON
    tags = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title='{self.title}', completed={self.completed})>"
