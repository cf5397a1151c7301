"""SQLAlchemy database models for the flow builder service."""

from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Text, JSON, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base


class WorkflowModel(Base):
    """Database model for workflows."""
    __tablename__ = "workflows"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    definition = Column(JSON, nullable=False)  # nodes and edges as authored in the builder
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    documents = relationship("DocumentModel", back_populates="workflow", cascade="all, delete-orphan")
    sessions = relationship("ChatSessionModel", back_populates="workflow", cascade="all, delete-orphan")


class DocumentModel(Base):
    """Database model for knowledge base documents."""
    __tablename__ = "documents"

    id = Column(String, primary_key=True)
    workflow_id = Column(String, ForeignKey("workflows.id"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    file_type = Column(String, nullable=False, default="text/plain")
    file_size = Column(Integer, nullable=False, default=0)
    upload_date = Column(DateTime, default=datetime.utcnow)

    workflow = relationship("WorkflowModel", back_populates="documents")


class ChatSessionModel(Base):
    """Database model for chat sessions."""
    __tablename__ = "chat_sessions"

    id = Column(String, primary_key=True)
    workflow_id = Column(String, ForeignKey("workflows.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    workflow = relationship("WorkflowModel", back_populates="sessions")
    messages = relationship("ChatMessageModel", back_populates="session", cascade="all, delete-orphan")


class ChatMessageModel(Base):
    """Database model for chat messages."""
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, ForeignKey("chat_sessions.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text)
    message_type = Column(String, nullable=False)  # user, assistant
    created_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("ChatSessionModel", back_populates="messages")


class ExecutionLogModel(Base):
    """Database model for per-step execution logs.

    Not tied to workflows by foreign key: the audit trail outlives the workflow.
    """
    __tablename__ = "execution_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(String, nullable=False, index=True)
    session_id = Column(String, nullable=False, index=True)
    component_type = Column(String, nullable=False)
    input_data = Column(JSON)
    output_data = Column(JSON)
    execution_time_ms = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False)  # success, error
    error_message = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
