from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from routine_app.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class RoutineTemplate(Base):
    __tablename__ = "routine_templates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    default_end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    tasks: Mapped[list[RoutineTemplateTask]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="RoutineTemplateTask.sort_key",
    )


class RoutineTemplateTask(Base):
    __tablename__ = "routine_template_tasks"

    # Task ids are only unique within their template.
    template_id: Mapped[str] = mapped_column(
        ForeignKey("routine_templates.id", ondelete="CASCADE"), primary_key=True
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    target_offset_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_key: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    template: Mapped[RoutineTemplate] = relationship(back_populates="tasks")


class RoutineRun(Base):
    __tablename__ = "routine_runs"
    __table_args__ = (
        Index("ix_routine_runs_status_started_at", "status", "started_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    # Weak reference: runs outlive their template.
    template_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    target_end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    canceled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    tasks: Mapped[list[RoutineRunTask]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="RoutineRunTask.sort_key",
    )


class RoutineRunTask(Base):
    __tablename__ = "routine_run_tasks"
    __table_args__ = (
        Index("ix_routine_run_tasks_run_id_sort_key", "run_id", "sort_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    run_id: Mapped[str] = mapped_column(
        ForeignKey("routine_runs.id", ondelete="CASCADE"), nullable=False
    )
    template_task_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    target_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sort_key: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    run: Mapped[RoutineRun] = relationship(back_populates="tasks")
