"""SQLModel ORM tables for the task store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, PrimaryKeyConstraint, String
from sqlmodel import Field, SQLModel

TITLE_MAX_LENGTH = 100


class Skill(SQLModel, table=True):
    __tablename__ = "skills"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), unique=True, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Developer(SQLModel, table=True):
    __tablename__ = "developers"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), unique=True, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class DeveloperSkill(SQLModel, table=True):
    __tablename__ = "developer_skills"  # type: ignore[bad-override]
    __table_args__ = (
        PrimaryKeyConstraint("developer_id", "skill_id", name="pk_developer_skills"),
    )

    developer_id: int = Field(
        sa_column=Column(
            ForeignKey("developers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    skill_id: int = Field(
        sa_column=Column(
            ForeignKey("skills.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )


class Task(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(
        sa_column=Column(String(TITLE_MAX_LENGTH), unique=True, nullable=False),
    )
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    developer_id: int | None = Field(
        default=None,
        sa_column=Column(
            ForeignKey("developers.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )
    parent_task_id: int | None = Field(
        default=None,
        sa_column=Column(
            ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class TaskSkill(SQLModel, table=True):
    __tablename__ = "task_skills"  # type: ignore[bad-override]
    __table_args__ = (PrimaryKeyConstraint("task_id", "skill_id", name="pk_task_skills"),)

    task_id: int = Field(
        sa_column=Column(
            ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    skill_id: int = Field(
        sa_column=Column(
            ForeignKey("skills.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
