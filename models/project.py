from sqlmodel import SQLModel, Field, Relationship
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import ProjectStatus


class Project(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    client_id: str = Field(foreign_key="client.id", index=True)

    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None)
    status: ProjectStatus = Field(default=ProjectStatus.PROSPECT)
    start_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    estimated_budget: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    milestones: list["ProjectMilestone"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "ProjectMilestone.sort_order",
        },
    )


class ProjectMilestone(SQLModel, table=True):
    __tablename__ = "project_milestone"

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: str = Field(foreign_key="project.id", index=True)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None)
    due_date: Optional[date] = Field(default=None)
    sort_order: int = Field(default=0)
    completed_at: Optional[datetime] = Field(default=None)

    project: Optional[Project] = Relationship(back_populates="milestones")
