from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from decimal import Decimal

from models.enums import ProjectStatus
from schemas.common import reject_null


class MilestoneCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_date: date | None = None
    sort_order: int | None = None


class MilestoneResponse(BaseModel):
    id: str
    name: str
    description: str | None
    due_date: date | None
    sort_order: int
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class ProjectCreate(BaseModel):
    client_id: str
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PROSPECT
    start_date: date | None = None
    end_date: date | None = None
    estimated_budget: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    milestones: list[MilestoneCreate] = []

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("La date de fin doit suivre la date de début")
        return self


class ProjectUpdate(BaseModel):
    client_id: str | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    estimated_budget: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    # Replaces every milestone when provided
    milestones: list[MilestoneCreate] | None = None

    check_not_null = reject_null("client_id", "name")


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class ProjectResponse(BaseModel):
    id: str
    organization_id: str
    client_id: str
    name: str
    description: str | None
    status: ProjectStatus
    start_date: date | None
    end_date: date | None
    estimated_budget: Decimal | None
    notes: str | None
    milestones: list[MilestoneResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int
