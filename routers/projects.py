"""API routes for projects and their milestones."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, select

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.base import utcnow
from models.client import Client
from models.enums import AuditAction, ProjectStatus
from models.organization import Organization
from models.project import Project, ProjectMilestone
from models.user import User
from routers.common import get_owned_or_404, paginate
from schemas.project import (
    MilestoneCreate,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatusUpdate,
    ProjectUpdate,
)
from services.audit import log_action
from services.workflow import assert_transition

router = APIRouter(tags=["projects"])


def _milestones(items: list[MilestoneCreate]) -> list[ProjectMilestone]:
    return [
        ProjectMilestone(
            name=item.name,
            description=item.description,
            due_date=item.due_date,
            sort_order=item.sort_order if item.sort_order is not None else index,
        )
        for index, item in enumerate(items)
    ]


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = None,
    status: ProjectStatus | None = None,
    client_id: str | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(Project).where(Project.organization_id == organization.id)
    if search:
        query = query.where(Project.name.ilike(f"%{search}%"))
    if status:
        query = query.where(Project.status == status)
    if client_id:
        query = query.where(Project.client_id == client_id)

    projects, total = paginate(db, query.order_by(Project.created_at.desc()), page, limit)
    return ProjectListResponse(projects=projects, total=total)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    get_owned_or_404(db, Client, data.client_id, organization.id, "Client")
    project = Project(organization_id=organization.id, **data.model_dump(exclude={"milestones"}))
    project.milestones = _milestones(data.milestones)
    db.add(project)
    db.flush()
    log_action(db, organization.id, AuditAction.CREATE, "project", project.id, current_user.id,
               new_values={"name": project.name, "client_id": project.client_id})
    db.commit()
    db.refresh(project)
    return project


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, Project, project_id, organization.id, "Project")


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Update a project; milestones are replaced when provided."""
    project = get_owned_or_404(db, Project, project_id, organization.id, "Project")
    changes = data.model_dump(exclude_unset=True, exclude={"milestones"})
    if changes.get("client_id"):
        get_owned_or_404(db, Client, changes["client_id"], organization.id, "Client")
    for key, value in changes.items():
        setattr(project, key, value)
    if project.start_date and project.end_date and project.end_date < project.start_date:
        raise HTTPException(status_code=400, detail="La date de fin doit suivre la date de début")
    if data.milestones is not None:
        project.milestones = _milestones(data.milestones)
    project.updated_at = utcnow()

    db.add(project)
    log_action(db, organization.id, AuditAction.UPDATE, "project", project.id, current_user.id, new_values=changes)
    db.commit()
    db.refresh(project)
    return project


@router.post("/projects/{project_id}/status", response_model=ProjectResponse)
async def change_project_status(
    project_id: str,
    data: ProjectStatusUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    project = get_owned_or_404(db, Project, project_id, organization.id, "Project")
    assert_transition("project", project.status, data.status)
    old_status = project.status
    project.status = data.status
    project.updated_at = utcnow()
    db.add(project)
    log_action(db, organization.id, AuditAction.STATUS_CHANGE, "project", project.id, current_user.id,
               old_values={"status": old_status}, new_values={"status": data.status})
    db.commit()
    db.refresh(project)
    return project


@router.post("/projects/{project_id}/milestones/{milestone_id}/complete", response_model=ProjectResponse)
async def complete_milestone(
    project_id: str,
    milestone_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    project = get_owned_or_404(db, Project, project_id, organization.id, "Project")
    milestone = db.get(ProjectMilestone, milestone_id)
    if not milestone or milestone.project_id != project.id:
        raise HTTPException(status_code=404, detail="Milestone not found")
    if milestone.completed_at is None:
        milestone.completed_at = utcnow()
        db.add(milestone)
        log_action(db, organization.id, AuditAction.UPDATE, "project", project.id, current_user.id,
                   new_values={"milestone_id": milestone.id, "completed_at": milestone.completed_at})
        db.commit()
    db.refresh(project)
    return project


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    project = get_owned_or_404(db, Project, project_id, organization.id, "Project")
    log_action(db, organization.id, AuditAction.DELETE, "project", project.id, current_user.id,
               old_values={"name": project.name, "status": project.status})
    db.delete(project)
    db.commit()
