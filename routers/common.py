"""Helpers shared by the API routers."""

from fastapi import HTTPException, Request
from sqlmodel import Session, select, func


def get_owned_or_404(db: Session, model, record_id: str, organization_id: str, label: str):
    """Fetch a record of the organization, 404 otherwise (foreign records look missing)."""
    record = db.get(model, record_id)
    if not record or record.organization_id != organization_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record


def paginate(db: Session, statement, page: int, limit: int):
    """Return (rows of the requested page, total row count) for ``statement``."""
    total = db.exec(select(func.count()).select_from(statement.subquery())).one()
    rows = db.exec(statement.offset((page - 1) * limit).limit(limit)).all()
    return rows, total


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
