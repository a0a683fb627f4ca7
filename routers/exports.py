"""CSV exports (Excel-friendly: UTF-8 BOM, semicolon separated)."""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from core.security import get_current_organization
from db.session import get_session
from models.organization import Organization
from services.exports import EXPORTERS, export_filename, export_revenue

router = APIRouter(tags=["exports"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/export/revenue")
async def export_revenue_book(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Livre des recettes of the received payments."""
    return _csv_response(export_revenue(db, organization.id), export_filename("livre_recettes"))


@router.get("/export/{entity}")
async def export_entity(
    entity: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    exporter = EXPORTERS.get(entity)
    if exporter is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown export '{entity}', expected one of: {', '.join(sorted(EXPORTERS))}",
        )
    return _csv_response(exporter(db, organization.id), export_filename(entity))
