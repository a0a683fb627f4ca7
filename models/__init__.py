"""Models package for database entities."""

from models.enums import (
    AuditAction,
    BillingFrequency,
    ContractStatus,
    DeclarationStatus,
    InvoiceStatus,
    InvoiceType,
    ObligationStatus,
    ObligationType,
    PaymentMethod,
    PaymentStatus,
    PipelineStage,
    ProjectStatus,
    QuoteStatus,
    TaxStatus,
    TvaRegime,
    UserRole,
)
from models.user import User
from models.auth import Session, Account
from models.organization import Organization, UserOrganization
from models.client import Client
from models.project import Project, ProjectMilestone
from models.quote import Quote, QuoteLine
from models.invoice import Invoice, InvoiceLine
from models.payment import Payment
from models.contract import Contract
from models.declaration import TvaDeclaration
from models.fiscal import FiscalConfig, FiscalObligationOverride
from models.audit import AuditLog

__all__ = [
    "AuditAction",
    "BillingFrequency",
    "ContractStatus",
    "DeclarationStatus",
    "InvoiceStatus",
    "InvoiceType",
    "ObligationStatus",
    "ObligationType",
    "PaymentMethod",
    "PaymentStatus",
    "PipelineStage",
    "ProjectStatus",
    "QuoteStatus",
    "TaxStatus",
    "TvaRegime",
    "UserRole",
    "User",
    "Session",
    "Account",
    "Organization",
    "UserOrganization",
    "Client",
    "Project",
    "ProjectMilestone",
    "Quote",
    "QuoteLine",
    "Invoice",
    "InvoiceLine",
    "Payment",
    "Contract",
    "TvaDeclaration",
    "FiscalConfig",
    "FiscalObligationOverride",
    "AuditLog",
]
