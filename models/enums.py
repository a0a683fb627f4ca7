from enum import Enum


class TaxStatus(str, Enum):
    """Fiscal status for VAT calculation."""
    FRANCHISE = "FRANCHISE"  # TVA non applicable (Art. 293 B du CGI)
    ASSUJETTI = "ASSUJETTI"  # TVA applicable


class UserRole(str, Enum):
    """Membership roles inside an organization."""
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"


class PipelineStage(str, Enum):
    """Commercial pipeline stage of a client."""
    PROSPECT = "prospect"
    CONTACT_MADE = "contact_made"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATION = "negotiation"
    ACTIVE = "active"
    INACTIVE = "inactive"
    LOST = "lost"


class ProjectStatus(str, Enum):
    PROSPECT = "prospect"
    QUOTED = "quoted"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QuoteStatus(str, Enum):
    """Quote lifecycle statuses."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    PARTIALLY_INVOICED = "partially_invoiced"
    FULLY_INVOICED = "fully_invoiced"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle statuses."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class InvoiceType(str, Enum):
    STANDARD = "standard"
    DEPOSIT = "deposit"
    FINAL = "final"
    CREDIT_NOTE = "credit_note"
    RECURRING = "recurring"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CARD = "card"
    CASH = "cash"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    OTHER = "other"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    RENEWAL_PENDING = "renewal_pending"
    RENEWED = "renewed"
    TERMINATED = "terminated"
    EXPIRED = "expired"


class BillingFrequency(str, Enum):
    """Billing cadence of a contract."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"


class DeclarationStatus(str, Enum):
    PENDING = "pending"
    DECLARED = "declared"
    PAID = "paid"


class TvaRegime(str, Enum):
    """TVA regimes supported by the fiscal calendar."""
    REEL_SIMPLIFIE = "reel_simplifie"  # CA12 + 2 acomptes, art. 287 III CGI
    REEL_NORMAL = "reel_normal"
    FRANCHISE_BASE = "franchise_base"


class ObligationType(str, Enum):
    TVA_ACOMPTE = "TVA_ACOMPTE"
    TVA_CA12 = "TVA_CA12"
    LIASSE = "LIASSE"
    CFE = "CFE"
    URSSAF = "URSSAF"
    OTHER = "OTHER"


class ObligationStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    PDF_GENERATED = "pdf_generated"
    EMAIL_SENT = "email_sent"
    PAYMENT_RECEIVED = "payment_received"
    DUPLICATE = "duplicate"
    CONVERT = "convert"
