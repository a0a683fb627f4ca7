"""
Status workflows for quotes, invoices, contracts and projects.

Each table maps a status to the statuses it may move to. Terminal statuses
map to an empty set.
"""

import logging
from decimal import Decimal

from core.exceptions import BusinessRuleError, InvalidTransitionError
from models.enums import ContractStatus, InvoiceStatus, InvoiceType, ProjectStatus, QuoteStatus

logger = logging.getLogger(__name__)

QUOTE_STATUS_TRANSITIONS: dict[QuoteStatus, set[QuoteStatus]] = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT, QuoteStatus.REJECTED},
    QuoteStatus.SENT: {QuoteStatus.VIEWED, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.VIEWED: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: {QuoteStatus.PARTIALLY_INVOICED, QuoteStatus.FULLY_INVOICED},
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: {QuoteStatus.SENT},
    QuoteStatus.PARTIALLY_INVOICED: {QuoteStatus.FULLY_INVOICED},
    QuoteStatus.FULLY_INVOICED: set(),
}

INVOICE_STATUS_TRANSITIONS: dict[InvoiceStatus, set[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.CANCELLED},
    InvoiceStatus.SENT: {
        InvoiceStatus.VIEWED, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.VIEWED: {
        InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    },
    InvoiceStatus.PARTIALLY_PAID: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: {InvoiceStatus.REFUNDED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.CANCELLED: set(),
    InvoiceStatus.REFUNDED: set(),
}

CONTRACT_STATUS_TRANSITIONS: dict[ContractStatus, set[ContractStatus]] = {
    ContractStatus.DRAFT: {ContractStatus.ACTIVE, ContractStatus.TERMINATED},
    ContractStatus.ACTIVE: {
        ContractStatus.RENEWAL_PENDING, ContractStatus.RENEWED,
        ContractStatus.TERMINATED, ContractStatus.EXPIRED,
    },
    ContractStatus.RENEWAL_PENDING: {
        ContractStatus.ACTIVE, ContractStatus.RENEWED,
        ContractStatus.TERMINATED, ContractStatus.EXPIRED,
    },
    ContractStatus.RENEWED: set(),
    ContractStatus.TERMINATED: set(),
    ContractStatus.EXPIRED: set(),
}

PROJECT_STATUS_TRANSITIONS: dict[ProjectStatus, set[ProjectStatus]] = {
    ProjectStatus.PROSPECT: {
        ProjectStatus.QUOTED, ProjectStatus.IN_PROGRESS, ProjectStatus.ON_HOLD, ProjectStatus.CANCELLED,
    },
    ProjectStatus.QUOTED: {
        ProjectStatus.PROSPECT, ProjectStatus.IN_PROGRESS, ProjectStatus.ON_HOLD, ProjectStatus.CANCELLED,
    },
    ProjectStatus.IN_PROGRESS: {ProjectStatus.ON_HOLD, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED},
    ProjectStatus.ON_HOLD: {ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED},
    # A completed project can only be reopened
    ProjectStatus.COMPLETED: {ProjectStatus.IN_PROGRESS},
    ProjectStatus.CANCELLED: set(),
}

# Invoice types: quote status they lead to and what they must be attached to
INVOICE_TYPE_WORKFLOWS: dict[InvoiceType, dict] = {
    InvoiceType.STANDARD: {
        "updates_quote_status": QuoteStatus.FULLY_INVOICED,
        "requires_quote": False,
        "requires_parent": False,
        "requires_contract": False,
        "description": "Facture standard complète",
    },
    InvoiceType.DEPOSIT: {
        "updates_quote_status": QuoteStatus.PARTIALLY_INVOICED,
        "requires_quote": True,
        "requires_parent": False,
        "requires_contract": False,
        "description": "Facture d'acompte (nécessite un devis avec acompte)",
    },
    InvoiceType.FINAL: {
        "updates_quote_status": QuoteStatus.FULLY_INVOICED,
        "requires_quote": True,
        "requires_parent": True,
        "requires_contract": False,
        "description": "Facture de solde (complément d'un acompte)",
    },
    InvoiceType.CREDIT_NOTE: {
        "updates_quote_status": None,
        "requires_quote": False,
        "requires_parent": True,
        "requires_contract": False,
        "description": "Avoir (remboursement ou annulation)",
    },
    InvoiceType.RECURRING: {
        "updates_quote_status": None,
        "requires_quote": False,
        "requires_parent": False,
        "requires_contract": True,
        "description": "Facture récurrente (basée sur un contrat)",
    },
}

DEPOSIT_MIN_PAYMENT_PERCENT = Decimal("1")

# Statuses in which an invoice still expects money
PAYABLE_INVOICE_STATUSES = {
    InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE,
}

INVOICE_TYPE_LABELS = {
    InvoiceType.STANDARD: "Facture",
    InvoiceType.DEPOSIT: "Facture d'acompte",
    InvoiceType.FINAL: "Facture de solde",
    InvoiceType.CREDIT_NOTE: "Avoir",
    InvoiceType.RECURRING: "Facture récurrente",
}

QUOTE_STATUS_LABELS = {
    QuoteStatus.DRAFT: "Brouillon",
    QuoteStatus.SENT: "Envoyé",
    QuoteStatus.VIEWED: "Consulté",
    QuoteStatus.ACCEPTED: "Accepté",
    QuoteStatus.REJECTED: "Refusé",
    QuoteStatus.EXPIRED: "Expiré",
    QuoteStatus.PARTIALLY_INVOICED: "Partiellement facturé",
    QuoteStatus.FULLY_INVOICED: "Entièrement facturé",
}

INVOICE_STATUS_LABELS = {
    InvoiceStatus.DRAFT: "Brouillon",
    InvoiceStatus.SENT: "Envoyée",
    InvoiceStatus.VIEWED: "Consultée",
    InvoiceStatus.PARTIALLY_PAID: "Partiellement payée",
    InvoiceStatus.PAID: "Payée",
    InvoiceStatus.OVERDUE: "En retard",
    InvoiceStatus.CANCELLED: "Annulée",
    InvoiceStatus.REFUNDED: "Remboursée",
}

_TABLES = {
    "quote": (QuoteStatus, QUOTE_STATUS_TRANSITIONS),
    "invoice": (InvoiceStatus, INVOICE_STATUS_TRANSITIONS),
    "contract": (ContractStatus, CONTRACT_STATUS_TRANSITIONS),
    "project": (ProjectStatus, PROJECT_STATUS_TRANSITIONS),
}

# List filter aliases
QUOTE_STATUS_ALIASES = {
    "converted": [QuoteStatus.PARTIALLY_INVOICED, QuoteStatus.FULLY_INVOICED],
}


def quote_status_filter(value: str) -> list[QuoteStatus]:
    """Statuses matched by a quote list ``status`` filter (raises ValueError if unknown)."""
    if value in QUOTE_STATUS_ALIASES:
        return QUOTE_STATUS_ALIASES[value]
    return [QuoteStatus(value)]


def can_transition(entity: str, current, target) -> bool:
    status_enum, table = _TABLES[entity]
    return status_enum(target) in table[status_enum(current)]


def assert_transition(entity: str, current, target) -> None:
    if not can_transition(entity, current, target):
        status_enum, _ = _TABLES[entity]
        logger.warning("Refused %s transition %s -> %s", entity, current, target)
        raise InvalidTransitionError(entity, status_enum(current).value, status_enum(target).value)


def allowed_transitions(entity: str, current) -> list[str]:
    status_enum, table = _TABLES[entity]
    return sorted(s.value for s in table[status_enum(current)])


def check_final_invoice_allowed(deposit, existing_final_count: int) -> None:
    """Raise unless a final invoice may be issued for ``deposit``."""
    if deposit.type != InvoiceType.DEPOSIT:
        raise BusinessRuleError("Cette facture n'est pas un acompte")
    if not deposit.quote_id:
        raise BusinessRuleError("Impossible de trouver le devis d'origine")
    if deposit.status not in (InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID):
        raise BusinessRuleError("L'acompte doit être réglé avant d'émettre la facture de solde")
    total = deposit.total_ttc or Decimal("0")
    paid_percent = (deposit.amount_paid / total * 100) if total > 0 else Decimal("0")
    if paid_percent < DEPOSIT_MIN_PAYMENT_PERCENT:
        raise BusinessRuleError("L'acompte doit être réglé avant d'émettre la facture de solde")
    if existing_final_count > 0:
        raise BusinessRuleError("Une facture de solde existe déjà pour cet acompte")
