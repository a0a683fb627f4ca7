"""Schemas package for API request/response models."""

from schemas.client import ClientCreate, ClientUpdate, ClientResponse, ClientListResponse
from schemas.quote import QuoteCreate, QuoteUpdate, QuoteResponse, QuoteLineCreate, QuoteLineResponse
from schemas.invoice import InvoiceCreate, InvoiceUpdate, InvoiceResponse, InvoiceLineCreate, InvoiceLineResponse

__all__ = [
    "ClientCreate",
    "ClientUpdate",
    "ClientResponse",
    "ClientListResponse",
    "QuoteCreate",
    "QuoteUpdate",
    "QuoteResponse",
    "QuoteLineCreate",
    "QuoteLineResponse",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "InvoiceLineCreate",
    "InvoiceLineResponse",
]
