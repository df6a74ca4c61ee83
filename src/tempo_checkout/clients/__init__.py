"""
Client module for the hosted persistence service.

Provides an ``InvoiceStore`` over Supabase's PostgREST interface.
"""

from .supabase_client import SupabaseClient, SupabaseInvoiceStore

__all__ = ["SupabaseClient", "SupabaseInvoiceStore"]
