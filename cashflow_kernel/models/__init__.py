"""ORM models for the cashflow kernel."""

from cashflow_kernel.models.kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
