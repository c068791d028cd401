"""Composition layer: builds and wires the kernel components."""

from cashflow_services.ledger_orchestrator import LedgerOrchestrator, build_backend

__all__ = ["LedgerOrchestrator", "build_backend"]
