"""Reconciliation of event histories into pin-sets."""

from event_pinner.reconcile.cycle import ReconcileCycle, ResolvedEventType
from event_pinner.reconcile.reconciler import Reconciler

__all__ = ["ReconcileCycle", "Reconciler", "ResolvedEventType"]
