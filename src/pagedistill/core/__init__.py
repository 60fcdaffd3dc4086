"""The distill pipeline."""

from .distiller import Distiller, create_provider, distill, distill_blocking

__all__ = ["Distiller", "create_provider", "distill", "distill_blocking"]
