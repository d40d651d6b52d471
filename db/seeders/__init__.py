"""Per-entity demo-data seeders and the orchestrator that runs them in dependency order."""

from db.seeders.orchestrator import SeederService

__all__ = ["SeederService"]
