"""Repositories layer - Data access and persistence.

Repositories handle the guarded UPDATE ... RETURNING statements that move
jobs and pages between states, so concurrent workers never double-claim.
"""

from pagegen.repositories.generation_job import (
    GenerationJobRepository,
    JobPageRepository,
)

__all__ = ["GenerationJobRepository", "JobPageRepository"]
