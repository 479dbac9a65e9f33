"""Design-document reconciliation engine.

Exports
-------
diff
    Split desired vs stored design documents into additions, changes and
    deletions.
Seeder
    Applies a diff synchronously via the CouchDB API.
AsyncSeeder
    Applies a diff asynchronously via the CouchDB API.
"""

from .differ import design_id, design_name, diff, is_internal, views_equal
from .seeder import AsyncSeeder, Seeder

__all__ = [
    "AsyncSeeder",
    "Seeder",
    "design_id",
    "design_name",
    "diff",
    "is_internal",
    "views_equal",
]
