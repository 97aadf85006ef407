"""SQLAlchemy models.

All models should be imported here for Alembic to detect them.
"""

from linkly.core.database import Base
from linkly.models.click import Click
from linkly.models.link import Link

__all__ = ["Base", "Click", "Link"]
