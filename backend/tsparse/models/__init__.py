"""SQLAlchemy models package.

All mapped classes are imported here so metadata is complete for Alembic and
for `ensure_schema` regardless of import order.
"""

from tsparse.models import format_usage, usage_record  # noqa: F401
