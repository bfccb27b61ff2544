# app/db/base.py
# Importing the models package registers every table on Base.metadata
# (used by Alembic autogenerate and by test database setup).

from app.db.base_class import Base  # noqa: F401
import app.models  # noqa: F401
