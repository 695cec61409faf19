"""
SWOT Planning Workshop Platform
Database instance and model package.

All models import ``db`` from here:
    from swotplan.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
