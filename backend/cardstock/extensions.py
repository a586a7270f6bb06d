# Overview: Shared Flask-SQLAlchemy and Flask-Migrate instances.

import os

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# backend/migrations, independent of the directory flask is launched from
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

db = SQLAlchemy()
migrate = Migrate(directory=MIGRATIONS_DIR)
