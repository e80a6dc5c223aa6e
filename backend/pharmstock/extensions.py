# Overview: Flask extension instances for the entity store and its migrations.
# Both are bound to an application inside create_app(); nothing is connected at import time.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()
