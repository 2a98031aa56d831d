# ==============================================================================
# EXTENSIONES FLASK - Instancias compartidas
# ==============================================================================
# La instancia de SQLAlchemy se crea aquí y se enlaza a la app en
# create_app() con db.init_app(app).
# ==============================================================================

import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine


db = SQLAlchemy()


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite no aplica claves foráneas (ni ON DELETE CASCADE) sin este PRAGMA."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()
