"""Flask extensions, created unbound and initialised by the app factory."""

from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
bcrypt = Bcrypt()
mail = Mail()


def init_db(app):
    """Bind SQLAlchemy/Migrate to the app and install per-dialect hooks."""
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        engine = db.engine
        if engine.dialect.name == 'sqlite':
            _install_sqlite_hooks(engine)


def _install_sqlite_hooks(engine):
    """Make pysqlite transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, so two checkouts could both
    read the same stock level before either one writes. Emitting
    BEGIN IMMEDIATE ourselves serialises writers the same way row locks do
    on PostgreSQL.
    """

    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')
