"""Transactional unit of work around the Flask-SQLAlchemy session."""

from contextlib import contextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError

from storefront.errors import PersistenceFailure, StorefrontError
from storefront.extensions import db

logger = structlog.get_logger(__name__)


@contextmanager
def unit_of_work(name='unit_of_work'):
    """Run the enclosed block as one transaction.

    Commits when the block finishes, rolls back on any exception. Domain
    errors propagate unchanged; database errors are logged and surfaced as
    a generic ``PersistenceFailure``. Units must not be nested: the inner
    commit would end the outer transaction.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except StorefrontError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error('transaction_failed', unit=name, error=str(exc))
        raise PersistenceFailure() from exc
    except BaseException:
        session.rollback()
        raise
