import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from stockledger import config
from stockledger.errors import StockLedgerError, TransactionFailedError


logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (OperationalError, IntegrityError)


def run_in_transaction(
    db: Session,
    operation: Callable[..., T],
    *args,
    attempts: Optional[int] = None,
    **kwargs,
) -> T:
    """Run ``operation(db, *args, **kwargs)`` as one atomic unit and commit it.

    Domain errors roll back and propagate unchanged. Write conflicts (lock or
    serialization failures, a concurrent first insert of the same ledger key)
    roll back and are retried against fresh state.
    """
    max_attempts = attempts or config.TRANSACTION_RETRY_ATTEMPTS
    name = getattr(operation, "__name__", repr(operation))
    for attempt in range(1, max_attempts + 1):
        try:
            result = operation(db, *args, **kwargs)
            db.commit()
            return result
        except StockLedgerError:
            db.rollback()
            raise
        except RETRYABLE_ERRORS as exc:
            db.rollback()
            if attempt >= max_attempts:
                logger.exception("Transaction %s failed after %s attempts", name, attempt)
                raise TransactionFailedError() from exc
            logger.warning("Transaction %s conflicted (attempt %s/%s): %s", name, attempt, max_attempts, exc.orig)
        except Exception:
            db.rollback()
            logger.exception("Transaction %s failed unexpectedly", name)
            raise
    raise TransactionFailedError()


def use_snapshot_isolation(db: Session) -> None:
    """Pin the session's next transaction to REPEATABLE READ where supported.

    Must be called before the transaction issues its first statement.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.connection(execution_options={"isolation_level": "REPEATABLE READ"})
