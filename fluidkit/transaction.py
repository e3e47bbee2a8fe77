"""Running work inside database transactions, optionally shared per request."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, TypeVar

from fluidkit.context import RequestContext

T = TypeVar("T")


class _Tx(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class TransactionError(Exception):
    """Raised when a transaction cannot be committed or rolled back."""


_TX_KEY = object()


def set_transaction(ctx: RequestContext, tx: Any) -> None:
    """Store ``tx`` as the context's current transaction."""
    ctx.set(_TX_KEY, tx)


def get_transaction(ctx: RequestContext) -> Optional[Any]:
    """Return the context's current transaction, or None."""
    return ctx.get(_TX_KEY)


def clear_transaction(ctx: RequestContext) -> None:
    """Remove the context's current transaction."""
    ctx.set(_TX_KEY, None)


def execute_transaction(tx: _Tx, fn: Callable[[_Tx], T]) -> T:
    """Run ``fn(tx)``, committing on success and rolling back if it raises."""
    try:
        result = fn(tx)
    except Exception as exc:
        try:
            tx.rollback()
        except Exception as rollback_exc:
            raise TransactionError(
                f"failed to rollback transaction: {rollback_exc}"
            ) from exc
        raise
    try:
        tx.commit()
    except Exception as exc:
        raise TransactionError(f"failed to commit transaction: {exc}") from exc
    return result


def execute_managed_transaction(
    ctx: RequestContext,
    get_tx: Optional[Callable[[RequestContext], _Tx]],
    fn: Callable[[_Tx], T],
) -> T:
    """Run ``fn`` in the context's transaction, starting one if there is none.

    Only the call that started the transaction commits or rolls it back, and
    it removes the transaction from the context afterwards.
    """
    tx = get_transaction(ctx)
    if tx is not None:
        return fn(tx)

    tx = get_tx(ctx)
    set_transaction(ctx, tx)
    try:
        return execute_transaction(tx, fn)
    finally:
        clear_transaction(ctx)