"""Transaction management and the transaction-bound session handle.

A transaction scope opens one ``AsyncSession`` per persistence unit and binds
it to the task that opened it. Code running in that task reaches the session
through ``current_session``; any other task, including one spawned inside the
scope, gets ``TransactionNotActiveError`` and opens its own transaction
instead. An ``AsyncSession`` must never be used by two tasks at once.

Usage:
    manager = TransactionManager(unit)
    async with manager.transaction():
        session = current_session(unit)
        session.add(entity)

    @transactional(manager)
    async def rename(entity_id: int, name: str) -> None:
        ...
"""
from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import ParamSpec, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.persistence.unit import PersistenceUnit

logger = logging.getLogger(__name__)

_P = ParamSpec("_P")
_R = TypeVar("_R")


class TransactionNotActiveError(RuntimeError):
    """Raised when a session handle is requested outside an active transaction."""

    def __init__(self, unit: PersistenceUnit) -> None:
        super().__init__(
            f"Transaction not available for persistence unit {unit.name!r}. "
            "Is your code running inside TransactionManager.transaction() or a "
            "@transactional function?"
        )
        self.unit = unit


# ---------------------------------------------------------------------------
# Resource binding
# ---------------------------------------------------------------------------


def _current_task() -> asyncio.Task[object] | None:
    """The running task, or None when called outside an event loop."""
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


@dataclass
class SessionHolder:
    """Session bound to the active transaction of one persistence unit."""

    session: AsyncSession
    rollback_only: bool = False
    owner: asyncio.Task[object] | None = field(default_factory=_current_task)


_Bindings = Mapping[PersistenceUnit, SessionHolder]

_resources: ContextVar[_Bindings] = ContextVar("persistence_resources", default={})


def bind_resource(unit: PersistenceUnit, holder: SessionHolder) -> Token[_Bindings]:
    """Bind ``holder`` to ``unit`` in the current context.

    A binding inherited from a parent task is shadowed, not shared.

    Raises:
        RuntimeError: A session is already bound for ``unit`` in this task.
    """
    current = _resources.get()
    if get_resource(unit) is not None:
        raise RuntimeError(
            f"A session is already bound for persistence unit {unit.name!r} in this task"
        )
    return _resources.set({**current, unit: holder})


def get_resource(unit: PersistenceUnit) -> SessionHolder | None:
    """Return the holder bound to ``unit`` by the calling task, if any."""
    holder = _resources.get().get(unit)
    if holder is None or holder.owner is not _current_task():
        return None
    return holder


def unbind_resource(token: Token[_Bindings]) -> None:
    _resources.reset(token)


# ---------------------------------------------------------------------------
# Session handle
# ---------------------------------------------------------------------------


def current_session(unit: PersistenceUnit) -> AsyncSession:
    """Return the session of the transaction active for ``unit``.

    The binding is looked up on every call; the returned session is only
    valid until its transaction scope exits.

    Raises:
        TransactionNotActiveError: No transaction is active for ``unit``.
    """
    holder = get_resource(unit)
    if holder is None:
        raise TransactionNotActiveError(unit)
    return holder.session


# ---------------------------------------------------------------------------
# Transaction manager
# ---------------------------------------------------------------------------


class TransactionManager:
    """Runs units of work against one persistence unit."""

    def __init__(self, unit: PersistenceUnit) -> None:
        self._unit = unit

    @property
    def unit(self) -> PersistenceUnit:
        return self._unit

    @asynccontextmanager
    async def transaction(self, *, rollback_only: bool = False) -> AsyncIterator[AsyncSession]:
        """Open a transaction scope, or join the one this task already has open.

        A new scope commits on normal exit and rolls back when the body
        raises or when it was marked rollback-only. A joined scope leaves
        commit/rollback to the outer scope; ``rollback_only=True`` marks the
        outer transaction rollback-only. A task spawned inside a scope never
        joins it; it gets a transaction and session of its own.

        Yields:
            The session bound to the transaction.
        """
        existing = get_resource(self._unit)
        if existing is not None:
            logger.debug("Joining active transaction on %s", self._unit.name)
            if rollback_only:
                existing.rollback_only = True
            yield existing.session
            return

        session = self._unit.session_factory()
        holder = SessionHolder(session, rollback_only=rollback_only)
        token = bind_resource(self._unit, holder)
        try:
            await session.begin()
            logger.debug("Began transaction on %s", self._unit.name)
            try:
                yield session
            except BaseException:
                await session.rollback()
                logger.debug("Rolled back transaction on %s after error", self._unit.name)
                raise
            if holder.rollback_only:
                await session.rollback()
                logger.debug("Rolled back rollback-only transaction on %s", self._unit.name)
            else:
                await session.commit()
                logger.debug("Committed transaction on %s", self._unit.name)
        finally:
            unbind_resource(token)
            await session.close()

    def __repr__(self) -> str:
        return f"TransactionManager(unit={self._unit!r})"


def transactional(
    manager: TransactionManager,
    *,
    rollback_only: bool = False,
) -> Callable[[Callable[_P, Awaitable[_R]]], Callable[_P, Awaitable[_R]]]:
    """Decorate an async function so it always runs inside ``manager.transaction()``."""

    def decorator(func: Callable[_P, Awaitable[_R]]) -> Callable[_P, Awaitable[_R]]:
        @functools.wraps(func)
        async def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
            async with manager.transaction(rollback_only=rollback_only):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
