"""
Unit of work: the transactional boundary of the repositories.

Wraps one SQLAlchemy session (blocking or asyncio) and owns:
- the explicit entity state transition function (set_state / state_of),
- the audit hook, run from before_flush on every flush with no opt-out,
- commit/rollback with rollback-on-failure.

A unit of work is affine to one logical request; it is not safe to share
it between threads or concurrently running tasks.

Usage:
    with UnitOfWork(db, DataContext(actor_id=7)) as uow:
        repo = Repository(Category, uow)
        repo.insert(Category(name="Shoes"))
        uow.commit()
"""

from __future__ import annotations

from typing import Any, Iterable, NamedTuple

from sqlalchemy import MetaData, event, inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from data_access.audit import apply_audit
from data_access.context import SYSTEM_CONTEXT, DataContext
from data_access.models.base import AuditMixin, Base, is_auditable
from data_access.states import EntityState
from shared.config.logging import get_logger, mask_actor_id
from shared.infrastructure.db import safe_commit, safe_commit_async
from shared.utils.exceptions import InvalidArgument, UnreachableState

logger = get_logger(__name__)


class IdentitySnapshot(NamedTuple):
    """What a session tracked before an untracked read."""

    keys: frozenset[Any]
    # Staged objects by id(); holding them keeps the ids stable
    pending: dict[int, Any]


def _missing_tables(connection: Any, metadata: MetaData) -> list[str]:
    existing = set(sa_inspect(connection).get_table_names())
    return [table.name for table in metadata.sorted_tables if table.name not in existing]


class BaseUnitOfWork:
    """State tracking and audit stamping shared by both session flavours."""

    def __init__(self, sync_session: Session, context: DataContext | None):
        self._sync_session = sync_session
        self.context = context or SYSTEM_CONTEXT
        # Logical deletes waiting for the next flush, keyed by object identity
        self._soft_deleted: dict[int, AuditMixin] = {}

        event.listen(sync_session, "before_flush", self._before_flush)
        event.listen(sync_session, "after_flush", self._after_flush)
        event.listen(sync_session, "after_rollback", self._after_rollback)

    @property
    def sync_session(self) -> Session:
        """The blocking Session underneath (the AsyncSession proxy target for async)."""
        return self._sync_session

    def _remove_listeners(self) -> None:
        for name, fn in (
            ("before_flush", self._before_flush),
            ("after_flush", self._after_flush),
            ("after_rollback", self._after_rollback),
        ):
            if event.contains(self._sync_session, name, fn):
                event.remove(self._sync_session, name, fn)

    # ------------------------------------------------------------------
    # Entity states
    # ------------------------------------------------------------------

    def state_of(self, entity: Any) -> EntityState:
        """Current persistence state of an entity in this unit of work."""
        session = self._sync_session
        if id(entity) in self._soft_deleted:
            return EntityState.DELETED

        insp = sa_inspect(entity)
        if insp.session is not session or insp.transient or insp.detached:
            return EntityState.DETACHED
        if insp.pending:
            return EntityState.ADDED
        if entity in session.deleted or insp.deleted:
            return EntityState.DELETED
        if session.is_modified(entity, include_collections=False):
            return EntityState.MODIFIED
        return EntityState.UNCHANGED

    def _attach(self, entity: Any) -> None:
        if sa_inspect(entity).session is not self._sync_session:
            self._sync_session.add(entity)

    def _require_identity(self, entity: Any, state: EntityState) -> None:
        insp = sa_inspect(entity)
        if insp.transient or insp.pending:
            raise InvalidArgument(
                f"{type(entity).__name__} has not been persisted and cannot become {state}",
                model=type(entity).__name__,
                state=str(state),
            )

    def _mark_fully_modified(self, entity: Any) -> None:
        insp = sa_inspect(entity)
        for attr in insp.mapper.column_attrs:
            if attr.key in insp.dict and not any(col.primary_key for col in attr.columns):
                flag_modified(entity, attr.key)

    def _transition(self, entity: Any, state: EntityState) -> None:
        """Move an entity to the requested state."""
        if entity is None:
            raise InvalidArgument("entity is required")

        session = self._sync_session
        insp = sa_inspect(entity)

        if state is EntityState.DETACHED:
            self._soft_deleted.pop(id(entity), None)
            if insp.session is session:
                session.expunge(entity)

        elif state is EntityState.ADDED:
            if insp.persistent or insp.detached:
                raise InvalidArgument(
                    f"{type(entity).__name__} already has an identity and cannot be added",
                    model=type(entity).__name__,
                )
            session.add(entity)

        elif state is EntityState.MODIFIED:
            self._require_identity(entity, state)
            if id(entity) in self._soft_deleted:
                # The delete flags are already set; UNCHANGED restores them
                raise InvalidArgument(
                    f"{type(entity).__name__} is pending a logical delete and cannot become {state}",
                    model=type(entity).__name__,
                    state=str(state),
                )
            self._attach(entity)
            self._mark_fully_modified(entity)

        elif state is EntityState.DELETED:
            if insp.pending:
                # Never reached the store, forget it
                session.expunge(entity)
                return
            self._require_identity(entity, state)
            self._attach(entity)
            if is_auditable(entity):
                entity.is_active = False
                entity.is_deleted = True
                self._soft_deleted[id(entity)] = entity
            else:
                session.delete(entity)

        elif state is EntityState.UNCHANGED:
            self._require_identity(entity, state)
            self._soft_deleted.pop(id(entity), None)
            if entity in session.deleted:
                session.expunge(entity)
            self._attach(entity)
            session.expire(entity)

        else:
            raise UnreachableState(state, model=type(entity).__name__)

        logger.debug("Entity state changed", model=type(entity).__name__, state=str(state))

    # ------------------------------------------------------------------
    # Untracked reads
    # ------------------------------------------------------------------

    def identity_snapshot(self) -> IdentitySnapshot:
        """Identity keys tracked right now, plus the objects staged for insert."""
        session = self._sync_session
        return IdentitySnapshot(
            keys=frozenset(session.identity_map.keys()),
            pending={id(obj): obj for obj in session.new},
        )

    def detach_loaded_since(self, snapshot: IdentitySnapshot) -> None:
        """
        Expunge every object the read brought into the identity map.

        Staged inserts flushed by the read's autoflush get their identity
        during the read and stay attached.
        """
        identity_map = self._sync_session.identity_map
        for key in set(identity_map.keys()) - snapshot.keys:
            obj = identity_map.get(key)
            if obj is not None and id(obj) not in snapshot.pending:
                self._sync_session.expunge(obj)

    # ------------------------------------------------------------------
    # Audit hooks
    # ------------------------------------------------------------------

    def _before_flush(self, session: Session, flush_context: Any, instances: Any) -> None:
        now = self.context.now()
        actor_id = self.context.actor_id
        stamped = 0

        for entity in list(session.new):
            if is_auditable(entity):
                apply_audit(entity, EntityState.ADDED, actor_id, now)
                stamped += 1

        for entity in list(session.dirty):
            if not is_auditable(entity) or id(entity) in self._soft_deleted:
                continue
            if session.is_modified(entity, include_collections=False):
                apply_audit(entity, EntityState.MODIFIED, actor_id, now)
                stamped += 1

        for entity in list(self._soft_deleted.values()):
            apply_audit(entity, EntityState.DELETED, actor_id, now)
            stamped += 1

        for entity in session.deleted:
            if is_auditable(entity):
                # Only the repository may delete auditable rows, and it never removes them
                raise UnreachableState(
                    EntityState.DELETED,
                    model=type(entity).__name__,
                    reason="physical delete of an auditable entity",
                )

        if stamped:
            logger.debug("Audit fields stamped", count=stamped, actor=mask_actor_id(actor_id))

    def _after_flush(self, session: Session, flush_context: Any) -> None:
        self._soft_deleted.clear()

    def _after_rollback(self, session: Session) -> None:
        self._soft_deleted.clear()


class UnitOfWork(BaseUnitOfWork):
    """Unit of work over a blocking Session."""

    def __init__(self, session: Session, context: DataContext | None = None):
        super().__init__(session, context)
        self.session = session

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
        self.close()

    def set_state(self, entity: Any, state: EntityState) -> None:
        self._transition(entity, state)

    def set_states(self, entities: Iterable[Any], state: EntityState) -> None:
        for entity in entities:
            self._transition(entity, state)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        """Flush (running the audit policy) and commit; rolls back on failure."""
        try:
            safe_commit(self.session)
        except Exception:
            logger.error("Commit failed, rolled back", exc_info=True)
            raise
        logger.debug("Unit of work committed", actor=mask_actor_id(self.context.actor_id))

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, entity: Any) -> Any:
        self.session.refresh(entity)
        return entity

    def close(self) -> None:
        self._remove_listeners()
        self.session.close()

    def pending_migrations(self, metadata: MetaData = Base.metadata) -> list[str]:
        """Tables declared in the metadata that do not exist in the store yet."""
        return _missing_tables(self.session.connection(), metadata)


class AsyncUnitOfWork(BaseUnitOfWork):
    """Unit of work over an AsyncSession."""

    def __init__(self, session: AsyncSession, context: DataContext | None = None):
        super().__init__(session.sync_session, context)
        self.session = session

    async def __aenter__(self) -> "AsyncUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()
        await self.close()

    async def set_state(self, entity: Any, state: EntityState) -> None:
        # run_sync lets relationship cascades load lazily while transitioning
        await self.session.run_sync(lambda _: self._transition(entity, state))

    async def set_states(self, entities: Iterable[Any], state: EntityState) -> None:
        items = list(entities)

        def _apply(_: Session) -> None:
            for entity in items:
                self._transition(entity, state)

        await self.session.run_sync(_apply)

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        """Flush (running the audit policy) and commit; rolls back on failure."""
        try:
            await safe_commit_async(self.session)
        except Exception:
            logger.error("Commit failed, rolled back", exc_info=True)
            raise
        logger.debug("Unit of work committed", actor=mask_actor_id(self.context.actor_id))

    async def rollback(self) -> None:
        await self.session.rollback()

    async def refresh(self, entity: Any) -> Any:
        await self.session.refresh(entity)
        return entity

    async def close(self) -> None:
        self._remove_listeners()
        await self.session.close()

    async def pending_migrations(self, metadata: MetaData = Base.metadata) -> list[str]:
        """Tables declared in the metadata that do not exist in the store yet."""
        connection = await self.session.connection()
        return await connection.run_sync(lambda conn: _missing_tables(conn, metadata))
