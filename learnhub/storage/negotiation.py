import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.core.constants import StorageBackendEnum, REQUIRED_TABLES
from learnhub.schemas.storage import StorageStatus
from learnhub.storage.base import CatalogStorage, EnrollmentStorage, StorageUnavailableError
from learnhub.storage.kv import KeyValueStore
from learnhub.storage.local import LocalCatalogStorage, LocalEnrollmentStorage
from learnhub.storage.relational import RelationalCatalogStorage, RelationalEnrollmentStorage

# Register every table on Base.metadata
from learnhub.models.user import AuthAccount, User  # noqa: F401
from learnhub.models.course import Course  # noqa: F401
from learnhub.models.lesson import Lesson  # noqa: F401
from learnhub.models.enrollment import Enrollment  # noqa: F401
from learnhub.models.completed_lesson import CompletedLesson  # noqa: F401
from learnhub.models.review import Review  # noqa: F401
from learnhub.models.token_denylist import TokenDenylist  # noqa: F401

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StorageBackends:
    kind: StorageBackendEnum
    catalog: CatalogStorage
    enrollments: EnrollmentStorage


def build_relational(session_factory: Callable[[], Session]) -> StorageBackends:
    return StorageBackends(
        kind=StorageBackendEnum.RELATIONAL,
        catalog=RelationalCatalogStorage(session_factory),
        enrollments=RelationalEnrollmentStorage(session_factory),
    )


def build_local(store: KeyValueStore, prefix: str, seed: bool = True) -> StorageBackends:
    return StorageBackends(
        kind=StorageBackendEnum.LOCAL,
        catalog=LocalCatalogStorage(store, prefix, seed=seed),
        enrollments=LocalEnrollmentStorage(store, prefix),
    )


def missing_tables(engine: Engine) -> List[str]:
    """Required tables absent from the database. Raises StorageUnavailableError if it cannot be inspected."""
    try:
        existing = set(inspect(engine).get_table_names())
    except SQLAlchemyError as exc:
        raise StorageUnavailableError(f"Database unreachable: {exc}") from exc
    return [table for table in REQUIRED_TABLES if table not in existing]


class _FailoverAccessor:
    """Forwards calls to one side of the active backends through the selector."""

    def __init__(self, selector: "StorageSelector", attribute: str):
        self._selector = selector
        self._attribute = attribute

    def __getattr__(self, name: str):
        def call(*args, **kwargs):
            return self._selector.run(
                lambda backends: getattr(getattr(backends, self._attribute), name)(*args, **kwargs)
            )
        return call


class StorageSelector:
    """
    Holds the storage backends chosen at start-up.

    A relational backend that reports itself unavailable is replaced by the
    local backend once and for good; the call that hit the failure is served
    by the local backend.
    """

    def __init__(
        self,
        backends: StorageBackends,
        fallback_factory: Optional[Callable[[], StorageBackends]] = None,
        configured: StorageBackendEnum = StorageBackendEnum.AUTO,
        missing: Optional[List[str]] = None,
        fallback_reason: Optional[str] = None,
    ):
        self._backends = backends
        self._fallback_factory = fallback_factory
        self._lock = threading.Lock()
        self.configured = configured
        self.missing_tables = list(missing or [])
        self.fallback_reason = fallback_reason
        self.catalog = _FailoverAccessor(self, "catalog")
        self.enrollments = _FailoverAccessor(self, "enrollments")

    @property
    def kind(self) -> StorageBackendEnum:
        return self._backends.kind

    @property
    def backends(self) -> StorageBackends:
        return self._backends

    def activate_fallback(self, reason: str) -> bool:
        """Switches to the local backend. Returns False if already local or no fallback exists."""
        with self._lock:
            if self._backends.kind == StorageBackendEnum.LOCAL or self._fallback_factory is None:
                return False
            self._backends = self._fallback_factory()
            self.fallback_reason = reason
        logger.warning(f"Relational storage unavailable, switched to local storage: {reason}")
        return True

    def run(self, operation: Callable[[StorageBackends], T]) -> T:
        backends = self._backends
        try:
            return operation(backends)
        except StorageUnavailableError as exc:
            if backends.kind != StorageBackendEnum.RELATIONAL:
                raise
            if backends is self._backends and not self.activate_fallback(str(exc)):
                raise
            return operation(self._backends)

    def status(self, lightweight_mode: bool = False) -> StorageStatus:
        return StorageStatus(
            configured=self.configured,
            active=self.kind,
            required_tables=list(REQUIRED_TABLES),
            missing_tables=self.missing_tables,
            fallback_reason=self.fallback_reason,
            lightweight_mode=lightweight_mode,
        )


def negotiate_storage(
    engine: Engine,
    session_factory: Callable[[], Session],
    local_factory: Callable[[], StorageBackends],
    backend: str = StorageBackendEnum.AUTO.value,
) -> StorageSelector:
    """Picks the storage backend once, at start-up."""
    configured = StorageBackendEnum(backend)

    if configured == StorageBackendEnum.LOCAL:
        logger.info("Local storage selected by configuration")
        return StorageSelector(local_factory(), configured=configured)

    try:
        missing = missing_tables(engine)
    except StorageUnavailableError as exc:
        if configured == StorageBackendEnum.RELATIONAL:
            logger.warning(f"Relational storage forced but database is unreachable: {exc}")
            return StorageSelector(build_relational(session_factory), local_factory, configured)
        logger.warning(f"Database unreachable, using local storage: {exc}")
        return StorageSelector(local_factory(), configured=configured, fallback_reason=str(exc))

    if not missing:
        logger.info("All required tables present, using relational storage")
        return StorageSelector(build_relational(session_factory), local_factory, configured)

    if configured == StorageBackendEnum.RELATIONAL:
        logger.warning(f"Relational storage forced with missing tables: {', '.join(missing)}")
        return StorageSelector(build_relational(session_factory), local_factory, configured, missing=missing)

    reason = f"Missing tables: {', '.join(missing)}"
    logger.warning(f"{reason}, using local storage")
    return StorageSelector(local_factory(), configured=configured, missing=missing, fallback_reason=reason)
