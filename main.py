import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.core.config import settings
from learnhub.core.database import Base, engine, SessionLocal
from learnhub.core.exceptions import AuthenticationRequiredError
from learnhub.core.logging import configure_logging
from learnhub.endpoints import auth, courses, enrollments, admin, utility
from learnhub.middleware.exceptions import (
    global_exception_handler, validation_exception_handler, authentication_required_handler,
)
from learnhub.middleware.logging import RequestLoggingMiddleware
from learnhub.models.user import AuthAccount
from learnhub.models.token_denylist import TokenDenylist
from learnhub.services.session import session_service
from learnhub.storage.kv import create_key_value_store
from learnhub.storage.negotiation import StorageBackends, build_local, negotiate_storage

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AuthenticationRequiredError, authentication_required_handler)

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(courses.router, prefix="/courses", tags=["Courses"])
app.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])
app.include_router(utility.router, prefix="/utility", tags=["utility"])


def build_local_backends() -> StorageBackends:
    store = create_key_value_store(settings.LOCAL_STORE_PATH)
    return build_local(store, settings.LOCAL_STORE_PREFIX, seed=settings.SEED_DEMO_COURSES)


def create_tables():
    # The identity tables always exist; the catalog tables only when asked for
    tables = None if settings.AUTO_CREATE_TABLES else [AuthAccount.__table__, TokenDenylist.__table__]
    try:
        Base.metadata.create_all(bind=engine, tables=tables)
    except SQLAlchemyError as exc:
        logger.error(f"Could not create tables: {exc}")


@app.on_event("startup")
def startup_event():
    configure_logging()
    create_tables()
    app.state.storage = negotiate_storage(engine, SessionLocal, build_local_backends, settings.STORAGE_BACKEND)
    logger.info(f"Storage backend: {app.state.storage.kind.value}")

    try:
        with SessionLocal() as db:
            session_service.seed_initial_admin(db)
    except SQLAlchemyError as exc:
        logger.error(f"Could not seed the initial admin: {exc}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
