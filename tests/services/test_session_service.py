import pytest
from fastapi import HTTPException
from sqlalchemy import text

from learnhub.core.constants import AuthEventEnum, RoleEnum
from learnhub.models.user import User
from learnhub.schemas.user import SignUpRequest, SignInRequest, ProfileUpdate, UserProfile
from learnhub.services.session import SessionService, IdentityRegistry
from learnhub.utils.events import EventBus
from tests.helpers.common import TEST_PASSWORD


@pytest.fixture
def bus():
    return EventBus()

@pytest.fixture
def registry(bus):
    registry = IdentityRegistry()
    registry.attach(bus)
    return registry

@pytest.fixture
def service(registry, bus):
    return SessionService(registry, bus)


def test_sign_up_creates_account_and_profile(service, db_session):
    result = service.sign_up(db_session, sign_up_in=SignUpRequest(email="New@Test.com", password="secret1", name="New User"))

    assert result.redirect_to == "/login"
    assert result.token is None
    assert result.user.email == "new@test.com"
    assert result.user.role == RoleEnum.MEMBER
    assert db_session.get(User, result.user.id).name == "New User"


def test_sign_up_rejects_duplicate_email(service, db_session, account_factory):
    account = account_factory()

    with pytest.raises(HTTPException) as exc_info:
        service.sign_up(db_session, sign_up_in=SignUpRequest(email=account.email, password="secret1", name="Again"))

    assert exc_info.value.status_code == 409


def test_sign_up_falls_back_to_metadata_without_profile_table(service, db_session, database_engine):
    with database_engine.begin() as conn:
        conn.execute(text("DROP TABLE users"))

    result = service.sign_up(db_session, sign_up_in=SignUpRequest(email="meta@test.com", password="secret1", name="Meta Only"))

    assert result.user.name == "Meta Only"


async def test_sign_in_publishes_and_caches_identity(service, registry, db_session, account_factory):
    account = account_factory(name="Cached")

    result = await service.sign_in(db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD))

    assert result.token.access_token
    assert result.redirect_to == "/dashboard"
    assert registry.get(account.id).name == "Cached"


async def test_sign_in_honours_stored_redirect(service, db_session, account_factory):
    account = account_factory()

    safe = await service.sign_in(
        db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD, redirect="/courses/abc")
    )
    unsafe = await service.sign_in(
        db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD, redirect="//evil.example")
    )

    assert safe.redirect_to == "/courses/abc"
    assert unsafe.redirect_to == "/dashboard"


async def test_sign_in_with_wrong_password(service, db_session, account_factory):
    account = account_factory()

    with pytest.raises(HTTPException) as exc_info:
        await service.sign_in(db_session, sign_in_in=SignInRequest(email=account.email, password="wrong-password"))

    assert exc_info.value.status_code == 401


async def test_sign_out_revokes_token_and_evicts(service, registry, db_session, account_factory):
    account = account_factory()
    signed_in = await service.sign_in(db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD))
    token = signed_in.token.access_token

    redirect_to = await service.sign_out(db_session, token=token)

    assert redirect_to == "/"
    assert registry.get(account.id) is None
    assert not service.resolve(db_session, token=token).is_authenticated


async def test_refresh_rotates_token(service, db_session, account_factory):
    account = account_factory()
    signed_in = await service.sign_in(db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD))

    refreshed = await service.refresh(db_session, token=signed_in.token.access_token)

    assert refreshed.token.access_token != signed_in.token.access_token
    assert service.resolve(db_session, token=refreshed.token.access_token).is_authenticated
    assert not service.resolve(db_session, token=signed_in.token.access_token).is_authenticated


def test_resolve_without_or_with_bad_token_is_anonymous(service, db_session):
    assert service.resolve(db_session, token=None).current_user is None
    session = service.resolve(db_session, token="not-a-jwt")
    assert session.current_user is None
    assert session.is_loading is False


async def test_admin_flag_comes_from_role_not_email(service, db_session, account_factory):
    member = account_factory(email="admin@learnhub.dev")
    admin = account_factory(email="someone@test.com", role=RoleEnum.ADMIN)

    member_in = await service.sign_in(db_session, sign_in_in=SignInRequest(email=member.email, password=TEST_PASSWORD))
    admin_in = await service.sign_in(db_session, sign_in_in=SignInRequest(email=admin.email, password=TEST_PASSWORD))

    assert not service.resolve(db_session, token=member_in.token.access_token).is_admin
    assert service.resolve(db_session, token=admin_in.token.access_token).is_admin


async def test_update_profile_refreshes_registry(service, registry, db_session, account_factory):
    account = account_factory(name="Before")
    signed_in = await service.sign_in(db_session, sign_in_in=SignInRequest(email=account.email, password=TEST_PASSWORD))
    session = service.resolve(db_session, token=signed_in.token.access_token)

    profile = await service.update_profile(db_session, session=session, profile_in=ProfileUpdate(name="After"))

    assert profile.name == "After"
    assert registry.get(account.id).name == "After"
    db_session.refresh(account)
    assert account.user_metadata["name"] == "After"


async def test_set_role_requires_admin(service, db_session, account_factory, make_session):
    target = account_factory()

    with pytest.raises(HTTPException) as exc_info:
        await service.set_role(db_session, session=make_session(), user_id=target.id, role=RoleEnum.ADMIN)
    assert exc_info.value.status_code == 403

    profile = await service.set_role(
        db_session, session=make_session(role=RoleEnum.ADMIN), user_id=target.id, role=RoleEnum.ADMIN
    )
    assert profile.is_admin


def test_seed_initial_admin_promotes_once(service, db_session, account_factory):
    account = account_factory(email="owner@test.com")

    assert service.seed_initial_admin(db_session, email="owner@test.com") is True
    assert service.seed_initial_admin(db_session, email="owner@test.com") is False
    db_session.refresh(account)
    assert account.role == RoleEnum.ADMIN
    assert service.seed_initial_admin(db_session, email="nobody@test.com") is False


async def test_event_bus_handler_errors_do_not_propagate(bus):
    received = []

    def broken(event_type, data):
        raise RuntimeError("boom")

    async def recorder(event_type, data):
        received.append((event_type, data))

    bus.subscribe(AuthEventEnum.SIGNED_IN, broken)
    bus.subscribe(AuthEventEnum.SIGNED_IN, recorder)

    await bus.publish(AuthEventEnum.SIGNED_IN, {"user": None})

    assert received == [(AuthEventEnum.SIGNED_IN, {"user": None})]


async def test_unsubscribed_handler_is_not_called(bus, registry):
    registry.put(UserProfile(id="u-1", email="u1@test.com"))
    bus.unsubscribe(AuthEventEnum.SIGNED_OUT, registry.on_signed_out)

    await bus.publish(AuthEventEnum.SIGNED_OUT, {"user_id": "u-1"})

    assert registry.get("u-1") is not None
