"""
Auth service tests: the login state machine, password reset, profile,
two-factor and admin gating, run directly against the stores.
"""
import pyotp
import pytest
from argon2 import PasswordHasher

from sakany.app.core.exceptions import (
    Conflict,
    CurrentPasswordMismatch,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
)
from sakany.app.security import hashing, totp
from sakany.app.services.auth import PASSWORD_RESET_MESSAGE, AuthState


async def register(auth_service, email="alice@x.com", password="secret1", **extra):
    result = await auth_service.register(email, password, extra.pop("display_name", "Alice"), **extra)
    return result.user


class TestRegistration:
    async def test_register_opens_session(self, auth_service, session_manager):
        result = await auth_service.register("alice@x.com", "secret1", "Alice", is_landlord=True)

        assert result.state is AuthState.AUTHENTICATED
        assert result.user.is_landlord is True
        assert result.user.is_admin is False
        assert result.user.last_login_at is not None
        assert await session_manager.resolve(result.session_id) == result.user.id

    async def test_register_can_defer_login(self, auth_service):
        result = await auth_service.register("alice@x.com", "secret1", "Alice", start_session=False)
        assert result.state is AuthState.ANONYMOUS
        assert result.session_id is None

    async def test_password_is_hashed(self, auth_service):
        user = await register(auth_service)
        assert user.password_hash != "secret1"
        assert user.password_hash.startswith("$argon2id$")

    async def test_duplicate_email_case_insensitive(self, auth_service):
        await register(auth_service, "alice@x.com")
        with pytest.raises(Conflict):
            await register(auth_service, "Alice@X.COM")

    async def test_admin_request_needs_allow_listed_email(self, auth_service, user_store):
        with pytest.raises(Forbidden):
            await register(auth_service, "mallory@x.com", is_admin_requested=True)
        assert await user_store.get_by_email("mallory@x.com") is None

    async def test_allow_listed_email_becomes_admin(self, auth_service):
        requested = await register(auth_service, "boss@Sakany.com", is_admin_requested=True)
        implicit = await register(auth_service, "chief@example.org")
        assert requested.is_admin is True
        assert implicit.is_admin is True


class TestLogin:
    async def test_login_success(self, auth_service, session_manager):
        user = await register(auth_service)
        result = await auth_service.login("ALICE@x.com", "secret1")

        assert result.state is AuthState.AUTHENTICATED
        assert result.user.id == user.id
        assert await session_manager.resolve(result.session_id) == user.id

    async def test_wrong_password_and_unknown_email_look_the_same(self, auth_service):
        await register(auth_service)

        with pytest.raises(InvalidCredentials) as wrong_password:
            await auth_service.login("alice@x.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown_email:
            await auth_service.login("ghost@x.com", "secret1")

        assert type(wrong_password.value) is type(unknown_email.value)
        assert wrong_password.value.message == unknown_email.value.message

    async def test_logout_is_idempotent(self, auth_service, session_manager):
        await register(auth_service)
        result = await auth_service.login("alice@x.com", "secret1")

        await auth_service.logout(result.session_id)
        await auth_service.logout(result.session_id)
        await auth_service.logout(None)
        assert await session_manager.resolve(result.session_id) is None

    async def test_session_of_deleted_user_resolves_anonymous(self, auth_service, user_store):
        result = await auth_service.register("alice@x.com", "secret1", "Alice")
        await user_store.delete(result.user.id)
        assert await auth_service.resolve_session(result.session_id) is None

    async def test_login_replaces_session_the_client_held(self, auth_service, session_manager):
        first = await auth_service.register("alice@x.com", "secret1", "Alice")
        second = await auth_service.login("alice@x.com", "secret1", first.session_id)

        assert second.session_id != first.session_id
        assert await session_manager.resolve(first.session_id) is None
        assert await session_manager.resolve(second.session_id) == first.user.id
        assert len(session_manager) == 1

    async def test_outdated_hash_is_upgraded_on_login(self, auth_service, user_store):
        legacy = PasswordHasher(time_cost=1, memory_cost=8192).hash("secret1")
        user = await user_store.create({"email": "alice@x.com", "password_hash": legacy, "display_name": "Alice"})

        await auth_service.login("alice@x.com", "secret1")

        stored = (await user_store.get_by_id(user.id)).password_hash
        assert stored != legacy
        assert not hashing.needs_rehash(stored)
        assert (await auth_service.login("alice@x.com", "secret1")).state is AuthState.AUTHENTICATED


class TestTwoFactor:
    async def test_enable_returns_provisioning_data(self, auth_service, user_store):
        user = await register(auth_service)
        setup = await auth_service.toggle_two_factor(user.id, True)

        stored = await user_store.get_by_id(user.id)
        assert setup.enabled is True
        assert stored.two_factor_enabled is True
        assert len(bytes.fromhex(stored.two_factor_secret)) == 20
        assert pyotp.parse_uri(setup.otpauth_uri).secret == totp.totp_key(stored.two_factor_secret)
        assert setup.qr_code

    async def test_disable_clears_secret(self, auth_service, user_store):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        setup = await auth_service.toggle_two_factor(user.id, False)

        stored = await user_store.get_by_id(user.id)
        assert setup.enabled is False
        assert stored.two_factor_enabled is False
        assert stored.two_factor_secret is None

    async def test_reenabling_rotates_secret(self, auth_service, user_store):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        first = (await user_store.get_by_id(user.id)).two_factor_secret
        await auth_service.toggle_two_factor(user.id, True)
        assert (await user_store.get_by_id(user.id)).two_factor_secret != first

    async def test_login_goes_through_mfa_pending(self, auth_service, user_store, session_manager):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        secret = (await user_store.get_by_id(user.id)).two_factor_secret

        pending = await auth_service.login("alice@x.com", "secret1")
        assert pending.state is AuthState.MFA_PENDING
        assert pending.session_id is None
        assert pending.challenge_token
        assert len(session_manager) == 1  # only the registration session

        done = await auth_service.verify_two_factor(pending.challenge_token, totp.get_current_totp(secret))
        assert done.state is AuthState.AUTHENTICATED
        assert await session_manager.resolve(done.session_id) == user.id

        with pytest.raises(InvalidToken):
            await auth_service.verify_two_factor(pending.challenge_token, totp.get_current_totp(secret))

    async def test_wrong_code_is_rejected(self, auth_service, user_store):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        secret = (await user_store.get_by_id(user.id)).two_factor_secret
        wrong = next(c for c in ("000000", "111111", "222222") if not totp.verify_totp(secret, c))

        pending = await auth_service.login("alice@x.com", "secret1")
        with pytest.raises(InvalidCredentials):
            await auth_service.verify_two_factor(pending.challenge_token, wrong)

    async def test_unknown_challenge(self, auth_service):
        with pytest.raises(InvalidToken):
            await auth_service.verify_two_factor("nope", "123456")

    async def test_code_works_only_once(self, auth_service, user_store):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        secret = (await user_store.get_by_id(user.id)).two_factor_secret
        code = totp.get_current_totp(secret)

        first = await auth_service.login("alice@x.com", "secret1")
        done = await auth_service.verify_two_factor(first.challenge_token, code)
        assert done.state is AuthState.AUTHENTICATED

        second = await auth_service.login("alice@x.com", "secret1")
        with pytest.raises(InvalidCredentials):
            await auth_service.verify_two_factor(second.challenge_token, code)
        assert (await user_store.get_by_id(user.id)).two_factor_last_counter is not None

    async def test_new_secret_resets_used_codes(self, auth_service, user_store):
        user = await register(auth_service)
        await auth_service.toggle_two_factor(user.id, True)
        secret = (await user_store.get_by_id(user.id)).two_factor_secret
        pending = await auth_service.login("alice@x.com", "secret1")
        await auth_service.verify_two_factor(pending.challenge_token, totp.get_current_totp(secret))

        await auth_service.toggle_two_factor(user.id, True)
        assert (await user_store.get_by_id(user.id)).two_factor_last_counter is None


class TestPasswordReset:
    async def test_same_message_for_known_and_unknown(self, auth_service):
        await register(auth_service)
        known = await auth_service.request_password_reset("alice@x.com")
        unknown = await auth_service.request_password_reset("ghost@x.com")
        assert known == unknown == PASSWORD_RESET_MESSAGE

    async def test_token_has_one_hour_expiry(self, auth_service, user_store):
        await register(auth_service)
        await auth_service.request_password_reset("alice@x.com")

        user = await user_store.get_by_email("alice@x.com")
        assert len(user.password_reset_token) == 64
        assert user.password_reset_expires is not None
        assert (await user_store.get_by_reset_token(user.password_reset_token)).id == user.id

    async def test_reset_flow_and_single_use(self, auth_service, user_store):
        await register(auth_service)
        await auth_service.request_password_reset("alice@x.com")
        token = (await user_store.get_by_email("alice@x.com")).password_reset_token

        await auth_service.complete_password_reset(token, "newpass")

        with pytest.raises(InvalidCredentials):
            await auth_service.login("alice@x.com", "secret1")
        assert (await auth_service.login("alice@x.com", "newpass")).state is AuthState.AUTHENTICATED

        with pytest.raises(InvalidToken):
            await auth_service.complete_password_reset(token, "another")

    async def test_unknown_token(self, auth_service):
        with pytest.raises(InvalidToken):
            await auth_service.complete_password_reset("nope", "newpass")


class TestProfile:
    async def test_update_display_name(self, auth_service):
        user = await register(auth_service)
        updated = await auth_service.update_profile(user.id, {"display_name": "Alicia"})
        assert updated.display_name == "Alicia"

    async def test_password_change_requires_current_password(self, auth_service):
        user = await register(auth_service)

        with pytest.raises(CurrentPasswordMismatch):
            await auth_service.update_profile(user.id, {"password": "newpass"})
        with pytest.raises(CurrentPasswordMismatch):
            await auth_service.update_profile(user.id, {"password": "newpass"}, "wrong")

        await auth_service.update_profile(user.id, {"password": "newpass"}, "secret1")
        assert (await auth_service.login("alice@x.com", "newpass")).user.id == user.id

    async def test_privileged_fields_ignored(self, auth_service):
        user = await register(auth_service)
        updated = await auth_service.update_profile(user.id, {"is_admin": True, "display_name": "A"})
        assert updated.is_admin is False

    async def test_delete_account_ends_session(self, auth_service, session_manager, user_store):
        result = await auth_service.register("alice@x.com", "secret1", "Alice")
        await auth_service.delete_account(result.user.id, result.session_id)

        assert await user_store.get_by_id(result.user.id) is None
        assert await session_manager.resolve(result.session_id) is None


class TestAdmin:
    async def test_non_admin_forbidden_before_any_write(self, auth_service, user_store):
        alice = await register(auth_service)
        bob = await register(auth_service, "bob@x.com", display_name="Bob")

        for requester in (None, alice):
            with pytest.raises(Forbidden):
                await auth_service.list_users(requester)
            with pytest.raises(Forbidden):
                await auth_service.update_user(requester, bob.id, {"display_name": "Hacked"})
            with pytest.raises(Forbidden):
                await auth_service.delete_user(requester, bob.id)

        assert (await user_store.get_by_id(bob.id)).display_name == "Bob"

    async def test_admin_manages_users(self, auth_service, user_store, session_manager):
        admin = await register(auth_service, "boss@sakany.com", display_name="Boss")
        bob_result = await auth_service.register("bob@x.com", "secret1", "Bob")
        bob = bob_result.user

        assert [u.email for u in await auth_service.list_users(admin)] == ["boss@sakany.com", "bob@x.com"]

        updated = await auth_service.update_user(admin, bob.id, {"is_admin": True, "password": "bobpass"})
        assert updated.is_admin is True
        assert (await auth_service.login("bob@x.com", "bobpass")).user.id == bob.id

        await auth_service.delete_user(admin, bob.id)
        assert await user_store.get_by_id(bob.id) is None
        assert await session_manager.resolve(bob_result.session_id) is None

    async def test_admin_update_unknown_user(self, auth_service):
        admin = await register(auth_service, "boss@sakany.com")
        with pytest.raises(NotFound):
            await auth_service.update_user(admin, 999, {"display_name": "x"})
