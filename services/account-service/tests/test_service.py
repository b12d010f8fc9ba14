from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from app.domain.contracts import PasswordChangeInput, ProfileUpdateInput, SignupInput
from app.domain.errors import (
    AccountNotFoundError,
    EmailTakenError,
    InvalidCredentialsError,
    ValidationFailedError,
    WeakPasswordError,
    WrongOldPasswordError,
)
from app.domain.service import AccountService, is_strong_password

from conftest import FakeRepository

PASSWORD = "Abcdef1!"


def _signup(service: AccountService, email: str = "jo@test.com", name: str = "Jo", password: str = PASSWORD):
    return service.signup(SignupInput(name=name, email=email, password=password, confirm_password=password))


def test_concurrent_signups_for_same_email_admit_exactly_one(service):
    barrier = Barrier(2)

    def attempt(email: str):
        barrier.wait()
        try:
            return _signup(service, email=email)
        except EmailTakenError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, ["a@x.com", "A@X.com "]))

    successes = [result for result in results if not isinstance(result, Exception)]
    failures = [result for result in results if isinstance(result, EmailTakenError)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert successes[0].email == "a@x.com"


@pytest.mark.parametrize(
    ("password", "strong"),
    [
        ("abc12345", False),
        ("Abc123!@", True),
        ("ABC123!@", False),
        ("Abcdefg!", False),
        ("Abc12!", False),
        ("Abc123?&", True),
        ("Abc 123!", False),
        ("Abc123#^", False),
    ],
)
def test_strength_policy(password, strong):
    assert is_strong_password(password) is strong


def test_signup_rejects_weak_password(service):
    with pytest.raises(WeakPasswordError):
        _signup(service, password="abc12345")


def test_signup_rejects_mismatched_confirmation(service):
    with pytest.raises(ValidationFailedError):
        service.signup(
            SignupInput(name="Jo", email="jo@test.com", password=PASSWORD, confirm_password="Abcdef1?")
        )


def test_signup_stores_canonical_email_and_hash(service, repository, hasher):
    account = _signup(service, email="  Jo@Test.COM ", name=" Jo ")

    stored = repository.stored(account.account_id)
    assert stored.email == "jo@test.com"
    assert stored.display_name == "Jo"
    assert stored.password_hash != PASSWORD
    assert hasher.verify(PASSWORD, stored.password_hash)
    assert not hasattr(account, "password_hash")


def test_login_returns_token_for_account(service, tokens):
    account = _signup(service)

    result = service.login("JO@test.com", PASSWORD)

    assert result.account == account
    claims = tokens.verify(result.token)
    assert claims.account_id == account.account_id
    assert claims.expires_at == result.expires_at


@pytest.mark.parametrize(("email", "password"), [("ghost@test.com", PASSWORD), ("jo@test.com", "Abcdef1?")])
def test_login_failures_are_indistinguishable(service, email, password):
    _signup(service)
    with pytest.raises(InvalidCredentialsError) as excinfo:
        service.login(email, password)
    assert excinfo.value.message == "Invalid login credentials."


def test_get_profile_does_not_touch_updated_at(service, repository):
    account = _signup(service)
    before = repository.stored(account.account_id).updated_at

    for _ in range(3):
        assert service.get_profile(account.account_id) == account

    assert repository.stored(account.account_id).updated_at == before


def test_get_profile_unknown_account(service):
    with pytest.raises(AccountNotFoundError):
        service.get_profile("missing")


def test_update_profile_may_keep_own_email(service, repository):
    account = _signup(service)
    before = repository.stored(account.account_id).updated_at

    updated = service.update_profile(
        ProfileUpdateInput(account_id=account.account_id, name="Joanna", email="JO@test.com")
    )

    assert updated.name == "Joanna"
    assert updated.email == "jo@test.com"
    assert repository.stored(account.account_id).updated_at >= before


def test_update_profile_rejects_email_of_other_account(service, repository):
    _signup(service, email="other@test.com", name="Other")
    account = _signup(service)

    with pytest.raises(EmailTakenError):
        service.update_profile(
            ProfileUpdateInput(account_id=account.account_id, name="Jo", email="other@test.com")
        )
    assert repository.stored(account.account_id).email == "jo@test.com"


class RacingRepository(FakeRepository):
    """Hides existing holders from the lookup, as if they registered mid-request."""

    def find_by_email(self, email):
        return None


def test_update_profile_lost_race_is_email_taken(hasher, tokens):
    repository = RacingRepository()
    service = AccountService(repository, hasher, tokens)
    _signup(service, email="other@test.com", name="Other")
    account = _signup(service)

    with pytest.raises(EmailTakenError):
        service.update_profile(
            ProfileUpdateInput(account_id=account.account_id, name="Jo", email="other@test.com")
        )


@pytest.mark.parametrize(
    ("name", "email"), [("", "jo@test.com"), ("Jo", ""), ("   ", "jo@test.com"), ("Jo", "nope")]
)
def test_update_profile_validation(service, name, email):
    account = _signup(service)
    with pytest.raises(ValidationFailedError):
        service.update_profile(ProfileUpdateInput(account_id=account.account_id, name=name, email=email))


def test_change_password_replaces_hash(service, repository, hasher):
    account = _signup(service)
    before = repository.stored(account.account_id)

    service.change_password(
        PasswordChangeInput(
            account_id=account.account_id,
            old_password=PASSWORD,
            new_password="simple",
            confirm_new_password="simple",
        )
    )

    after = repository.stored(account.account_id)
    assert after.password_hash != before.password_hash
    assert hasher.verify("simple", after.password_hash)
    assert after.updated_at >= before.updated_at


def test_change_password_wrong_old_password(service, repository):
    account = _signup(service)
    before = repository.stored(account.account_id).password_hash

    with pytest.raises(WrongOldPasswordError):
        service.change_password(
            PasswordChangeInput(
                account_id=account.account_id,
                old_password="Wrong123!",
                new_password="Newpass1!",
                confirm_new_password="Newpass1!",
            )
        )
    assert repository.stored(account.account_id).password_hash == before


@pytest.mark.parametrize(
    ("old", "new", "confirm"),
    [
        ("", "Newpass1!", "Newpass1!"),
        (PASSWORD, "short", "short"),
        (PASSWORD, "Newpass1!", "Newpass2!"),
    ],
)
def test_change_password_validation(service, old, new, confirm):
    account = _signup(service)
    with pytest.raises(ValidationFailedError):
        service.change_password(
            PasswordChangeInput(
                account_id=account.account_id,
                old_password=old,
                new_password=new,
                confirm_new_password=confirm,
            )
        )


class VanishingRepository(FakeRepository):
    """Loses the row between the lookup and the write, as a concurrent delete would."""

    def update_profile(self, account_id, display_name, email):
        return None

    def update_password_hash(self, account_id, password_hash):
        return None


def test_update_profile_vanished_row_is_not_found(hasher, tokens):
    service = AccountService(VanishingRepository(), hasher, tokens)
    account = _signup(service)

    with pytest.raises(AccountNotFoundError):
        service.update_profile(
            ProfileUpdateInput(account_id=account.account_id, name="Joanna", email="jo@test.com")
        )


def test_change_password_vanished_row_is_not_found(hasher, tokens):
    service = AccountService(VanishingRepository(), hasher, tokens)
    account = _signup(service)

    with pytest.raises(AccountNotFoundError):
        service.change_password(
            PasswordChangeInput(
                account_id=account.account_id,
                old_password=PASSWORD,
                new_password="Newpass1!",
                confirm_new_password="Newpass1!",
            )
        )
