import pytest
from jose import jwt

from auth.accounts import phone_username, public_profile
from auth.tokens import SessionTokenSigner
from conftest import FakeClock
from drobeo_app.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationFailedError

SIGNUP = {"username": "ada", "email": "Ada@Example.com", "name": "Ada Lovelace", "password": "analytical-engine"}
PHONE = "+1 (555) 010-0123"


def _issue_code(wardrobe_app, phone: str = PHONE) -> str:
    return wardrobe_app.verification.issue_code(phone).code


def test_signup_and_login(wardrobe_app) -> None:
    accounts = wardrobe_app.accounts
    user = accounts.signup(SIGNUP)

    assert user.email == "ada@example.com"
    assert user.password_hash != SIGNUP["password"]
    assert accounts.login("ADA@example.com", "analytical-engine").id == user.id

    with pytest.raises(UnauthorizedError) as excinfo:
        accounts.login("ada@example.com", "wrong-password")
    assert excinfo.value.message == "Invalid credentials"
    with pytest.raises(UnauthorizedError):
        accounts.login("nobody@example.com", "analytical-engine")
    with pytest.raises(ValidationFailedError):
        accounts.login("ada@example.com", "")


def test_signup_conflicts(wardrobe_app) -> None:
    wardrobe_app.accounts.signup(SIGNUP)
    with pytest.raises(ConflictError):
        wardrobe_app.accounts.signup({**SIGNUP, "username": "ada2"})
    with pytest.raises(ConflictError):
        wardrobe_app.accounts.signup({**SIGNUP, "email": "other@example.com"})


def test_public_profile_hides_password(wardrobe_app) -> None:
    profile = public_profile(wardrobe_app.accounts.signup(SIGNUP))

    assert "passwordHash" not in profile
    assert "password_hash" not in profile
    assert profile["onboardingComplete"] is False
    assert profile["preferences"]["ageRange"] is None


def test_phone_verification_creates_account(wardrobe_app) -> None:
    code = _issue_code(wardrobe_app)
    user = wardrobe_app.accounts.verify_phone({"phoneNumber": PHONE, "code": code, "name": "Grace"})

    assert user.username == "user_5550100123"
    assert user.phone_verified is True
    assert user.email is None
    assert phone_username("+44 7700 900123") == "user_7700900123"

    again = _issue_code(wardrobe_app)
    assert wardrobe_app.accounts.phone_login({"phoneNumber": PHONE, "code": again}).id == user.id


def test_new_phone_account_needs_name_before_code_is_spent(wardrobe_app) -> None:
    code = _issue_code(wardrobe_app)

    with pytest.raises(ValidationFailedError) as excinfo:
        wardrobe_app.accounts.verify_phone({"phoneNumber": PHONE, "code": code})
    assert excinfo.value.fields[0]["field"] == "name"

    assert wardrobe_app.accounts.verify_phone({"phoneNumber": PHONE, "code": code, "name": "Grace"}).id


def test_wrong_code_rejected(wardrobe_app) -> None:
    _issue_code(wardrobe_app)
    with pytest.raises(ValidationFailedError) as excinfo:
        wardrobe_app.accounts.verify_phone({"phoneNumber": PHONE, "code": "999999", "name": "Grace"})
    assert excinfo.value.fields == [{"field": "code", "message": "Invalid or expired verification code"}]


def test_phone_login_for_unknown_number(wardrobe_app) -> None:
    code = _issue_code(wardrobe_app)
    with pytest.raises(NotFoundError):
        wardrobe_app.accounts.phone_login({"phoneNumber": PHONE, "code": code})
    # The code was spent by the failed login.
    with pytest.raises(ValidationFailedError):
        wardrobe_app.accounts.phone_login({"phoneNumber": PHONE, "code": code})


def test_complete_onboarding(wardrobe_app) -> None:
    user = wardrobe_app.accounts.signup(SIGNUP)
    updated = wardrobe_app.accounts.complete_onboarding(
        user.id,
        {"styles": ["minimalist"], "seasons": ["fall", "winter"], "occasions": ["work"], "goals": ["organize"], "age": "25-34"},
    )

    assert updated.onboarding_complete is True
    assert updated.preferences.seasons == ["fall", "winter"]
    assert public_profile(updated)["preferences"]["ageRange"] == "25-34"
    with pytest.raises(NotFoundError):
        wardrobe_app.accounts.complete_onboarding(999, {})


def test_session_tokens(clock: FakeClock) -> None:
    signer = SessionTokenSigner("secret", ttl_seconds=3600, clock=clock)
    token = signer.issue(42)
    assert signer.verify(token) == 42

    header, claims, signature = token.split(".")
    tampered = f"{header}.{claims}.{signature[::-1]}"
    with pytest.raises(UnauthorizedError):
        signer.verify(tampered)
    with pytest.raises(UnauthorizedError):
        SessionTokenSigner("other-secret", ttl_seconds=3600, clock=clock).verify(token)
    with pytest.raises(UnauthorizedError) as missing:
        signer.verify(None)
    assert missing.value.message == "Authentication required"

    clock.advance(hours=2)
    with pytest.raises(UnauthorizedError) as expired:
        signer.verify(token)
    assert expired.value.message == "Session expired"


@pytest.mark.parametrize("token", ["café.abc", "forged.token", "a.b.c", "not-a-token"])
def test_malformed_tokens_are_unauthorized(clock: FakeClock, token: str) -> None:
    signer = SessionTokenSigner("secret", ttl_seconds=3600, clock=clock)
    with pytest.raises(UnauthorizedError) as excinfo:
        signer.verify(token)
    assert excinfo.value.message == "Invalid session token"


def test_session_token_is_a_jwt_with_expiry(clock: FakeClock) -> None:
    token = SessionTokenSigner("secret", ttl_seconds=3600, clock=clock).issue(42)

    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "42"
    assert claims["exp"] - claims["iat"] == 3600
    assert jwt.get_unverified_header(token)["alg"] == "HS256"
