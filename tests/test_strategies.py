"""
Tests for the authentication strategies.

Strategies never raise for bad credentials: every failure comes back as
a Denied value with a specific reason.
"""

import base64

import pytest

from nodemanager.auth import (
    AuthContext,
    BasicStrategy,
    BearerStrategy,
    Denied,
    DenialReason,
    Granted,
    KeyStore,
    RegistrationCandidate,
    RegistrationStrategy,
    basic_authorization,
    create_token,
)
from nodemanager.auth.strategies import extract_basic, extract_token, split_authorization
from nodemanager.storage import IdentityRecord, InMemoryCredentialStore, InMemoryKeyStorage


PASSWORD = "correct-horse-battery"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def stored_record(hasher):
    return IdentityRecord(password_hash=hasher.hash(PASSWORD))


@pytest.fixture
def basic(hasher, stored_record):
    return BasicStrategy(InMemoryCredentialStore(stored_record), hasher)


@pytest.fixture
def keystore(keypair):
    return KeyStore(InMemoryKeyStorage(keypair.private_pem, keypair.public_pem))


# =============================================================================
# Credential Parsing Tests
# =============================================================================


class TestCredentialParsing:
    def test_password_is_base64_inside_basic(self):
        header = basic_authorization("pa:ss")
        scheme, credentials = header.split(" ")
        decoded = base64.b64decode(credentials).decode()

        assert scheme == "Basic"
        assert decoded == "admin:" + base64.b64encode(b"pa:ss").decode()

    def test_extract_round_trip_with_colons(self):
        result = extract_basic(basic_authorization("a:b:c"))

        assert isinstance(result, Granted)
        assert result.value.username == "admin"
        assert result.value.password == "a:b:c"

    def test_missing_header(self):
        assert extract_basic(None) == Denied(DenialReason.NO_CREDENTIALS)

    @pytest.mark.parametrize("header", [
        "Basic",
        "Basic !!!not-base64!!!",
        "Bearer abc",
        "Basic " + base64.b64encode(b"no-colon").decode(),
        # password sent without the inner base64 layer
        "Basic " + base64.b64encode(b"admin:plain text").decode(),
        "Basic " + base64.b64encode(b"admin:").decode(),
    ])
    def test_malformed_basic(self, header):
        assert extract_basic(header) == Denied(DenialReason.INVALID_CREDENTIALS)

    def test_scheme_is_case_insensitive(self):
        assert split_authorization("jWt abc") == ("jwt", "abc")
        assert extract_token("JWT abc") == "abc"
        assert extract_token("Bearer abc") is None

    @pytest.mark.parametrize("header,expected", [
        ("  JWT   abc  ", ("jwt", "abc")),
        ("JWT", None),
        ("JWT    ", None),
        ("", None),
    ])
    def test_split_authorization_whitespace(self, header, expected):
        assert split_authorization(header) == expected

    def test_credentials_repr_hides_password(self):
        result = extract_basic(basic_authorization(PASSWORD))

        assert PASSWORD not in repr(result)


# =============================================================================
# Basic Strategy Tests
# =============================================================================


class TestBasicStrategy:
    @pytest.mark.asyncio
    async def test_correct_password_granted(self, basic):
        result = await basic.authenticate(basic_authorization(PASSWORD))

        assert result == Granted(AuthContext(username="admin"))

    @pytest.mark.asyncio
    async def test_grant_carries_no_secrets(self, basic, stored_record):
        result = await basic.authenticate(basic_authorization(PASSWORD))

        text = repr(result)
        assert PASSWORD not in text
        assert stored_record.password_hash not in text

    @pytest.mark.asyncio
    async def test_username_is_ignored(self, basic):
        result = await basic.authenticate(basic_authorization(PASSWORD, username="someone-else"))

        assert result == Granted(AuthContext(username="admin"))

    @pytest.mark.asyncio
    async def test_wrong_password(self, basic):
        result = await basic.authenticate(basic_authorization("wrong-password"))

        assert result == Denied(DenialReason.INCORRECT_PASSWORD)

    @pytest.mark.asyncio
    async def test_not_registered(self, hasher):
        strategy = BasicStrategy(InMemoryCredentialStore(), hasher)

        result = await strategy.authenticate(basic_authorization(PASSWORD))

        assert result == Denied(DenialReason.NOT_REGISTERED)

    @pytest.mark.asyncio
    async def test_no_credentials(self, basic):
        assert await basic.authenticate(None) == Denied(DenialReason.NO_CREDENTIALS)

    @pytest.mark.asyncio
    async def test_malformed_credentials(self, basic):
        result = await basic.authenticate("Basic !!!")

        assert result == Denied(DenialReason.INVALID_CREDENTIALS)


# =============================================================================
# Bearer Strategy Tests
# =============================================================================


class TestBearerStrategy:
    @pytest.mark.asyncio
    async def test_valid_token_granted(self, keystore):
        await keystore.ensure_keypair()
        strategy = BearerStrategy(keystore)

        result = await strategy.authenticate(f"JWT {create_token(keystore)}")

        assert result == Granted(AuthContext(username="admin"))

    @pytest.mark.asyncio
    async def test_rotated_key_rejects_old_token(self, keystore):
        await keystore.ensure_keypair()
        strategy = BearerStrategy(keystore)
        token = create_token(keystore)

        await keystore.rotate()

        assert await strategy.authenticate(f"JWT {token}") == Denied(DenialReason.INVALID_TOKEN)

    @pytest.mark.asyncio
    async def test_wrong_scheme(self, keystore):
        await keystore.ensure_keypair()
        strategy = BearerStrategy(keystore)

        result = await strategy.authenticate(f"Bearer {create_token(keystore)}")

        assert result == Denied(DenialReason.INVALID_TOKEN)

    @pytest.mark.asyncio
    async def test_tampered_token(self, keystore):
        await keystore.ensure_keypair()
        strategy = BearerStrategy(keystore)
        token = create_token(keystore)
        tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")

        assert await strategy.authenticate(f"JWT {tampered}") == Denied(DenialReason.INVALID_TOKEN)

    @pytest.mark.asyncio
    async def test_no_credentials(self, keystore):
        await keystore.ensure_keypair()

        result = await BearerStrategy(keystore).authenticate(None)

        assert result == Denied(DenialReason.NO_CREDENTIALS)


# =============================================================================
# Registration Strategy Tests
# =============================================================================


class TestRegistrationStrategy:
    @pytest.mark.asyncio
    async def test_produces_hashed_candidate(self, hasher):
        strategy = RegistrationStrategy(hasher)

        result = await strategy.authenticate(basic_authorization(PASSWORD))

        assert isinstance(result, Granted)
        candidate = result.value
        assert isinstance(candidate, RegistrationCandidate)
        assert candidate.record.username == "admin"
        assert candidate.record.password_hash != PASSWORD
        assert hasher.verify(PASSWORD, candidate.record.password_hash)

    @pytest.mark.asyncio
    async def test_candidate_carries_the_hashed_password(self, hasher):
        result = await RegistrationStrategy(hasher).authenticate(basic_authorization("short"))

        assert result.value.password == "short"
        assert hasher.verify("short", result.value.record.password_hash)
        assert "short" not in repr(result)

    @pytest.mark.asyncio
    async def test_no_credentials(self, hasher):
        result = await RegistrationStrategy(hasher).authenticate(None)

        assert result == Denied(DenialReason.NO_CREDENTIALS)
