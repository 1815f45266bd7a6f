"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, shared-secret comparison
"""
import pytest
from datetime import datetime, timedelta, timezone
from jose import jwt

from solar_tracker.core.exceptions import ConfigurationError, InvalidTokenError
from solar_tracker.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    keys_match,
    verify_password,
)

SECRET = 'unit-test-secret'


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        hashed = get_password_hash('testpassword123', rounds=4)

        assert hashed != 'testpassword123'
        assert hashed.startswith('$2')

    def test_hash_password_different_each_time(self):
        """Bcrypt generates different salts"""
        assert get_password_hash('testpassword123', rounds=4) != get_password_hash('testpassword123', rounds=4)

    def test_verify_password_correct(self):
        hashed = get_password_hash('testpassword123', rounds=4)
        assert verify_password('testpassword123', hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash('testpassword123', rounds=4)
        assert verify_password('wrongpassword', hashed) is False

    def test_hash_long_password_truncated(self):
        """Bcrypt has 72 byte limit"""
        long_password = 'a' * 100
        hashed = get_password_hash(long_password, rounds=4)
        assert verify_password(long_password, hashed) is True

    def test_hash_unicode_password(self):
        password = 'tëst🔐pässwörd'
        hashed = get_password_hash(password, rounds=4)
        assert verify_password(password, hashed) is True

    def test_malformed_hash_does_not_verify(self):
        assert verify_password('anything', 'not-a-bcrypt-hash') is False


class TestAccessToken:
    """Test access token functions"""

    def test_token_carries_identity_claims(self):
        token = create_access_token({'id': 'u1', 'username': 'jo'}, secret=SECRET)
        payload = jwt.decode(token, SECRET, algorithms=['HS256'])

        assert payload['id'] == 'u1'
        assert payload['username'] == 'jo'
        assert 'exp' in payload
        assert 'iat' in payload

    def test_custom_expiry(self):
        token = create_access_token({'id': 'u1'}, secret=SECRET, expires_delta=timedelta(hours=1))
        payload = jwt.decode(token, SECRET, algorithms=['HS256'])

        remaining = payload['exp'] - datetime.now(timezone.utc).timestamp()
        assert 3500 < remaining <= 3600

    def test_default_expiry_is_twelve_hours(self):
        token = create_access_token({'id': 'u1'}, secret=SECRET)
        payload = jwt.decode(token, SECRET, algorithms=['HS256'])

        assert payload['exp'] - payload['iat'] == 12 * 3600

    def test_missing_secret_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            create_access_token({'id': 'u1'}, secret=None)


class TestDecodeToken:

    def test_round_trip(self):
        token = create_access_token({'id': 'u1', 'username': 'jo'}, secret=SECRET)
        assert decode_token(token, SECRET)['username'] == 'jo'

    def test_wrong_secret(self):
        token = create_access_token({'id': 'u1'}, secret=SECRET)
        with pytest.raises(InvalidTokenError) as exc_info:
            decode_token(token, 'another-secret')
        assert exc_info.value.message == 'Invalid or expired token'

    def test_expired_token_same_error(self):
        token = create_access_token({'id': 'u1'}, secret=SECRET, expires_delta=timedelta(seconds=-5))
        with pytest.raises(InvalidTokenError) as exc_info:
            decode_token(token, SECRET)
        assert exc_info.value.message == 'Invalid or expired token'

    def test_garbage_token(self):
        with pytest.raises(InvalidTokenError):
            decode_token('not.a.token', SECRET)

    def test_missing_secret(self):
        with pytest.raises(ConfigurationError):
            decode_token('whatever', None)


class TestKeysMatch:

    def test_match(self):
        assert keys_match('abc', 'abc') is True

    @pytest.mark.parametrize('provided', [None, '', 'abd', 'abc '])
    def test_mismatch(self, provided):
        assert keys_match(provided, 'abc') is False
