"""
Unit Tests for the Invitation Token Codec
Tests for: issuing, verification outcomes, expiry, tampering, link building
"""
import base64
from datetime import timedelta
from unittest.mock import patch
from urllib.parse import quote, parse_qs, urlparse

import pytest

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    InvalidSignatureError,
    InvitationExpiredError,
    MalformedTokenError,
    ValidationError,
)
from app.services.invite_token_service import (
    TokenCodec,
    VerificationStatus,
    build_invite_link,
    get_base_url,
    normalize_token,
)


def decode_parts(token: str) -> list:
    return base64.urlsafe_b64decode(token.encode()).decode().split(':')


def encode_parts(parts: list) -> str:
    return base64.urlsafe_b64encode(':'.join(parts).encode()).decode()


class TestTokenCodecConstruction:
    """Test codec configuration"""

    def test_empty_secret_is_rejected(self):
        """A missing secret is a configuration error, never a fallback"""
        with pytest.raises(ConfigurationError) as exc_info:
            TokenCodec('')

        assert exc_info.value.details['setting'] == 'INVITE_TOKEN_SECRET'

    def test_from_settings_uses_configured_secret(self, clock):
        """Codec built from settings verifies tokens from a codec with the same secret"""
        issued = TokenCodec.from_settings(clock=clock).issue('a@example.com')

        assert TokenCodec(settings.INVITE_TOKEN_SECRET, clock=clock).verify(issued.token).valid is True

    def test_from_settings_without_secret_fails(self):
        """from_settings() raises when INVITE_TOKEN_SECRET is empty"""
        with patch('app.services.invite_token_service.settings') as mock_settings:
            mock_settings.INVITE_TOKEN_SECRET = ''
            mock_settings.INVITE_TOKEN_TTL_DAYS = 7
            with pytest.raises(ConfigurationError):
                TokenCodec.from_settings()


class TestIssue:
    """Test token issuance"""

    def test_token_has_four_parts(self, codec):
        """Issued token decodes to raw_token:email:expires_at:signature"""
        issued = codec.issue('a@example.com')
        raw_token, email, expires_at, signature = decode_parts(issued.token)

        assert raw_token == issued.raw_token
        assert email == 'a@example.com'
        assert int(expires_at) == issued.expires_at
        assert len(signature) == 64

    def test_raw_token_has_256_bits(self, codec):
        """Raw token is 32 random bytes, hex encoded"""
        issued = codec.issue('a@example.com')

        assert len(issued.raw_token) == 64
        int(issued.raw_token, 16)

    def test_raw_tokens_are_unique(self, codec):
        """Two tokens for the same email differ"""
        assert codec.issue('a@example.com').raw_token != codec.issue('a@example.com').raw_token

    def test_expiry_is_seven_days(self, codec, clock):
        """Default expiry is issuance time plus seven days in milliseconds"""
        issued = codec.issue('a@example.com')

        assert issued.expires_at == clock.now_ms + 7 * 24 * 60 * 60 * 1000

    def test_custom_ttl(self, clock):
        """TTL is configurable"""
        codec = TokenCodec('secret', ttl=timedelta(hours=1), clock=clock)

        assert codec.issue('a@example.com').expires_at == clock.now_ms + 3600 * 1000

    def test_token_is_url_safe(self, codec):
        """Encoded token survives a query string unchanged"""
        for _ in range(20):
            token = codec.issue('someone+tag@example.com').token
            assert quote(token, safe='=') == token

    def test_empty_email_is_rejected(self, codec):
        with pytest.raises(ValidationError):
            codec.issue('')

    def test_email_with_separator_is_rejected(self, codec):
        """An email containing ':' could never be verified"""
        with pytest.raises(ValidationError) as exc_info:
            codec.issue('a:b@example.com')

        assert exc_info.value.details['field'] == 'email'


class TestVerify:
    """Test token verification outcomes"""

    def test_round_trip(self, codec):
        """A freshly issued token verifies with its email"""
        issued = codec.issue('a@example.com')
        result = codec.verify(issued.token)

        assert result.valid is True
        assert result.expired is False
        assert result.status == VerificationStatus.VALID
        assert result.email == 'a@example.com'
        assert result.raw_token == issued.raw_token

    def test_lookup_token_is_full_encoded_token(self, codec):
        """The lookup key is the encoded token, not the raw token"""
        issued = codec.issue('a@example.com')

        assert codec.verify(issued.token).lookup_token == issued.token

    def test_percent_encoded_token_verifies(self, codec):
        """Tokens that were percent-encoded in a URL still verify"""
        issued = codec.issue('a@example.com')
        encoded = quote(issued.token, safe='')

        result = codec.verify(encoded)

        assert result.valid is True
        assert result.lookup_token == issued.token

    def test_standard_alphabet_token_verifies(self, codec):
        """Tokens in the standard base64 alphabet are accepted"""
        issued = codec.issue('a@example.com')
        standard = issued.token.replace('-', '+').replace('_', '/')

        result = codec.verify(standard)

        assert result.valid is True
        assert result.lookup_token == issued.token

    def test_unpadded_token_has_same_lookup_key(self, codec):
        issued = codec.issue('ab@example.com')

        assert codec.verify(issued.token.rstrip('=')).lookup_token == issued.token

    def test_expired_one_ms_after_expiry(self, codec, clock):
        """now = expires_at + 1ms is expired, still surfacing email and raw token"""
        issued = codec.issue('a@example.com')
        clock.now_ms = issued.expires_at + 1

        result = codec.verify(issued.token)

        assert result.expired is True
        assert result.valid is False
        assert result.status == VerificationStatus.EXPIRED
        assert result.email == 'a@example.com'
        assert result.raw_token == issued.raw_token

    def test_valid_at_exact_expiry(self, codec, clock):
        """now == expires_at is still valid"""
        issued = codec.issue('a@example.com')
        clock.now_ms = issued.expires_at

        assert codec.verify(issued.token).valid is True

    def test_valid_one_ms_before_expiry(self, codec, clock):
        issued = codec.issue('a@example.com')
        clock.now_ms = issued.expires_at - 1

        assert codec.verify(issued.token).valid is True

    def test_expiry_checked_before_signature(self, codec, clock):
        """An expired token is reported as expired even if its signature is wrong"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[3] = '0' * 64
        clock.now_ms = issued.expires_at + 1

        assert codec.verify(encode_parts(parts)).expired is True

    def test_raise_for_status_on_expired(self, codec, clock):
        """raise_for_status() turns an expired result into InvitationExpiredError"""
        issued = codec.issue('a@example.com')
        clock.advance(8 * 24 * 60 * 60 * 1000)

        with pytest.raises(InvitationExpiredError) as exc_info:
            codec.verify(issued.token).raise_for_status()

        assert exc_info.value.details['email'] == 'a@example.com'

    def test_raise_for_status_on_valid_returns_result(self, codec):
        issued = codec.issue('a@example.com')
        result = codec.verify(issued.token)

        assert result.raise_for_status() is result


class TestTamperDetection:
    """Test that altered tokens never verify"""

    def test_flipping_any_signature_character_fails(self, codec):
        """Every single-character change in the signature is detected"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        signature = parts[3]

        for index, char in enumerate(signature):
            replacement = '0' if char != '0' else '1'
            tampered = parts[:3] + [signature[:index] + replacement + signature[index + 1:]]
            with pytest.raises(InvalidSignatureError):
                codec.verify(encode_parts(tampered))

    def test_email_substitution_fails(self, codec):
        """A token for a@example.com re-encoded with b@example.com fails"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[1] = 'b@example.com'

        with pytest.raises(InvalidSignatureError):
            codec.verify(encode_parts(parts))

    def test_extended_expiry_fails(self, codec):
        """Pushing expires_at forward invalidates the signature"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[2] = str(int(parts[2]) + 1000)

        with pytest.raises(InvalidSignatureError):
            codec.verify(encode_parts(parts))

    def test_zero_padded_expiry_fails(self, codec):
        """The signature covers the expiry text exactly as issued"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[2] = '00' + parts[2]

        with pytest.raises(InvalidSignatureError):
            codec.verify(encode_parts(parts))

    @pytest.mark.parametrize('rewrite', [
        lambda exp: '+' + exp,
        lambda exp: ' ' + exp,
        lambda exp: exp[:3] + '_' + exp[3:],
        lambda exp: exp.translate(str.maketrans('0123456789', '\uff10\uff11\uff12\uff13\uff14\uff15\uff16\uff17\uff18\uff19')),
    ])
    def test_non_decimal_expiry_spellings_are_malformed(self, codec, rewrite):
        """Alternative integer spellings of the same expiry never verify"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[2] = rewrite(parts[2])

        with pytest.raises(MalformedTokenError) as exc_info:
            codec.verify(encode_parts(parts))

        assert exc_info.value.reason == 'expiry'

    def test_foreign_secret_fails(self, clock):
        """A token signed with another secret is rejected"""
        issued = TokenCodec('other-secret', clock=clock).issue('a@example.com')

        with pytest.raises(InvalidSignatureError):
            TokenCodec('test-secret', clock=clock).verify(issued.token)


class TestMalformedTokens:
    """Test structurally invalid input"""

    @pytest.mark.parametrize('token', ['', '   ', '!!!not-base64!!!', 'a'])
    def test_undecodable(self, codec, token):
        with pytest.raises(MalformedTokenError):
            codec.verify(token)

    def test_non_utf8_payload(self, codec):
        token = base64.urlsafe_b64encode(b'\xff\xfe\xfd\xfc').decode()

        with pytest.raises(MalformedTokenError) as exc_info:
            codec.verify(token)

        assert exc_info.value.reason == 'encoding'

    @pytest.mark.parametrize('payload', ['a:b:c', 'a:b:c:d:e', 'a::123:sig', ':b:123:sig'])
    def test_wrong_structure(self, codec, payload):
        with pytest.raises(MalformedTokenError) as exc_info:
            codec.verify(encode_parts([payload]))

        assert exc_info.value.reason == 'structure'

    def test_non_numeric_expiry(self, codec):
        with pytest.raises(MalformedTokenError) as exc_info:
            codec.verify(encode_parts(['raw', 'a@example.com', 'tomorrow', 'sig']))

        assert exc_info.value.reason == 'expiry'

    def test_malformed_and_tampered_share_public_message(self, codec):
        """Callers cannot tell which check failed"""
        assert MalformedTokenError().message == InvalidSignatureError().message

    def test_classify(self, codec, clock):
        """classify() reports every outcome without raising"""
        issued = codec.issue('a@example.com')
        parts = decode_parts(issued.token)
        parts[1] = 'b@example.com'

        assert codec.classify(issued.token) == VerificationStatus.VALID
        assert codec.classify('%%%') == VerificationStatus.MALFORMED
        assert codec.classify(encode_parts(parts)) == VerificationStatus.SIGNATURE_INVALID

        clock.advance(8 * 24 * 60 * 60 * 1000)
        assert codec.classify(issued.token) == VerificationStatus.EXPIRED


class TestNormalizeToken:
    """Test percent-decoding of incoming tokens"""

    def test_plain_token_unchanged(self):
        assert normalize_token('YWJj') == 'YWJj'

    def test_percent_encoded_padding(self):
        assert normalize_token('YWI%3D') == 'YWI='

    def test_strips_whitespace(self):
        assert normalize_token('  YWJj\n') == 'YWJj'

    def test_none_becomes_empty(self):
        assert normalize_token(None) == ''


class TestInviteLinks:
    """Test base URL resolution and link building"""

    def test_public_host_takes_precedence(self):
        with patch('app.services.invite_token_service.settings') as mock_settings:
            mock_settings.PUBLIC_HOST = 'teamtime.example.com'
            mock_settings.SITE_URL = 'https://ignored.example.com'

            assert get_base_url() == 'https://teamtime.example.com'

    def test_site_url_used_without_public_host(self):
        with patch('app.services.invite_token_service.settings') as mock_settings:
            mock_settings.PUBLIC_HOST = ''
            mock_settings.SITE_URL = 'https://app.example.com/'

            assert get_base_url() == 'https://app.example.com'

    def test_localhost_default(self):
        with patch('app.services.invite_token_service.settings') as mock_settings:
            mock_settings.PUBLIC_HOST = ''
            mock_settings.SITE_URL = ''
            mock_settings.DEFAULT_SITE_URL = 'http://localhost:3000'

            assert get_base_url() == 'http://localhost:3000'

    def test_link_format(self, codec):
        """Link is <base>/invite?token=...&teamId=... and the token round-trips"""
        issued = codec.issue('a@example.com')
        link = build_invite_link(issued.token, 'team-42', base_url='https://app.example.com')

        parsed = urlparse(link)
        query = parse_qs(parsed.query)

        assert link.startswith('https://app.example.com/invite?token=')
        assert parsed.path == '/invite'
        assert query['teamId'] == ['team-42']
        assert query['token'] == [issued.token]
        assert codec.verify(query['token'][0]).valid is True
