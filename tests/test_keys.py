"""
API key inspection helpers
"""

import time

import jwt

from supaprobe.core.keys import describe_key, mask_secret, token_subject


def make_key(**claims) -> str:
    return jwt.encode(claims, "not-the-project-secret-but-long-enough-for-hs256", algorithm="HS256")


class TestDescribeKey:

    def test_anon_jwt(self):
        info = describe_key(make_key(iss="supabase", ref="abcdef", role="anon", exp=int(time.time()) + 3600))
        assert info.is_jwt
        assert info.role == "anon"
        assert info.tier == "anon"
        assert info.project_ref == "abcdef"
        assert not info.expired

    def test_expired_service_jwt(self):
        info = describe_key(make_key(role="service_role", exp=int(time.time()) - 10))
        assert info.tier == "service"
        assert info.expired

    def test_opaque_keys(self):
        assert describe_key("sb_secret_abc").tier == "service"
        assert describe_key("sb_publishable_abc").tier == "anon"
        assert describe_key("garbage").tier == "unknown"
        assert not describe_key("").is_jwt


def test_mask_secret():
    assert mask_secret("") == "<not set>"
    assert mask_secret("short") == "*****"
    masked = mask_secret("eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9")
    assert masked.startswith("eyJhbGciOi...")
    assert "IkpXVCJ9" not in masked


def test_token_subject():
    assert token_subject(make_key(sub="user-1")) == "user-1"
    assert token_subject("not-a-jwt") is None
