import unittest
from datetime import datetime, timedelta, timezone

import jwt

from celulas.config import Settings
from celulas.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    parse_expires_in,
    verify_password,
)


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("secret123", rounds=4)
        self.assertNotEqual(hashed, "secret123")
        self.assertTrue(verify_password("secret123", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_malformed_hash_is_rejected(self):
        self.assertFalse(verify_password("secret123", "not-a-bcrypt-hash"))
        self.assertFalse(verify_password("secret123", ""))


class TokenTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(jwt_secret="unit-secret", jwt_expires_in="1h")

    def test_parse_expires_in(self):
        self.assertEqual(parse_expires_in("7d"), timedelta(days=7))
        self.assertEqual(parse_expires_in("12h"), timedelta(hours=12))
        self.assertEqual(parse_expires_in("30m"), timedelta(minutes=30))
        self.assertEqual(parse_expires_in("3600"), timedelta(seconds=3600))
        with self.assertRaises(ValueError):
            parse_expires_in("soon")

    def test_round_trip_payload(self):
        token = create_access_token("u1", "a@b.com", "ADMIN", settings=self.settings)
        payload = decode_access_token(token, settings=self.settings)
        self.assertEqual(payload["userId"], "u1")
        self.assertEqual(payload["email"], "a@b.com")
        self.assertEqual(payload["role"], "ADMIN")
        self.assertEqual(payload["exp"] - payload["iat"], 3600)

    def test_wrong_secret(self):
        token = create_access_token("u1", "a@b.com", "ADMIN", settings=self.settings)
        other = Settings(jwt_secret="other-secret")
        with self.assertRaises(TokenError):
            decode_access_token(token, settings=other)

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"userId": "u1", "iat": past, "exp": past + timedelta(hours=1)},
            "unit-secret",
            algorithm="HS256",
        )
        with self.assertRaises(TokenError):
            decode_access_token(token, settings=self.settings)

    def test_token_without_user_id(self):
        token = jwt.encode({"email": "a@b.com"}, "unit-secret", algorithm="HS256")
        with self.assertRaises(TokenError):
            decode_access_token(token, settings=self.settings)


if __name__ == "__main__":
    unittest.main()
