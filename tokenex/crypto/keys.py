"""RSA signing key generation, loading, rotation, and JWK conversion."""

import base64
import hashlib
import json
from datetime import UTC, datetime, timedelta

import uuid_utils
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from tokenex.crypto.types import JWKEntry, JWKSResponse, SigningKeyData

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


def _to_signing_key(private_key: RSAPrivateKey, kid: str) -> SigningKeyData:
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return SigningKeyData(
        kid=kid,
        private_key_pem=private_pem,
        public_key_pem=public_pem,
        key_size=private_key.key_size,
        created_at=datetime.now(UTC),
    )


def generate_rsa_keypair(key_size: int = RSA_KEY_SIZE) -> SigningKeyData:
    """Generate a new RSA keypair for JWT signing."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=key_size,
    )
    return _to_signing_key(private_key, str(uuid_utils.uuid7()))


def load_rsa_keypair(private_key_pem: str) -> SigningKeyData:
    """Load a PEM private key; the kid is its RFC 7638 thumbprint."""
    loaded = serialization.load_pem_private_key(private_key_pem.encode(), password=None)
    if not isinstance(loaded, RSAPrivateKey):
        raise ValueError("signing key must be an RSA private key")
    numbers = loaded.public_key().public_numbers()
    canonical = json.dumps(
        {"e": _int_to_base64url(numbers.e), "kty": "RSA", "n": _int_to_base64url(numbers.n)},
        separators=(",", ":"),
        sort_keys=True,
    )
    digest = hashlib.sha256(canonical.encode()).digest()
    kid = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return _to_signing_key(loaded, kid)


def _int_to_base64url(value: int) -> str:
    """Encode an integer as base64url without padding."""
    byte_length = (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def pem_to_jwk_entry(public_key_pem: str, kid: str) -> JWKEntry:
    """Convert a PEM public key to JWK format."""
    loaded = serialization.load_pem_public_key(public_key_pem.encode())
    if not isinstance(loaded, RSAPublicKey):
        raise ValueError("public key must be an RSA public key")
    numbers = loaded.public_numbers()
    return JWKEntry(
        kid=kid,
        n=_int_to_base64url(numbers.n),
        e=_int_to_base64url(numbers.e),
    )


class KeyRing:
    """Signing keys indexed by kid: one active key plus retired ones.

    Retired keys stay published for ``retire_grace_seconds`` so tokens they
    signed remain verifiable until those tokens expire.
    """

    def __init__(
        self,
        initial: SigningKeyData,
        *,
        key_size: int = RSA_KEY_SIZE,
        retire_grace_seconds: int = 0,
    ) -> None:
        self._key_size = key_size
        self._grace = timedelta(seconds=retire_grace_seconds)
        self._active = initial
        self._retired: dict[str, SigningKeyData] = {}
        self._jwk_cache: dict[str, JWKEntry] = {}

    @property
    def active(self) -> SigningKeyData:
        return self._active

    def rotate(self) -> SigningKeyData:
        """Generate a new active key and retire the current one."""
        new_key = generate_rsa_keypair(self._key_size)
        previous = self._active.model_copy(update={"retired_at": datetime.now(UTC)})
        self._retired[previous.kid] = previous
        self._active = new_key
        self._prune()
        return new_key

    def _prune(self) -> None:
        now = datetime.now(UTC)
        expired = [
            kid
            for kid, key in self._retired.items()
            if key.retired_at is not None and key.retired_at + self._grace <= now
        ]
        for kid in expired:
            del self._retired[kid]
            self._jwk_cache.pop(kid, None)

    def published(self) -> list[SigningKeyData]:
        """Keys whose public half should be exposed: active first."""
        self._prune()
        return [self._active, *self._retired.values()]

    def public_jwks(self) -> JWKSResponse:
        entries = []
        for key in self.published():
            entry = self._jwk_cache.get(key.kid)
            if entry is None:
                entry = pem_to_jwk_entry(key.public_key_pem, key.kid)
                self._jwk_cache[key.kid] = entry
            entries.append(entry)
        return JWKSResponse(keys=entries)
