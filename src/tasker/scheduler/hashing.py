"""PBKDF2 password hashing for hash tasks.

Hashes are rendered in PHC string format, e.g.::

    $pbkdf2-sha256$i=600000,l=32$<salt>$<hash>

with salt and hash in unpadded standard base64. Derivation is CPU-bound and
must run off the event loop.
"""

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass

ALGORITHM = "pbkdf2-sha256"


@dataclass(frozen=True)
class HashParams:
    iterations: int = 600_000
    output_length: int = 32
    salt_length: int = 16


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii").rstrip("=")


def _unb64(data: str) -> bytes:
    return base64.b64decode(data + "=" * (-len(data) % 4))


def hash_secret(secret: str, params: HashParams | None = None) -> str:
    """Derive a salted PBKDF2-HMAC-SHA256 hash of ``secret``.

    A fresh random salt is drawn on every call.
    """
    params = params or HashParams()
    salt = secrets.token_bytes(params.salt_length)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        secret.encode("utf-8"),
        salt,
        params.iterations,
        dklen=params.output_length,
    )
    return (
        f"${ALGORITHM}$i={params.iterations},l={params.output_length}"
        f"${_b64(salt)}${_b64(digest)}"
    )


def verify_secret(secret: str, phc: str) -> bool:
    """Check ``secret`` against a PHC string produced by hash_secret()."""
    try:
        _, algorithm, raw_params, salt_b64, digest_b64 = phc.split("$")
        if algorithm != ALGORITHM:
            return False
        fields = dict(part.split("=", 1) for part in raw_params.split(","))
        iterations = int(fields["i"])
        expected = _unb64(digest_b64)
        salt = _unb64(salt_b64)
    except (ValueError, KeyError):
        return False

    actual = hashlib.pbkdf2_hmac(
        "sha256", secret.encode("utf-8"), salt, iterations, dklen=len(expected)
    )
    return hmac.compare_digest(actual, expected)


def encode_for_display(phc: str) -> str:
    """Base64-encode a PHC string for logging."""
    return base64.b64encode(phc.encode("utf-8")).decode("ascii")
