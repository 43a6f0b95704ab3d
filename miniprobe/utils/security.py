"""Security utilities for client token hashing and generation."""
import hashlib
import secrets
import string
from passlib.context import CryptContext

# Token hashing context
token_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ALPHABET = string.ascii_letters + string.digits

# Number of leading token characters that feed the lookup index
TOKEN_INDEX_PREFIX = 4


def hash_token(token: str) -> str:
    """Hash a client token using bcrypt."""
    return token_context.hash(token)


def verify_token(plain_token: str, token_hash: str) -> bool:
    """Verify a client token against a hash."""
    return token_context.verify(plain_token, token_hash)


def generate_client_token(length: int = 16) -> str:
    """Generate a random alphanumeric client token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def index_client_token(token: str) -> int:
    """
    Compute the lookup index of a client token.

    The index is the first four bytes of the SHA-256 digest of the token's
    first four characters, read as a big-endian unsigned integer. It is not
    unique; it only narrows the set of hashes that have to be verified.
    """
    digest = hashlib.sha256(token[:TOKEN_INDEX_PREFIX].encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")
