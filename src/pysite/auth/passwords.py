"""Password hashing with bcrypt."""

import bcrypt

DEFAULT_ROUNDS = 12

# bcrypt only considers the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    encoded = password.encode('utf-8')
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password is longer than {MAX_PASSWORD_BYTES} bytes")
    hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored hash; malformed hashes never match"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False


def needs_rehash(hashed: str, rounds: int = DEFAULT_ROUNDS) -> bool:
    parts = hashed.split('$')
    if len(parts) < 4 or parts[1] not in ('2a', '2b', '2y'):
        return True
    try:
        return int(parts[2]) < rounds
    except ValueError:
        return True
