import bcrypt

from dump_anon.common.constants import DEFAULT_HASH_COST, BCRYPT_MAX_PASSWORD_BYTES
from dump_anon.common.errors import HashingError


def hash_value(value: str, cost: int = DEFAULT_HASH_COST) -> str:
    """
    Salted bcrypt hash of the value, a new salt on every call
    :param value: plain value
    :param cost: bcrypt work factor (log2 of rounds)
    :return: bcrypt hash in modular crypt format, e.g. "$2b$10$..."
    :raise HashingError: when bcrypt refuses the value or the cost
    """
    password = value.encode("utf-8", errors="surrogateescape")
    if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
        raise HashingError(
            f"Value is {len(password)} bytes long, bcrypt accepts at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        )

    try:
        return bcrypt.hashpw(password, bcrypt.gensalt(rounds=cost)).decode("ascii")
    except ValueError as exc:
        raise HashingError(str(exc)) from exc


def _check_length(n: int):
    if n < 0:
        raise ValueError(f"Length must not be negative, got {n}")


class TemplateValue(str):
    """
    Column value as templates see it.
    Renders as the raw value and adds the masking helpers first(), last() and hashed().
    Lengths are counted in characters, not bytes.
    """

    hash_cost: int

    def __new__(cls, value: str, hash_cost: int = DEFAULT_HASH_COST):
        obj = super().__new__(cls, value)
        obj.hash_cost = hash_cost
        return obj

    def first(self, n: int) -> str:
        _check_length(n)
        if len(self) < n:
            return str(self)
        return str(self)[:n]

    def last(self, n: int) -> str:
        _check_length(n)
        if len(self) < n:
            return str(self)
        return str(self)[len(self) - n:]

    def hashed(self) -> str:
        return hash_value(str(self), self.hash_cost)
