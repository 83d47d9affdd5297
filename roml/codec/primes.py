"""
Prime number detection for ROML.

Numbers up to SIEVE_LIMIT are looked up in a sieve of Eratosthenes that is
built on first use and shared, read-only, for the rest of the process.
Larger numbers fall back to trial division.
"""

from __future__ import annotations
import math
from functools import lru_cache
from typing import Any

from roml.codec.values import is_number

SIEVE_LIMIT = 10000


@lru_cache(maxsize=None)
def _sieve(limit: int = SIEVE_LIMIT) -> bytes:
    """Sieve of Eratosthenes; byte i is 1 when i is prime."""
    table = bytearray([1]) * (limit + 1)
    table[0] = table[1] = 0
    for i in range(2, math.isqrt(limit) + 1):
        if table[i]:
            table[i * i::i] = bytes(len(range(i * i, limit + 1, i)))
    return bytes(table)


def _is_prime_by_trial_division(n: int) -> bool:
    if n < 2:
        return False
    if n % 2 == 0:
        return n == 2
    for i in range(3, math.isqrt(n) + 1, 2):
        if n % i == 0:
            return False
    return True


def is_prime(n: Any) -> bool:
    """
    Determine if a value is a prime number.

    Non-numbers, booleans, non-integers and negatives are never prime.
    Integral floats such as 7.0 are treated as their integer value.
    """
    if not is_number(n):
        return False
    if isinstance(n, float):
        if not n.is_integer():
            return False
        n = int(n)
    if n < 0:
        return False
    if n <= SIEVE_LIMIT:
        return bool(_sieve()[n])
    return _is_prime_by_trial_division(n)


def contains_prime(value: Any) -> bool:
    """Check if any number in a (possibly nested) value is prime."""
    if is_number(value):
        return is_prime(value)
    if isinstance(value, list):
        return any(contains_prime(item) for item in value)
    if isinstance(value, dict):
        return any(contains_prime(item) for item in value.values())
    # Strings, booleans and None never contain primes
    return False


def object_contains_primes(obj: dict[str, Any]) -> bool:
    return any(contains_prime(value) for value in obj.values())


def extract_primes(value: Any) -> list[int]:
    """All distinct primes found in a value, sorted ascending."""
    primes: set[int] = set()

    def collect(val: Any) -> None:
        if is_number(val) and is_prime(val):
            primes.add(int(val))
        elif isinstance(val, list):
            for item in val:
                collect(item)
        elif isinstance(val, dict):
            for item in val.values():
                collect(item)

    collect(value)
    return sorted(primes)
