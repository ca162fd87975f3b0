"""Order code generation.

An order code is the base-36 rendering of the current time in milliseconds
followed by a fixed-width base-36 random suffix. Codes sort roughly by creation
time and need no central sequence; collisions are left to the store's unique
constraint and retried by the caller.
"""

import secrets
import string
import time

ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 8


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_order_code(now_ms: int | None = None, suffix_length: int = SUFFIX_LENGTH) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(ALPHABET) for _ in range(suffix_length))
    return f"{to_base36(now_ms)}-{suffix}"
