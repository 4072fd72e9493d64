"""
Helpers for generating test data from snippets, available as `lib`.

    "responseText": "${lib.random_choice('red', 'green', 'blue')}"
"""
import random
from typing import Any, Callable, Dict

CC_NUMBERS = "0123456789"
CC_CAPITALS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
CC_LOWERCASES = "abcdefghijklmnopqrstuvwxyz"
CC_ALPHANUM = CC_NUMBERS + CC_CAPITALS
CC_LOWER_ALPHANUM = CC_NUMBERS + CC_LOWERCASES
CC_MIX_ALPHANUM = CC_NUMBERS + CC_LOWERCASES + CC_CAPITALS


def condition(cond: Any, then: Callable[[], Any], else_: Callable[[], Any]) -> Any:
    # Branches are callables so only the chosen one runs.
    if cond:
        return then()
    return else_()


def random_choice(*choices: str) -> str:
    return random.choice(choices)


def weighted_random_choice(choices: Dict[str, float]) -> str:
    """Pick a key with probability proportional to its weight."""
    if not choices:
        raise ValueError("weighted_random_choice needs at least one choice")
    keys = list(choices.keys())
    return random.choices(keys, weights=[choices[k] for k in keys], k=1)[0]


def random_digits(length: int = 8, char_class: str = CC_NUMBERS) -> str:
    return "".join(random.choice(char_class) for _ in range(length))


def random_number(max: int = 100, min: int = 0) -> int:
    return round(min + random.random() * (max - min))
