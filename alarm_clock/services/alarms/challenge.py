from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from alarm_clock.services.alarms.config import CHALLENGE_CONFIG
from alarm_clock.services.alarms.models import Difficulty


@dataclass(frozen=True)
class MathChallenge:
    question: str
    answer: int


def _ordered(a: int, b: int):
    return (a, b) if a >= b else (b, a)


def _easy(rng: random.Random) -> MathChallenge:
    num1, num2 = rng.randint(1, 10), rng.randint(1, 10)
    if rng.choice("+-") == "+":
        return MathChallenge(f"{num1} + {num2}", num1 + num2)
    larger, smaller = _ordered(num1, num2)
    return MathChallenge(f"{larger} - {smaller}", larger - smaller)


def _medium(rng: random.Random) -> MathChallenge:
    num1, num2 = rng.randint(5, 20), rng.randint(5, 15)
    operator = rng.choice("+-*")
    if operator == "+":
        return MathChallenge(f"{num1} + {num2}", num1 + num2)
    if operator == "-":
        larger, smaller = _ordered(num1, num2)
        return MathChallenge(f"{larger} - {smaller}", larger - smaller)
    factor1, factor2 = rng.randint(2, 8), rng.randint(2, 8)
    return MathChallenge(f"{factor1} * {factor2}", factor1 * factor2)


def _hard(rng: random.Random) -> MathChallenge:
    kind = rng.randrange(3)
    if kind == 0:
        num1, num2, num3 = rng.randint(10, 30), rng.randint(5, 20), rng.randint(5, 15)
        op1, op2 = rng.choice("+-"), rng.choice("+-")
        larger, smaller = _ordered(num1, num2)
        intermediate = larger + smaller if op1 == "+" else larger - smaller
        if op2 == "+":
            result = intermediate + num3
        else:
            result = abs(intermediate - num3)
        return MathChallenge(f"{larger} {op1} {smaller} {op2} {num3}", result)
    if kind == 1:
        num1, num2, num3 = rng.randint(3, 9), rng.randint(3, 9), rng.randint(5, 20)
        product = num1 * num2
        if rng.choice("+-") == "+":
            return MathChallenge(f"{num1} * {num2} + {num3}", product + num3)
        return MathChallenge(f"{num1} * {num2} - {num3}", abs(product - num3))
    divisor, quotient = rng.randint(2, 8), rng.randint(3, 12)
    return MathChallenge(f"{divisor * quotient} ÷ {divisor}", quotient)


_GENERATORS = {
    Difficulty.EASY: _easy,
    Difficulty.MEDIUM: _medium,
    Difficulty.HARD: _hard,
}


def generate_challenge(difficulty, rng: Optional[random.Random] = None) -> MathChallenge:
    generator = _GENERATORS.get(Difficulty(difficulty), _easy)
    return generator(rng or random.Random())


class ChallengeSession:
    """One question the user must answer before an alarm can be dismissed.

    Wrong or non-numeric answers count as attempts. After a full cycle of
    attempts the counter starts over but the question stays the same.
    """

    def __init__(self, difficulty, rng: Optional[random.Random] = None):
        self._rng = rng
        self.difficulty = Difficulty(difficulty)
        self.challenge = generate_challenge(self.difficulty, rng)
        self.attempts = 0
        self.solved = False

    @property
    def question(self) -> str:
        return self.challenge.question

    @property
    def attempts_left(self) -> int:
        return CHALLENGE_CONFIG["attempt_cycle"] - self.attempts

    def submit(self, raw_answer) -> bool:
        try:
            answer = int(str(raw_answer).strip())
        except ValueError:
            answer = None
        if answer == self.challenge.answer:
            self.solved = True
            return True
        self.attempts += 1
        if self.attempts >= CHALLENGE_CONFIG["attempt_cycle"]:
            self.attempts = 0
        return False

    def regenerate(self, difficulty=None) -> MathChallenge:
        if difficulty is not None:
            self.difficulty = Difficulty(difficulty)
        self.challenge = generate_challenge(self.difficulty, self._rng)
        self.attempts = 0
        self.solved = False
        return self.challenge
