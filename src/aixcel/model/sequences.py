"""
Sequence Pattern Engine (Autofill)
==================================
Given the ordered values of a row or column, infer how the series continues.

Why is this file needed?
------------------------
1. Autofill: Dragging the fill handle feeds each row/column of the selection
   through `generate()` to produce the values of the newly covered cells.
2. Single-step extension: `infer_next()` predicts just the next value and
   knows a few extra patterns (geometric, Fibonacci, dates, letters, Roman
   numerals) that multi-cell fill does not use.

How it works
------------
Rules are registered in priority order with `@register_rule`. Input values
are trimmed and empty ones dropped; then every rule is tried in turn and the
first one that accepts *all* cleaned values produces the whole result. A rule
rejects input by raising ValidationError, which never leaves this module.

Cyclic rules behave differently at their edges and that is intentional:
weekdays and months wrap around, single letters saturate at A/Z, and Roman
numerals stop at XX (the rule then falls through to the next one).

Functions:
    infer_next: Next single value.
    generate: `count` further values.
    detect_rule: Key of the rule that would be used (diagnostics).
"""
from __future__ import annotations

import datetime
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from aixcel.errors import ValidationError

logger = logging.getLogger(__name__)

TOLERANCE = 1e-4

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
_TEMPLATE_RE = re.compile(r"^(.+?)(\d+)(.*)$", re.DOTALL)
_LETTER_RE = re.compile(r"^[A-Za-z]$")
_DIGITS_RE = re.compile(r"\d+")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
WEEKDAY_ABBR = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
MONTHS = ("january", "february", "march", "april", "may", "june",
          "july", "august", "september", "october", "november", "december")
MONTH_ABBR = ("jan", "feb", "mar", "apr", "may", "jun",
              "jul", "aug", "sep", "oct", "nov", "dec")
ROMAN_NUMERALS = ("I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X",
                  "XI", "XII", "XIII", "XIV", "XV", "XVI", "XVII", "XVIII", "XIX", "XX")


# ==========================================
# HELPERS
# ==========================================

def clean_values(values: Sequence[str]) -> list[str]:
    """Trim every value and drop the ones that end up empty."""
    return [v.strip() for v in values if v is not None and v.strip()]


def _require(values: list[str], minimum: int) -> None:
    if len(values) < minimum:
        raise ValidationError(f"needs at least {minimum} values, got {len(values)}")


def _parse_numbers(values: list[str]) -> np.ndarray:
    """All values as floats; every value must be a complete numeric literal."""
    for v in values:
        if not _NUMBER_RE.match(v):
            raise ValidationError(f"'{v}' is not a number")
    return np.array([float(v) for v in values], dtype=float)


def format_number(x: float) -> str:
    """Render like a spreadsheet: integral floats without '.0', float noise rounded away."""
    x = round(float(x), 10)
    if x == 0:
        return "0"
    if x.is_integer() and abs(x) < 1e21:
        return str(int(x))
    return repr(x)


def _round_half_up(x: float, digits: int) -> float:
    scale = 10 ** digits
    return math.floor(x * scale + 0.5) / scale


def _match_case(word: str, sample: str) -> str:
    """Give `word` the capitalization pattern of `sample` (UPPER, Title or lower)."""
    if len(sample) > 1 and sample.isupper():
        return word.upper()
    if sample[:1].isupper():
        return word[:1].upper() + word[1:].lower()
    return word.lower()


# ==========================================
# RULE REGISTRY
# ==========================================

class SequenceRule(ABC):
    """
    One way of continuing a series.
    Subclasses set KEY, and SINGLE_STEP_ONLY when the rule is used by
    `infer_next()` but not by multi-cell `generate()`.
    """
    KEY: str = ""
    SINGLE_STEP_ONLY: bool = False

    @abstractmethod
    def extend(self, values: list[str], count: int) -> list[str]:
        """
        Continue the cleaned `values` by `count` items.

        Raises:
            ValidationError: If this rule does not describe the values.
        """
        pass


_RULES: list[SequenceRule] = []


def register_rule(cls: type[SequenceRule]) -> type[SequenceRule]:
    """Class decorator; registration order is priority order."""
    if not cls.KEY:
        raise ValueError(f"{cls.__name__} must define KEY")
    if any(rule.KEY == cls.KEY for rule in _RULES):
        raise ValueError(f"Sequence rule '{cls.KEY}' registered twice")
    _RULES.append(cls())
    return cls


def rule_keys(single_step: bool = True) -> list[str]:
    return [r.KEY for r in _RULES if single_step or not r.SINGLE_STEP_ONLY]


# ==========================================
# RULES (priority order)
# ==========================================

@register_rule
class ConstantRule(SequenceRule):
    """Nothing to extrapolate: no values give blanks, one value is repeated."""
    KEY = "constant"

    def extend(self, values: list[str], count: int) -> list[str]:
        if not values:
            return [""] * count
        if len(values) == 1:
            return [values[0]] * count
        raise ValidationError("more than one value")


@register_rule
class ArithmeticRule(SequenceRule):
    KEY = "arithmetic"

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 2)
        numbers = _parse_numbers(values)
        diffs = np.diff(numbers)
        if not np.all(np.abs(diffs - diffs[0]) < TOLERANCE):
            raise ValidationError("differences are not constant")

        step = float(diffs[0])
        last = float(numbers[-1])
        # Multiply instead of accumulating so long fills do not drift
        return [format_number(last + step * k) for k in range(1, count + 1)]


@register_rule
class GeometricRule(SequenceRule):
    """Constant ratio; results are rounded to 2 decimals."""
    KEY = "geometric"
    SINGLE_STEP_ONLY = True

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 2)
        numbers = _parse_numbers(values)
        if np.any(numbers == 0):
            raise ValidationError("zero in a geometric series")
        ratios = numbers[1:] / numbers[:-1]
        if not np.all(np.abs(ratios - ratios[0]) < TOLERANCE):
            raise ValidationError("ratios are not constant")

        ratio = float(ratios[0])
        current = float(numbers[-1])
        result = []
        for _ in range(count):
            current = _round_half_up(current * ratio, 2)
            result.append(format_number(current))
        return result


@register_rule
class FibonacciRule(SequenceRule):
    KEY = "fibonacci"
    SINGLE_STEP_ONLY = True

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 3)
        numbers = _parse_numbers(values)
        if not np.all(np.abs(numbers[2:] - (numbers[1:-1] + numbers[:-2])) <= TOLERANCE):
            raise ValidationError("not a Fibonacci-style series")

        a, b = float(numbers[-2]), float(numbers[-1])
        result = []
        for _ in range(count):
            a, b = b, a + b
            result.append(format_number(b))
        return result


@register_rule
class DateRule(SequenceRule):
    """
    M/D/Y dates (1-2 digit month and day, 2-4 digit year; '/' or '-').
    The step is the day distance between the first two dates.
    Two-digit years are read as 19xx.
    """
    KEY = "date"
    SINGLE_STEP_ONLY = True

    @staticmethod
    def _parse(value: str) -> datetime.date:
        match = _DATE_RE.match(value)
        if not match:
            raise ValidationError(f"'{value}' is not an M/D/Y date")
        month, day, year = (int(g) for g in match.groups())
        if year < 100:
            year += 1900
        try:
            return datetime.date(year, month, day)
        except ValueError as e:
            raise ValidationError(f"'{value}' is not a calendar date: {e}") from e

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 2)
        dates = [self._parse(v) for v in values]
        delta = dates[1] - dates[0]

        result = []
        for k in range(1, count + 1):
            try:
                nxt = dates[-1] + delta * k
            except OverflowError as e:
                raise ValidationError(f"date out of range: {e}") from e
            result.append(f"{nxt.month}/{nxt.day}/{nxt.year}")
        return result


class CycleRule(SequenceRule):
    """Names from a fixed cycle (full or abbreviated); advances modulo its length."""
    NAMES: tuple[str, ...] = ()
    ABBREVIATIONS: tuple[str, ...] = ()

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 1)
        lowered = [v.lower() for v in values]
        for table in (self.NAMES, self.ABBREVIATIONS):
            if all(v in table for v in lowered):
                idx = table.index(lowered[-1])
                n = len(table)
                return [_match_case(table[(idx + k) % n], values[0]) for k in range(1, count + 1)]
        raise ValidationError(f"not a {self.KEY} cycle")


@register_rule
class WeekdayRule(CycleRule):
    KEY = "weekday"
    NAMES = WEEKDAYS
    ABBREVIATIONS = WEEKDAY_ABBR


@register_rule
class MonthRule(CycleRule):
    KEY = "month"
    NAMES = MONTHS
    ABBREVIATIONS = MONTH_ABBR


@register_rule
class TextNumberRule(SequenceRule):
    """'Item 1', 'Item 2' -> 'Item 3'. Prefix and suffix must agree; integer step must be constant."""
    KEY = "text_number"

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 2)
        matches = [_TEMPLATE_RE.match(v) for v in values]
        if not all(matches):
            raise ValidationError("value without a number")

        prefixes = {m.group(1) for m in matches}
        suffixes = {m.group(3) for m in matches}
        if len(prefixes) != 1 or len(suffixes) != 1:
            raise ValidationError("prefix or suffix differs")

        numbers = [int(m.group(2)) for m in matches]
        steps = {b - a for a, b in zip(numbers, numbers[1:])}
        if len(steps) != 1:
            raise ValidationError("numeric part does not advance by a constant step")

        prefix, suffix, step = prefixes.pop(), suffixes.pop(), steps.pop()
        return [f"{prefix}{numbers[-1] + step * k}{suffix}" for k in range(1, count + 1)]


@register_rule
class LetterRule(SequenceRule):
    """Single letters with a constant step. Saturates: past A/Z the last value is kept."""
    KEY = "letter"
    SINGLE_STEP_ONLY = True

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 2)
        if not all(_LETTER_RE.match(v) for v in values):
            raise ValidationError("not single letters")

        codes = [ord(v.upper()) - ord("A") for v in values]
        step = codes[1] - codes[0]
        if any(b - a != step for a, b in zip(codes, codes[1:])):
            raise ValidationError("letters do not advance by a constant step")

        upper = values[0].isupper()
        result = []
        for k in range(1, count + 1):
            code = codes[-1] + step * k
            if 0 <= code < 26:
                letter = chr(ord("A") + code)
                result.append(letter if upper else letter.lower())
            else:
                result.append(values[-1])
        return result


@register_rule
class RomanRule(SequenceRule):
    KEY = "roman"
    SINGLE_STEP_ONLY = True

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 1)
        upper = [v.upper() for v in values]
        if not all(v in ROMAN_NUMERALS for v in upper):
            raise ValidationError("not Roman numerals I-XX")

        idx = ROMAN_NUMERALS.index(upper[-1])
        if idx + count >= len(ROMAN_NUMERALS):
            raise ValidationError("past the end of the numeral table")

        lower = values[0] == values[0].lower()
        nxt = ROMAN_NUMERALS[idx + 1: idx + 1 + count]
        return [n.lower() if lower else n for n in nxt]


@register_rule
class RepeatingBlockRule(SequenceRule):
    """Periodic series: period 2 needs 4 values, period 3 needs 6."""
    KEY = "repeating"
    PERIODS: tuple[tuple[int, int], ...] = ((2, 4), (3, 6))

    def extend(self, values: list[str], count: int) -> list[str]:
        n = len(values)
        for period, minimum in self.PERIODS:
            if n < minimum:
                continue
            if all(values[i] == values[i % period] for i in range(period, n)):
                return [values[(n + k) % period] for k in range(count)]
        raise ValidationError("no repeating block")


@register_rule
class IncrementDigitsRule(SequenceRule):
    """Fallback: bump the last run of digits in the last value ('v9.txt' -> 'v10.txt')."""
    KEY = "increment_digits"

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 1)
        last = values[-1]
        runs = list(_DIGITS_RE.finditer(last))
        if not runs:
            raise ValidationError("no digits to increment")

        run = runs[-1]
        base = int(run.group())
        head, tail = last[:run.start()], last[run.end():]
        return [f"{head}{base + k}{tail}" for k in range(1, count + 1)]


@register_rule
class RepeatLastRule(SequenceRule):
    KEY = "repeat_last"

    def extend(self, values: list[str], count: int) -> list[str]:
        _require(values, 1)
        return [values[-1]] * count


# ==========================================
# PUBLIC API
# ==========================================

def _run(values: Sequence[str], count: int, single_step: bool) -> tuple[str, list[str]]:
    cleaned = clean_values(values)
    for rule in _RULES:
        if rule.SINGLE_STEP_ONLY and not single_step:
            continue
        try:
            result = rule.extend(cleaned, count)
        except ValidationError as e:
            logger.debug(f"Rule '{rule.KEY}' skipped: {e}")
            continue
        logger.debug(f"Rule '{rule.KEY}' continues {len(cleaned)} value(s) by {count}.")
        return rule.KEY, result

    raise LookupError(f"No sequence rule accepted {cleaned!r}")


def infer_next(values: Sequence[str]) -> str:
    """The single next value of the series (uses every rule)."""
    return _run(values, 1, single_step=True)[1][0]


def generate(values: Sequence[str], count: int) -> list[str]:
    """
    `count` further values of the series, as used by multi-cell autofill.

    Single-step-only rules (geometric, Fibonacci, dates, letters, Roman
    numerals) are not considered here.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if count == 0:
        return []
    return _run(values, count, single_step=False)[1]


def detect_rule(values: Sequence[str], single_step: bool = False) -> str:
    """Key of the rule that `infer_next` (single_step=True) or `generate` would use."""
    return _run(values, 1, single_step=single_step)[0]
