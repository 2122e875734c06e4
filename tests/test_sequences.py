"""
test_sequences.py — Sequence pattern engine (autofill inference).

Covers:
  - generate: arithmetic continuation, empty/singleton inputs, count handling
  - infer_next: every rule in priority order
  - Edge behaviour: weekday/month wrap, letter saturation, Roman stop at XX
  - Input cleaning (whitespace, empties) and number rendering
  - Rule selection differences between single-step and multi-cell fill
"""
from __future__ import annotations

import pytest

from aixcel.model.sequences import (
    detect_rule, format_number, generate, infer_next, rule_keys
)


# ══════════════════════════════════════════════════════════════════════════════
# GENERATE (MULTI-CELL FILL)
# ══════════════════════════════════════════════════════════════════════════════

class TestGenerate:
    def test_arithmetic_continues_with_exact_count(self):
        assert generate(["1", "2"], 3) == ["3", "4", "5"]

    def test_arithmetic_negative_step(self):
        assert generate(["10", "7", "4"], 2) == ["1", "-2"]

    def test_arithmetic_decimal_step_has_no_float_noise(self):
        assert generate(["0.1", "0.2"], 3) == ["0.3", "0.4", "0.5"]

    def test_empty_input_gives_blanks(self):
        assert generate([], 4) == ["", "", "", ""]

    def test_singleton_repeats(self):
        assert generate(["x"], 3) == ["x", "x", "x"]

    def test_only_whitespace_counts_as_empty(self):
        assert generate(["  ", ""], 2) == ["", ""]

    def test_values_are_trimmed(self):
        assert generate([" 1 ", "2"], 1) == ["3"]

    def test_zero_count(self):
        assert generate(["1", "2"], 0) == []

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            generate(["1"], -1)

    def test_text_number_template(self):
        assert generate(["Item 1", "Item 2"], 2) == ["Item 3", "Item 4"]

    def test_weekdays_wrap(self):
        assert generate(["Sat", "Sun"], 2) == ["Mon", "Tue"]

    def test_repeating_block(self):
        assert generate(["a", "b", "a", "b"], 3) == ["a", "b", "a"]

    def test_geometric_not_used_for_multi_cell(self):
        # 2, 4, 8 is not arithmetic; multi-cell fill skips the geometric rule
        assert detect_rule(["2", "4", "8"], single_step=False) != "geometric"
        assert detect_rule(["2", "4", "8"], single_step=True) == "geometric"

    def test_dates_not_used_for_multi_cell(self):
        assert detect_rule(["1/1/2024", "1/2/2024"], single_step=False) != "date"


# ══════════════════════════════════════════════════════════════════════════════
# INFER NEXT (SINGLE STEP)
# ══════════════════════════════════════════════════════════════════════════════

class TestInferNext:
    def test_empty(self):
        assert infer_next([]) == ""

    def test_arithmetic(self):
        assert infer_next(["5", "10", "15"]) == "20"

    def test_geometric_rounds_to_two_decimals(self):
        assert infer_next(["2", "4", "8"]) == "16"
        assert infer_next(["1", "1.5", "2.25"]) == "3.38"

    def test_two_numbers_are_always_arithmetic(self):
        assert infer_next(["1", "1.5"]) == "2"

    def test_fibonacci(self):
        assert infer_next(["1", "1", "2", "3", "5"]) == "8"

    def test_date_progression(self):
        assert infer_next(["1/30/2024", "1/31/2024"]) == "2/1/2024"

    def test_date_with_dashes_and_week_step(self):
        assert infer_next(["3-1-2024", "3-8-2024"]) == "3/15/2024"

    def test_invalid_calendar_date_falls_through(self):
        assert detect_rule(["2/30/2024", "2/31/2024"], single_step=True) != "date"

    def test_weekday_wraps(self):
        assert infer_next(["Friday", "Saturday"]) == "Sunday"

    def test_weekday_case_follows_first_value(self):
        assert infer_next(["monday", "tuesday"]) == "wednesday"
        assert infer_next(["MON", "TUE"]) == "WED"

    def test_mixed_full_and_abbreviated_weekdays_do_not_match(self):
        assert detect_rule(["Monday", "Tue"], single_step=True) != "weekday"

    def test_month_wraps(self):
        assert infer_next(["November", "December"]) == "January"

    def test_month_abbreviations(self):
        assert infer_next(["Jan", "Feb"]) == "Mar"

    def test_letters(self):
        assert infer_next(["X", "Y"]) == "Z"

    def test_letters_saturate(self):
        assert infer_next(["Y", "Z"]) == "Z"

    def test_letters_lower_case(self):
        assert infer_next(["a", "c"]) == "e"

    def test_roman(self):
        assert infer_next(["I", "II", "III"]) == "IV"
        assert infer_next(["ii", "iii"]) == "iv"

    def test_roman_stops_at_twenty(self):
        assert detect_rule(["XIX", "XX"], single_step=True) != "roman"

    def test_text_number_single_value_repeats(self):
        assert infer_next(["Item 9"]) == "Item 9"

    def test_text_number_grows_digits(self):
        assert infer_next(["Item 8", "Item 9"]) == "Item 10"

    def test_text_number_with_suffix(self):
        assert infer_next(["Q1 plan", "Q2 plan"]) == "Q3 plan"

    def test_period_three_block(self):
        assert infer_next(["r", "g", "b", "r", "g", "b"]) == "r"

    def test_increment_last_digit_run(self):
        assert infer_next(["draft", "v9.txt"]) == "v10.txt"

    def test_repeat_last(self):
        assert infer_next(["alpha", "beta"]) == "beta"


# ══════════════════════════════════════════════════════════════════════════════
# RULE REGISTRY / HELPERS
# ══════════════════════════════════════════════════════════════════════════════

class TestRegistry:
    def test_priority_order(self):
        assert rule_keys() == [
            "constant", "arithmetic", "geometric", "fibonacci", "date", "weekday", "month",
            "text_number", "letter", "roman", "repeating", "increment_digits", "repeat_last",
        ]

    def test_multi_cell_rules_exclude_single_step_only(self):
        keys = rule_keys(single_step=False)
        for key in ("geometric", "fibonacci", "date", "letter", "roman"):
            assert key not in keys

    def test_arithmetic_beats_fibonacci(self):
        # 1, 2, 3 is both; arithmetic has priority
        assert detect_rule(["1", "2", "3"], single_step=True) == "arithmetic"

    @pytest.mark.parametrize("value,expected", [
        (3.0, "3"),
        (-0.0, "0"),
        (0.30000000000000004, "0.3"),
        (2.5, "2.5"),
        (-4.0, "-4"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected
