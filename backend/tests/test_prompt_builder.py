"""Prompt builder tests — section order, metric phrasing, comparison JSON contract."""

import json
import os
import re
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from startup_xray.constants import ANALYSIS_SECTION_KEYS, SECTION_TITLES
from startup_xray.exceptions import InvalidSubjectError
from startup_xray.schemas.subject_schema import AnalysisRequestMode, AnalysisSubject, ComparisonPair
from startup_xray.services.prompt_builder import COMPARISON_JSON_FIELDS, build_prompt


def _headings(message):
    return re.findall(r"^## (.+)$", message, re.MULTILINE)


class TestSubjects:
    def test_both_blank_is_invalid(self):
        with pytest.raises(InvalidSubjectError):
            AnalysisSubject.from_names("  ", None)

    def test_kinds(self):
        assert AnalysisSubject.from_names("Stripe").kind == "startup"
        assert AnalysisSubject.from_names(None, "Patrick Collison").kind == "founder"
        assert AnalysisSubject.from_names("Stripe", "Patrick Collison").kind == "startup_with_founder"

    def test_founder_only_is_narrative(self):
        assert AnalysisSubject.from_names(None, "Ada Lovelace").metrics_bearing is False

    def test_subject_is_immutable(self):
        subject = AnalysisSubject.from_names("Stripe")
        with pytest.raises(Exception):
            subject.startup_name = "Other"

    @pytest.mark.parametrize("raw", ["", "Apple", "Apple, ", "Apple, Microsoft, Google", "Apple, apple"])
    def test_bad_business_strings(self, raw):
        with pytest.raises(InvalidSubjectError):
            ComparisonPair.from_businesses_string(raw)

    def test_pair_keeps_input_order(self):
        pair = ComparisonPair.from_businesses_string(" Apple ,Microsoft ")
        assert pair.names == ["Apple", "Microsoft"]


class TestSingleAnalysisPrompt:
    def test_headings_in_canonical_order(self):
        bundle = build_prompt(AnalysisSubject.from_names("Stripe"), AnalysisRequestMode.SINGLE_ANALYSIS)
        assert _headings(bundle.user_message) == [SECTION_TITLES[k] for k in ANALYSIS_SECTION_KEYS]
        assert "No prose between a heading and its bullets" in bundle.user_message

    def test_startup_prompt_spells_out_metric_phrases(self):
        bundle = build_prompt(AnalysisSubject.from_names("Stripe"), AnalysisRequestMode.SINGLE_ANALYSIS)
        message = bundle.user_message
        for phrase in ("Founded in YYYY", "has raised $X million in funding", "valued at $X billion",
                       "has N employees", "Competitors include A, B, C"):
            assert phrase in message
        assert "best estimate" in message
        assert bundle.metrics_bearing is True

    def test_founder_prompt_uses_leadership_heading(self):
        bundle = build_prompt(AnalysisSubject.from_names(None, "Ada Lovelace"), AnalysisRequestMode.SINGLE_ANALYSIS)
        headings = _headings(bundle.user_message)
        assert "Leadership" in headings
        assert "Team Assessment" not in headings
        assert "Founded in YYYY" not in bundle.user_message
        assert bundle.metrics_bearing is False

    def test_startup_with_founder_names_both(self):
        bundle = build_prompt(
            AnalysisSubject.from_names("Stripe", "Patrick Collison"),
            AnalysisRequestMode.SINGLE_ANALYSIS,
        )
        assert '"Stripe"' in bundle.user_message
        assert "Patrick Collison" in bundle.user_message

    def test_mode_mismatch_is_invalid(self):
        with pytest.raises(InvalidSubjectError):
            build_prompt(AnalysisSubject.from_names("Stripe"), AnalysisRequestMode.COMPARISON)
        with pytest.raises(InvalidSubjectError):
            build_prompt(ComparisonPair(first="A", second="B"), AnalysisRequestMode.SINGLE_ANALYSIS)


class TestComparisonPrompt:
    def test_json_block_keyed_by_both_names(self):
        pair = ComparisonPair.from_businesses_string("Apple, Microsoft")
        bundle = build_prompt(pair, AnalysisRequestMode.COMPARISON)
        block = re.search(r"```json\n(.*?)```", bundle.user_message, re.DOTALL)
        assert block is not None
        assert '"Apple": {' in block.group(1)
        assert '"Microsoft": {' in block.group(1)
        assert bundle.mode == AnalysisRequestMode.COMPARISON

    def test_every_money_field_has_a_unit_field(self):
        fields = [name for name, _ in COMPARISON_JSON_FIELDS]
        for money in ("funding", "valuation", "revenue", "marketSize"):
            assert f"{money}Unit" in fields

    def test_names_are_json_escaped(self):
        pair = ComparisonPair(first='Say "Hi" Inc', second="Other")
        bundle = build_prompt(pair, AnalysisRequestMode.COMPARISON)
        assert json.dumps('Say "Hi" Inc') in bundle.user_message

    def test_differences_requested_after_block(self):
        bundle = build_prompt(ComparisonPair(first="A", second="B"), AnalysisRequestMode.COMPARISON)
        assert bundle.user_message.index("```json") < bundle.user_message.index("key differences")
