"""Tests for the workflow document grammar and field extraction rules."""

from __future__ import annotations

import pytest

from framewise.ingest.parser import (
    MIN_SUMMARY_LENGTH,
    WorkflowParser,
    bold_runs,
    clean_text,
    estimate_complexity,
    extract_duration,
    extract_key_questions,
    extract_problem_patterns,
    extract_synergy_triggers,
    extract_task_summary,
    is_section_header,
    source_attribution,
    split_units,
)

DOC = """\
1. __Positioning — Ries & Trout__

__Positioning Statement Workflow__
# TASK
Help the client articulate a positioning statement that separates them from every competitor in their category.
# STEP 1: Gather context
// Context: Ask about their current customers and why they buy
Ask: "Who are your three closest competitors?"
Many founders are struggling to explain what makes them different.
# STEP 2: Draft
Write the statement.

__Category Map__
# TASK
Map the category landscape so the client can see where a new category could be created and owned.
# STEP 1
List the players.
"""

LONG_SUMMARY = "Work through the client's situation step by step and produce a clear plan."


@pytest.fixture
def parser():
    return WorkflowParser()


# ------------------------------------------------------------------
# Units, names, attribution
# ------------------------------------------------------------------


def test_parse_two_units(parser):
    records = parser.parse(DOC, "marketing", file_path="m.md")
    assert [r.name for r in records] == ["Positioning Statement Workflow", "Category Map"]
    assert all(r.domain == "marketing" for r in records)
    assert all(r.file_path == "m.md" for r in records)


def test_section_header_sets_source_for_later_units(parser):
    records = parser.parse(DOC, "marketing")
    assert [r.source_book for r in records] == ["Positioning by Ries & Trout"] * 2


def test_source_defaults_to_unknown(parser):
    records = parser.parse(f"__Audit__\n# TASK\n{LONG_SUMMARY}", "operations")
    assert records[0].source_book == "Unknown Source"


def test_later_section_header_replaces_source(parser):
    text = (
        f"1. __First -- Author A__\n__One__\n# TASK\n{LONG_SUMMARY}\n\n"
        f"2. __Second -- Author B__\n__Two__\n# TASK\n{LONG_SUMMARY}"
    )
    records = parser.parse(text, "strategy")
    assert [r.source_book for r in records] == ["First by Author A", "Second by Author B"]


def test_unit_text_spans_to_next_header_block(parser):
    first = parser.parse(DOC, "marketing")[0]
    assert first.full_prompt.startswith("# TASK")
    assert "Write the statement." in first.full_prompt
    assert "Category Map" not in first.full_prompt


def test_name_is_last_bold_run_in_header_block(parser):
    text = f"__Series Overview__\n__Brand Audit__ __Quick Version__\n# TASK\n{LONG_SUMMARY}"
    assert parser.parse(text, "marketing")[0].name == "Quick Version"


def test_name_skips_runs_with_dashes(parser):
    text = f"__Brand Audit__\n__Brand Audit — Extended__\n# TASK\n{LONG_SUMMARY}"
    assert parser.parse(text, "marketing")[0].name == "Brand Audit"


def test_name_skips_overlong_runs(parser):
    text = f"__{'x' * 120}__\n# TASK\n{LONG_SUMMARY}"
    assert parser.parse(text, "sales")[0].name == "sales Workflow 1"


def test_name_fallback_uses_unit_number(parser):
    text = f"# TASK\n{LONG_SUMMARY}\n\nBody text.\n# TASK\n{LONG_SUMMARY}"
    records = parser.parse(text, "finance")
    assert [r.name for r in records] == ["finance Workflow 1", "finance Workflow 2"]


def test_markdown_heading_names_unit(parser):
    text = f"## Pricing Review\n\n# TASK\n{LONG_SUMMARY}\n# STEP 1\nGo."
    assert parser.parse(text, "sales")[0].name == "Pricing Review"


def test_step_heading_is_not_a_name(parser):
    units = split_units(f"# TASK\n{LONG_SUMMARY}\n# STEP 1\n# TASK\n{LONG_SUMMARY}", "hr")
    assert [u.name for u in units] == ["hr Workflow 1", "hr Workflow 2"]
    assert units[0].text.endswith("# STEP 1")


def test_trailing_heading_stays_with_previous_unit(parser):
    text = (
        f"__One__\n# TASK\n{LONG_SUMMARY}\nDo.\n## Notes\n\n"
        f"__Two__\n# TASK\n{LONG_SUMMARY}"
    )
    records = parser.parse(text, "strategy")
    assert [r.name for r in records] == ["One", "Two"]
    assert records[0].full_prompt.endswith("## Notes")
    assert "__Two__" not in records[0].full_prompt


def test_body_bold_markers_removed(parser):
    text = (
        "__Launch Plan__\n# TASK\n"
        "Use the __Positioning__ method to plan a launch the **whole team** can execute.\n"
        "# STEP 1\nList __three__ risks."
    )
    record = parser.parse(text, "marketing")[0]
    assert record.name == "Launch Plan"
    assert "__" not in record.full_prompt
    assert "**" not in record.full_prompt
    assert "List three risks." in record.full_prompt
    assert record.task_summary.startswith("Use the Positioning method")
    assert "whole team can execute" in record.task_summary


def test_task_marker_is_case_insensitive(parser):
    records = parser.parse(f"__Hiring Loop__\n#task\n{LONG_SUMMARY}", "hr")
    assert records[0].name == "Hiring Loop"


def test_task_marker_must_start_the_line(parser):
    text = f"See the # TASK section below.\n{LONG_SUMMARY}"
    records = parser.parse(text, "hr", fallback_name="hiring_guide")
    assert len(records) == 1
    assert records[0].name == "hiring guide"


# ------------------------------------------------------------------
# Missing marker, empty sections, summary length
# ------------------------------------------------------------------


def test_missing_task_marker_yields_single_unit(parser):
    text = "Pricing playbook. " * 40
    records = parser.parse(text, "sales", fallback_name="pricing-playbook")
    assert len(records) == 1
    assert records[0].name == "pricing playbook"
    assert len(records[0].task_summary) == 500
    assert records[0].source_book == "Unknown Source"


def test_empty_document_yields_nothing(parser):
    assert parser.parse("   \n\n", "sales") == []


def test_empty_task_section_is_discarded(parser):
    assert parser.parse("__Empty__\n# TASK\n# STEP 1\nDo something useful here.", "sales") == []


def test_summary_of_exactly_min_length_is_kept(parser):
    assert MIN_SUMMARY_LENGTH == 50
    records = parser.parse("# TASK\n" + "a" * 50, "sales")
    assert len(records) == 1


def test_summary_one_below_min_length_is_discarded(parser):
    assert parser.parse("# TASK\n" + "a" * 49, "sales") == []


def test_summary_stops_at_introduction_marker():
    unit = f"# TASK\n{LONG_SUMMARY}\n# INTRODUCTION\nWelcome."
    assert extract_task_summary(unit) == LONG_SUMMARY


def test_summary_includes_text_on_marker_line():
    unit = "# TASK: Build the plan\nwith the whole team.\n# STEP 1\nGo."
    assert extract_task_summary(unit) == "Build the plan\nwith the whole team."


def test_summary_truncated_to_1000():
    assert len(extract_task_summary("# TASK\n" + "b" * 1500)) == 1000


# ------------------------------------------------------------------
# Key questions
# ------------------------------------------------------------------


def test_key_questions_from_context_and_ask():
    record = WorkflowParser().parse(DOC, "marketing")[0]
    assert record.key_questions == [
        "Their current customers and why they buy?",
        "Who are your three closest competitors?",
    ]


def test_context_without_ask_is_ignored():
    assert extract_key_questions("// Context: The client runs a bakery chain") == []


def test_short_questions_are_ignored():
    assert extract_key_questions('Ask "Why?"') == []


def test_key_questions_deduplicated_and_capped():
    lines = [f'Ask: "What is priority number {i % 12}?"' for i in range(30)]
    questions = extract_key_questions("\n".join(lines))
    assert len(questions) == 10
    assert len(set(questions)) == 10


# ------------------------------------------------------------------
# Problem patterns
# ------------------------------------------------------------------


def test_problem_patterns_from_sentences_and_name():
    record = WorkflowParser().parse(DOC, "marketing")[0]
    assert record.problem_patterns == [
        "Many founders are struggling to explain what makes them different",
        "unclear market positioning",
        "difficulty differentiating from competitors",
    ]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Category Design", "no clear category ownership"),
        ("Launch Plan", "need go-to-market strategy"),
        ("Competitor Teardown", "losing deals to competitors"),
    ],
)
def test_problem_patterns_name_heuristics(name, expected):
    assert expected in extract_problem_patterns("", name)


def test_problem_pattern_length_bounds():
    short = "Pain is real."          # 12 chars
    long = "The team is stuck " + "x" * 200 + "."
    assert extract_problem_patterns(f"{short} {long}", "Plan") == []


def test_problem_patterns_capped_at_eight():
    text = " ".join(f"Customer segment {i} has a retention problem." for i in range(12))
    assert len(extract_problem_patterns(text, "Positioning")) == 8


# ------------------------------------------------------------------
# Synergy, complexity, duration
# ------------------------------------------------------------------


def test_synergy_triggers_need_two_keyword_hits():
    text = "Grow the sales pipeline and conversion while managing budget and cost."
    assert extract_synergy_triggers(text, "marketing") == ["sales", "finance"]


def test_synergy_triggers_exclude_own_domain():
    text = "Grow the sales pipeline and conversion while managing budget and cost."
    assert extract_synergy_triggers(text, "sales") == ["finance"]


def test_synergy_triggers_capped_at_three():
    text = (
        "market competitive brand campaign pipeline deal process efficiency "
        "product feature team hiring budget cost"
    )
    assert extract_synergy_triggers(text, "finance") == ["strategy", "marketing", "sales"]


def test_complexity_high_by_steps():
    steps = "\n".join(f"# STEP {i}" for i in range(1, 8))
    text = steps + "\n" + "word " * (500 - 14)
    assert estimate_complexity(text) == "high"


def test_complexity_medium_by_words():
    text = "# STEP 1\n# STEP 2\n" + "word " * 1500
    assert estimate_complexity(text) == "medium"


def test_complexity_low():
    assert estimate_complexity("# STEP 1\n# STEP 2\nShort.") == "low"


def test_complexity_boundaries():
    assert estimate_complexity("# STEP 1 " * 6) == "medium"
    assert estimate_complexity("# STEP 1 " * 3) == "low"
    assert estimate_complexity("word " * 2001) == "high"
    assert estimate_complexity("word " * 1000) == "low"


@pytest.mark.parametrize(
    "text, minutes",
    [
        ("Duration: 45 min", 45),
        ("Estimated time: 30 minutes", 30),
        ("duration:90mins", 90),
        ("Duration: 0 min", None),
        ("Takes a while", None),
    ],
)
def test_extract_duration(text, minutes):
    assert extract_duration(text) == minutes


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def test_clean_text_unescapes_markdown():
    assert clean_text(r"  1\. Don\'t \- say \"no\" to snake\_case  ") == '1. Don\'t - say "no" to snake_case'


def test_clean_text_normalises_newlines():
    assert clean_text("a\r\nb\rc") == "a\nb\nc"


def test_bold_runs_supports_both_markers():
    assert bold_runs("__One__ and **Two**") == ["One", "Two"]


def test_is_section_header():
    assert is_section_header("3. __Blue Ocean — Kim__")
    assert not is_section_header("__Blue Ocean__")
    assert not is_section_header("3. Blue Ocean")


def test_source_attribution():
    assert source_attribution("1. __Play Bigger -- Ramadan__") == "Play Bigger by Ramadan"


def test_sub_domain_normalised(parser):
    records = parser.parse(f"# TASK\n{LONG_SUMMARY}", "sales", sub_domain="Enterprise Deals")
    assert records[0].sub_domain == "enterprise-deals"


def test_parse_sets_complexity_and_duration(parser):
    text = f"__Ops Review__\n# TASK\n{LONG_SUMMARY}\nDuration: 60 min\n# STEP 1\n# STEP 2\n# STEP 3\n# STEP 4"
    record = parser.parse(text, "operations")[0]
    assert record.complexity == "medium"
    assert record.estimated_duration_min == 60
