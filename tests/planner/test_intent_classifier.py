# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import re

import pytest

from framesmith.planner.classifier import (
    COMMON_OBJECTS,
    IntentClassifier,
    IntentRule,
    classify,
)


def test_remove_instruction_extracts_target() -> None:
    analysis = classify("Remove the person walking in the background")
    assert analysis.intent.action == "remove"
    assert analysis.intent.target == "person walking in the background"
    assert analysis.intent.confidence == 0.9
    assert analysis.intent.replacement is None


def test_replace_instruction_captures_replacement() -> None:
    analysis = classify("Replace the car with a red sports car")
    assert analysis.intent.action == "replace"
    assert analysis.intent.target == "car"
    assert analysis.intent.replacement == "red sports car"
    assert analysis.intent.confidence == 0.92


@pytest.mark.parametrize(
    "text,action",
    [
        ("get rid of the wire", "remove"),
        ("take out the logo", "remove"),
        ("swap the sky for a sunset", "replace"),
        ("add a hot air balloon", "insert"),
        ("inpaint the corner", "inpaint"),
        ("isolate the dancer", "segment"),
        ("enhance the shot", "correct"),
        ("blend the two layers", "composite"),
    ],
)
def test_verb_phrases_map_to_actions(text: str, action: str) -> None:
    assert classify(text).intent.action == action


def test_insert_drops_leading_article() -> None:
    analysis = classify("Add a flock of birds")
    assert analysis.intent.action == "insert"
    assert analysis.intent.target == "flock of birds"


def test_highest_confidence_wins_over_first_match() -> None:
    # matches remove (0.9) and replace (0.92)
    analysis = classify("remove the sign and replace the pole with a tree")
    assert analysis.intent.action == "replace"
    assert analysis.intent.target == "pole"
    assert analysis.intent.replacement == "tree"


def test_fix_prefers_inpaint_over_color_correction() -> None:
    analysis = classify("fix the color")
    assert analysis.intent.action == "inpaint"
    assert analysis.intent.confidence == 0.88


def test_ties_keep_declaration_order() -> None:
    first = IntentRule("segment", 0.5, (re.compile(r"thing"),), re.compile(r"(thing)"))
    second = IntentRule("remove", 0.5, (re.compile(r"thing"),), None)
    analysis = IntentClassifier(rules=(first, second)).classify("a thing")
    assert analysis.intent.action == "segment"
    assert analysis.intent.target == "thing"


def test_no_match_falls_back_to_inpaint() -> None:
    analysis = classify("make it look nicer somehow")
    assert analysis.intent.action == "inpaint"
    assert analysis.intent.confidence == 0.6
    assert analysis.intent.target is None


def test_empty_instruction_never_fails() -> None:
    analysis = classify("")
    assert analysis.intent.action == "inpaint"
    assert analysis.complexity == "low"
    assert analysis.detected_objects == ()


def test_detected_objects_follow_vocabulary_order() -> None:
    analysis = classify("remove the car and the person")
    assert analysis.detected_objects == ("person", "car")
    assert analysis.complexity == "medium"


def test_long_instruction_is_high_complexity() -> None:
    text = "remove " + "x" * 120
    assert len(text) > 100
    assert classify(text).complexity == "high"


def test_many_objects_is_high_complexity() -> None:
    analysis = classify("sky tree road logo")
    assert len(analysis.detected_objects) > 3
    assert analysis.complexity == "high"


def test_reasoning_mentions_action_target_and_complexity() -> None:
    analysis = classify("Delete the logo")
    assert analysis.reasoning.startswith(
        "I detected intent to remove an object from the video."
    )
    assert 'Target: "logo".' in analysis.reasoning
    assert "Detected objects: logo." in analysis.reasoning
    assert "Complexity: low" in analysis.reasoning


def test_common_objects_vocabulary_is_fixed() -> None:
    assert COMMON_OBJECTS[0] == "person"
    assert COMMON_OBJECTS[-1] == "product"
    assert len(COMMON_OBJECTS) == 30


def test_analysis_to_dict() -> None:
    data = classify("Replace the car with a red sports car").to_dict()
    assert data["intent"] == {
        "action": "replace",
        "confidence": 0.92,
        "target": "car",
        "replacement": "red sports car",
    }
    assert data["detected_objects"] == ["car"]
