# SPDX-License-Identifier: Apache-2.0
"""Rule-based intent classifier for free-text editing instructions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Pattern

LOG = logging.getLogger(__name__)

Action = Literal[
    "remove", "replace", "insert", "inpaint", "segment", "correct", "composite"
]
Complexity = Literal["low", "medium", "high"]

FALLBACK_ACTION: Action = "inpaint"
FALLBACK_CONFIDENCE = 0.6

_ARTICLE_RE = re.compile(r"^(?:the|an|a)\s+")


def _drop_article(text: str | None) -> str | None:
    if text is None:
        return None
    stripped = _ARTICLE_RE.sub("", text.strip(), count=1).strip()
    return stripped or None


@dataclass(frozen=True)
class IntentRule:
    """One action with its detection patterns and target-extraction pattern.

    ``patterns`` decide whether the rule matches. ``extract`` is applied
    separately; group 1 is the target and, when present, group 2 the
    replacement.
    """

    action: Action
    confidence: float
    patterns: tuple[Pattern[str], ...]
    extract: Pattern[str] | None = None

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)

    def extract_target(self, text: str) -> tuple[str | None, str | None]:
        if self.extract is None:
            return None, None
        m = self.extract.search(text)
        if not m:
            return None, None
        target = m.group(1).strip() if m.group(1) else None
        replacement = None
        if m.re.groups >= 2 and m.group(2):
            replacement = _drop_article(m.group(2))
        return target or None, replacement


def _rule(
    action: Action,
    confidence: float,
    verbs: Iterable[str],
    extract: str,
    *,
    extra: Iterable[str] = (),
) -> IntentRule:
    patterns = [re.compile(rf"\b{v}\s+(?:the\s+)?(.+)") for v in verbs]
    patterns.extend(re.compile(p) for p in extra)
    return IntentRule(action, confidence, tuple(patterns), re.compile(extract))


INTENT_RULES: tuple[IntentRule, ...] = (
    _rule(
        "remove",
        0.9,
        ("remove", "delete", "erase", r"get\s+rid\s+of", r"take\s+out"),
        r"\b(?:remove|delete|erase|get\s+rid\s+of|take\s+out)\s+(?:the\s+)?(.+)",
    ),
    IntentRule(
        "replace",
        0.92,
        (
            re.compile(r"\breplace\s+(?:the\s+)?(.+?)\s+with\s+(.+)"),
            re.compile(r"\bswap\s+(?:the\s+)?(.+?)\s+for\s+(.+)"),
            re.compile(r"\bchange\s+(?:the\s+)?(.+?)\s+to\s+(.+)"),
        ),
        re.compile(r"\b(?:replace|swap|change)\s+(?:the\s+)?(.+?)\s+(?:with|for|to)\s+(.+)"),
    ),
    IntentRule(
        "insert",
        0.85,
        tuple(
            re.compile(rf"\b{v}\s+(?:a\s+)?(.+)") for v in ("add", "insert", "put", "place")
        ),
        re.compile(r"\b(?:add|insert|put|place)\s+(?:a\s+)?(.+)"),
    ),
    _rule(
        "inpaint",
        0.88,
        ("inpaint", "fill", "fix", "repair"),
        r"\b(?:inpaint|fill|fix|repair)\s+(?:the\s+)?(.+)",
    ),
    _rule(
        "segment",
        0.87,
        ("segment", "isolate", "mask", "select"),
        r"\b(?:segment|isolate|mask|select)\s+(?:the\s+)?(.+)",
    ),
    _rule(
        "correct",
        0.82,
        ("correct", "adjust", "enhance", "improve"),
        r"\b(?:correct|adjust|enhance|improve)\s+(?:the\s+)?(.+)",
        extra=(r"\bfix\s+(?:the\s+)?colou?r",),
    ),
    _rule(
        "composite",
        0.8,
        ("composite", "combine", "merge", "blend"),
        r"\b(?:composite|combine|merge|blend)\s+(?:the\s+)?(.+)",
    ),
)

COMMON_OBJECTS: tuple[str, ...] = (
    "person", "people", "man", "woman", "child", "car", "vehicle", "truck",
    "building", "house", "tree", "sky", "ground", "road", "water", "sign",
    "pole", "wire", "shadow", "reflection", "logo", "text", "glare", "noise",
    "background", "foreground", "subject", "object", "item", "product",
)  # fmt: skip

_ACTION_DESCRIPTIONS: dict[str, str] = {
    "remove": "remove an object from the video",
    "replace": "replace one object with another",
    "insert": "add a new object to the scene",
    "inpaint": "fill in or repair a region",
    "segment": "isolate and mask specific objects",
    "correct": "adjust colors or exposure",
    "composite": "combine multiple elements",
}


@dataclass(frozen=True)
class PlannerIntent:
    action: Action
    confidence: float
    target: str | None = None
    replacement: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"action": self.action, "confidence": self.confidence}
        if self.target is not None:
            out["target"] = self.target
        if self.replacement is not None:
            out["replacement"] = self.replacement
        return out


@dataclass(frozen=True)
class PlannerAnalysis:
    intent: PlannerIntent
    complexity: Complexity
    reasoning: str
    detected_objects: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "detected_objects": list(self.detected_objects),
            "complexity": self.complexity,
            "reasoning": self.reasoning,
        }


def score_complexity(text: str, objects: Iterable[str]) -> Complexity:
    count = len(list(objects))
    if len(text) > 100 or count > 3:
        return "high"
    if len(text) > 50 or count > 1:
        return "medium"
    return "low"


def build_reasoning(
    action: str,
    target: str | None,
    objects: Iterable[str],
    complexity: Complexity,
) -> str:
    description = _ACTION_DESCRIPTIONS.get(action, "process the video")
    parts = [f"I detected intent to {description}."]
    if target:
        parts.append(f'Target: "{target}".')
    objects = list(objects)
    if objects:
        parts.append(f"Detected objects: {', '.join(objects)}.")
    parts.append(
        f"Complexity: {complexity} (based on prompt length and object count)."
    )
    return " ".join(parts)


@dataclass
class IntentClassifier:
    """Map an instruction to a ``PlannerAnalysis`` using a fixed rule table.

    Every rule is evaluated; the highest confidence wins and ties keep the
    earlier rule. With no match the result falls back to ``inpaint`` at 0.6.
    """

    rules: tuple[IntentRule, ...] = INTENT_RULES
    vocabulary: tuple[str, ...] = COMMON_OBJECTS

    def classify(self, instruction: str | None) -> PlannerAnalysis:
        text = (instruction or "").lower().strip()
        best: IntentRule | None = None
        for rule in self.rules:
            if not rule.matches(text):
                continue
            if best is None or rule.confidence > best.confidence:
                best = rule
        if best is None:
            intent = PlannerIntent(FALLBACK_ACTION, FALLBACK_CONFIDENCE)
        else:
            target, replacement = best.extract_target(text)
            intent = PlannerIntent(best.action, best.confidence, target, replacement)
        objects = tuple(obj for obj in self.vocabulary if obj in text)
        complexity = score_complexity(text, objects)
        reasoning = build_reasoning(intent.action, intent.target, objects, complexity)
        LOG.debug(
            "classified %r as %s (confidence=%.2f, target=%r)",
            text,
            intent.action,
            intent.confidence,
            intent.target,
        )
        return PlannerAnalysis(
            intent=intent,
            complexity=complexity,
            reasoning=reasoning,
            detected_objects=objects,
        )


_DEFAULT = IntentClassifier()


def classify(instruction: str | None) -> PlannerAnalysis:
    return _DEFAULT.classify(instruction)


__all__ = [
    "IntentRule",
    "INTENT_RULES",
    "COMMON_OBJECTS",
    "PlannerIntent",
    "PlannerAnalysis",
    "IntentClassifier",
    "classify",
    "score_complexity",
    "build_reasoning",
]
