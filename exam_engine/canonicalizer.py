import logging
import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

logger = logging.getLogger(__name__)

OPTION_TYPES = {"multiple_choice", "multiple_answer", "composite"}

_LETTER_LABEL = re.compile(r"^([A-Z])\s*[.)]\s*(.+)$", re.IGNORECASE)
_NUMBER_LABEL = re.compile(r"^(\d+)\s*[.)]\s*(.+)$")


def _option_run(first: str, label: str):
    """
    "(" + first label, then 2+ more labelled groups, closed by ")" or by the
    end of the text. A group's text never starts with whitespace and stops
    before the next label, so every run splits into groups exactly one way.
    """
    text = rf"[^)\s](?:(?!\s+{label})[^)])*"
    return re.compile(
        rf"\({first}\s*{text}(?:\s+{label}\s*{text}){{2,}}(?:\)|\s*$)",
        re.IGNORECASE,
    )


# Runs of 3+ "label + delimiter + text" groups that duplicate the option list
_PARENTHETICAL_RUNS = [
    _option_run(r"\d+\)", r"\d+\)"),  # (1) text 2) text 3) text)
    _option_run(r"[A-D]\)", r"\([A-D]\)"),  # (A) text (B) text (C) text)
    _option_run(r"\d+\.", r"\d+\."),  # (1. text 2. text 3. text)
    _option_run(r"[A-D]\.", r"[A-D]\."),  # (A. text B. text C. text)
]
_WHITESPACE = re.compile(r"\s+")
_EDGE_PUNCTUATION = re.compile(r"^\s*[(),.]\s*|\s*[(),.]\s*$")

_MATCH_PAIR = re.compile(r"^(\d+)\s*-\s*(\d+)$")


# -------------------------------------------------
# Option labels
# -------------------------------------------------
class LabeledOption(NamedTuple):
    label: int
    text: str


def strip_option_label(option: str) -> LabeledOption:
    """
    "B) Lyon" -> (2, "Lyon"), "3. Nice" -> (3, "Nice").
    No label -> label 0 and the trimmed option.
    """
    m = _LETTER_LABEL.match(option)
    if m:
        return LabeledOption(ord(m.group(1).upper()) - ord("A") + 1, m.group(2).strip())
    m = _NUMBER_LABEL.match(option)
    if m:
        return LabeledOption(int(m.group(1)), m.group(2).strip())
    return LabeledOption(0, option.strip())


def strip_option_labels(options: Iterable[Any]) -> List[Any]:
    """
    Labels are removed only when every option carries the label of its own
    position (A/1 first, B/2 second, ...). Any other list is only trimmed,
    so option text that merely looks labelled ("e.g. apples") survives.
    """
    options = list(options)
    labeled = [strip_option_label(o) if isinstance(o, str) else None for o in options]
    in_sequence = any(labeled) and all(
        lo is None or lo.label == i for i, lo in enumerate(labeled, start=1)
    )
    if not in_sequence:
        return [o.strip() if isinstance(o, str) else o for o in options]
    return [lo.text if lo is not None else o for o, lo in zip(options, labeled)]


# -------------------------------------------------
# Question body
# -------------------------------------------------
def remove_parenthetical_options(question_text: str) -> str:
    """
    Drop an option list the model duplicated into the question body, e.g.
    "Which is true? (1) only A 2) only B 3) both 4) neither)".
    Text with fewer than 3 labelled groups is returned untouched.
    """
    cleaned = question_text
    for pattern in _PARENTHETICAL_RUNS:
        cleaned = pattern.sub("", cleaned)
    if cleaned == question_text:
        return question_text

    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _EDGE_PUNCTUATION.sub("", cleaned)
    return cleaned


# -------------------------------------------------
# Matching pairs
# -------------------------------------------------
def decode_matches(matches: Optional[str]) -> Optional[List[Dict[str, int]]]:
    """
    "1-3, 2-1" (1-based) -> [{"leftIndex": 0, "rightIndex": 2}, {"leftIndex": 1, "rightIndex": 0}].
    Malformed pairs are skipped; None when nothing survives.
    """
    if not matches:
        return None
    result = []
    for pair in matches.split(","):
        m = _MATCH_PAIR.match(pair.strip())
        if not m:
            logger.debug("skipping malformed match pair %r", pair)
            continue
        result.append({"leftIndex": int(m.group(1)) - 1, "rightIndex": int(m.group(2)) - 1})
    return result or None


def encode_matches(pairs: Iterable[Any]) -> str:
    """Inverse of decode_matches. Accepts dicts or MatchPair models."""
    parts = []
    for pair in pairs:
        if isinstance(pair, dict):
            left, right = pair["leftIndex"], pair["rightIndex"]
        else:
            left, right = pair.left_index, pair.right_index
        parts.append(f"{left + 1}-{right + 1}")
    return ", ".join(parts)


# -------------------------------------------------
# Per-question
# -------------------------------------------------
def canonicalize(question: Any) -> Any:
    """
    Returns a cleaned copy of one raw question dict. Anything that is not a
    dict is passed through for the validator to report.
    """
    if not isinstance(question, dict):
        return question

    q = dict(question)
    text = q.get("questionText")
    if isinstance(text, str):
        cleaned = remove_parenthetical_options(text)
        if cleaned != text:
            logger.debug("removed duplicated option list from question text")
        q["questionText"] = cleaned

    qtype = q.get("questionType")
    if qtype in OPTION_TYPES and isinstance(q.get("options"), list):
        q["options"] = strip_option_labels(q["options"])
    elif qtype == "matching" and isinstance(q.get("correctMatches"), str):
        q["correctMatches"] = decode_matches(q["correctMatches"])

    return q


def canonicalize_batch(questions: Iterable[Any]) -> List[Any]:
    return [canonicalize(q) for q in questions]
