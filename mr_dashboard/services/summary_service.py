"""AI summary parsing: keyword-driven section classifier and summary cards.

The LLM returns loosely structured prose. ``classify`` walks it line by line:
heading lines switch the current section, bullet lines become items of the
current section, everything else is dropped. The keyword tables below are the
whole rule set; they are evaluated in order and the first match wins.
"""

import logging
import re
from typing import List, Optional

from mr_dashboard.models import MRRecord, ParsedSummary, SummaryCard
from mr_dashboard.services.analysis_service import build_summary_context, format_discussions_for_ai

logger = logging.getLogger(__name__)

# Section key -> ParsedSummary attribute
SECTION_FIELDS = {
    "insights": "key_insights",
    "decisions": "decisions",
    "actions": "action_items",
    "technical": "technical_details",
    "recommendations": "recommendations",
    "risks": "risks",
    "improvements": "improvements",
}

# Heading detection, in priority order
HEADING_RULES = (
    ("insights", ("key insight", "main point", "summary")),
    ("decisions", ("decision", "resolved", "agreed")),
    ("actions", ("action", "todo", "follow up")),
    ("technical", ("technical", "code", "implementation")),
    ("recommendations", ("recommend", "suggest", "next step")),
    ("risks", ("risk", "concern", "issue")),
    ("improvements", ("improve", "enhancement", "optimize")),
)

# Bullets seen before any heading are classified by content; default is insights
FALLBACK_RULES = (
    ("actions", ("should", "need", "must")),
    ("decisions", ("decided", "approved")),
    ("recommendations", ("recommend", "suggest")),
    ("risks", ("risk", "concern")),
    ("improvements", ("improve", "enhance")),
)
DEFAULT_SECTION = "insights"

BULLET_PATTERN = re.compile(r"^(?:[-•*]|\d+\.)")

# Card display order, titles and priorities
CARD_DEFINITIONS = (
    ("insights", "Key Insights", "high"),
    ("decisions", "Decisions Made", "high"),
    ("actions", "Action Items", "high"),
    ("risks", "Risks & Concerns", "high"),
    ("technical", "Technical Details", "medium"),
    ("recommendations", "Recommendations", "medium"),
    ("improvements", "Improvements", "low"),
)
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# Record fields that feed the prompt context; part of the cache key
CONTEXT_RECORD_FIELDS = ("title", "author", "status", "target_branch", "source_branch", "description")


def _match(text: str, rules) -> Optional[str]:
    lowered = text.lower()
    for section, keywords in rules:
        if any(keyword in lowered for keyword in keywords):
            return section
    return None


def classify(text: str) -> ParsedSummary:
    """Split narrative text into the seven summary buckets."""
    parsed = ParsedSummary()
    if not text:
        return parsed

    current = None
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        heading = _match(line, HEADING_RULES)
        if heading:
            current = heading
            continue

        marker = BULLET_PATTERN.match(line)
        if not marker:
            continue
        item = line[marker.end():].strip()
        if not item:
            continue

        section = current or _match(item, FALLBACK_RULES) or DEFAULT_SECTION
        getattr(parsed, SECTION_FIELDS[section]).append(item)

    return parsed


def build_summary_cards(parsed: ParsedSummary) -> List[SummaryCard]:
    """Non-empty buckets as cards, high priority first."""
    cards = []
    for key, title, priority in CARD_DEFINITIONS:
        items = getattr(parsed, SECTION_FIELDS[key])
        if items:
            cards.append(SummaryCard(key=key, title=title, items=tuple(items), priority=priority))
    return sorted(cards, key=lambda card: PRIORITY_ORDER[card.priority])


def total_items(parsed: ParsedSummary) -> int:
    return sum(len(getattr(parsed, field)) for field in SECTION_FIELDS.values())


def confidence_score(parsed: ParsedSummary) -> int:
    """Rough confidence indicator from how much structure was recovered."""
    count = total_items(parsed)
    if count == 0:
        return 0
    if count >= 10:
        return 95
    if count >= 7:
        return 88
    if count >= 5:
        return 82
    if count >= 3:
        return 75
    return 68


def record_fingerprint(record: Optional[MRRecord]) -> tuple:
    """Hashable view of the record fields that shape the prompt."""
    if record is None:
        return ()
    return tuple(getattr(record, name) for name in CONTEXT_RECORD_FIELDS)


class SummaryGenerator:
    """analyze -> summarize -> classify, with results cached per MR, provider and record context."""

    def __init__(self, analyzer, ai_service, cache=None, cache_lock=None):
        self.analyzer = analyzer
        self.ai_service = ai_service
        self.cache = cache
        self.cache_lock = cache_lock

    def _cache_get(self, key):
        if self.cache is None:
            return None
        if self.cache_lock:
            with self.cache_lock:
                return self.cache.get(key)
        return self.cache.get(key)

    def _cache_set(self, key, value):
        if self.cache is None:
            return
        if self.cache_lock:
            with self.cache_lock:
                self.cache[key] = value
        else:
            self.cache[key] = value

    def generate(self, mr_ref, record: Optional[MRRecord] = None, refresh: bool = False) -> dict:
        """Build the summary payload for one MR.

        Raises SummarizationError if the provider call fails; analysis failures
        are absorbed by the analyzer's fallback policy.
        """
        cache_key = (str(mr_ref), self.ai_service.get_current_provider(), record_fingerprint(record))
        if not refresh:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.info(f"Serving cached summary for MR {mr_ref}")
                return {**cached, "cached": True}

        result = self.analyzer.analyze(mr_ref)
        content = format_discussions_for_ai(result.bundle.discussions)
        context = build_summary_context(result.analysis, record, result.bundle.basic_info)

        response = self.ai_service.generate_summary(content, context)
        parsed = classify(response.summary)
        cards = build_summary_cards(parsed)
        logger.info(f"Summary for MR {mr_ref}: {len(cards)} cards, {total_items(parsed)} items")

        payload = {
            "mr_ref": str(mr_ref),
            "summary": response.to_dict(),
            "parsed": parsed.to_dict(),
            "cards": [card.to_dict() for card in cards],
            "total_items": total_items(parsed),
            "confidence": confidence_score(parsed),
            "analysis": result.to_dict(),
        }
        # Fallback analyses are not cached so the next request retries GitLab
        if not result.is_fallback:
            self._cache_set(cache_key, payload)
        return {**payload, "cached": False}


def get_summary_generator() -> SummaryGenerator:
    from mr_dashboard.extensions import summary_cache, summary_cache_lock
    from mr_dashboard.services.ai_service import get_ai_service
    from mr_dashboard.services.analysis_service import get_analyzer

    return SummaryGenerator(get_analyzer(), get_ai_service(), summary_cache, summary_cache_lock)
