"""Gherkin parsing into FeatureMetadata.

Feature text is parsed with the official Cucumber parser (``gherkin-official``)
and its AST is reduced to a FeatureMetadata tree. Every Gherkin dialect is
supported through the ``# language:`` header. The parser is structural only:
naming and style rules belong to the validator.

Rule children are flattened into the feature's scenario list and keep the
rule name. A Rule-level Background is not kept.
"""

import logging
from typing import Any, Dict, List, Optional

from gherkin.dialect import Dialect
from gherkin.errors import CompositeParserException, ParserError
from gherkin.parser import Parser
from gherkin.token_scanner import TokenScanner

from src.cache.cache_manager import CacheManager
from src.core.errors import GherkinParseError
from src.core.events import EventBus, SyncEvents
from src.gherkin.models import (
    Background,
    DataTable,
    Examples,
    FeatureMetadata,
    Scenario,
    ScenarioType,
    Step,
    StepType,
)

logger = logging.getLogger(__name__)

_INT32 = 0xFFFFFFFF
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def content_hash(text: str) -> str:
    """Compute a fast, non-cryptographic hash of text for cache keys.

    Uses a 31-multiplier rolling hash wrapped to signed 32 bits and renders it
    in base 36 (negative values keep a leading "-").

    Args:
        text: Content to hash

    Returns:
        Base-36 hash string
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & _INT32
    if value & 0x80000000:
        value -= 0x100000000

    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return sign + "".join(reversed(digits))


def _tag_names(node: Dict[str, Any]) -> List[str]:
    return [tag["name"] for tag in node.get("tags", [])]


def _description(node: Dict[str, Any]) -> str:
    """Description text with each line's indentation removed."""
    lines = (node.get("description") or "").splitlines()
    return "\n".join(line.strip() for line in lines).strip()


def _table(rows: List[Dict[str, Any]]) -> DataTable:
    values = [[cell["value"] for cell in row.get("cells", [])] for row in rows]
    return DataTable(headers=values[0] if values else [], rows=values[1:])


class _FeatureBuilder:
    """Reduces a gherkin-official feature node to FeatureMetadata."""

    def __init__(self, dialect: Dialect):
        self.dialect = dialect

    def build(self, node: Dict[str, Any]) -> FeatureMetadata:
        feature = FeatureMetadata(
            name=node.get("name", ""),
            description=_description(node),
            tags=_tag_names(node),
            language=node.get("language", "en"),
        )

        for child in node.get("children", []):
            if "scenario" in child:
                feature.scenarios.append(self.scenario(child["scenario"]))
            elif "background" in child:
                feature.background = Background(
                    name=child["background"].get("name", ""),
                    steps=self.steps(child["background"]),
                )
            elif "rule" in child:
                rule = child["rule"]
                for rule_child in rule.get("children", []):
                    if "scenario" in rule_child:
                        feature.scenarios.append(self.scenario(rule_child["scenario"], rule.get("name", "")))

        return feature

    def scenario(self, node: Dict[str, Any], rule: Optional[str] = None) -> Scenario:
        outline = node.get("keyword") in self.dialect.scenario_outline_keywords
        return Scenario(
            name=node.get("name", ""),
            tags=_tag_names(node),
            steps=self.steps(node),
            type=ScenarioType.OUTLINE if outline else ScenarioType.SCENARIO,
            examples=[
                Examples(
                    name=examples.get("name", ""),
                    tags=_tag_names(examples),
                    table=_table([examples["tableHeader"], *examples.get("tableBody", [])])
                    if "tableHeader" in examples else None,
                )
                for examples in node.get("examples", [])
            ],
            rule=rule,
        )

    def steps(self, node: Dict[str, Any]) -> List[Step]:
        steps = []
        for step in node.get("steps", []):
            steps.append(Step(
                keyword=step["keyword"].strip(),
                text=step.get("text", ""),
                type=self.step_type(step["keyword"]),
                data_table=_table(step["dataTable"]["rows"]) if "dataTable" in step else None,
                doc_string=step["docString"]["content"] if "docString" in step else None,
            ))
        return steps

    def step_type(self, keyword: str) -> StepType:
        # "* " is listed under every step kind, so conjunctions are checked first
        if keyword in self.dialect.and_keywords or keyword in self.dialect.but_keywords:
            return StepType.CONJUNCTION
        if keyword in self.dialect.given_keywords:
            return StepType.CONTEXT
        if keyword in self.dialect.when_keywords:
            return StepType.ACTION
        if keyword in self.dialect.then_keywords:
            return StepType.OUTCOME
        return StepType.UNKNOWN


class GherkinParser:
    """Parses feature text into FeatureMetadata, memoizing by content hash.

    Example:
        >>> parser = GherkinParser()
        >>> feature = parser.parse("# language: fr\\nFonctionnalité: Connexion\\n  Scénario: Ok\\n    Soit un utilisateur\\n")
        >>> feature.scenarios[0].steps[0].keyword
        'Soit'
    """

    def __init__(self, cache_manager: Optional[CacheManager] = None, events: Optional[EventBus] = None):
        """Initialize parser.

        Args:
            cache_manager: Caches used to memoize parsed features
            events: Event bus for validation:* events
        """
        self.cache_manager = cache_manager
        self.events = events

    def parse(self, content: str, source_path: str = "unknown") -> FeatureMetadata:
        """Parse a feature document.

        Args:
            content: Raw feature text
            source_path: Path used in errors, events and cache keys

        Returns:
            FeatureMetadata tree

        Raises:
            GherkinParseError: If no Feature is declared or the text is malformed
        """
        file_hash = content_hash(content)
        if self.cache_manager is not None:
            cached = self.cache_manager.validation_cache.get_feature_data(source_path, file_hash)
            if cached is not None:
                logger.debug(f"Using cached parse result for {source_path}")
                return cached

        self._emit(SyncEvents.VALIDATION_STARTED, {"source_path": source_path, "type": "parsing"})

        try:
            feature = self._build(content, source_path)
        except GherkinParseError as e:
            self._emit(
                SyncEvents.VALIDATION_FAILED,
                {"source_path": source_path, "type": "parsing", "error": str(e)},
            )
            raise

        if self.cache_manager is not None:
            self.cache_manager.validation_cache.cache_feature_data(source_path, file_hash, feature)

        self._emit(
            SyncEvents.VALIDATION_COMPLETED,
            {
                "source_path": source_path,
                "type": "parsing",
                "scenario_count": len(feature.scenarios),
            },
        )
        logger.debug(f"Parsed {source_path}: {len(feature.scenarios)} scenario(s)")
        return feature

    def _build(self, content: str, source_path: str) -> FeatureMetadata:
        try:
            document = Parser().parse(TokenScanner(content))
        except (CompositeParserException, ParserError) as e:
            raise GherkinParseError(source_path, str(e).strip()) from e

        node = document.get("feature")
        if not node:
            raise GherkinParseError(source_path, "No Feature declaration found")

        return _FeatureBuilder(Dialect.for_name(node.get("language", "en"))).build(node)

    def _emit(self, event_name: str, data) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)
