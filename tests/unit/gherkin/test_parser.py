"""Unit tests for gherkin.parser module."""

import pytest
from gherkin.errors import CompositeParserException, ParserError

from src.cache.cache_manager import CacheManager
from src.core.errors import GherkinParseError
from src.core.events import EventBus, SyncEvents
from src.gherkin.models import ScenarioType, StepType
from src.gherkin.parser import GherkinParser, content_hash
from tests.fixtures.sample_features import (
    FEATURE_FRENCH,
    FEATURE_LOGIN,
    FEATURE_MISSING_HEADER,
    FEATURE_OUTLINE,
    FEATURE_RULES,
)


class TestContentHash:
    """Test cases for content_hash."""

    def test_empty_text(self):
        assert content_hash("") == "0"

    def test_known_value(self):
        """'a' is 97, which is '2p' in base 36."""
        assert content_hash("a") == "2p"

    def test_wraps_to_signed_32_bits(self):
        """Long input stays within a signed 32-bit range."""
        value = int(content_hash("x" * 1000), 36)

        assert -(2 ** 31) <= value < 2 ** 31

    def test_differs_for_different_text(self):
        assert content_hash("Feature: A") != content_hash("Feature: B")


class TestGherkinParser:
    """Test cases for GherkinParser."""

    @pytest.fixture
    def parser(self):
        return GherkinParser()


class TestParseStructure(TestGherkinParser):
    """Test the parsed Feature tree."""

    def test_feature_header_tags_and_description(self, parser):
        """Feature name, tags and description are captured."""
        feature = parser.parse(FEATURE_LOGIN)

        assert feature.name == "User login"
        assert feature.tags == ["@auth", "@smoke"]
        assert feature.description == (
            "As a registered user\nI want to sign in\nSo that I can reach my dashboard"
        )
        assert feature.language == "en"

    def test_background_and_scenarios(self, parser):
        """Background steps are kept apart from scenario steps."""
        feature = parser.parse(FEATURE_LOGIN)

        assert [step.text for step in feature.background.steps] == ["the login page is open"]
        assert [scenario.name for scenario in feature.scenarios] == ["Successful login", "Rejected login"]
        assert feature.scenarios[0].tags == ["@critical"]
        assert feature.scenarios[1].tags == []
        assert [step.keyword for step in feature.scenarios[0].steps] == ["Given", "When", "Then"]

    def test_all_tags_combines_feature_and_scenarios(self, parser):
        feature = parser.parse(FEATURE_LOGIN)

        assert feature.all_tags == ["@auth", "@smoke", "@critical"]

    def test_outline_examples_table(self, parser):
        """Outline examples have headers and data rows."""
        feature = parser.parse(FEATURE_OUTLINE)

        outline = feature.scenarios[0]
        assert outline.type == ScenarioType.OUTLINE
        assert outline.examples[0].name == "Common rates"
        assert outline.examples[0].table.headers == ["rate", "amount", "result"]
        assert outline.examples[0].row_count == 2

    def test_rules_tables_and_doc_strings(self, parser):
        """Rule children are flattened and step attachments are parsed."""
        feature = parser.parse(FEATURE_RULES)

        card, ship = feature.scenarios
        assert (card.rule, ship.rule) == ("Payment", "Shipping")
        assert card.steps[0].data_table.headers == ["sku", "qty"]
        assert card.steps[0].data_table.rows == [["A-1", "2"]]
        assert ship.steps[1].doc_string == "Handle with care"
        assert ship.steps[2].keyword == "Then"

    def test_step_types_follow_keywords(self, parser):
        """Given/When/Then map to their roles, And and * are conjunctions."""
        feature = parser.parse("Feature: Roles\n  Scenario: S\n    Given a\n    And b\n    * c\n    When d\n    Then e\n")

        assert [step.type for step in feature.scenarios[0].steps] == [
            StepType.CONTEXT,
            StepType.CONJUNCTION,
            StepType.CONJUNCTION,
            StepType.ACTION,
            StepType.OUTCOME,
        ]

    def test_localized_document(self, parser):
        """A "# language:" header switches every keyword to that dialect."""
        # Act
        feature = parser.parse(FEATURE_FRENCH, "fr.feature")

        # Assert
        assert feature.language == "fr"
        assert feature.name == "Connexion utilisateur"
        assert feature.tags == ["@connexion"]
        assert feature.description == "En tant qu'utilisateur inscrit\nJe veux me connecter"
        assert [step.keyword for step in feature.background.steps] == ["Soit"]
        login, outline = feature.scenarios
        assert login.type == ScenarioType.SCENARIO
        assert [step.keyword for step in login.steps] == ["Soit", "Quand", "Alors", "Et"]
        assert [step.type for step in login.steps] == [
            StepType.CONTEXT,
            StepType.ACTION,
            StepType.OUTCOME,
            StepType.CONJUNCTION,
        ]
        assert outline.type == ScenarioType.OUTLINE
        assert outline.examples[0].table.headers == ["taux", "montant", "resultat"]
        assert outline.examples[0].row_count == 1

    def test_to_dict_serializes_scenario_type(self, parser):
        data = parser.parse(FEATURE_OUTLINE).to_dict()

        assert data["scenarios"][0]["type"] == "outline"
        assert data["scenarios"][0]["steps"][0]["type"] == "context"


class TestParseErrors(TestGherkinParser):
    """Test malformed documents."""

    @pytest.mark.parametrize(
        "content, reason",
        [
            ("", "No Feature declaration found"),
            ("# just a comment\n", "No Feature declaration found"),
            (FEATURE_MISSING_HEADER, "got 'Scenario: Orphan'"),
            ('Feature: A\n  Scenario: S\n    Given x\n      """\n      text\n', "unexpected end of file"),
            ("Feature: A\n  Scenario: S\n    Given x\n    stray words\n", "got 'stray words'"),
            ("@wip\n", "unexpected end of file"),
            ("# language: xx-unknown\nFeature: A\n", "xx-unknown"),
        ],
    )
    def test_malformed_documents_raise(self, parser, content, reason):
        """Each malformation raises GherkinParseError with a specific reason."""
        with pytest.raises(GherkinParseError) as exc_info:
            parser.parse(content, "bad.feature")

        assert reason in str(exc_info.value)
        assert exc_info.value.file_path == "bad.feature"

    def test_library_error_is_chained(self, parser):
        with pytest.raises(GherkinParseError) as exc_info:
            parser.parse(FEATURE_MISSING_HEADER, "orphan.feature")

        assert isinstance(exc_info.value.__cause__, (CompositeParserException, ParserError))


class TestParseCaching:
    """Test memoization and events."""

    def test_parse_result_is_memoized_by_content(self):
        """A second parse of identical content is served from cache."""
        # Arrange
        manager = CacheManager()
        parser = GherkinParser(cache_manager=manager)

        # Act
        first = parser.parse(FEATURE_LOGIN, "login.feature")
        second = parser.parse(FEATURE_LOGIN, "login.feature")

        # Assert
        assert first is second
        assert manager.validation_cache.hits == 1

    def test_parse_emits_started_and_completed(self):
        bus = EventBus()
        parser = GherkinParser(events=bus)

        parser.parse(FEATURE_OUTLINE, "outline.feature")

        names = [event.name for event in bus.get_history()]
        assert names == [SyncEvents.VALIDATION_STARTED, SyncEvents.VALIDATION_COMPLETED]
        assert bus.get_history()[-1].data["scenario_count"] == 1

    def test_parse_failure_emits_failed(self):
        bus = EventBus()
        parser = GherkinParser(events=bus)

        with pytest.raises(GherkinParseError):
            parser.parse("", "empty.feature")

        assert bus.get_history()[-1].name == SyncEvents.VALIDATION_FAILED
