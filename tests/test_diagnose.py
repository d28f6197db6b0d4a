import os

import pytest

from stepdiag.data_classes.diagnostics_exception import CompilationError, DiagnosticsError, EvaluationError
from stepdiag.data_classes.project_configuration import ProjectConfiguration
from stepdiag.diagnostics.diagnose import diagnose, step_argument_kind
from tests.helpers.project_helpers import BASIC_PROJECT, write_project
from tests.test_data.diagnose_test_data import (
    BASIC_PROJECT_AMBIGUOUS,
    BASIC_PROJECT_UNMATCHED,
    BASIC_PROJECT_USAGE,
)

ROOT = str(BASIC_PROJECT.resolve())


def _rel(path: str) -> str:
    return os.path.relpath(path, ROOT).replace(os.sep, "/")


def _step_tuple(step):
    return _rel(step.source), step.line, step.text


@pytest.fixture(scope="module")
def basic_result():
    yield diagnose(ProjectConfiguration(project_root=ROOT))


class TestDiagnoseBasicProject:
    @pytest.mark.diagnose
    def test_definitions_usage(self, basic_result):
        actual = [
            (
                usage.definition.canonical_string(),
                _rel(usage.definition.position.source),
                usage.definition.position.line,
                [_step_tuple(step) for step in usage.steps],
            )
            for usage in basic_result.definitions_usage
        ]
        assert actual == BASIC_PROJECT_USAGE

    @pytest.mark.diagnose
    def test_unmatched_steps(self, basic_result):
        actual = [(*_step_tuple(unmatched.step), unmatched.argument) for unmatched in basic_result.unmatched_steps]
        assert actual == BASIC_PROJECT_UNMATCHED

    @pytest.mark.diagnose
    def test_unmatched_step_hints(self, basic_result):
        hints = basic_result.unmatched_steps[0].step_definition_hints
        assert hints.step_definitions == ["[filepath]/**/*.py", "[filepath].py", "features/steps/**/*.py"]
        assert [_rel(pattern) for pattern in hints.step_definition_patterns] == [
            "features/navigation/**/*.py",
            "features/navigation.py",
            "features/steps/**/*.py",
        ]
        assert [_rel(path) for path in hints.step_definition_paths] == ["features/steps/navigation_steps.py"]
        assert basic_result.unmatched_steps[0].parameter_type_registry is not None

    @pytest.mark.diagnose
    def test_ambiguous_steps(self, basic_result):
        actual = [
            (_step_tuple(ambiguous.step), [definition.canonical_string() for definition in ambiguous.definitions])
            for ambiguous in basic_result.ambiguous_steps
        ]
        assert actual == BASIC_PROJECT_AMBIGUOUS

    @pytest.mark.diagnose
    def test_definitions_are_unique(self, basic_result):
        definitions = [usage.definition for usage in basic_result.definitions_usage]
        assert len(set(definitions)) == len(definitions)

    @pytest.mark.diagnose
    def test_every_step_is_either_used_or_unmatched(self, basic_result):
        used = {_step_tuple(step) for usage in basic_result.definitions_usage for step in usage.steps}
        unmatched = {_step_tuple(unmatched.step) for unmatched in basic_result.unmatched_steps}
        assert not used & unmatched

    @pytest.mark.diagnose
    def test_unused_and_problems(self, basic_result):
        assert [definition.canonical_string() for definition in basic_result.unused_definitions] == [
            "I click {string}"
        ]
        assert basic_result.has_problems

    @pytest.mark.diagnose
    def test_idempotent(self, basic_result):
        again = diagnose(ProjectConfiguration(project_root=ROOT))
        assert again.to_dict() == basic_result.to_dict()


class TestDiagnoseEdgeCases:
    @pytest.mark.diagnose
    def test_non_feature_files_are_skipped(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/notes.txt": "Feature: not really\n",
                "features/steps/steps.py": """
                    @given("nothing")
                    def nothing(context):
                        pass
                """,
            },
        )
        result = diagnose(ProjectConfiguration(project_root=str(tmp_path), features=["features/*"]))
        assert result.definitions_usage == []
        assert result.unmatched_steps == []

    @pytest.mark.diagnose
    def test_same_definition_from_two_features_is_merged(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": """
                    Feature: A
                      Scenario: A
                        Given I click "ok"
                """,
                "features/b.feature": """
                    Feature: B
                      Scenario: B
                        Given I click "cancel"
                """,
                "features/steps/steps.py": """
                    @given("I click {string}")
                    def click(context, label):
                        pass
                """,
            },
        )
        result = diagnose(ProjectConfiguration(project_root=str(tmp_path)))

        assert len(result.definitions_usage) == 1
        assert [step.text for step in result.definitions_usage[0].steps] == ['I click "ok"', 'I click "cancel"']
        assert not result.has_problems

    @pytest.mark.diagnose
    def test_parameter_types_stay_visible_for_later_features(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": """
                    Feature: A
                      Scenario: A
                        Given I pick red
                """,
                "features/a/types.py": """
                    define_parameter_type("color", r"red|blue")
                """,
                "features/b.feature": """
                    Feature: B
                      Scenario: B
                        Given I paint it blue
                """,
                "features/steps/steps.py": """
                    @given("I pick {color}")
                    def pick(context, color):
                        pass

                    @given("I paint it {color}")
                    def paint(context, color):
                        pass
                """,
            },
        )
        result = diagnose(ProjectConfiguration(project_root=str(tmp_path)))

        assert [len(usage.steps) for usage in result.definitions_usage] == [1, 1]
        assert result.unmatched_steps == []

    @pytest.mark.diagnose
    def test_compilation_error_aborts(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": "Feature: A\n  Scenario: A\n    Given a\n",
                "features/steps/steps.py": "def broken(:\n",
            },
        )
        with pytest.raises(CompilationError) as exc_info:
            diagnose(ProjectConfiguration(project_root=str(tmp_path)))
        assert exc_info.value.feature_file.endswith("a.feature")

    @pytest.mark.diagnose
    def test_evaluation_error_aborts(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": "Feature: A\n  Scenario: A\n    Given a\n",
                "features/steps/steps.py": "import module_that_does_not_exist_anywhere\n",
            },
        )
        with pytest.raises(EvaluationError):
            diagnose(ProjectConfiguration(project_root=str(tmp_path)))

    @pytest.mark.diagnose
    def test_stub_modules_allow_loading(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": "Feature: A\n  Scenario: A\n    Given a\n",
                "features/steps/steps.py": """
                    from remote_browser_for_stub_test import Browser

                    @given("a")
                    def a(context):
                        Browser().open()
                """,
            },
        )
        result = diagnose(
            ProjectConfiguration(project_root=str(tmp_path), stub_modules=["remote_browser_for_stub_test"])
        )
        assert [len(usage.steps) for usage in result.definitions_usage] == [1]

    @pytest.mark.diagnose
    def test_unparsable_feature_aborts(self, tmp_path):
        write_project(
            tmp_path,
            {
                "features/a.feature": "Feature: A\n  Scenario: A\n    Given a\n  Oops: not gherkin\n",
            },
        )
        with pytest.raises(DiagnosticsError, match="Expected to find a gherkin document"):
            diagnose(ProjectConfiguration(project_root=str(tmp_path)))


class TestStepArgumentKind:
    @pytest.mark.diagnose
    @pytest.mark.parametrize(
        "pickle_step, expected",
        [
            ({"text": "a", "argument": {"dataTable": {"rows": [{"cells": []}]}}}, "dataTable"),
            ({"text": "a", "argument": {"docString": {"content": "x"}}}, "docString"),
            ({"text": "a"}, None),
        ],
        ids=["data_table", "doc_string", "none"],
    )
    def test_step_argument_kind(self, pickle_step, expected):
        assert step_argument_kind(pickle_step) == expected
