"""Tests for the cmdgraph error taxonomy."""

import pytest

from cmdgraph.domain.errors import (
    CommandConfigurationError,
    CommandError,
    CommandFailedError,
    GraphError,
    InvalidTransitionError,
    SkippedError,
    error_message,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_cls",
        [
            SkippedError,
            CommandFailedError,
            CommandConfigurationError,
            InvalidTransitionError,
            GraphError,
        ],
    )
    def test_all_derive_from_command_error(self, error_cls: type[Exception]) -> None:
        assert issubclass(error_cls, CommandError)

    def test_programming_errors_match_builtin_categories(self) -> None:
        assert issubclass(CommandConfigurationError, ValueError)
        assert issubclass(GraphError, ValueError)
        assert issubclass(InvalidTransitionError, RuntimeError)

    def test_skip_is_not_a_failure(self) -> None:
        assert not issubclass(SkippedError, CommandFailedError)


class TestErrorMessage:
    def test_returns_error_messages(self) -> None:
        assert error_message(RuntimeError("Hi")) == "Hi"

    def test_falls_back_to_type_name(self) -> None:
        assert error_message(KeyError()) == "KeyError"

    def test_survives_broken_str(self) -> None:
        class Unprintable(Exception):
            def __str__(self) -> str:
                raise RuntimeError("cannot render")

        assert error_message(Unprintable()) == "Unprintable"
