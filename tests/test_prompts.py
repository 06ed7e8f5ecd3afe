"""Tests for the confirmation gate."""

import pytest

from nixzfs.errors import SelectionAborted
from nixzfs.prompts import (
    confirm_destructive,
    confirm_value,
    is_affirmative,
    require_confirmation,
)


@pytest.fixture
def mock_inquirer(mocker):
    return mocker.patch("nixzfs.prompts.inquirer")


class TestIsAffirmative:
    @pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES", " Yes "])
    def test_explicit_yes(self, answer):
        assert is_affirmative(answer) is True

    @pytest.mark.parametrize("answer", ["", " ", "n", "no", "yep", "ye", "sure", "1", None, True])
    def test_anything_else_is_no(self, answer):
        assert is_affirmative(answer) is False


class TestConfirmDestructive:
    def test_defaults_to_no(self, mock_inquirer):
        mock_inquirer.confirm.return_value.execute.return_value = False

        assert confirm_destructive("Erase disk") is False
        assert mock_inquirer.confirm.call_args.kwargs["default"] is False

    def test_yes_proceeds(self, mock_inquirer):
        mock_inquirer.confirm.return_value.execute.return_value = True

        assert confirm_destructive("Erase disk") is True

    @pytest.mark.parametrize("answer", [None, "", "y", 1])
    def test_aborted_or_odd_answers_abort(self, mock_inquirer, answer):
        mock_inquirer.confirm.return_value.execute.return_value = answer

        assert confirm_destructive("Erase disk") is False

    def test_description_is_echoed(self, mock_inquirer, capsys):
        mock_inquirer.confirm.return_value.execute.return_value = False

        confirm_destructive("This will erase ALL data on test-disk.")

        assert "This will erase ALL data on test-disk." in capsys.readouterr().out


class TestRequireConfirmation:
    def test_decline_raises(self, mock_inquirer):
        mock_inquirer.confirm.return_value.execute.return_value = False

        with pytest.raises(SelectionAborted, match="Erase disk"):
            require_confirmation("Erase disk")

    def test_accept_returns(self, mock_inquirer):
        mock_inquirer.confirm.return_value.execute.return_value = True

        require_confirmation("Erase disk")


def test_confirm_value_requires_typed_yes(mock_inquirer):
    mock_inquirer.text.return_value.execute.return_value = ""
    assert confirm_value("the pool name", "rpool") is False

    mock_inquirer.text.return_value.execute.return_value = "yes"
    assert confirm_value("the pool name", "rpool") is True
