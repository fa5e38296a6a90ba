# tests/pbs_config/test_cli_handler.py
import pytest

from pbs_config.cli_handler import (
    prompt_choice,
    prompt_secret,
    prompt_text,
    prompt_yes_no,
    view_plan,
)

ROLE_OPTIONS = {"1": "PBS Server", "2": "Compute Node", "3": "Both"}


def test_prompt_choice_returns_key(mocker, capsys, mock_logger):
    mock_input = mocker.patch("builtins.input", return_value=" 2 ")

    assert prompt_choice("Select node type:", ROLE_OPTIONS, None, mock_logger) == "2"

    out = capsys.readouterr().out
    assert "1) PBS Server" in out
    assert "3) Both" in out
    mock_input.assert_called_once_with("Enter your choice [1-3]: ")


def test_prompt_choice_invalid_answer(mocker, mock_logger):
    mocker.patch("builtins.input", return_value="7")

    assert prompt_choice("Select node type:", ROLE_OPTIONS, None, mock_logger) is None


def test_prompt_choice_eof(mocker, mock_logger):
    mocker.patch("builtins.input", side_effect=EOFError)

    assert prompt_choice("Select node type:", ROLE_OPTIONS, None, mock_logger) is None
    assert mock_logger.warning.called


def test_prompt_text_default(mocker, mock_logger):
    mocker.patch("builtins.input", return_value="")

    assert prompt_text("Cluster name", "pbs-cluster", None, mock_logger) == "pbs-cluster"


def test_prompt_text_answer(mocker, mock_logger):
    mock_input = mocker.patch("builtins.input", return_value="hpc")

    assert prompt_text("Cluster name", "pbs-cluster", None, mock_logger) == "hpc"
    mock_input.assert_called_once_with("Cluster name [pbs-cluster]: ")


@pytest.mark.parametrize(
    "answer, default, expected",
    [
        ("", False, False),
        ("", True, True),
        ("y", False, True),
        ("YES", False, True),
        ("maybe", False, False),
        ("n", True, False),
        ("maybe", True, True),
    ],
)
def test_prompt_yes_no(mocker, mock_logger, answer, default, expected):
    mocker.patch("builtins.input", return_value=answer)

    assert prompt_yes_no("Enable accounting?", default, None, mock_logger) is expected


def test_prompt_yes_no_hint(mocker, mock_logger):
    mock_input = mocker.patch("builtins.input", return_value="")

    prompt_yes_no("Continue with reinstallation?", False, None, mock_logger)

    mock_input.assert_called_once_with("Continue with reinstallation? [y/N]: ")


def test_prompt_yes_no_eof_uses_default(mocker, mock_logger):
    mocker.patch("builtins.input", side_effect=EOFError)

    assert prompt_yes_no("Proceed?", True, None, mock_logger) is True


def test_prompt_secret(mocker, mock_logger):
    mocker.patch("pbs_config.cli_handler.getpass.getpass", return_value="pw")
    assert prompt_secret("PostgreSQL password", None, mock_logger) == "pw"

    mocker.patch("pbs_config.cli_handler.getpass.getpass", return_value="")
    assert prompt_secret("PostgreSQL password", None, mock_logger) is None


def test_view_plan_masks_password(make_plan, mock_logger):
    plan = make_plan(
        accounting_enabled=True, install_database=True, database_password="s3cret"
    )

    view_plan(plan, None, mock_logger)

    summary = mock_logger.info.call_args.args[0]
    assert "Node Type:           server" in summary
    assert "Database Password:   [SET]" in summary
    assert "s3cret" not in summary


def test_view_plan_without_accounting(make_plan, mock_logger):
    view_plan(make_plan(), None, mock_logger)

    summary = mock_logger.info.call_args.args[0]
    assert "Accounting:          False" in summary
    assert "Database Password" not in summary
