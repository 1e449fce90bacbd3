"""
End-to-end tests for the menu application and process entry point.
"""

import logging

import pytest

import dice_game
from dice_game import (
    CommitmentMismatchError,
    CommitmentService,
    ConsoleRenderer,
    Dice,
    DiceGameApp,
    DrawRevealed,
    FairDraw,
    FairnessFailure,
    FairValueGenerator,
    InvalidInput,
    MatrixView,
    Message,
    NoAvailableDiceError,
    Outcome,
    ProbabilityEngine,
    RoundResult,
    ScoreboardView,
    run,
)
from tests.helpers import ScriptedAsk, SequenceBits

SCENARIO_ARGS = ["2,2,4,4,9,9", "6,8,1,1,8,6", "7,5,3,7,5,3"]


class LyingCommitments(CommitmentService):
    @classmethod
    def verify(cls, digest_hex, key, message):
        return False


def never_ask(prompt):
    raise AssertionError("no prompt expected")


# === Menu ===


class TestDiceGameApp:
    """Tests for DiceGameApp.run()."""

    def make(self, dice, answers, rendered, commitments=None) -> DiceGameApp:
        return DiceGameApp(dice, ScriptedAsk(*answers), rendered.append,
                           FairValueGenerator(SequenceBits()), commitments)

    def test_exit_from_menu(self, scenario_dice, rendered):
        assert self.make(scenario_dice, ["x"], rendered).run() == 0
        assert rendered[-1] == Message("Exiting game. Goodbye!")

    def test_menu_lists_only_game_options(self, scenario_dice, rendered):
        ask = ScriptedAsk("2", "x")
        assert DiceGameApp(scenario_dice, ask, rendered.append).run() == 0
        assert isinstance(rendered[1], InvalidInput)
        assert ask.prompts[0].count("exit") + ask.prompts[0].count("Exit") == 1

    def test_view_probabilities(self, scenario_dice, rendered):
        self.make(scenario_dice, ["1", "x"], rendered).run()
        views = [r for r in rendered if isinstance(r, MatrixView)]
        assert len(views) == 1
        assert views[0].matrix[2, 0] == 0.5556

    def test_scoreboard_accumulates_across_rounds(self, scenario_dice, rendered):
        answers = ["0", "1", "0", "0", "3", "4",
                   "0", "1", "0", "1", "4", "2",
                   "x"]
        app = self.make(scenario_dice, answers, rendered)
        assert app.run() == 0
        boards = [r for r in rendered if isinstance(r, ScoreboardView)]
        assert boards == [ScoreboardView(1, 0, 0), ScoreboardView(1, 1, 0)]

    def test_exited_round_is_not_scored(self, scenario_dice, rendered):
        app = self.make(scenario_dice, ["0", "0", "x"], rendered)
        assert app.run() == 0
        assert app.scoreboard.human_wins == app.scoreboard.computer_wins == app.scoreboard.draws == 0
        assert not any(isinstance(r, ScoreboardView) for r in rendered)

    @pytest.mark.parametrize("answers", [
        ["0", "x"],
        ["0", "1", "0", "exit"],
        ["0", "1", "0", "0", "3", "X"],
    ])
    def test_exit_inside_round_ends_game(self, scenario_dice, rendered, answers):
        ask = ScriptedAsk(*answers)
        app = DiceGameApp(scenario_dice, ask, rendered.append, FairValueGenerator(SequenceBits()))
        assert app.run() == 0
        assert ask.answers == []
        assert rendered[-1] == Message("Exiting game. Goodbye!")
        assert sum("Main menu:" in p for p in ask.prompts) == 1

    def test_fairness_failure_aborts_round_only(self, scenario_dice, rendered):
        app = self.make(scenario_dice, ["0", "0", "0", "x"], rendered, LyingCommitments())
        assert app.run() == 0
        failures = [r for r in rendered if isinstance(r, FairnessFailure)]
        assert len(failures) == 1
        assert not any(isinstance(r, RoundResult) for r in rendered)

    def test_fairness_failure_is_logged(self, scenario_dice, rendered, caplog):
        app = self.make(scenario_dice, ["0", "0", "0"], rendered, LyingCommitments())
        with caplog.at_level(logging.WARNING, logger="dice_game"):
            session = app.play_round()
        assert session.outcome is None
        assert any("failed verification" in record.getMessage() for record in caplog.records)

    def test_play_round_returns_finished_session(self, scenario_dice, rendered):
        app = self.make(scenario_dice, ["1", "0", "0", "3", "4"], rendered)
        session = app.play_round()
        assert session.outcome is Outcome.HUMAN_WINS
        assert session.dice == tuple(scenario_dice)


# === Entry Point ===


class TestRun:
    """Tests for run() exit codes."""

    def test_orderly_exit_returns_zero(self, rendered):
        code = run(SCENARIO_ARGS, ScriptedAsk("0", "1", "0", "0", "3", "4", "x"), rendered.append,
                   FairValueGenerator(SequenceBits()))
        assert code == 0
        assert RoundResult(9, 7, Outcome.HUMAN_WINS) in rendered

    def test_two_dice_is_a_configuration_error(self, rendered, capsys):
        code = run(SCENARIO_ARGS[:2], never_ask, rendered.append)
        assert code == 1
        assert rendered == []
        assert "at least 3 dice" in capsys.readouterr().err

    def test_five_value_dice_is_rejected(self, rendered, capsys):
        code = run(["1,2,3,4,5"] + SCENARIO_ARGS[1:], never_ask, rendered.append)
        assert code == 1
        assert rendered == []
        assert "exactly 6" in capsys.readouterr().err

    def test_selection_failure_returns_non_zero(self, rendered, monkeypatch):
        def empty_pool(self, excluded=None, difficulty=None):
            raise NoAvailableDiceError("No dice left to choose from.")

        monkeypatch.setattr(dice_game.DiceSelectionPolicy, "select", empty_pool)
        code = run(SCENARIO_ARGS, ScriptedAsk("0", "0", "0", "0"), rendered.append,
                   FairValueGenerator(SequenceBits()))
        assert code == 1

    def test_end_of_input_exits_cleanly(self, rendered):
        def closed(prompt):
            raise EOFError

        assert run(SCENARIO_ARGS, closed, rendered.append) == 0

    def test_main_exits_with_run_code(self, monkeypatch):
        monkeypatch.setattr(dice_game.sys, "argv", ["dice_game.py", "1,2,3,4,5,6"])
        with pytest.raises(SystemExit) as exc_info:
            dice_game.main()
        assert exc_info.value.code == 1


# === Console Rendering ===


class TestConsoleRenderer:
    """Tests for ConsoleRenderer output."""

    def render(self, result) -> str:
        lines = []
        ConsoleRenderer(lines.append)(result)
        return lines[0]

    def test_matrix_table(self, scenario_dice):
        text = self.render(MatrixView(tuple(scenario_dice), ProbabilityEngine.compute_matrix(scenario_dice)))
        assert "User v PC >" in text
        assert "0.5556" in text
        assert "0.4444" in text
        assert "| -" in text

    def test_draw_shows_key_and_sum(self):
        draw = FairDraw(modulus=6, digest="AB", key=b"\x01\xff", secret=4, contribution=3, result=1)
        text = self.render(DrawRevealed(draw))
        assert "KEY=01FF" in text
        assert "(4 + 3) mod 6 = 1" in text

    @pytest.mark.parametrize("outcome, phrase", [
        (Outcome.HUMAN_WINS, "You won!"),
        (Outcome.COMPUTER_WINS, "I won!"),
        (Outcome.DRAW, "It's a draw!"),
    ])
    def test_round_result(self, outcome, phrase):
        assert phrase in self.render(RoundResult(5, 5, outcome))

    def test_fairness_failure(self):
        text = self.render(FairnessFailure(str(CommitmentMismatchError("ABC"))))
        assert "HMAC=ABC" in text

    def test_unknown_result_type(self):
        with pytest.raises(TypeError):
            ConsoleRenderer(lambda text: None)(Dice((1, 2, 3, 4, 5, 6)))
