import hashlib
import hmac
import logging
import os
import re
import secrets
import sys
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Literal, Sequence

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings
from tabulate import tabulate

logger = logging.getLogger(__name__)

FACE_COUNT = 6
MIN_DICE = 3
OUTCOME_SPACE = FACE_COUNT * FACE_COUNT
PROBABILITY_PRECISION = 4
EXAMPLE_DICE = ("2,2,4,4,9,9", "6,8,1,1,8,6", "7,5,3,7,5,3")

# ==============================================================================
# 1. Error Handling
# ==============================================================================

class DiceGameError(Exception):
    """Base class for every error raised by the game core."""


class InvalidConfigurationError(DiceGameError):
    """
    Malformed or insufficient dice specifications.
    Provides a formatted message including an example of correct usage.
    """
    _invocation_command = "python"

    @staticmethod
    def set_invocation_command(command: str):
        """Sets the command used to run the script (e.g., 'python' or 'py')."""
        InvalidConfigurationError._invocation_command = command

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        script_name = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "dice_game.py"
        example = f"{InvalidConfigurationError._invocation_command} {script_name} {' '.join(EXAMPLE_DICE)}"
        return f"\nConfiguration error: {self.message}\n\nExample usage:\n{example}\n"


class InvalidRangeError(DiceGameError, ValueError):
    """A non-positive range or modulus reached the random generator."""


class InvalidSelectionError(DiceGameError):
    """A menu, dice or contribution choice outside the offered options."""


class CommitmentMismatchError(DiceGameError):
    """A revealed (key, message) pair does not reproduce its published digest."""

    def __init__(self, digest: str, reason: str = "revealed value does not match the commitment"):
        self.digest = digest
        self.reason = reason
        super().__init__(f"{reason} (HMAC={digest})")


class NoAvailableDiceError(DiceGameError):
    """The selection pool is empty."""

# ==============================================================================
# 2. Data Structure for a Dice
# ==============================================================================

_SPEC_PATTERN = re.compile(r"^([0-9]+,){5}[0-9]+$")


@dataclass(frozen=True)
class Dice:
    """Six non-negative integer faces, indexed 0-5."""
    faces: tuple[int, ...]

    def __post_init__(self) -> None:
        try:
            faces = tuple(self.faces)
        except TypeError:
            raise InvalidConfigurationError("Dice faces must be a sequence of integers.")
        if len(faces) != FACE_COUNT:
            raise InvalidConfigurationError(
                f"Each dice must have exactly {FACE_COUNT} faces, got {len(faces)}."
            )
        for value in faces:
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfigurationError(f"All dice faces must be integer values, got {value!r}.")
            if value < 0:
                raise InvalidConfigurationError(f"Dice faces must be non-negative, got {value}.")
        object.__setattr__(self, "faces", faces)

    def face(self, index: int) -> int:
        if not 0 <= index < FACE_COUNT:
            raise ValueError(f"Face index must be between 0 and {FACE_COUNT - 1}, got {index}.")
        return self.faces[index]

    def __str__(self) -> str:
        return ",".join(map(str, self.faces))

    @classmethod
    def from_spec(cls, spec: str) -> "Dice":
        """Parse a comma-separated token such as ``2,2,4,4,9,9``."""
        parts = spec.split(",")
        if len(parts) != FACE_COUNT:
            raise InvalidConfigurationError(
                f"Dice '{spec}' must list exactly {FACE_COUNT} comma-separated values, got {len(parts)}."
            )
        if not _SPEC_PATTERN.fullmatch(spec):
            raise InvalidConfigurationError(
                f"Dice '{spec}' must contain only non-negative integers separated by commas, without spaces."
            )
        return cls(tuple(int(part) for part in parts))

# ==============================================================================
# 3. Command-Line Argument Parser
# ==============================================================================

class DiceParser:
    @staticmethod
    def parse(args: Sequence[str]) -> list[Dice]:
        if len(args) < MIN_DICE:
            raise InvalidConfigurationError(f"Please specify at least {MIN_DICE} dice, got {len(args)}.")
        return [Dice.from_spec(arg) for arg in args]

# ==============================================================================
# 4. Commitment Service
# ==============================================================================

@dataclass(frozen=True)
class Commitment:
    key: bytes
    message: int
    digest: str


class CommitmentService:
    """
    Keyed commitments over integer messages.

    The digest is HMAC-SHA3-256 over the decimal form of the message, so it
    hides the message until the key is revealed and binds the committer to it
    afterwards.
    """
    KEY_BYTES = 32

    @staticmethod
    def generate_key(byte_length: int = KEY_BYTES) -> bytes:
        if byte_length <= 0:
            raise InvalidRangeError(f"Key length must be positive, got {byte_length}.")
        return secrets.token_bytes(byte_length)

    @staticmethod
    def commit(key: bytes, message: int) -> str:
        message_bytes = str(message).encode("utf-8")
        h = hmac.new(key, message_bytes, hashlib.sha3_256)
        return h.hexdigest().upper()

    @classmethod
    def verify(cls, digest_hex: str, key: bytes, message: int) -> bool:
        expected = cls.commit(key, message).encode("ascii")
        return hmac.compare_digest(expected, digest_hex.upper().encode("utf-8"))

    @classmethod
    def seal(cls, message: int) -> Commitment:
        """Commit to ``message`` under a fresh single-use key."""
        key = cls.generate_key()
        return Commitment(key=key, message=message, digest=cls.commit(key, message))

# ==============================================================================
# 5. Provably Fair Random Number Generation
# ==============================================================================

class FairValueGenerator:
    NATIVE_BITS = 32

    def __init__(self, randbits: Callable[[int], int] = secrets.randbits):
        self._randbits = randbits

    def uniform_int(self, range_: int) -> int:
        """
        Return an integer in ``[0, range_)`` with no modulo bias.

        Samples of ``NATIVE_BITS`` width that fall into the incomplete tail
        above the largest multiple of ``range_`` are discarded and redrawn.
        """
        if isinstance(range_, bool) or not isinstance(range_, int) or range_ <= 0:
            raise InvalidRangeError(f"Range must be a positive integer, got {range_!r}.")
        span = 1 << self.NATIVE_BITS
        if range_ > span:
            raise InvalidRangeError(f"Range must not exceed 2**{self.NATIVE_BITS}, got {range_}.")
        limit = span - span % range_
        while True:
            sample = self._randbits(self.NATIVE_BITS)
            if sample < limit:
                return sample % range_
            logger.debug("Rejected sample %d (limit %d, range %d)", sample, limit, range_)

    @staticmethod
    def combine(a: int, b: int, modulus: int) -> int:
        if modulus <= 0:
            raise InvalidRangeError(f"Modulus must be a positive integer, got {modulus}.")
        return (a + b) % modulus


@dataclass(frozen=True)
class FairDraw:
    """Everything a verifier needs to recheck one commit-reveal exchange."""
    modulus: int
    digest: str
    key: bytes
    secret: int
    contribution: int
    result: int


class FairValueProtocol:
    """
    Coin flipping by telephone.

    The committing party fixes its secret with ``commit`` before the other
    party contributes; ``settle`` accepts the reveal only if it reproduces the
    published digest.
    """

    def __init__(self, generator: FairValueGenerator, commitments: CommitmentService):
        self.generator = generator
        self.commitments = commitments

    def commit(self, modulus: int) -> Commitment:
        secret = self.generator.uniform_int(modulus)
        commitment = self.commitments.seal(secret)
        logger.debug("Published commitment %s for modulus %d", commitment.digest, modulus)
        return commitment

    def settle(self, digest: str, key: bytes, secret: int, contribution: int, modulus: int) -> FairDraw:
        if not 0 <= contribution < modulus:
            raise InvalidSelectionError(f"Contribution must be between 0 and {modulus - 1}, got {contribution}.")
        if not 0 <= secret < modulus:
            logger.warning("Revealed secret %d outside range for commitment %s", secret, digest)
            raise CommitmentMismatchError(digest, f"revealed value {secret} is outside 0..{modulus - 1}")
        if not self.commitments.verify(digest, key, secret):
            logger.warning("Reveal failed verification for commitment %s", digest)
            raise CommitmentMismatchError(digest)
        result = self.generator.combine(secret, contribution, modulus)
        return FairDraw(modulus=modulus, digest=digest, key=key, secret=secret,
                        contribution=contribution, result=result)

# ==============================================================================
# 6. Probability Calculation Logic
# ==============================================================================

class ProbabilityMatrix:
    """
    Exact pairwise win and tie counts over a dice set.

    ``probability(i, j)`` is the chance that dice ``i`` shows a strictly
    higher face than dice ``j``; it is undefined on the diagonal.
    """

    def __init__(self, wins: Sequence[Sequence[int]], ties: Sequence[Sequence[int]]):
        self._wins = tuple(tuple(row) for row in wins)
        self._ties = tuple(tuple(row) for row in ties)

    def __len__(self) -> int:
        return len(self._wins)

    def __getitem__(self, pair: tuple[int, int]) -> float:
        i, j = pair
        return self.probability(i, j)

    def _check_pair(self, i: int, j: int) -> None:
        if i == j:
            raise ValueError(f"Win probability is undefined for a dice against itself (index {i}).")

    def wins(self, i: int, j: int) -> int:
        self._check_pair(i, j)
        return self._wins[i][j]

    def ties(self, i: int, j: int) -> int:
        self._check_pair(i, j)
        return self._ties[i][j]

    def probability(self, i: int, j: int) -> float:
        return round(self.wins(i, j) / OUTCOME_SPACE, PROBABILITY_PRECISION)

    def rows(self) -> list[list[float | None]]:
        size = len(self)
        return [[None if i == j else self.probability(i, j) for j in range(size)] for i in range(size)]


class ProbabilityEngine:
    @staticmethod
    def count(first: Dice, second: Dice) -> tuple[int, int]:
        wins = sum(1 for x in first.faces for y in second.faces if x > y)
        ties = sum(1 for x in first.faces for y in second.faces if x == y)
        return wins, ties

    @classmethod
    def compute_matrix(cls, dice: Sequence[Dice]) -> ProbabilityMatrix:
        size = len(dice)
        wins = [[0] * size for _ in range(size)]
        ties = [[0] * size for _ in range(size)]
        for i in range(size):
            for j in range(size):
                if i != j:
                    wins[i][j], ties[i][j] = cls.count(dice[i], dice[j])
        return ProbabilityMatrix(wins, ties)

# ==============================================================================
# 7. Dice Selection Policy
# ==============================================================================

class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"


class DiceSelectionPolicy:
    """
    Picks the computer's dice.

    Easy draws uniformly from the remaining dice. Medium answers an opponent's
    pick with the remaining dice most likely to beat it, preferring the lowest
    index on equal odds, and falls back to a uniform draw when it has to pick
    first.
    """

    def __init__(self, dice: Sequence[Dice], generator: FairValueGenerator,
                 matrix: ProbabilityMatrix | None = None):
        self.dice = tuple(dice)
        self.generator = generator
        self._matrix = matrix

    @property
    def matrix(self) -> ProbabilityMatrix:
        if self._matrix is None:
            self._matrix = ProbabilityEngine.compute_matrix(self.dice)
        return self._matrix

    def remaining(self, excluded: Dice | None = None) -> list[Dice]:
        return [d for d in self.dice if d is not excluded]

    def select(self, excluded: Dice | None = None, difficulty: Difficulty = Difficulty.EASY) -> Dice:
        if excluded is not None and not any(d is excluded for d in self.dice):
            raise ValueError(f"Excluded dice [{excluded}] is not part of this dice set.")
        candidates = [(i, d) for i, d in enumerate(self.dice) if d is not excluded]
        if not candidates:
            raise NoAvailableDiceError("No dice left to choose from.")
        if difficulty is Difficulty.MEDIUM and excluded is not None:
            return self._strongest_against(candidates, excluded)
        index = self.generator.uniform_int(len(candidates))
        return candidates[index][1]

    def _strongest_against(self, candidates: list[tuple[int, Dice]], opponent: Dice) -> Dice:
        opponent_index = next(i for i, d in enumerate(self.dice) if d is opponent)
        best_dice, best_probability = None, -1.0
        for index, dice in candidates:
            probability = self.matrix.probability(index, opponent_index)
            if probability > best_probability:
                best_dice, best_probability = dice, probability
        return best_dice

# ==============================================================================
# 8. Render Payloads
# ==============================================================================

class Party(Enum):
    HUMAN = "human"
    COMPUTER = "computer"


class Outcome(Enum):
    HUMAN_WINS = "human_wins"
    COMPUTER_WINS = "computer_wins"
    DRAW = "draw"


@dataclass
class Scoreboard:
    human_wins: int = 0
    computer_wins: int = 0
    draws: int = 0

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.HUMAN_WINS:
            self.human_wins += 1
        elif outcome is Outcome.COMPUTER_WINS:
            self.computer_wins += 1
        else:
            self.draws += 1


@dataclass(frozen=True)
class Message:
    text: str


@dataclass(frozen=True)
class InvalidInput:
    reason: str


@dataclass(frozen=True)
class CommitmentPublished:
    purpose: str
    modulus: int
    digest: str


@dataclass(frozen=True)
class DrawRevealed:
    draw: FairDraw


@dataclass(frozen=True)
class FirstMoverDecided:
    first_mover: Party


@dataclass(frozen=True)
class DiceChosen:
    party: Party
    dice: Dice


@dataclass(frozen=True)
class ThrowResult:
    party: Party
    face_index: int
    face_value: int


@dataclass(frozen=True)
class RoundResult:
    human_value: int
    computer_value: int
    outcome: Outcome


@dataclass(frozen=True)
class MatrixView:
    dice: tuple[Dice, ...]
    matrix: ProbabilityMatrix


@dataclass(frozen=True)
class ScoreboardView:
    human_wins: int
    computer_wins: int
    draws: int


@dataclass(frozen=True)
class FairnessFailure:
    reason: str

# ==============================================================================
# 9. Input Surface
# ==============================================================================

class ReplyKind(Enum):
    VALUE = "value"
    EXIT = "exit"
    HELP = "help"
    INVALID = "invalid"


@dataclass(frozen=True)
class Reply:
    kind: ReplyKind
    value: int | None = None
    reason: str = ""


class Prompter:
    """Turns ``ask`` lines into replies, re-prompting until one is usable."""
    EXIT_TOKENS = frozenset({"x", "exit"})
    HELP_TOKEN = "?"

    def __init__(self, ask: Callable[[str], str], render: Callable[[object], None]):
        self._ask = ask
        self._render = render

    @staticmethod
    def option(text: str, option_count: int) -> int:
        if not text.isdecimal():
            raise InvalidSelectionError(f"'{text}' is not a number. Enter 0..{option_count - 1}, or X to exit.")
        choice = int(text)
        if not 0 <= choice < option_count:
            raise InvalidSelectionError(f"{choice} is out of range. Enter 0..{option_count - 1}, or X to exit.")
        return choice

    @classmethod
    def parse(cls, raw: str, option_count: int, allow_help: bool = False) -> Reply:
        text = raw.strip().lower()
        if text in cls.EXIT_TOKENS:
            return Reply(ReplyKind.EXIT)
        if allow_help and text == cls.HELP_TOKEN:
            return Reply(ReplyKind.HELP)
        try:
            return Reply(ReplyKind.VALUE, cls.option(text, option_count))
        except InvalidSelectionError as e:
            return Reply(ReplyKind.INVALID, reason=str(e))

    @classmethod
    def format_prompt(cls, title: str, options: Sequence[str], allow_help: bool = False) -> str:
        lines = [f"\n{title}"]
        lines.extend(f" {i} - {option}" for i, option in enumerate(options))
        lines.append(" X - exit")
        if allow_help:
            lines.append(f" {cls.HELP_TOKEN} - help")
        lines.append("Your choice: ")
        return "\n".join(lines)

    def choose(self, title: str, options: Sequence[str], allow_help: bool = False) -> Reply:
        prompt = self.format_prompt(title, options, allow_help)
        while True:
            reply = self.parse(self._ask(prompt), len(options), allow_help)
            if reply.kind is not ReplyKind.INVALID:
                return reply
            self._render(InvalidInput(reply.reason))

# ==============================================================================
# 10. Game Protocol
# ==============================================================================

class GameState(Enum):
    INIT = "init"
    FIRST_MOVER_DECIDED = "first_mover_decided"
    DICE_SELECTED = "dice_selected"
    THROW_ROUND = "throw_round"
    RESULT = "result"
    TERMINAL = "terminal"


@dataclass
class GameSession:
    dice: tuple[Dice, ...]
    state: GameState = GameState.INIT
    difficulty: Difficulty | None = None
    first_mover: Party | None = None
    human_dice: Dice | None = None
    computer_dice: Dice | None = None
    throws: dict[Party, ThrowResult] = field(default_factory=dict)
    outcome: Outcome | None = None
    exited: bool = False
    draws: list[FairDraw] = field(default_factory=list)

    def dice_of(self, party: Party) -> Dice:
        return self.human_dice if party is Party.HUMAN else self.computer_dice


class GameProtocol:
    """
    Runs one session from INIT to TERMINAL.

    A fair draw with modulus 2 decides the first mover: a result of 0 (the
    human guessed the committed bit) lets the human pick first, 1 lets the
    computer pick first. Each party then throws its own dice through a fair
    draw with modulus 6, the computer first. An exit reply at any prompt ends
    the session without finishing the round.
    """

    def __init__(self, session: GameSession, prompter: Prompter, render: Callable[[object], None],
                 fairness: FairValueProtocol, policy: DiceSelectionPolicy):
        self.session = session
        self.prompter = prompter
        self.render = render
        self.fairness = fairness
        self.policy = policy

    def run(self) -> GameSession:
        steps = (self._choose_difficulty, self._decide_first_mover, self._select_dice, self._throw_dice)
        try:
            for step in steps:
                if not step():
                    self.session.exited = True
                    logger.info("Session exited in state %s", self.session.state.name)
                    break
        finally:
            self.session.state = GameState.TERMINAL
        return self.session

    def _choose_difficulty(self) -> bool:
        reply = self.prompter.choose(
            "Select difficulty level:",
            ["Easy (random dice selection)", "Medium (based on probabilities)"],
        )
        if reply.kind is ReplyKind.EXIT:
            return False
        self.session.difficulty = Difficulty.MEDIUM if reply.value == 1 else Difficulty.EASY
        return True

    def _fair_value(self, modulus: int, purpose: str, title: str) -> int | None:
        commitment = self.fairness.commit(modulus)
        self.render(CommitmentPublished(purpose=purpose, modulus=modulus, digest=commitment.digest))
        reply = self.prompter.choose(title, [str(v) for v in range(modulus)])
        if reply.kind is ReplyKind.EXIT:
            return None
        draw = self.fairness.settle(commitment.digest, commitment.key, commitment.message, reply.value, modulus)
        self.session.draws.append(draw)
        self.render(DrawRevealed(draw))
        return draw.result

    def _decide_first_mover(self) -> bool:
        result = self._fair_value(2, "first move", "Try to guess my choice.")
        if result is None:
            return False
        self.session.first_mover = Party.HUMAN if result == 0 else Party.COMPUTER
        self.session.state = GameState.FIRST_MOVER_DECIDED
        logger.info("First mover: %s", self.session.first_mover.value)
        self.render(FirstMoverDecided(self.session.first_mover))
        return True

    def _computer_pick(self, excluded: Dice | None) -> Dice:
        dice = self.policy.select(excluded, self.session.difficulty)
        self.session.computer_dice = dice
        logger.info("Computer selected [%s] (%s)", dice, self.session.difficulty.value)
        self.render(DiceChosen(Party.COMPUTER, dice))
        return dice

    def _human_pick(self, excluded: Dice | None) -> Dice | None:
        available = self.policy.remaining(excluded)
        while True:
            reply = self.prompter.choose("Select your dice:", [str(d) for d in available], allow_help=True)
            if reply.kind is ReplyKind.EXIT:
                return None
            if reply.kind is ReplyKind.HELP:
                self.render(MatrixView(self.policy.dice, self.policy.matrix))
                continue
            dice = available[reply.value]
            self.session.human_dice = dice
            self.render(DiceChosen(Party.HUMAN, dice))
            return dice

    def _select_dice(self) -> bool:
        if self.session.first_mover is Party.HUMAN:
            human = self._human_pick(None)
            if human is None:
                return False
            self._computer_pick(human)
        else:
            computer = self._computer_pick(None)
            if self._human_pick(computer) is None:
                return False
        self.session.state = GameState.DICE_SELECTED
        return True

    def _throw(self, party: Party) -> ThrowResult | None:
        self.session.state = GameState.THROW_ROUND
        if party is Party.COMPUTER:
            purpose, title = "my throw", "It is my time to throw. Add your number modulo 6."
        else:
            purpose, title = "your throw", "It is your time to throw. Add your number modulo 6."
        index = self._fair_value(FACE_COUNT, purpose, title)
        if index is None:
            return None
        throw = ThrowResult(party, index, self.session.dice_of(party).face(index))
        self.session.throws[party] = throw
        self.render(throw)
        return throw

    def _throw_dice(self) -> bool:
        computer = self._throw(Party.COMPUTER)
        if computer is None:
            return False
        human = self._throw(Party.HUMAN)
        if human is None:
            return False
        if human.face_value > computer.face_value:
            outcome = Outcome.HUMAN_WINS
        elif computer.face_value > human.face_value:
            outcome = Outcome.COMPUTER_WINS
        else:
            outcome = Outcome.DRAW
        self.session.outcome = outcome
        self.session.state = GameState.RESULT
        logger.info("Round result: human %d, computer %d -> %s", human.face_value, computer.face_value, outcome.value)
        self.render(RoundResult(human.face_value, computer.face_value, outcome))
        return True

# ==============================================================================
# 11. Console Rendering
# ==============================================================================

class ConsoleRenderer:
    def __init__(self, write: Callable[[str], None] = print):
        self._write = write
        self._handlers = {
            Message: lambda r: r.text,
            InvalidInput: lambda r: f"Invalid choice. {r.reason}",
            CommitmentPublished: self._commitment,
            DrawRevealed: self._draw,
            FirstMoverDecided: self._first_mover,
            DiceChosen: self._dice_chosen,
            ThrowResult: self._throw,
            RoundResult: self._round,
            MatrixView: self.matrix_table,
            ScoreboardView: self._scoreboard,
            FairnessFailure: lambda r: f"\nFairness failure: {r.reason}. The round was aborted.",
        }

    def __call__(self, result: object) -> None:
        handler = self._handlers.get(type(result))
        if handler is None:
            raise TypeError(f"No renderer for {type(result).__name__}")
        self._write(handler(result))

    @staticmethod
    def _commitment(result: CommitmentPublished) -> str:
        return (f"\nI have chosen a random value in range 0..{result.modulus - 1} "
                f"for {result.purpose} (HMAC={result.digest}).")

    @staticmethod
    def _draw(result: DrawRevealed) -> str:
        draw = result.draw
        return (f"My number: {draw.secret} (KEY={draw.key.hex().upper()})\n"
                f"Fair random number result: ({draw.secret} + {draw.contribution}) mod {draw.modulus} = {draw.result}")

    @staticmethod
    def _first_mover(result: FirstMoverDecided) -> str:
        if result.first_mover is Party.HUMAN:
            return "You make the first move and choose the dice."
        return "I make the first move and choose the dice."

    @staticmethod
    def _dice_chosen(result: DiceChosen) -> str:
        who = "You choose" if result.party is Party.HUMAN else "I choose"
        return f"{who} dice [{result.dice}]."

    @staticmethod
    def _throw(result: ThrowResult) -> str:
        whose = "your" if result.party is Party.HUMAN else "my"
        return f"Result of {whose} throw is {result.face_value} (face {result.face_index})."

    @staticmethod
    def _round(result: RoundResult) -> str:
        summary = f"\n--- Results ---\nYou rolled {result.human_value}, I rolled {result.computer_value}."
        if result.outcome is Outcome.HUMAN_WINS:
            return f"{summary}\nYou won! ({result.human_value} > {result.computer_value})"
        if result.outcome is Outcome.COMPUTER_WINS:
            return f"{summary}\nI won! ({result.computer_value} > {result.human_value})"
        return f"{summary}\nIt's a draw!"

    @staticmethod
    def matrix_table(result: MatrixView) -> str:
        headers = ["User v PC >"] + [str(d) for d in result.dice]
        table_data = []
        for user_die, row in zip(result.dice, result.matrix.rows()):
            table_data.append([str(user_die)] + ["-" if p is None else f"{p:.4f}" for p in row])

        intro = (
            "\n--- Win Probability Table ---\n"
            "This table shows the probability of the User's die (rows) winning against the PC's die (columns).\n"
        )
        return intro + tabulate(table_data, headers=headers, tablefmt="grid")

    @staticmethod
    def _scoreboard(result: ScoreboardView) -> str:
        rows = [["You", result.human_wins], ["Me", result.computer_wins], ["Draws", result.draws]]
        return "\n" + tabulate(rows, headers=["Score", "Rounds"], tablefmt="grid")

# ==============================================================================
# 12. Main Game Controller
# ==============================================================================

class DiceGameApp:
    MENU = ["Play a round", "View probabilities"]

    def __init__(self, dice: Sequence[Dice], ask: Callable[[str], str], render: Callable[[object], None],
                 generator: FairValueGenerator | None = None, commitments: CommitmentService | None = None):
        self.dice = tuple(dice)
        self.render = render
        self.prompter = Prompter(ask, render)
        self.generator = generator or FairValueGenerator()
        self.fairness = FairValueProtocol(self.generator, commitments or CommitmentService())
        self.matrix = ProbabilityEngine.compute_matrix(self.dice)
        self.scoreboard = Scoreboard()

    def run(self) -> int:
        self.render(Message("--- Welcome to the Non-Transitive Dice Game! ---"))
        while True:
            reply = self.prompter.choose("Main menu:", self.MENU)
            if reply.kind is ReplyKind.EXIT:
                self.render(Message("Exiting game. Goodbye!"))
                return 0
            if reply.value == 1:
                self.render(MatrixView(self.dice, self.matrix))
                continue
            if self.play_round().exited:
                self.render(Message("Exiting game. Goodbye!"))
                return 0

    def play_round(self) -> GameSession:
        session = GameSession(dice=self.dice)
        policy = DiceSelectionPolicy(self.dice, self.generator, self.matrix)
        protocol = GameProtocol(session, self.prompter, self.render, self.fairness, policy)
        try:
            protocol.run()
        except CommitmentMismatchError as e:
            self.render(FairnessFailure(str(e)))
            return session
        if session.outcome is not None:
            self.scoreboard.record(session.outcome)
            self.render(ScoreboardView(self.scoreboard.human_wins, self.scoreboard.computer_wins,
                                       self.scoreboard.draws))
        return session

# ==============================================================================
# 13. Main Execution Block
# ==============================================================================

def console_ask(prompt: str) -> str:
    return input(prompt).strip()


class Settings(BaseSettings):
    """Runtime settings read from ``DICE_GAME_*`` environment variables."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    model_config = {
        "env_prefix": "DICE_GAME_",
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached singleton settings instance."""
    return Settings()


def configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run(argv: Sequence[str], ask: Callable[[str], str] | None = None,
        render: Callable[[object], None] | None = None,
        generator: FairValueGenerator | None = None, commitments: CommitmentService | None = None) -> int:
    try:
        dice = DiceParser.parse(argv)
    except InvalidConfigurationError as e:
        logger.error("Invalid dice configuration: %s", e.message)
        print(e, file=sys.stderr)
        return 1

    app = DiceGameApp(dice, ask or console_ask, render or ConsoleRenderer(), generator, commitments)
    try:
        return app.run()
    except NoAvailableDiceError as e:
        logger.error("Dice selection failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nGame interrupted. Goodbye!")
        return 0


def main():
    try:
        configure_logging()
    except ValidationError as e:
        print(f"Invalid settings:\n{e}", file=sys.stderr)
        sys.exit(1)
    # Dynamically determine the command used to invoke the script
    if 'py.exe' in sys.executable.lower():
        InvalidConfigurationError.set_invocation_command('py')
    else:
        InvalidConfigurationError.set_invocation_command('python')
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
