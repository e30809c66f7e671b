import enum
import hashlib
import hmac
import logging
import os
import secrets
import sys
from dataclasses import dataclass
from typing import Callable, Generator, Optional, Sequence, TextIO, Union

from tabulate import tabulate

logger = logging.getLogger("nontransitive_dice")

EXAMPLE_DICE = "2,2,4,4,9,9 6,8,1,1,8,6 7,5,3,7,5,3"

# ==============================================================================
# 1. Settings and Error Handling
# ==============================================================================

@dataclass(frozen=True)
class GameSettings:
    """
    Numeric constraints and ambient knobs for a game session.
    Fields:
        faces_per_die (int): Exact number of faces every die must have.
        min_dice (int): Minimum number of dice configurations.
        coin_range (int): Range of the value drawn to decide the first move.
        key_bytes (int): Size of each commitment key (32 bytes = 256 bits).
        log_level (str): Level name for the diagnostic log on stderr.
    """
    faces_per_die: int = 6
    min_dice: int = 3
    coin_range: int = 2
    key_bytes: int = 32
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ=None) -> "GameSettings":
        environ = os.environ if environ is None else environ
        return cls(log_level=environ.get("DICE_GAME_LOG_LEVEL", cls.log_level).upper())


DEFAULT_SETTINGS = GameSettings()


class ConfigurationError(Exception):
    """
    Raised for malformed or insufficient dice configurations.
    Its string form carries an example of correct usage.
    """
    _invocation_command = "python"

    @staticmethod
    def set_invocation_command(command: str):
        ConfigurationError._invocation_command = command

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        script_name = sys.argv[0] if sys.argv and sys.argv[0] else "nontransitive_dice.py"
        example = f"{ConfigurationError._invocation_command} {script_name} {EXAMPLE_DICE}"
        return f"\nArgument Error: {self.message}\n\nExample usage:\n{example}\n"


class InputValidationError(ValueError):
    """Raised for interactive input that is neither a command nor a valid index."""

# ==============================================================================
# 2. Die Model
# ==============================================================================

_system_random = secrets.SystemRandom()


class Die:
    def __init__(self, faces: Sequence[int], face_count: int = DEFAULT_SETTINGS.faces_per_die):
        faces = tuple(faces)
        if len(faces) != face_count:
            raise ValueError(f"A die must have exactly {face_count} faces, got {len(faces)}.")
        self._faces = faces

    @property
    def faces(self) -> tuple:
        return self._faces

    def roll(self, rng=None) -> int:
        """Return one of the stored faces, each position with probability 1/6."""
        return (rng or _system_random).choice(self._faces)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Die):
            return NotImplemented
        return self._faces == other._faces

    def __hash__(self) -> int:
        return hash(self._faces)

    def __repr__(self) -> str:
        return f"Die({list(self._faces)!r})"

    def __str__(self) -> str:
        return ",".join(map(str, self._faces))

    def __len__(self) -> int:
        return len(self._faces)

# ==============================================================================
# 3. Command-Line Dice Parser
# ==============================================================================

class DiceParser:
    @staticmethod
    def parse(tokens: Sequence[str], settings: GameSettings = DEFAULT_SETTINGS) -> list[Die]:
        if len(tokens) < settings.min_dice:
            raise ConfigurationError(
                f"You must provide at least {settings.min_dice} dice configurations "
                f"(got {len(tokens)})."
            )
        return [DiceParser.parse_token(token, settings) for token in tokens]

    @staticmethod
    def parse_token(token: str, settings: GameSettings = DEFAULT_SETTINGS) -> Die:
        rule = f"Each die must have exactly {settings.faces_per_die} integers."
        try:
            faces = [int(value.strip()) for value in token.split(",")]
        except ValueError:
            raise ConfigurationError(f"Invalid dice configuration: {token}. {rule}")
        if len(faces) != settings.faces_per_die:
            raise ConfigurationError(f"Invalid dice configuration: {token}. {rule}")
        return Die(faces, settings.faces_per_die)

# ==============================================================================
# 4. Cryptographic Operations and Commitments
# ==============================================================================

class CryptoProvider:
    @staticmethod
    def generate_key(size: int = DEFAULT_SETTINGS.key_bytes) -> bytes:
        return secrets.token_bytes(size)

    @staticmethod
    def generate_secure_random(range_end: int) -> int:
        return secrets.randbelow(range_end)

    @staticmethod
    def calculate_hmac(key: bytes, value: int) -> str:
        message = str(value).encode("utf-8")
        return hmac.new(key, message, hashlib.sha3_256).hexdigest().upper()


def verify_commitment(tag: str, key: bytes, value: int) -> bool:
    """Recompute the HMAC of a revealed value and compare it with the disclosed tag."""
    expected = CryptoProvider.calculate_hmac(key, value)
    return hmac.compare_digest(expected, tag.upper())


_DRAW_TOKEN = object()


class Commitment:
    """
    A secret value bound to a public HMAC tag.

    Instances can only be obtained from ``Commitment.draw``, which takes a
    fresh key and value from the secure random source every time. Only
    ``tag`` may be shown before the counterparty has guessed; ``value`` and
    ``key`` are the reveal.
    """

    def __init__(self, token, key: bytes, value: int, range_end: int):
        if token is not _DRAW_TOKEN:
            raise TypeError("Commitments must be created with Commitment.draw()")
        self._key = key
        self._value = value
        self._range_end = range_end
        self._tag = CryptoProvider.calculate_hmac(key, value)

    @classmethod
    def draw(cls, range_end: int, key_bytes: int = DEFAULT_SETTINGS.key_bytes) -> "Commitment":
        if range_end < 2:
            raise ValueError("A commitment needs a range of at least two values.")
        value = CryptoProvider.generate_secure_random(range_end)
        key = CryptoProvider.generate_key(key_bytes)
        return cls(_DRAW_TOKEN, key, value, range_end)

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def value(self) -> int:
        return self._value

    @property
    def key(self) -> bytes:
        return self._key

    @property
    def key_hex(self) -> str:
        return self._key.hex().upper()

    @property
    def range_end(self) -> int:
        return self._range_end

    def verify(self) -> bool:
        return verify_commitment(self._tag, self._key, self._value)

    def __repr__(self) -> str:
        return f"Commitment(range_end={self._range_end}, tag={self._tag})"

# ==============================================================================
# 5. Probability Calculation Logic
# ==============================================================================

NOT_APPLICABLE = "N/A"


class ProbabilityCalculator:
    @staticmethod
    def win_probability(die1: Die, die2: Die) -> float:
        # Equal faces count for neither side.
        wins = sum(1 for f1 in die1.faces for f2 in die2.faces if f1 > f2)
        return wins / (len(die1) * len(die2))

    @staticmethod
    def format_percentage(probability: float) -> str:
        return f"{probability * 100:.2f}%"

    @classmethod
    def matrix(cls, dice: Sequence[Die]) -> list[list[str]]:
        return [
            [
                NOT_APPLICABLE if i == j else cls.format_percentage(cls.win_probability(die1, die2))
                for j, die2 in enumerate(dice)
            ]
            for i, die1 in enumerate(dice)
        ]

# ==============================================================================
# 6. Help Table Generation
# ==============================================================================

class HelpTableGenerator:
    @staticmethod
    def generate_table(all_dice: Sequence[Die], calculator=ProbabilityCalculator) -> str:
        labels = [f"Dice {i}" for i in range(len(all_dice))]
        headers = ["User v PC >"] + labels
        rows = [[label] + row for label, row in zip(labels, calculator.matrix(all_dice))]
        legend = "\n".join(f"{label} = {die}" for label, die in zip(labels, all_dice))
        intro = (
            "\n--- Win Probability Table ---\n"
            "Each cell is the chance that the row die (yours) rolls strictly higher "
            "than the column die (mine).\n"
            "Ties count for nobody, so a pair does not always add up to 100%.\n"
        )
        return f"{intro}{legend}\n\n{tabulate(rows, headers=headers, tablefmt='grid')}\n"

# ==============================================================================
# 7. Console User Interface
# ==============================================================================

class Command(enum.Enum):
    EXIT = "x"
    HELP = "?"


Choice = Union[int, Command]
Steps = Generator[str, str, object]

SELECTION_PROMPT = "Your selection: "


def parse_choice(line: str, option_count: int) -> Choice:
    text = line.strip().lower()
    for command in Command:
        if text == command.value:
            return command
    if text.isdecimal() and int(text) < option_count:
        return int(text)
    raise InputValidationError(
        f"Invalid input. Please choose a number from 0 to {option_count - 1}, 'X' or '?'."
    )


def drive(steps: Steps, read_line: Callable[[str], str] = input, out: Optional[TextIO] = None):
    """
    Run a prompt generator to completion.

    The generator yields a prompt each time it needs a line and is resumed
    with the line that was read. Returns the generator's return value.
    """
    try:
        prompt = next(steps)
        while True:
            if out is not None:
                out.flush()
            prompt = steps.send(read_line(prompt))
    except StopIteration as stop:
        return stop.value


class GameUI:
    def __init__(self, out: Optional[TextIO] = None):
        self.out = out

    def display_message(self, text: str = ""):
        print(text, file=self.out or sys.stdout)

    def display_menu(self, title: str, options: Sequence[str]):
        self.display_message(title)
        for i, option in enumerate(options):
            self.display_message(f"{i} - {option}")
        self.display_message("X - exit")
        self.display_message("? - help")

    def display_commitment(self, commitment: Commitment):
        self.display_message(
            f"I generated a random number in the range 0..{commitment.range_end - 1} "
            f"(HMAC={commitment.tag})."
        )

    def display_reveal(self, commitment: Commitment):
        self.display_message(f"My selection: {commitment.value} (KEY={commitment.key_hex}).")

    def ask_choice(self, title: str, options: Sequence[str], on_help: Callable[[], None]) -> Steps:
        """Prompt until a valid index or the exit command arrives."""
        self.display_menu(title, options)
        while True:
            line = yield SELECTION_PROMPT
            try:
                choice = parse_choice(line, len(options))
            except InputValidationError as e:
                logger.debug("rejected input %r", line)
                self.display_message(str(e))
                continue
            if choice is Command.HELP:
                on_help()
                self.display_menu(title, options)
                continue
            return choice

# ==============================================================================
# 8. Provably Fair First Move
# ==============================================================================

class ProtocolState(enum.Enum):
    AWAITING_GUESS = "awaiting_guess"
    RESOLVED = "resolved"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class CoinTossResult:
    state: ProtocolState
    commitment: Commitment
    guess: Optional[int] = None

    @property
    def guessed_right(self) -> bool:
        return self.state is ProtocolState.RESOLVED and self.guess == self.commitment.value


class FairCoinProtocol:
    """
    Commit to a secret value, let the user guess it, then reveal value and key.

    The tag is shown before the guess and the key after it, so the user can
    recompute HMAC-SHA3-256(key, value) and confirm the value never changed.
    """

    def __init__(self, ui: GameUI, on_help: Callable[[], None], range_end: int = DEFAULT_SETTINGS.coin_range,
                 key_bytes: int = DEFAULT_SETTINGS.key_bytes):
        self.ui = ui
        self.on_help = on_help
        self.range_end = range_end
        self.key_bytes = key_bytes
        self.state = ProtocolState.AWAITING_GUESS

    def _transition(self, state: ProtocolState):
        logger.debug("protocol %s -> %s", self.state.name, state.name)
        self.state = state

    def run(self) -> Steps:
        commitment = Commitment.draw(self.range_end, self.key_bytes)
        logger.debug("commitment drawn, tag=%s", commitment.tag)
        self.ui.display_commitment(commitment)

        options = [str(i) for i in range(self.range_end)]
        choice = yield from self.ui.ask_choice("Try to guess my selection:", options, self.on_help)
        if choice is Command.EXIT:
            self._transition(ProtocolState.TERMINATED)
            return CoinTossResult(self.state, commitment)

        self._transition(ProtocolState.RESOLVED)
        self.ui.display_reveal(commitment)
        return CoinTossResult(self.state, commitment, guess=choice)

# ==============================================================================
# 9. Game Session
# ==============================================================================

class SessionStatus(enum.Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


class Winner(enum.Enum):
    USER = "user"
    COMPUTER = "computer"
    TIE = "tie"


@dataclass(frozen=True)
class SessionOutcome:
    status: SessionStatus
    user_goes_first: Optional[bool] = None
    user_die: Optional[Die] = None
    computer_die: Optional[Die] = None
    user_roll: Optional[int] = None
    computer_roll: Optional[int] = None
    winner: Optional[Winner] = None


def first_other_die(dice: Sequence[Die], chosen_index: int) -> int:
    """The program takes the first die in the list that the user did not pick."""
    return next(i for i in range(len(dice)) if i != chosen_index)


def compare_rolls(user_roll: int, computer_roll: int) -> Winner:
    if user_roll > computer_roll:
        return Winner.USER
    if user_roll < computer_roll:
        return Winner.COMPUTER
    return Winner.TIE


class GameSession:
    def __init__(self, dice: Sequence[Die], ui: GameUI, rng=None,
                 opponent_policy: Callable[[Sequence[Die], int], int] = first_other_die,
                 settings: GameSettings = DEFAULT_SETTINGS):
        if len(dice) < settings.min_dice:
            raise ConfigurationError(
                f"You must provide at least {settings.min_dice} dice configurations "
                f"(got {len(dice)})."
            )
        self.all_dice = list(dice)
        self.ui = ui
        self.rng = rng
        self.opponent_policy = opponent_policy
        self.settings = settings

    def show_help(self):
        self.ui.display_message(HelpTableGenerator.generate_table(self.all_dice))

    def run(self) -> Steps:
        protocol = FairCoinProtocol(self.ui, self.show_help, self.settings.coin_range, self.settings.key_bytes)
        toss = yield from protocol.run()
        if toss.state is ProtocolState.TERMINATED:
            return self._abort()

        user_goes_first = toss.guessed_right
        self.ui.display_message("You make the first move!" if user_goes_first else "I make the first move!")

        options = [str(d) for d in self.all_dice]
        choice = yield from self.ui.ask_choice("Choose your dice:", options, self.show_help)
        if choice is Command.EXIT:
            return self._abort(user_goes_first)

        user_die = self.all_dice[choice]
        computer_die = self.all_dice[self.opponent_policy(self.all_dice, choice)]
        logger.debug("user took %s, program took %s", user_die, computer_die)
        self.ui.display_message(f"You chose the {user_die} dice.")
        self.ui.display_message(f"I chose the {computer_die} dice.")

        if user_goes_first:
            user_roll = self._roll_for_user(user_die)
            computer_roll = self._roll_for_computer(computer_die)
        else:
            computer_roll = self._roll_for_computer(computer_die)
            user_roll = self._roll_for_user(user_die)

        winner = compare_rolls(user_roll, computer_roll)
        self.ui.display_message({
            Winner.USER: "You win!",
            Winner.COMPUTER: "I win!",
            Winner.TIE: "It's a tie!",
        }[winner])
        return SessionOutcome(SessionStatus.COMPLETED, user_goes_first, user_die, computer_die,
                              user_roll, computer_roll, winner)

    def _roll_for_user(self, die: Die) -> int:
        self.ui.display_message("It's your turn!")
        result = die.roll(self.rng)
        logger.debug("user rolled %d on %s", result, die)
        self.ui.display_message(f"You rolled: {result}")
        return result

    def _roll_for_computer(self, die: Die) -> int:
        self.ui.display_message("It's my turn!")
        result = die.roll(self.rng)
        logger.debug("program rolled %d on %s", result, die)
        self.ui.display_message(f"I rolled: {result}")
        return result

    def _abort(self, user_goes_first: Optional[bool] = None) -> SessionOutcome:
        self.ui.display_message("Exiting game. Goodbye!")
        return SessionOutcome(SessionStatus.ABORTED, user_goes_first)

# ==============================================================================
# 10. Main Execution Block
# ==============================================================================

def configure_logging(settings: GameSettings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None, read_line: Callable[[str], str] = input,
         out: Optional[TextIO] = None, rng=None) -> int:
    settings = GameSettings.from_env()
    configure_logging(settings)
    if "py.exe" in sys.executable.lower():
        ConfigurationError.set_invocation_command("py")
    else:
        ConfigurationError.set_invocation_command("python")

    args = sys.argv[1:] if argv is None else list(argv)
    ui = GameUI(out)
    try:
        dice = DiceParser.parse(args, settings)
        session = GameSession(dice, ui, rng=rng, settings=settings)
        outcome = drive(session.run(), read_line, out)
    except ConfigurationError as e:
        logger.debug("configuration rejected: %s", e.message)
        print(e, file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        ui.display_message("\nGame interrupted. Goodbye!")
        return 0
    logger.info("session finished: %s", outcome.status.value)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
