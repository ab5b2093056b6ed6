# intcalc_repl.py

"""
Read-Eval-Print Loop for the integer calculator.

Each input line is trimmed and dispatched: '/'-commands, assignments ('name = value'), bare variable lookups,
and everything else is evaluated as an expression with intcalc.evaluate. Results and error messages are printed
one per line and the session continues until '/exit' or end of input.

Interactive sessions (stdin is a terminal) use prompt_toolkit for line editing, persistent input history and
completion of commands and variable names. Piped input is read with input() and no prompt is printed.

Settings come from the environment (optionally a .env file loaded with python-dotenv) and from command-line
flags, and are validated by a pydantic model.
"""

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from pydantic import BaseModel, ValidationError, field_validator

from intcalc import (
    CalculatorError,
    VariableStore,
    assign,
    evaluate,
    is_identifier,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FAREWELL = "Bye!"
COMMANDS = ['/exit', '/help']


# --------------------------
# Settings
# --------------------------

class ReplSettings(BaseModel):
    """Runtime settings for the REPL."""
    prompt: str = "> "
    history_file: str = os.path.expanduser("~/.intcalc_history")
    history_enabled: bool = True
    log_level: str = "WARNING"

    @field_validator('history_file')
    @classmethod
    def expand_history_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('History file cannot be empty')
        return os.path.expanduser(v.strip())

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f'Unknown log level: {v}')
        return level


_ENV_VARS: Dict[str, str] = {
    'INTCALC_PROMPT': 'prompt',
    'INTCALC_HISTORY_FILE': 'history_file',
    'INTCALC_HISTORY': 'history_enabled',
    'INTCALC_LOG_LEVEL': 'log_level',
}


def load_settings(env_file: Optional[str] = None, **overrides) -> ReplSettings:
    """
    Build settings from INTCALC_* environment variables, after loading env_file (or a .env file found
    from the working directory). Keyword overrides that are not None take precedence.
    """
    load_dotenv(env_file)
    values = {}
    for env_name, field in _ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            values[field] = value
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ReplSettings(**values)


# --------------------------
# Help
# --------------------------

HELP_TEXT = (
    "The program supports +, -, *, /, ^ and parentheses ().\n"
    "It also supports variables and unary minus.\n"
    "Examples:\n"
    "  > a = 4\n"
    "  > b = a\n"
    "  > 2 * (a + b) ^ 2\n"
    "  128\n"
    "  > 7 / -2\n"
    "  -3\n"
    "Notes:\n"
    "  - Only integers are supported; '/' truncates toward zero.\n"
    "  - '^' is right-associative: 2 ^ 3 ^ 2 == 2 ^ (3 ^ 2).\n"
    "  - Variable names consist of Latin letters only and are case-sensitive.\n"
    "  - Assignment takes a number or an existing variable: x = 5, y = x.\n"
    "Commands:\n"
    "  /help    show this help\n"
    "  /exit    exit"
)


def show_help() -> str:
    """Return the usage text."""
    return HELP_TEXT


# --------------------------
# REPL
# --------------------------

class REPL:
    """Read-Eval-Print Loop for the calculator."""

    def __init__(self, settings: Optional[ReplSettings] = None, store: Optional[VariableStore] = None,
                 interactive: Optional[bool] = None):
        self.settings = settings or ReplSettings(history_enabled=False)
        self.store = store if store is not None else VariableStore()
        if interactive is None:
            interactive = sys.stdin.isatty()
        self.session: Optional[PromptSession] = None
        if interactive:
            self.session = PromptSession(history=self._create_history())

    def _create_history(self) -> History:
        if not self.settings.history_enabled:
            return InMemoryHistory()
        history_dir = os.path.dirname(self.settings.history_file)
        try:
            if history_dir:
                os.makedirs(history_dir, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot keep history in {self.settings.history_file}: {e}")
            return InMemoryHistory()
        return FileHistory(self.settings.history_file)

    def _completer(self) -> WordCompleter:
        return WordCompleter(COMMANDS + sorted(self.store), WORD=True)

    def _read_line(self) -> str:
        if self.session is not None:
            return self.session.prompt(self.settings.prompt, completer=self._completer())
        return input()

    def _run_command(self, line: str) -> Tuple[bool, str]:
        """Execute a '/' command. Raises EOFError for /exit so the loop can shut down."""
        if line == '/exit':
            raise EOFError()
        if line == '/help':
            return True, show_help()
        return False, "Unknown command"

    def evaluate_line(self, line: str) -> Tuple[bool, Optional[str]]:
        """
        Process a single input line. Returns (ok, output); output is None when there is nothing to print,
        such as a blank line or a successful assignment.
        """
        line = line.strip()
        if not line:
            return True, None
        if line.startswith('/'):
            return self._run_command(line)
        try:
            if '=' in line:
                assign(line, self.store)
                return True, None
            if is_identifier(line):
                return True, str(self.store.lookup(line))
            return True, str(evaluate(line, self.store))
        except CalculatorError as e:
            logger.debug(f"Rejected {line!r}: {type(e).__name__}")
            return False, str(e)
        except Exception as e:
            logger.exception(f"Unexpected error while processing {line!r}")
            return False, f"Unhandled error: {e}"

    def repl_loop(self) -> None:
        """Read and process lines until /exit or end of input."""
        logger.info("Session started")
        while True:
            try:
                line = self._read_line()
            except KeyboardInterrupt:
                if self.session is None:
                    break
                continue
            except EOFError:
                break
            try:
                ok, out = self.evaluate_line(line)
            except EOFError:
                print(FAREWELL)
                break
            if out is not None:
                print(out)
        logger.info(f"Session ended with {len(self.store)} variable(s) defined")


# --------------------------
# Entry point
# --------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="intcalc", description="Interactive integer expression calculator")
    parser.add_argument("--log-level", help="logging level (default: WARNING or $INTCALC_LOG_LEVEL)")
    parser.add_argument("--history-file", help="file used to keep interactive input history")
    parser.add_argument("--no-history", action="store_true", help="do not keep input history on disk")
    parser.add_argument("--env-file", help="load settings from this .env file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(
            args.env_file,
            log_level=args.log_level,
            history_file=args.history_file,
            history_enabled=False if args.no_history else None,
        )
    except ValidationError as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"Invalid settings: {e}")
        return 2
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    repl = REPL(settings)
    repl.repl_loop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
