# intcalc.py

"""
Overview of Implementation Approach
-----------------------------------
This module implements the expression pipeline of the integer calculator. A line of text is processed in four
stages: sign normalization, tokenization, infix-to-postfix conversion (shunting-yard) and postfix evaluation
against a variable store. All failures are reported as exceptions derived from CalculatorError; nothing in this
module performs I/O, the REPL in intcalc_repl is responsible for reading input and printing results.

Integers follow the semantics of a 64-bit signed machine integer: literals must fit in that range, the
arithmetic operators wrap on overflow, division truncates toward zero and '^' is computed with a floating-point
power and truncated back to an integer.

Modules, Classes, and Functions Implemented
-------------------------------------------
- Error classes: CalculatorError, ParseError, EvalError, AssignmentError and their specific kinds
- Classifier: is_identifier, is_number
- Normalizer: normalize
- Tokenizer: Token, TokenType, tokenize, classify
- Converter: to_postfix
- Evaluator: resolve_value, evaluate_postfix, evaluate
- Variables: VariableStore, assign
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


# ---------------------------
# Error Classes
# ---------------------------

class CalculatorError(Exception):
    """Base class for calculator errors."""
    pass

class ParseError(CalculatorError):
    """Raised when an expression is syntactically invalid."""
    pass

class UnbalancedParenthesesError(ParseError):
    pass

class InvalidTokenError(ParseError):
    """Raised for a token that is neither a number, an identifier, an operator nor a parenthesis."""
    pass

class RepeatedOperatorError(ParseError):
    """Raised for operator runs such as '**' or '//' that cannot be normalized."""
    pass

class EvalError(CalculatorError):
    """Raised when evaluation of a postfix sequence fails."""
    pass

class UnknownVariableError(EvalError):
    pass

class DivisionByZeroError(EvalError):
    pass

class MalformedExpressionError(EvalError):
    """Raised when the evaluation stack underflows or does not end with exactly one value."""
    pass

class ArithmeticOverflowError(EvalError):
    """Raised when a power cannot be represented as a 64-bit integer."""
    pass

class AssignmentError(CalculatorError):
    """Raised when an assignment line is rejected. The variable store is left untouched."""
    pass

class InvalidIdentifierError(AssignmentError):
    pass

class InvalidRightHandSideError(AssignmentError):
    pass

class MultipleEqualsError(AssignmentError):
    pass


# ---------------------------
# Classifier
# ---------------------------

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1

_IDENTIFIER_RE = re.compile(r'[A-Za-z]+')
_NUMBER_RE = re.compile(r'[+-]?[0-9]+')


def is_identifier(text: str) -> bool:
    """True if text is a non-empty run of Latin letters. Identifiers are case-sensitive."""
    return _IDENTIFIER_RE.fullmatch(text) is not None


def is_number(text: str) -> bool:
    """
    True if text is a base-10 integer literal that fits in a signed 64-bit integer.
    An optional leading sign is accepted; whitespace, underscores and non-ASCII digits are not.
    """
    if _NUMBER_RE.fullmatch(text) is None:
        return False
    return INT_MIN <= int(text) <= INT_MAX


def _wrap(value: int) -> int:
    # Two's complement wrap-around to 64 bits
    return (value - INT_MIN) % (2 ** 64) + INT_MIN


# ---------------------------
# Normalizer
# ---------------------------

_SIGN_REWRITES = (('++', '+'), ('--', '+'), ('+-', '-'), ('-+', '-'))


def normalize(expr: str) -> str:
    """
    Collapses runs of adjacent '+' and '-' characters into a single sign.

    A run becomes '-' when it holds an odd number of minus signs and '+' otherwise. The rewriting is textual
    and loops until a fixed point, so normalize(normalize(x)) == normalize(x). Runs separated by whitespace are
    left alone; those are handled as unary signs by classify(). Repeated '*', '/' and '^' are not touched.
    """
    previous = None
    while previous != expr:
        previous = expr
        for pattern, replacement in _SIGN_REWRITES:
            while pattern in expr:
                expr = expr.replace(pattern, replacement)
    return expr


# ---------------------------
# Tokenizer
# ---------------------------

class TokenType:
    """Enumeration of token types."""
    NUMBER = 'NUMBER'
    IDENT = 'IDENT'
    OP = 'OP'
    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'


# Binary operators: symbol -> (precedence, right_assoc)
BINARY_OPS: Dict[str, Tuple[int, bool]] = {
    '^': (3, True),
    '*': (2, False),
    '/': (2, False),
    '+': (1, False),
    '-': (1, False),
}

# Unary minus binds tighter than '*' and '/' but not tighter than '^', so -2^2 == -4
UNARY_MINUS: Tuple[int, bool] = (3, True)

_SIGNS = {'+', '-'}
_TOKEN_BOUNDARY_RE = re.compile(r'([()+\-*/^])')


@dataclass(frozen=True)
class Token:
    """A classified token. value is set for NUMBER tokens, unary marks a prefix minus."""
    kind: str
    text: str
    value: Optional[int] = None
    unary: bool = False

    @property
    def precedence(self) -> int:
        if self.unary:
            return UNARY_MINUS[0]
        return BINARY_OPS[self.text][0]

    @property
    def right_assoc(self) -> bool:
        if self.unary:
            return UNARY_MINUS[1]
        return BINARY_OPS[self.text][1]

    def __repr__(self) -> str:
        if self.unary:
            return f"Token({self.kind}, unary {self.text!r})"
        return f"Token({self.kind}, {self.text!r})"


def tokenize(expr: str) -> List[str]:
    """Splits an expression into raw tokens around operators, parentheses and whitespace."""
    return _TOKEN_BOUNDARY_RE.sub(r' \1 ', expr).split()


def classify(raw_tokens: Sequence[str]) -> List[Token]:
    """
    Tags raw tokens with their type.

    A '+' or '-' with no left operand (at the start, after '(' or after another operator) is a unary sign:
    '-' becomes a unary minus and '+' is dropped. A '*', '/' or '^' directly after another operator raises
    RepeatedOperatorError. Anything unrecognised raises InvalidTokenError.
    """
    tokens: List[Token] = []
    expect_operand = True
    previous: Optional[str] = None
    for text in raw_tokens:
        if text in BINARY_OPS:
            if expect_operand and text in _SIGNS:
                if text == '-':
                    tokens.append(Token(TokenType.OP, text, unary=True))
            elif expect_operand and previous in BINARY_OPS:
                raise RepeatedOperatorError(f"Invalid expression: repeated operator '{previous}{text}'")
            else:
                tokens.append(Token(TokenType.OP, text))
            expect_operand = True
        elif text == '(':
            tokens.append(Token(TokenType.LPAREN, text))
            expect_operand = True
        elif text == ')':
            tokens.append(Token(TokenType.RPAREN, text))
            expect_operand = False
        elif is_number(text):
            tokens.append(Token(TokenType.NUMBER, text, value=int(text)))
            expect_operand = False
        elif is_identifier(text):
            tokens.append(Token(TokenType.IDENT, text))
            expect_operand = False
        else:
            raise InvalidTokenError(f"Invalid expression: unexpected token {text!r}")
        previous = text
    return tokens


# ---------------------------
# Converter
# ---------------------------

def _should_pop(top: Token, current: Token) -> bool:
    if top.kind != TokenType.OP:
        return False
    if top.precedence > current.precedence:
        return True
    return top.precedence == current.precedence and not current.right_assoc


def to_postfix(tokens: Sequence[str]) -> List[Token]:
    """
    Converts raw infix tokens to postfix order with the shunting-yard algorithm.
    Raises UnbalancedParenthesesError when '(' and ')' do not pair up.
    """
    output: List[Token] = []
    stack: List[Token] = []

    for token in classify(tokens):
        if token.kind in (TokenType.NUMBER, TokenType.IDENT):
            output.append(token)
        elif token.kind == TokenType.LPAREN:
            stack.append(token)
        elif token.kind == TokenType.RPAREN:
            while stack and stack[-1].kind != TokenType.LPAREN:
                output.append(stack.pop())
            if not stack:
                raise UnbalancedParenthesesError("Invalid expression: unbalanced parentheses")
            stack.pop()
        elif token.unary:
            # Prefix operators have no left operand to flush
            stack.append(token)
        else:
            while stack and _should_pop(stack[-1], token):
                output.append(stack.pop())
            stack.append(token)

    while stack:
        top = stack.pop()
        if top.kind in (TokenType.LPAREN, TokenType.RPAREN):
            raise UnbalancedParenthesesError("Invalid expression: unbalanced parentheses")
        output.append(top)
    return output


# ---------------------------
# Variables
# ---------------------------

class VariableStore:
    """
    Mapping of identifier to integer value shared by all evaluations of a session.
    Entries are created or overwritten by assignment and never removed.
    """

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._values: Dict[str, int] = {}
        for name, value in (initial or {}).items():
            self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableStore({self._values!r})"

    def lookup(self, name: str) -> int:
        """Returns the value bound to name or raises UnknownVariableError."""
        try:
            return self._values[name]
        except KeyError:
            raise UnknownVariableError("Unknown variable") from None

    def set(self, name: str, value: int) -> None:
        if not is_identifier(name):
            raise InvalidIdentifierError("Invalid identifier")
        self._values[name] = value


def assign(line: str, store: VariableStore) -> Tuple[str, int]:
    """
    Handles an assignment line of the form 'name = value'.

    The right-hand side must be an integer literal or an already bound identifier. Any failure raises an
    AssignmentError (or UnknownVariableError for an unbound right-hand identifier) before the store is touched.
    Returns the assigned name and value.
    """
    parts = line.split('=')
    if len(parts) != 2:
        raise MultipleEqualsError("Invalid assignment")
    left = parts[0].strip()
    right = parts[1].strip()

    if not is_identifier(left):
        raise InvalidIdentifierError("Invalid identifier")

    if is_number(right):
        value = int(right)
    elif is_identifier(right):
        value = store.lookup(right)
    else:
        raise InvalidRightHandSideError("Invalid assignment")

    store.set(left, value)
    logger.debug(f"Assigned {left} = {value}")
    return left, value


# ---------------------------
# Evaluator
# ---------------------------

def resolve_value(token: str, store: VariableStore) -> int:
    """Resolves an operand to its integer value: a literal is parsed, an identifier is looked up."""
    if is_number(token):
        return int(token)
    if is_identifier(token):
        return store.lookup(token)
    raise MalformedExpressionError("Invalid expression")


def _truncating_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _power(a: int, b: int) -> int:
    # Floating-point power truncated to an integer; large results lose precision.
    try:
        result = math.pow(a, b)
    except (OverflowError, ValueError):
        raise ArithmeticOverflowError("Invalid expression: result out of range") from None
    if not math.isfinite(result) or not INT_MIN <= result <= INT_MAX:
        raise ArithmeticOverflowError("Invalid expression: result out of range")
    return int(result)


def _apply(op: str, a: int, b: int) -> int:
    if op == '+':
        return _wrap(a + b)
    if op == '-':
        return _wrap(a - b)
    if op == '*':
        return _wrap(a * b)
    if op == '/':
        if b == 0:
            raise DivisionByZeroError("Division by zero")
        return _wrap(_truncating_div(a, b))
    if op == '^':
        return _power(a, b)
    raise MalformedExpressionError("Invalid expression")


def evaluate_postfix(postfix: Sequence[Token], store: VariableStore) -> int:
    """
    Evaluates a postfix token sequence against the variable store.
    Raises an EvalError subclass on failure; exactly one value must be left on the stack.
    """
    stack: List[int] = []
    for token in postfix:
        if token.kind in (TokenType.NUMBER, TokenType.IDENT):
            stack.append(resolve_value(token.text, store))
        elif token.kind == TokenType.OP and token.unary:
            if not stack:
                raise MalformedExpressionError("Invalid expression")
            stack.append(_wrap(-stack.pop()))
        elif token.kind == TokenType.OP:
            if len(stack) < 2:
                raise MalformedExpressionError("Invalid expression")
            b = stack.pop()
            a = stack.pop()
            stack.append(_apply(token.text, a, b))
        else:
            raise MalformedExpressionError("Invalid expression")

    if len(stack) != 1:
        raise MalformedExpressionError("Invalid expression")
    return stack.pop()


def evaluate(expr: str, store: VariableStore) -> int:
    """Runs the full pipeline on one expression and returns its integer value."""
    normalized = normalize(expr)
    postfix = to_postfix(tokenize(normalized))
    logger.debug(f"Normalized {expr!r} to {normalized!r}, postfix {' '.join(t.text for t in postfix)!r}")
    result = evaluate_postfix(postfix, store)
    logger.debug(f"Evaluated {expr!r} = {result}")
    return result
