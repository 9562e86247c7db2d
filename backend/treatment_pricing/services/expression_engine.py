"""
expression_engine.py — Safe arithmetic evaluator for user-configured formulas.

Used by hardware bundle rules (``CEIL(rail_width_cm / 10)``) and any other
quantity formula stored on a template.  Formulas are parsed by a small
recursive-descent parser; nothing is ever handed to eval/exec.

Grammar:
    expr   := term (('+' | '-') term)*
    term   := factor (('*' | '/') factor)*
    factor := ('-' | '+') factor | NUMBER | NAME | '(' expr ')'

Functions ``ceiling``/``ceil``, ``floor``, ``round``, ``min`` and ``max``
are resolved in one left-to-right pass before the arithmetic parse: each
call is evaluated and replaced by a synthetic variable holding its value.
A call whose argument contains another call (``min(ceil(a), b)``) cannot be
resolved by that pass and is rejected with InvalidExpressionError.

Names are case-insensitive, so ``CEIL(RAIL_WIDTH_CM/10)`` and
``ceil(rail_width_cm/10)`` are the same formula.
Nesting deeper than MAX_NESTING_DEPTH parentheses or unary signs is
rejected with InvalidExpressionError.
"""

import math
import re
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from treatment_pricing.services.errors import (
    DivisionByZeroError,
    InvalidExpressionError,
    UnknownVariableError,
)
from treatment_pricing.services.field_resolver import safe_ceil, safe_floor, to_number


_ALLOWED_CHARS = re.compile(r"[A-Za-z0-9_+\-*/.(),\s]")
_FUNCTION_CALL = re.compile(r"\b(ceiling|ceil|floor|round|min|max)\s*\(", re.IGNORECASE)
_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Parenthesis / unary-sign depth accepted before a formula is rejected
MAX_NESTING_DEPTH = 100


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


# name -> (callable, min args, max args)
FUNCTIONS: Dict[str, Tuple[Callable[..., float], int, Optional[int]]] = {
    "ceiling": (lambda x: float(safe_ceil(x)), 1, 1),
    "ceil":    (lambda x: float(safe_ceil(x)), 1, 1),
    "floor":   (lambda x: float(safe_floor(x)), 1, 1),
    "round":   (_round_half_up, 1, 1),
    "min":     (lambda *xs: float(min(xs)), 2, None),
    "max":     (lambda *xs: float(max(xs)), 2, None),
}


class _Parser:
    """Recursive-descent evaluator over a single arithmetic expression."""

    def __init__(self, text: str, scope: Mapping[str, float], source: str):
        self.source = source
        self.scope = scope
        self.tokens = self._tokenize(text)
        self.pos = 0
        self.depth = 0

    def _tokenize(self, text: str) -> List[Tuple[str, object]]:
        tokens: List[Tuple[str, object]] = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch.isspace():
                i += 1
                continue
            number = _NUMBER.match(text, i)
            if number:
                tokens.append(("num", float(number.group())))
                i = number.end()
                continue
            name = _NAME.match(text, i)
            if name:
                tokens.append(("name", name.group().lower()))
                i = name.end()
                continue
            if ch in "+-*/(),":
                tokens.append(("op", ch))
                i += 1
                continue
            raise InvalidExpressionError(f"Unexpected character {ch!r} in '{self.source}'")
        return tokens

    def parse(self) -> float:
        if not self.tokens:
            raise InvalidExpressionError(f"Empty expression in '{self.source}'")
        value = self._expr()
        if self.pos < len(self.tokens):
            raise InvalidExpressionError(
                f"Unexpected token {self.tokens[self.pos][1]!r} in '{self.source}'"
            )
        return value

    def _peek_op(self) -> Optional[str]:
        if self.pos < len(self.tokens) and self.tokens[self.pos][0] == "op":
            return self.tokens[self.pos][1]
        return None

    def _expr(self) -> float:
        value = self._term()
        while self._peek_op() in ("+", "-"):
            op = self.tokens[self.pos][1]
            self.pos += 1
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek_op() in ("*", "/"):
            op = self.tokens[self.pos][1]
            self.pos += 1
            rhs = self._factor()
            if op == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise DivisionByZeroError(self.source)
                value = value / rhs
        return value

    def _factor(self) -> float:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise InvalidExpressionError(f"Expression nested too deeply in '{self.source}'")
        try:
            return self._primary()
        finally:
            self.depth -= 1

    def _primary(self) -> float:
        if self.pos >= len(self.tokens):
            raise InvalidExpressionError(f"Unexpected end of expression in '{self.source}'")
        kind, token = self.tokens[self.pos]
        self.pos += 1

        if kind == "num":
            return token
        if kind == "name":
            if token not in self.scope:
                raise UnknownVariableError(token)
            return self.scope[token]
        if token == "-":
            return -self._factor()
        if token == "+":
            return self._factor()
        if token == "(":
            value = self._expr()
            if self._peek_op() != ")":
                raise InvalidExpressionError(f"Missing ')' in '{self.source}'")
            self.pos += 1
            return value
        raise InvalidExpressionError(f"Unexpected token {token!r} in '{self.source}'")


def _matching_paren(text: str, open_idx: int, source: str) -> int:
    depth = 0
    for idx in range(open_idx, len(text)):
        if text[idx] == "(":
            depth += 1
        elif text[idx] == ")":
            depth -= 1
            if depth == 0:
                return idx
    raise InvalidExpressionError(f"Unbalanced parentheses in '{source}'")


def _split_arguments(inner: str) -> List[str]:
    """Split on top-level commas only: 'a, (b+c)' -> ['a', '(b+c)']."""
    args: List[str] = []
    depth = 0
    start = 0
    for idx, ch in enumerate(inner):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(inner[start:idx])
            start = idx + 1
    args.append(inner[start:])
    return args


def _substitute_functions(text: str, scope: Dict[str, float], source: str) -> str:
    pieces: List[str] = []
    pos = 0
    index = 0
    while True:
        match = _FUNCTION_CALL.search(text, pos)
        if not match:
            break
        name = match.group(1).lower()
        open_idx = match.end() - 1
        close_idx = _matching_paren(text, open_idx, source)
        inner = text[open_idx + 1:close_idx]
        if _FUNCTION_CALL.search(inner):
            raise InvalidExpressionError(
                f"Nested function calls are not supported in '{source}'"
            )

        func, min_args, max_args = FUNCTIONS[name]
        args = _split_arguments(inner)
        if len(args) < min_args or (max_args is not None and len(args) > max_args):
            raise InvalidExpressionError(
                f"{name}() takes {min_args if max_args == min_args else f'at least {min_args}'}"
                f" argument(s); got {len(args)} in '{source}'"
            )
        values = [_Parser(arg, scope, source).parse() for arg in args]

        placeholder = f"__fn{index}"
        scope[placeholder] = func(*values)
        index += 1
        pieces.append(text[pos:match.start()])
        pieces.append(f" {placeholder} ")
        pos = close_idx + 1
    pieces.append(text[pos:])
    return "".join(pieces)


def evaluate(expression: str, variables: Optional[Mapping[str, object]] = None) -> float:
    """
    Evaluate ``expression`` against ``variables`` and return a float.

    Raises:
        InvalidExpressionError: empty/malformed input or a character outside
            letters, digits, ``_ + - * / . ( ) ,`` and whitespace.
        UnknownVariableError:  an identifier with no binding.
        DivisionByZeroError:   a division whose right-hand side is 0.
    """
    if not isinstance(expression, str) or not expression.strip():
        raise InvalidExpressionError("Expression is empty")

    for ch in expression:
        if not _ALLOWED_CHARS.match(ch):
            raise InvalidExpressionError(f"Disallowed character {ch!r} in '{expression}'")

    scope: Dict[str, float] = {}
    for key, raw in (variables or {}).items():
        number = to_number(raw)
        if number is not None:
            scope[str(key).lower()] = number

    text = _substitute_functions(expression, scope, expression)
    return _Parser(text, scope, expression).parse()
