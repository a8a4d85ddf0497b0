"""
Template walker and tag-body splitter.

The Scanner is the only component that steps over delimiters: it reports
literal spans, tag spans and unclosed openings. Tag bodies are then broken
into whitespace separated tokens by split_tag_parts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Tuple

DEFAULT_START_DELIM = "{{"
DEFAULT_END_DELIM = "}}"

PIPE = "|"
ASSIGN = ":="


class TokenKind(str, Enum):
    LITERAL = "literal"
    TAG = "tag"
    UNCLOSED = "unclosed"


@dataclass(frozen=True)
class Token:
    """A span of template source.

    For TAG tokens ``body_start``/``body_end`` delimit the text between the
    delimiters and ``end`` is the index just past the closing delimiter.
    """
    kind: TokenKind
    start: int
    end: int
    body_start: int = -1
    body_end: int = -1

    def body(self, source: str) -> str:
        return source[self.body_start:self.body_end].strip()


class Scanner:
    """Walks template source left to right"""

    def __init__(self, start_delim: str = DEFAULT_START_DELIM, end_delim: str = DEFAULT_END_DELIM):
        if not start_delim or not end_delim:
            raise ValueError("Template delimiters must be non-empty")
        self.start_delim = start_delim
        self.end_delim = end_delim

    def scan(self, source: str, pos: int) -> Token:
        """Return the token beginning at ``pos``"""
        opening = source.find(self.start_delim, pos)
        if opening == -1:
            return Token(TokenKind.LITERAL, pos, len(source))
        if opening > pos:
            return Token(TokenKind.LITERAL, pos, opening)

        body_start = opening + len(self.start_delim)
        closing = source.find(self.end_delim, body_start)
        if closing == -1:
            return Token(TokenKind.UNCLOSED, opening, len(source))
        return Token(
            TokenKind.TAG,
            opening,
            closing + len(self.end_delim),
            body_start=body_start,
            body_end=closing,
        )

    def tags(self, source: str, pos: int = 0):
        """Yield every TAG token from ``pos`` onwards, skipping literals.

        Stops at the first unclosed opening, which is yielded as well.
        """
        length = len(source)
        while pos < length:
            token = self.scan(source, pos)
            if token.kind is not TokenKind.LITERAL:
                yield token
            if token.kind is TokenKind.UNCLOSED:
                return
            pos = token.end


def split_tokens(content: str) -> List[str]:
    """Split a tag body on whitespace, keeping ``"quoted strings"`` whole.

    Quotes are preserved in the token. A ``|`` outside quotes is always a
    token of its own.
    """
    tokens: List[str] = []
    current: List[str] = []
    in_quotes = False

    def flush():
        if current:
            tokens.append("".join(current))
            current.clear()

    for char in content:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif in_quotes:
            current.append(char)
        elif char.isspace():
            flush()
        elif char == PIPE:
            flush()
            tokens.append(PIPE)
        else:
            current.append(char)
    flush()
    return tokens


def split_tag_parts(content: str) -> Tuple[str, List[str]]:
    """Return the head token and argument tokens of a tag body"""
    tokens = split_tokens(content)
    if not tokens:
        return "", []
    return tokens[0], tokens[1:]


class TokenClass(str, Enum):
    PATH = "path"
    VARIABLE = "variable"
    PIPE = "pipe"
    ASSIGN = "assign"
    LITERAL = "literal"


def classify_token(token: str) -> TokenClass:
    if token == PIPE:
        return TokenClass.PIPE
    if token == ASSIGN:
        return TokenClass.ASSIGN
    if is_path(token):
        return TokenClass.PATH
    if is_variable(token):
        return TokenClass.VARIABLE
    return TokenClass.LITERAL


def is_path(token: str) -> bool:
    return token.startswith(".")


def is_variable(token: str) -> bool:
    return token.startswith("$")


def unquote(token: str) -> str:
    """Strip one pair of matching surrounding quotes"""
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ('"', "'"):
        return token[1:-1]
    return token


def parse_literal(token: str) -> Any:
    """Interpret a bare or quoted token as a literal value"""
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ('"', "'"):
        return token[1:-1]

    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("nil", "null", "none"):
        return None

    if not any(char.isdigit() for char in token):
        return token
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        return token
