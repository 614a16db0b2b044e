from enum import Enum
from typing import Optional

from models import Span, Token, escape_string


class LexErrorKind(Enum):
    UNMATCHED_CHARACTER = "Unmatched character."
    UNTERMINATED_STRING = "Unterminated String."
    INVALID_ESCAPE = "Invalid Escape character."
    NUMBER_PARSE_FAILURE = "Internal Interpreter Error."


class ParseErrorKind(Enum):
    INVALID_EXPRESSION = "Invalid expression."
    UNCLOSED_PARENTHESES = "Unclosed Parentheses."
    UNEXPECTED_EOF = "Unexpected End of Source Code."
    EOF_WHILE_SYNCHRONIZING = "Encountered errors while parsing."
    MISSING_SEMICOLON = "Missing Semicolon."
    TRAILING_TOKENS = "Unexpected tokens after expression."
    FATAL = "Fatal Error!"


class EvalErrorKind(Enum):
    BAD_NUMERICAL_NEGATION = "Bad Numerical Negation"
    BAD_ADDITION = "Bad Addition"
    BAD_SUBTRACTION = "Bad Subtraction"
    BAD_MULTIPLICATION = "Bad Multiplication"
    BAD_DIVISION = "Bad Division"
    BAD_STRING_REP_COUNT = "Bad count for string repetition, expected an integer"
    BAD_COMPARISON = "Bad Comparison"
    STRING_TOO_LONG = "String repetition result too long"
    FATAL = "Fatal Error!"


class LoxError(Exception):
    """Base for every failure the pipeline can report.

    Carries a stage-specific ``kind``, a message, and whichever location the
    stage has at hand: a ``Span`` for the lexer, the offending ``Token`` for
    the parser and evaluator.
    """
    phase = "lox"

    def __init__(self, kind: Enum, message: str = "", span: Optional[Span] = None,
                 token: Optional[Token] = None):
        self.kind = kind
        self.message = message
        self.span = span
        self.token = token
        super().__init__(str(self))

    @property
    def location(self) -> Optional[Span]:
        if self.token is not None:
            return self.token.span
        return self.span

    @property
    def code(self) -> str:
        return f"E_{self.phase.upper()}_{self.kind.name}"

    def __str__(self):
        text = self.kind.value
        if self.token is not None:
            text += f" Occurred at {self.token}"
        elif self.span is not None:
            text += f" Occurred at {self.span}"
        return f"{text} {self.message}" if self.message else text


class LexError(LoxError):
    phase = "lex"

    def __init__(self, kind: LexErrorKind, message: str = "", span: Optional[Span] = None,
                 partial: Optional[str] = None):
        self.partial = partial
        super().__init__(kind, message, span=span)

    def __str__(self):
        text = super().__str__()
        if self.partial is not None:
            text += f"\n{escape_string(self.partial)}"
        return text


class ParseError(LoxError):
    phase = "parse"

    def is_fatal(self) -> bool:
        return self.kind is ParseErrorKind.FATAL


class EvalError(LoxError):
    phase = "eval"
