from fastapi import FastAPI
from pydantic import BaseModel
from typing import Iterator, List, Optional, Tuple, Union
from models import Token, TokenKind, Span, KEYWORDS, ApiOk, ApiErr
from errors import LexError, LexErrorKind
from parser import Parser
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title="lexer-svc")

@app.get("/healthz")
def healthz():
    return {"ok":True}

WHITESPACE = (" ", "\t", "\r")
ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"'}
SINGLE = {
    "(": TokenKind.LEFT_PAREN, ")": TokenKind.RIGHT_PAREN, "{": TokenKind.LEFT_BRACE,
    "}": TokenKind.RIGHT_BRACE, ",": TokenKind.COMMA, ".": TokenKind.DOT,
    "-": TokenKind.MINUS, "+": TokenKind.PLUS, ";": TokenKind.SEMICOLON,
    "*": TokenKind.STAR, "/": TokenKind.SLASH,
}
# first char -> (alone, followed by '=')
DOUBLE = {
    "!": (TokenKind.BANG, TokenKind.BANG_EQUAL),
    "=": (TokenKind.EQUAL, TokenKind.EQUAL_EQUAL),
    ">": (TokenKind.GREATER, TokenKind.GREATER_EQUAL),
    "<": (TokenKind.LESS, TokenKind.LESS_EQUAL),
}


def is_digit(c):
    return c is not None and "0" <= c <= "9"

def is_alpha(c):
    return c is not None and (c == "_" or "a" <= c <= "z" or "A" <= c <= "Z")

def is_alnum(c):
    return is_alpha(c) or is_digit(c)


class Lexer:
    """Single-pass scanner over one source string.

    ``scan_tokens`` yields a ``Token`` or a ``LexError`` per lexeme, so a bad
    character costs one token and scanning carries on. Invalid escapes are not
    failures: they land in ``diagnostics`` and the string keeps the raw text.
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.start = 0
        self.span = Span()
        self.diagnostics: List[LexError] = []

    def peek(self, offset: int = 0) -> Optional[str]:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else None

    def advance(self) -> str:
        c = self.source[self.pos]
        self.pos += 1
        self.span.advance()
        return c

    def advance_if_eq(self, expected: str) -> bool:
        if self.peek() == expected:
            self.advance()
            return True
        return False

    def report(self, err: LexError):
        self.diagnostics.append(err)
        logger.warning("%s", err)

    def scan_tokens(self) -> Iterator[Union[Token, LexError]]:
        while self.pos < len(self.source):
            self.span.reset()
            self.start = self.pos
            item = self.scan_token()
            if item is not None:
                yield item

    def tokens(self) -> Iterator[Token]:
        """Successful tokens only; lexical errors are moved to ``diagnostics``."""
        for item in self.scan_tokens():
            if isinstance(item, LexError):
                self.report(item)
                continue
            yield item

    def advance_to_parsing(self) -> Parser:
        return Parser(self.tokens(), diagnostics=self.diagnostics)

    def scan_token(self) -> Union[Token, LexError, None]:
        c = self.advance()
        if c in WHITESPACE:
            return None
        if c == "\n":
            self.span.newline()
            return None
        if c == '"':
            return self.string()
        if is_digit(c):
            return self.number()
        if is_alpha(c):
            return self.identifier()
        return self.operator(c)

    def operator(self, c: str) -> Union[Token, LexError, None]:
        if c == "/" and self.peek() == "/":
            while self.peek() not in (None, "\n"):
                self.advance()
            return None
        if c in DOUBLE:
            alone, with_eq = DOUBLE[c]
            return self.make_token(with_eq if self.advance_if_eq("=") else alone)
        if c in SINGLE:
            return self.make_token(SINGLE[c])
        return LexError(LexErrorKind.UNMATCHED_CHARACTER, f"Unmatched character!: {c}",
                        span=self.span.model_copy())

    def string(self) -> Union[Token, LexError]:
        chars = []
        while self.peek() not in (None, '"'):
            c = self.advance()
            if c == "\n":
                self.span.newline()
            elif c == "\\":
                c = self.escape()
            chars.append(c)
        text = "".join(chars)
        if not self.advance_if_eq('"'):
            return LexError(LexErrorKind.UNTERMINATED_STRING,
                            'Syntax Error: Unterminated string. Expected closing `"`',
                            span=self.span.model_copy(), partial=text)
        return self.make_token(TokenKind.STRING, text)

    def escape(self) -> str:
        nxt = self.peek()
        if nxt is not None and nxt in ESCAPES:
            self.advance()
            return ESCAPES[nxt]
        # keep the backslash; the following char is scanned as plain text
        self.report(LexError(LexErrorKind.INVALID_ESCAPE,
                             "Syntax Error: Invalid Escape. Expected one of `\\n,\\t,\\r,\\\\,\\\"`",
                             span=self.span.model_copy()))
        return "\\"

    def number(self) -> Union[Token, LexError]:
        while is_digit(self.peek()):
            self.advance()
        if self.peek() == "." and is_digit(self.peek(1)):
            self.advance()
            while is_digit(self.peek()):
                self.advance()
        try:
            value = float(self.source[self.start:self.pos])
        except ValueError:
            return LexError(LexErrorKind.NUMBER_PARSE_FAILURE,
                            "Unexpected Error while parsing Literal Number",
                            span=self.span.model_copy())
        return self.make_token(TokenKind.NUMBER, value)

    def identifier(self) -> Token:
        while is_alnum(self.peek()):
            self.advance()
        text = self.source[self.start:self.pos]
        return self.make_token(KEYWORDS.get(text, TokenKind.IDENTIFIER))

    def make_token(self, kind: TokenKind, literal=None) -> Token:
        return Token(kind=kind, lexeme=self.source[self.start:self.pos], literal=literal,
                     span=self.span.model_copy())


def tokenize(source: str) -> Tuple[List[Token], List[LexError]]:
    lexer = Lexer(source)
    tokens = list(lexer.tokens())
    return tokens, lexer.diagnostics


class LexReq(BaseModel):
    source: str

@app.post("/lex")
def lex(req: LexReq):
    tokens, diagnostics = tokenize(req.source)
    logger.debug("lexed %d tokens, %d diagnostics", len(tokens), len(diagnostics))
    return ApiOk(data={
        "tokens": [t.model_dump(mode="json") for t in tokens],
        "diagnostics": [ApiErr.from_error(e).model_dump() for e in diagnostics],
    })
