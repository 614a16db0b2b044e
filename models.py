from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Any, Literal, Union, Annotated
from enum import Enum
import math

Value = Union[bool, float, str, None]


class Span(BaseModel):
    start_line: int = 1
    end_line: int = 1
    start_col: int = 0
    end_col: int = 0

    def advance(self):
        self.end_col += 1

    def newline(self):
        self.end_line += 1
        self.start_col = 0
        self.end_col = 0

    def reset(self):
        self.start_line = self.end_line
        self.start_col = self.end_col

    def __str__(self):
        last = max(self.end_col - 1, 0)
        single = self.end_col == self.start_col + 1
        if self.start_line == self.end_line:
            return f"{self.start_line}:{self.start_col}" if single else f"{self.start_line}:{self.start_col}-{last}"
        lines = f"{self.start_line}-{self.end_line}"
        return f"{lines}:{self.start_col}" if single else f"{lines}:{self.start_col}-{last}"


class TokenKind(str, Enum):
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    COMMA = ","
    DOT = "."
    MINUS = "-"
    PLUS = "+"
    SEMICOLON = ";"
    SLASH = "/"
    STAR = "*"
    BANG = "!"
    BANG_EQUAL = "!="
    EQUAL = "="
    EQUAL_EQUAL = "=="
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="
    IDENTIFIER = "Ident"
    STRING = "string"
    NUMBER = "number"
    AND = "and"
    CLASS = "class"
    ELSE = "else"
    FALSE = "false"
    FUN = "fun"
    FOR = "for"
    IF = "if"
    NIL = "nil"
    OR = "or"
    PRINT = "print"
    RETURN = "return"
    SUPER = "super"
    THIS = "this"
    TRUE = "true"
    VAR = "var"
    WHILE = "while"

    def __str__(self):
        return self.value


KEYWORDS = {k.value: k for k in (
    TokenKind.AND, TokenKind.CLASS, TokenKind.ELSE, TokenKind.FALSE, TokenKind.FUN,
    TokenKind.FOR, TokenKind.IF, TokenKind.NIL, TokenKind.OR, TokenKind.PRINT,
    TokenKind.RETURN, TokenKind.SUPER, TokenKind.THIS, TokenKind.TRUE, TokenKind.VAR,
    TokenKind.WHILE,
)}


class Token(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    lexeme: str
    literal: Value = None
    span: Span = Field(default_factory=Span)

    def __str__(self):
        if self.kind in (TokenKind.NUMBER, TokenKind.STRING):
            return f"[{self.span}] {self.kind}: {format_value(self.literal)}"
        return f"[{self.span}] {self.kind}"


# runtime values

def escape_string(s: str) -> str:
    out = ['"']
    for c in s:
        if c == "\n": out.append("\\n")
        elif c == "\\": out.append("\\\\")
        elif c == '"': out.append('\\"')
        else: out.append(c)
    out.append('"')
    return "".join(out)


def format_number(n: float) -> str:
    if math.isnan(n): return "NaN"
    if math.isinf(n): return "inf" if n > 0 else "-inf"
    if n.is_integer():
        return "-0" if n == 0 and math.copysign(1.0, n) < 0 else str(int(n))
    return repr(n)


def format_value(v: Value) -> str:
    if v is None: return "nil"
    if isinstance(v, bool): return "true" if v else "false"
    if isinstance(v, float): return format_number(v)
    return escape_string(v)


def type_name(v: Value) -> str:
    if v is None: return "Nil"
    if isinstance(v, bool): return "Bool"
    if isinstance(v, float): return "Number"
    return "String"


def is_truthy(v: Value) -> bool:
    return not (v is None or v is False)


def encode_value(v: Value) -> dict:
    """JSON-safe view of a runtime value; non-finite numbers travel as their display text only."""
    raw = None if isinstance(v, float) and not math.isfinite(v) else v
    return {"type": type_name(v), "value": raw, "display": format_value(v)}


# expression tree

class LiteralExpr(BaseModel):
    type: Literal["Literal"] = "Literal"
    value: Value = None


class GroupingExpr(BaseModel):
    type: Literal["Grouping"] = "Grouping"
    expression: "Expr"


UNARY_OPERATORS = frozenset({TokenKind.BANG, TokenKind.MINUS})
BINARY_OPERATORS = frozenset({
    TokenKind.BANG_EQUAL, TokenKind.EQUAL_EQUAL,
    TokenKind.GREATER, TokenKind.GREATER_EQUAL, TokenKind.LESS, TokenKind.LESS_EQUAL,
    TokenKind.MINUS, TokenKind.PLUS, TokenKind.SLASH, TokenKind.STAR,
})


class UnaryExpr(BaseModel):
    type: Literal["Unary"] = "Unary"
    operator: Token
    right: "Expr"

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v: Token) -> Token:
        if v.kind not in UNARY_OPERATORS:
            raise ValueError(f"Invalid unary operator '{v.lexeme}'")
        return v


class BinaryExpr(BaseModel):
    type: Literal["Binary"] = "Binary"
    left: "Expr"
    operator: Token
    right: "Expr"

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v: Token) -> Token:
        if v.kind not in BINARY_OPERATORS:
            raise ValueError(f"Invalid binary operator '{v.lexeme}'")
        return v


Expr = Annotated[Union[LiteralExpr, GroupingExpr, UnaryExpr, BinaryExpr], Field(discriminator="type")]

GroupingExpr.model_rebuild()
UnaryExpr.model_rebuild()
BinaryExpr.model_rebuild()


class ExprStmt(BaseModel):
    type: Literal["ExprStmt"] = "ExprStmt"
    expression: Expr


class PrintStmt(BaseModel):
    type: Literal["PrintStmt"] = "PrintStmt"
    expression: Expr


Stmt = Annotated[Union[ExprStmt, PrintStmt], Field(discriminator="type")]


# service envelopes

class ApiErr(BaseModel):
    ok: Literal[False] = False
    phase: Literal["lex", "parse", "eval", "gateway"]
    line: Optional[int] = None
    col: Optional[int] = None
    code: str
    msg: str

    @classmethod
    def from_error(cls, err) -> "ApiErr":
        span = err.location
        return cls(phase=err.phase, line=span.start_line if span else None,
                   col=span.start_col if span else None, code=err.code, msg=str(err))


class ApiOk(BaseModel):
    ok: Literal[True] = True
    data: Any
