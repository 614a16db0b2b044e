from fastapi import FastAPI
from pydantic import BaseModel
from typing import Iterable, List, Literal, Optional
from models import (
    Token, TokenKind, Expr, LiteralExpr, GroupingExpr, UnaryExpr, BinaryExpr,
    ExprStmt, PrintStmt, Stmt, ApiOk, ApiErr,
)
from errors import LoxError, ParseError, ParseErrorKind
import os, logging, requests

logger = logging.getLogger(__name__)

app = FastAPI(title="parser-svc")
EVALUATOR_URL = os.getenv("EVALUATOR_URL", "http://evaluator-svc:8000")

@app.get("/healthz")
def healthz():
    return {"ok": True}

EQUALITY = (TokenKind.BANG_EQUAL, TokenKind.EQUAL_EQUAL)
COMPARISON = (TokenKind.GREATER, TokenKind.GREATER_EQUAL, TokenKind.LESS, TokenKind.LESS_EQUAL)
TERM = (TokenKind.MINUS, TokenKind.PLUS)
FACTOR = (TokenKind.SLASH, TokenKind.STAR)
UNARY = (TokenKind.BANG, TokenKind.MINUS)
STATEMENT_START = {
    TokenKind.CLASS, TokenKind.FUN, TokenKind.VAR, TokenKind.FOR,
    TokenKind.IF, TokenKind.WHILE, TokenKind.PRINT, TokenKind.RETURN,
}


class Stream:
    """One-token lookahead over a lazy token iterator; ``None`` means exhausted."""

    def __init__(self, tokens: Iterable[Token]):
        self.it = iter(tokens)
        self.ahead: Optional[Token] = None

    def peek(self) -> Optional[Token]:
        if self.ahead is None:
            self.ahead = next(self.it, None)
        return self.ahead

    def pop(self) -> Optional[Token]:
        tok = self.peek()
        self.ahead = None
        return tok

    def match(self, *kinds) -> Optional[Token]:
        tok = self.peek()
        if tok is not None and tok.kind in kinds:
            return self.pop()
        return None


class Parser:
    """Recursive descent, one method per precedence level:
    equality -> comparison -> term -> factor -> unary -> primary.

    Binary levels loop, so same-precedence chains nest to the left.
    """

    def __init__(self, tokens: Iterable[Token], diagnostics: Optional[List[LoxError]] = None):
        self.s = Stream(tokens)
        self.diagnostics = [] if diagnostics is None else diagnostics

    def at_end(self) -> bool:
        return self.s.peek() is None

    def report(self, err: ParseError):
        self.diagnostics.append(err)
        logger.warning("%s", err)

    # entry points

    def parse(self) -> Expr:
        """Parse one expression; tokens after it stay in the stream."""
        try:
            return self.expression()
        except RecursionError:
            raise ParseError(ParseErrorKind.FATAL, "expression nested too deeply") from None

    def parse_whole(self, recover: bool = False) -> Expr:
        """Parse one expression and report, without consuming, anything left behind it."""
        expr = self.parse_recovering() if recover else self.parse()
        rest = self.s.peek()
        if rest is not None:
            self.report(ParseError(ParseErrorKind.TRAILING_TOKENS, "ignored after the expression", token=rest))
        return expr

    def parse_recovering(self) -> Expr:
        while True:
            try:
                return self.parse()
            except ParseError as err:
                if err.is_fatal():
                    raise
                self.report(err)
                if not self.synchronize():
                    raise ParseError(ParseErrorKind.EOF_WHILE_SYNCHRONIZING) from err

    def parse_program(self) -> List[Stmt]:
        statements = []
        while not self.at_end():
            try:
                statements.append(self.statement())
            except ParseError as err:
                if err.is_fatal():
                    raise
                self.report(err)
                if not self.synchronize():
                    self.report(ParseError(ParseErrorKind.EOF_WHILE_SYNCHRONIZING))
        return statements

    def synchronize(self) -> bool:
        """Drop tokens up to a ';' or the start of a statement; False if none is left."""
        tok = self.s.pop()
        while tok is not None:
            if tok.kind is TokenKind.SEMICOLON:
                return True
            nxt = self.s.peek()
            if nxt is not None and nxt.kind in STATEMENT_START:
                return True
            tok = self.s.pop()
        return False

    # statements

    def statement(self) -> Stmt:
        if self.s.match(TokenKind.PRINT) is not None:
            return PrintStmt(expression=self.terminated(self.parse()))
        return ExprStmt(expression=self.terminated(self.parse()))

    def terminated(self, expr: Expr) -> Expr:
        if self.s.match(TokenKind.SEMICOLON) is not None:
            return expr
        failed = self.s.pop()
        if failed is None:
            raise ParseError(ParseErrorKind.MISSING_SEMICOLON, "Expect ';' after expression, found EOF.")
        raise ParseError(ParseErrorKind.MISSING_SEMICOLON, "Expect ';' after expression.", token=failed)

    # expressions

    def expression(self) -> Expr:
        return self.equality()

    def binary(self, operand, kinds) -> Expr:
        left = operand()
        while True:
            op = self.s.match(*kinds)
            if op is None:
                return left
            left = BinaryExpr(left=left, operator=op, right=operand())

    def equality(self) -> Expr:
        return self.binary(self.comparison, EQUALITY)

    def comparison(self) -> Expr:
        return self.binary(self.term, COMPARISON)

    def term(self) -> Expr:
        return self.binary(self.factor, TERM)

    def factor(self) -> Expr:
        return self.binary(self.unary, FACTOR)

    def unary(self) -> Expr:
        op = self.s.match(*UNARY)
        if op is not None:
            return UnaryExpr(operator=op, right=self.unary())
        return self.primary()

    def primary(self) -> Expr:
        tok = self.s.pop()
        if tok is None:
            raise ParseError(ParseErrorKind.UNEXPECTED_EOF, "while parsing an expression")
        if tok.kind is TokenKind.TRUE: return LiteralExpr(value=True)
        if tok.kind is TokenKind.FALSE: return LiteralExpr(value=False)
        if tok.kind is TokenKind.NIL: return LiteralExpr(value=None)
        if tok.kind in (TokenKind.NUMBER, TokenKind.STRING): return LiteralExpr(value=tok.literal)
        if tok.kind is TokenKind.LEFT_PAREN:
            expr = self.expression()
            if self.s.match(TokenKind.RIGHT_PAREN) is not None:
                return GroupingExpr(expression=expr)
            failed = self.s.pop()
            if failed is None:
                raise ParseError(ParseErrorKind.UNEXPECTED_EOF, "While a parenthesis was open")
            raise ParseError(ParseErrorKind.UNCLOSED_PARENTHESES, "Expected a closing parenthesis", token=failed)
        raise ParseError(ParseErrorKind.INVALID_EXPRESSION,
                         "Expected a literal value, or an opening parenthesis", token=tok)


class ParseReq(BaseModel):
    tokens: List[Token]
    mode: Literal["expression", "program"] = "expression"
    recover: bool = False

def parse_tokens(req: ParseReq) -> dict:
    parser = Parser(req.tokens)
    if req.mode == "program":
        program = parser.parse_program()
        data = {"program": [s.model_dump(mode="json") for s in program]}
    else:
        expr = parser.parse_whole(recover=req.recover)
        data = {"ast": expr.model_dump(mode="json")}
    data["diagnostics"] = [ApiErr.from_error(e).model_dump() for e in parser.diagnostics]
    return data

def reject(errors: List[dict]) -> ApiErr:
    first = ApiErr(**errors[0])
    first.msg = "\n".join(e["msg"] for e in errors)
    return first

@app.post("/parse")
def parse_api(req: ParseReq):
    try:
        return ApiOk(data=parse_tokens(req))
    except ParseError as e:
        return ApiErr.from_error(e)

@app.post("/evaluate")
def evaluate_api(req: ParseReq):
    try:
        data = parse_tokens(req)
        if req.mode == "program":
            if data["diagnostics"]:
                return reject(data["diagnostics"])
            r = requests.post(f"{EVALUATOR_URL}/execute", json={"program": data["program"]}, timeout=5)
        else:
            r = requests.post(f"{EVALUATOR_URL}/evaluate", json={"ast": data["ast"]}, timeout=5)
        r.raise_for_status()
        result = r.json()
        if result.get("ok") and data["diagnostics"]:
            result["data"]["diagnostics"] = data["diagnostics"]
        return result

    except ParseError as e:
        return ApiErr.from_error(e)
    except requests.RequestException as e:
        logger.error("evaluator unreachable at %s: %s", EVALUATOR_URL, e)
        return ApiErr(phase="parse", line=None, col=None, code="E_FORWARD_EVALUATOR",
                    msg=f"Failed to contact evaluator: {e}")
