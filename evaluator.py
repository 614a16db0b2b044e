from fastapi import FastAPI
from pydantic import BaseModel
from typing import List, Optional, Tuple
from models import (
    TokenKind, Token, Value, Expr, Stmt, PrintStmt, LiteralExpr, GroupingExpr, UnaryExpr,
    BinaryExpr, ApiOk, ApiErr, format_value, is_truthy, type_name, encode_value,
)
from errors import EvalError, EvalErrorKind
from visitor import ExprVisitor, left_spine
import math, operator, logging, os

logger = logging.getLogger(__name__)

app = FastAPI(title="evaluator-svc")
MAX_STRING_LENGTH = int(os.getenv("MAX_STRING_LENGTH", 1 << 24))

@app.get("/healthz")
def healthz():
    return {"ok": True}


def as_number(v: Value) -> Optional[float]:
    """Bool coerces to 0.0/1.0 wherever a Number is expected; nothing else does."""
    if isinstance(v, bool):
        return 1.0 if v else 0.0
    if isinstance(v, float):
        return v
    return None

def divide(l: float, r: float) -> float:
    try:
        return l / r
    except ZeroDivisionError:
        if l == 0 or math.isnan(l):
            return math.nan
        return math.copysign(math.inf, l) * math.copysign(1.0, r)

def equals(l: Value, r: Value) -> bool:
    return type_name(l) == type_name(r) and l == r

def stringify(v: Value) -> str:
    return v if isinstance(v, str) else format_value(v)

# operator -> (numeric op, failure kind)
NUMERIC = {
    TokenKind.PLUS: (operator.add, EvalErrorKind.BAD_ADDITION),
    TokenKind.MINUS: (operator.sub, EvalErrorKind.BAD_SUBTRACTION),
    TokenKind.STAR: (operator.mul, EvalErrorKind.BAD_MULTIPLICATION),
    TokenKind.SLASH: (divide, EvalErrorKind.BAD_DIVISION),
    TokenKind.GREATER: (operator.gt, EvalErrorKind.BAD_COMPARISON),
    TokenKind.GREATER_EQUAL: (operator.ge, EvalErrorKind.BAD_COMPARISON),
    TokenKind.LESS: (operator.lt, EvalErrorKind.BAD_COMPARISON),
    TokenKind.LESS_EQUAL: (operator.le, EvalErrorKind.BAD_COMPARISON),
}


class Evaluator(ExprVisitor[Value]):
    """Post-order reduction of a tree to a single value.

    The first failure aborts the whole evaluation and carries the operator
    token responsible for it.
    """

    def evaluate(self, expr: Expr) -> Value:
        try:
            return self.visit(expr)
        except RecursionError:
            raise EvalError(EvalErrorKind.FATAL, "expression nested too deeply") from None

    def execute(self, statements: List[Stmt]) -> Tuple[List[str], Value]:
        """Run statements in order; returns printed lines and the last expression value."""
        output, last = [], None
        for stmt in statements:
            last = self.evaluate(stmt.expression)
            if isinstance(stmt, PrintStmt):
                output.append(stringify(last))
        return output, last

    def visit_literal(self, expr: LiteralExpr) -> Value:
        return expr.value

    def visit_grouping(self, expr: GroupingExpr) -> Value:
        return self.visit(expr.expression)

    def visit_unary(self, expr: UnaryExpr) -> Value:
        value = self.visit(expr.right)
        op = expr.operator
        if op.kind is TokenKind.BANG:
            return not is_truthy(value)
        if op.kind is TokenKind.MINUS:
            if isinstance(value, float):
                return -value
            raise EvalError(EvalErrorKind.BAD_NUMERICAL_NEGATION, f"cannot negate {type_name(value)}", token=op)
        raise ValueError(f"Unknown unary operator {op.lexeme}")

    def visit_binary(self, expr: BinaryExpr) -> Value:
        first, steps = left_spine(expr)
        value = self.visit(first)
        for op, right in steps:
            value = self.apply(op, value, self.visit(right))
        return value

    def apply(self, op: Token, left: Value, right: Value) -> Value:
        if op.kind is TokenKind.EQUAL_EQUAL:
            return equals(left, right)
        if op.kind is TokenKind.BANG_EQUAL:
            return not equals(left, right)
        if op.kind is TokenKind.PLUS and isinstance(left, str) and isinstance(right, str):
            return left + right
        if op.kind is TokenKind.STAR and isinstance(left, str) and isinstance(right, float):
            return self.repeat(left, right, op)
        if op.kind not in NUMERIC:
            raise ValueError(f"Unknown binary operator {op.lexeme}")
        fn, failure = NUMERIC[op.kind]
        l, r = as_number(left), as_number(right)
        if l is None or r is None:
            raise EvalError(failure, f"between {type_name(left)} and {type_name(right)}", token=op)
        return fn(l, r)

    def repeat(self, text: str, count: float, op: Token) -> str:
        if not count.is_integer():
            raise EvalError(EvalErrorKind.BAD_STRING_REP_COUNT, f"got {format_value(count)}", token=op)
        if count <= 0 or not text:
            return ""
        if len(text) * count > MAX_STRING_LENGTH:
            raise EvalError(EvalErrorKind.STRING_TOO_LONG,
                            f"{len(text)} chars * {format_value(count)} exceeds {MAX_STRING_LENGTH}", token=op)
        return text * int(count)


class EvaluateReq(BaseModel):
    ast: Expr

class ExecuteReq(BaseModel):
    program: List[Stmt]

@app.post("/evaluate")
def evaluate_api(req: EvaluateReq):
    try:
        value = Evaluator().evaluate(req.ast)
        return ApiOk(data={"value": encode_value(value)})
    except EvalError as e:
        logger.info("evaluation failed: %s", e)
        return ApiErr.from_error(e)

@app.post("/execute")
def execute_api(req: ExecuteReq):
    try:
        output, last = Evaluator().execute(req.program)
        return ApiOk(data={"output": output, "value": encode_value(last)})
    except EvalError as e:
        logger.info("execution failed: %s", e)
        return ApiErr.from_error(e)
