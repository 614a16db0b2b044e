from models import Expr, LiteralExpr, GroupingExpr, UnaryExpr, BinaryExpr, format_value
from visitor import ExprVisitor, left_spine


class DebugPrinter(ExprVisitor[str]):
    """Parenthesized prefix form, e.g. ``(* (- 123) (group 45.67))``."""

    @classmethod
    def print(cls, expr: Expr) -> str:
        return cls().visit(expr)

    def parenthesize(self, name: str, *exprs) -> str:
        return "(" + " ".join([name] + [self.visit(e) for e in exprs]) + ")"

    def visit_literal(self, expr: LiteralExpr) -> str:
        return format_value(expr.value)

    def visit_grouping(self, expr: GroupingExpr) -> str:
        return self.parenthesize("group", expr.expression)

    def visit_unary(self, expr: UnaryExpr) -> str:
        return self.parenthesize(expr.operator.lexeme, expr.right)

    def visit_binary(self, expr: BinaryExpr) -> str:
        first, steps = left_spine(expr)
        text = self.visit(first)
        for op, right in steps:
            text = f"({op.lexeme} {text} {self.visit(right)})"
        return text


class RpnPrinter(ExprVisitor[str]):
    """Space separated postfix form; groupings vanish, e.g. ``1 2 + 4 3 - *``."""

    @classmethod
    def print(cls, expr: Expr) -> str:
        return cls().visit(expr)

    def postfix(self, name: str, *exprs) -> str:
        return " ".join([self.visit(e) for e in exprs] + [name])

    def visit_literal(self, expr: LiteralExpr) -> str:
        return format_value(expr.value)

    def visit_grouping(self, expr: GroupingExpr) -> str:
        return self.visit(expr.expression)

    def visit_unary(self, expr: UnaryExpr) -> str:
        return self.postfix(expr.operator.lexeme, expr.right)

    def visit_binary(self, expr: BinaryExpr) -> str:
        first, steps = left_spine(expr)
        parts = [self.visit(first)]
        for op, right in steps:
            parts += [self.visit(right), op.lexeme]
        return " ".join(parts)
