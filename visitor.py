from typing import Generic, List, Tuple, TypeVar

from models import Expr, Token, LiteralExpr, GroupingExpr, UnaryExpr, BinaryExpr

T = TypeVar("T")


def left_spine(expr: BinaryExpr) -> Tuple[Expr, List[Tuple[Token, Expr]]]:
    """Flatten a left-nested chain ``((a op b) op c)`` into ``a, [(op, b), (op, c)]``.

    Walked iteratively: a flat chain of any length costs a single stack frame.
    """
    steps = []
    while isinstance(expr, BinaryExpr):
        steps.append((expr.operator, expr.right))
        expr = expr.left
    steps.reverse()
    return expr, steps


class ExprVisitor(Generic[T]):
    """One handler per tree variant; ``visit`` routes a node to its handler by its ``type`` tag.

    Printers only read the tree. The evaluator reduces it and is free to hand
    leaf payloads straight back as results, since nodes are never shared.
    """

    def visit(self, expr) -> T:
        handler = getattr(self, f"visit_{expr.type.lower()}", None)
        if handler is None:
            raise TypeError(f"Unknown node {expr.type}")
        return handler(expr)

    def visit_literal(self, expr: LiteralExpr) -> T:
        raise NotImplementedError

    def visit_grouping(self, expr: GroupingExpr) -> T:
        raise NotImplementedError

    def visit_unary(self, expr: UnaryExpr) -> T:
        raise NotImplementedError

    def visit_binary(self, expr: BinaryExpr) -> T:
        raise NotImplementedError
