"""
Expression tree used by the parser, the simplifier and the printers.

A tree is built from four node types:

    Number(4)                               4
    Symbol("x")                             x
    UnaryOp(UnaryOperator.FACTORIAL, ...)   n!
    NaryOp(NaryOperator.ADD, (...))         a + b + c

Nodes are frozen dataclasses, so ``==`` is structural equality: same node
type, same operator, same value or name, and the same children in the same
order. Nothing is normalized before comparing, ``x * y`` and ``y * x`` are
different trees.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class UnaryOperator(Enum):
    FACTORIAL = "!"


class NaryOperator(Enum):
    ADD = "+"
    MUL = "*"
    POW = "^"

    @property
    def identity(self) -> int:
        return 0 if self is NaryOperator.ADD else 1

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]


_PRECEDENCE = {
    NaryOperator.ADD: 1,
    NaryOperator.MUL: 2,
    NaryOperator.POW: 3,
}


@dataclass(frozen=True)
class Number:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Symbol:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnaryOp:
    operator: UnaryOperator
    operand: "Expr"

    def __str__(self) -> str:
        operand = self.operand
        if isinstance(operand, Symbol) or (
            isinstance(operand, Number) and operand.value >= 0
        ):
            return f"{operand}{self.operator.value}"
        return f"({operand}){self.operator.value}"


@dataclass(frozen=True)
class NaryOp:
    operator: NaryOperator
    operands: Tuple["Expr", ...] = ()

    def __str__(self) -> str:
        if not self.operands:
            return str(self.operator.identity)
        if len(self.operands) == 1:
            return str(self.operands[0])
        sep = f" {self.operator.value} "
        return sep.join(_operand_str(child, self.operator) for child in self.operands)


Expr = Union[Number, Symbol, UnaryOp, NaryOp]
NODE_TYPES = (Number, Symbol, UnaryOp, NaryOp)


def _operand_str(child: Expr, parent: NaryOperator) -> str:
    if isinstance(child, Number) and child.value < 0:
        return f"({child})"
    if isinstance(child, NaryOp):
        if len(child.operands) == 1:
            return _operand_str(child.operands[0], parent)
        if len(child.operands) > 1 and (
            child.operator.precedence < parent.precedence
            or child.operator is parent is NaryOperator.POW
        ):
            return f"({child})"
    return str(child)


def format_sexpr(expr: Expr) -> str:
    """Render a tree as a prefix s-expression, e.g. ``(+ x (* 2 y))``."""
    if isinstance(expr, NaryOp):
        parts = [expr.operator.value] + [format_sexpr(o) for o in expr.operands]
        return "(" + " ".join(parts) + ")"
    if isinstance(expr, UnaryOp):
        return f"({expr.operator.value} {format_sexpr(expr.operand)})"
    return str(expr)


# ============================================================
# Builders
# ============================================================

def as_expr(value) -> Expr:
    """
    Coerce a Python value into a tree node.

    ints become Number, strings become Symbol and nodes pass through.
    """
    if isinstance(value, NODE_TYPES):
        return value
    if isinstance(value, bool):
        raise TypeError(f"cannot build an expression from {value!r}")
    if isinstance(value, int):
        return Number(value)
    if isinstance(value, str):
        return Symbol(value)
    raise TypeError(f"cannot build an expression from {type(value).__name__}")


def nary(operator: NaryOperator, *operands) -> NaryOp:
    return NaryOp(operator, tuple(as_expr(o) for o in operands))


def add(*operands) -> NaryOp:
    return nary(NaryOperator.ADD, *operands)


def mul(*operands) -> NaryOp:
    return nary(NaryOperator.MUL, *operands)


def power(*operands) -> NaryOp:
    return nary(NaryOperator.POW, *operands)


def factorial(operand) -> UnaryOp:
    return UnaryOp(UnaryOperator.FACTORIAL, as_expr(operand))
