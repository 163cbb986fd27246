from functools import reduce

import sympy

from expression import Expr, NaryOp, NaryOperator, Number, Symbol, UnaryOp, UnaryOperator


def to_sympy(expr: Expr) -> sympy.Expr:
    """
    Convert a tree into the equivalent SymPy expression.

    Power chains read right-nested, so ``a ^ b ^ c`` is ``a ** (b ** c)``.
    """
    if isinstance(expr, Number):
        return sympy.Integer(expr.value)
    if isinstance(expr, Symbol):
        return sympy.Symbol(expr.name)
    if isinstance(expr, UnaryOp):
        if expr.operator is UnaryOperator.FACTORIAL:
            return sympy.factorial(to_sympy(expr.operand))
        raise TypeError(f"no SymPy form for {expr.operator}")
    if isinstance(expr, NaryOp):
        args = [to_sympy(o) for o in expr.operands]
        if expr.operator is NaryOperator.ADD:
            return sympy.Add(*args)
        if expr.operator is NaryOperator.MUL:
            return sympy.Mul(*args)
        if not args:
            return sympy.Integer(1)
        return reduce(lambda exponent, base: sympy.Pow(base, exponent), reversed(args))
    raise TypeError(f"not an expression: {expr!r}")


def equivalent(before: Expr, after: Expr) -> bool:
    """True when both trees denote the same value for every symbol assignment."""
    difference = sympy.simplify(to_sympy(before) - to_sympy(after))
    return difference == 0
