"""
Single-sweep algebraic simplifier.

Every node is rewritten bottom-up by a fixed, ordered pipeline:

  1) recurse             → simplify the operands of n-ary nodes first
  2) flatten             → (a + b) + c  becomes  a + b + c
  3) combine_like_terms  → y*x*2 + x + x*2  becomes  (y*2 + 3) * x
  4) fold_unary          → 4!  becomes  24
  5) fold_nary           → 1 + a + 2 + 3  becomes  a + 6

The pipeline runs once per call; it is not iterated to a fixpoint.
"""

import math
from typing import List, Optional

from log_config import get_logger

from errors import RecursionDepthExceeded
from expression import (
    Expr,
    NaryOp,
    NaryOperator,
    Number,
    UnaryOp,
    UnaryOperator,
    format_sexpr,
)

logger = get_logger("simplifier")

MAX_DEPTH = 32
FACTORIAL_LIMIT = 10
# Power folds that would produce a literal wider than this are left symbolic.
POWER_FOLD_MAX_BITS = 4096


def rebuild(operator: NaryOperator, operands) -> Expr:
    """
    Build an n-ary node from rewritten operands.

    A node left with a single operand collapses to that operand and an
    empty one collapses to the operator's identity.
    """
    operands = tuple(operands)
    if not operands:
        return Number(operator.identity)
    if len(operands) == 1:
        return operands[0]
    return NaryOp(operator, operands)


class RewriteStep:
    """A single pass application that changed a node."""

    def __init__(self, rewrite: str, depth: int, before: Expr, after: Expr):
        self.rewrite = rewrite
        self.depth = depth
        self.before = before
        self.after = after

    def __repr__(self) -> str:
        return f"{self.rewrite}@{self.depth}: {self.before} → {self.after}"

    def to_dict(self) -> dict:
        return {
            "rewrite": self.rewrite,
            "depth": self.depth,
            "before": format_sexpr(self.before),
            "after": format_sexpr(self.after),
        }


class SimplifyTrace:
    """
    Every rewrite applied during one simplification, in application order.

    Formatting styles:
        - "verbose": one line per step with depth, before and after (default)
        - "compact": single line, initial --[passes]--> final
        - "passes":  just the pass names
        - "chain":   the expression after each step
    """

    def __init__(self, initial: Optional[Expr] = None):
        self.steps: List[RewriteStep] = []
        self.initial = initial
        self.final: Optional[Expr] = None

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def format(self, style: str = "verbose") -> str:
        names = [s.rewrite for s in self.steps]
        if style == "compact":
            return f"{self.initial} --[{', '.join(names)}]--> {self.final}"
        elif style == "passes":
            return " -> ".join(names) if names else "(no rewrites applied)"
        elif style == "chain":
            parts = [str(self.initial)]
            for step in self.steps:
                parts.append(f"  --({step.rewrite})-->")
                parts.append(str(step.after))
            return "\n".join(parts)
        elif style == "verbose":
            return repr(self)
        raise ValueError(f"unknown trace style: {style!r}")

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step!r}")
        lines.append(f"Final: {self.final}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "initial": format_sexpr(self.initial) if self.initial is not None else None,
            "final": format_sexpr(self.final) if self.final is not None else None,
            "steps": [s.to_dict() for s in self.steps],
        }


class Simplifier:
    """
    Applies the rewrite pipeline to every node of a tree in one sweep.

    The input tree is never mutated; every pass returns either its input or
    a freshly built node.
    """

    def __init__(
        self,
        max_depth: int = MAX_DEPTH,
        factorial_limit: int = FACTORIAL_LIMIT,
    ):
        self.max_depth = max_depth
        self.factorial_limit = factorial_limit
        self._passes = (
            ("flatten", self.flatten),
            ("combine_like_terms", self.combine_like_terms),
            ("fold_unary", self.fold_unary),
            ("fold_nary", self.fold_nary),
        )

    def __call__(self, expr: Expr) -> Expr:
        return self.simplify(expr)

    def simplify(self, expr: Expr) -> Expr:
        """Simplify a whole tree, starting at depth 0."""
        return self.simplify_node(expr, 0)

    def simplify_with_trace(self, expr: Expr):
        """
        Simplify a tree and return ``(result, SimplifyTrace)``.

        Each call records into a fresh trace; nothing is kept on the
        simplifier, so one instance can serve concurrent callers.
        """
        trace = SimplifyTrace(expr)
        trace.final = self.simplify_node(expr, 0, trace)
        return trace.final, trace

    def simplify_node(self, expr: Expr, depth: int, trace: Optional[SimplifyTrace] = None) -> Expr:
        if depth >= self.max_depth:
            logger.error("recursion_depth_exceeded", depth=depth, limit=self.max_depth)
            raise RecursionDepthExceeded(depth, self.max_depth)

        expr = self.recurse(expr, depth, trace)
        for name, rewrite in self._passes:
            result = rewrite(expr, depth)
            if result != expr:
                logger.debug(
                    "rewrite_applied",
                    rewrite=name,
                    depth=depth,
                    before=format_sexpr(expr),
                    after=format_sexpr(result),
                )
                if trace is not None:
                    trace.add_step(RewriteStep(name, depth, expr, result))
            expr = result
        return expr

    def recurse(self, expr: Expr, depth: int, trace: Optional[SimplifyTrace] = None) -> Expr:
        """
        Simplify each operand of an n-ary node one level deeper.

        Factorial operands are left alone here; they are only ever touched
        by fold_unary.
        """
        if not isinstance(expr, NaryOp):
            return expr
        return rebuild(
            expr.operator,
            (self.simplify_node(o, depth + 1, trace) for o in expr.operands),
        )

    def flatten(self, expr: Expr, depth: int = 0) -> Expr:
        """Splice operands that use the same operator as their parent, one level."""
        if not isinstance(expr, NaryOp):
            return expr
        operands = []
        for operand in expr.operands:
            if isinstance(operand, NaryOp) and operand.operator is expr.operator:
                operands.extend(operand.operands)
            else:
                operands.append(operand)
        return rebuild(expr.operator, operands)

    def combine_like_terms(self, expr: Expr, depth: int = 0) -> Expr:
        """
        Merge the terms of a sum that share a factor into ``coefficient * factor``.

        Terms are visited left to right. A product tries each of its own
        factors in order and keeps the first one that also occurs in a later
        term; a product whose factors occur nowhere else is dropped from the
        sum. Any other term is its own factor.
        """
        if not (isinstance(expr, NaryOp) and expr.operator is NaryOperator.ADD):
            return expr

        terms = expr.operands
        new_terms = []
        consumed = set()

        for i, term in enumerate(terms):
            if i in consumed:
                continue

            coefficients = []
            factor = None
            if isinstance(term, NaryOp) and term.operator is NaryOperator.MUL:
                for looking_for in term.operands:
                    for j in range(i, len(terms)):
                        coeff = self.extract_coefficient(terms[j], looking_for)
                        if coeff is not None:
                            factor = looking_for
                            consumed.add(j)
                            coefficients.append(coeff)

                    # nothing else shares this factor
                    if len(coefficients) == 1:
                        factor = None
                        coefficients.clear()

                    if factor is not None:
                        break
            else:
                for j in range(i, len(terms)):
                    coeff = self.extract_coefficient(terms[j], term)
                    if coeff is not None:
                        consumed.add(j)
                        coefficients.append(coeff)
                if coefficients:
                    factor = term

            if factor is None:
                logger.debug("term_dropped", term=format_sexpr(term), position=i)
                continue

            coefficient = self.fold_nary(NaryOp(NaryOperator.ADD, tuple(coefficients)), depth)
            if coefficient == Number(1):
                new_terms.append(factor)
            else:
                new_terms.append(NaryOp(NaryOperator.MUL, (coefficient, factor)))

        return rebuild(NaryOperator.ADD, new_terms)

    @staticmethod
    def extract_coefficient(term: Expr, looking_for: Expr) -> Optional[Expr]:
        """
        Return what is left of ``term`` once ``looking_for`` is taken out of it.

        For an n-ary term only the first structurally equal operand is
        removed, and the rest keep the term's operator. A leaf or factorial
        equal to ``looking_for`` leaves the literal 1. Returns None when the
        factor does not occur.
        """
        if isinstance(term, NaryOp):
            rest = list(term.operands)
            for index, operand in enumerate(rest):
                if operand == looking_for:
                    del rest[index]
                    return rebuild(term.operator, rest)
            return None
        if term == looking_for:
            return Number(1)
        return None

    def fold_unary(self, expr: Expr, depth: int = 0) -> Expr:
        """Replace the factorial of a small non-negative literal with its value."""
        if (
            isinstance(expr, UnaryOp)
            and expr.operator is UnaryOperator.FACTORIAL
            and isinstance(expr.operand, Number)
            and 0 <= expr.operand.value <= self.factorial_limit
        ):
            return Number(math.factorial(expr.operand.value))
        return expr

    def fold_nary(self, expr: Expr, depth: int = 0) -> Expr:
        """
        Fold the literal operands of an n-ary node into one trailing literal.

        Power folds right-nested in operand order: each literal becomes the
        base and the result so far the exponent, so ``2 ^ 3`` folds to
        ``3 ^ (2 ^ 1) = 9``. Power literals are left as they are when an
        exponent would be negative or the result would be enormous.
        """
        if not isinstance(expr, NaryOp):
            return expr

        operator = expr.operator
        result = operator.identity
        operands = []
        for operand in expr.operands:
            if not isinstance(operand, Number):
                operands.append(operand)
                continue
            value = operand.value
            if operator is NaryOperator.ADD:
                result += value
            elif operator is NaryOperator.MUL:
                result *= value
            else:
                if result < 0 or (abs(value) > 1 and value.bit_length() * result > POWER_FOLD_MAX_BITS):
                    logger.debug("power_fold_skipped", node=format_sexpr(expr))
                    return expr
                result = value ** result

        if result != operator.identity:
            operands.append(Number(result))
        return rebuild(operator, operands)


def simplify(expr: Expr) -> Expr:
    """Simplify ``expr`` with the default limits."""
    return Simplifier().simplify(expr)
