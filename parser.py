import ast

from errors import ParseError
from expression import (
    Expr,
    NaryOp,
    NaryOperator,
    Number,
    Symbol,
    UnaryOp,
    UnaryOperator,
)

FACTORIAL_CALLS = ("factorial", "fac")

_BINOPS = {
    ast.Add: NaryOperator.ADD,
    ast.Mult: NaryOperator.MUL,
    ast.Pow: NaryOperator.POW,
}


def expand_factorials(source: str) -> str:
    """Turn postfix ``!`` into ``factorial(...)`` calls: '(a + b)!' -> 'factorial((a + b))'."""
    out = []
    for pos, c in enumerate(source):
        if c != "!":
            out.append(c)
            continue
        if source[pos + 1:pos + 2] == "=":
            raise ParseError("comparison is not an expression", source)

        end = len(out)
        while end > 0 and out[end - 1].isspace():
            end -= 1
        start = end
        if start > 0 and out[start - 1] == ")":
            level = 0
            while start > 0:
                start -= 1
                if out[start] == ")":
                    level += 1
                elif out[start] == "(":
                    level -= 1
                    if level == 0:
                        break
            if level != 0:
                raise ParseError("unbalanced parentheses before '!'", source)
        while start > 0 and (out[start - 1].isalnum() or out[start - 1] in "_."):
            start -= 1
        if start == end:
            raise ParseError("'!' without an operand", source)

        operand = "".join(out[start:end])
        del out[start:]
        out.append(f"factorial({operand})")
    return "".join(out)


class ExpressionParser(ast.NodeVisitor):
    """
    Walks a Python expression AST and builds the matching expression tree.

    Python nests binary operators pairwise (``a + b + c`` is ``(a + b) + c``),
    and the tree keeps that nesting; flattening is the simplifier's job.
    """

    def parse(self, source: str) -> Expr:
        """
        Parse infix text into a tree.

        ``^`` is read as exponentiation with the precedence and right
        associativity of ``**``, and postfix ``!`` is a factorial.
        """
        if not source.strip():
            raise ParseError("empty expression")
        text = expand_factorials(source).replace("^", "**")
        try:
            tree = ast.parse(text.strip(), mode="eval")
        except SyntaxError as exc:
            raise ParseError(f"invalid syntax ({exc.msg})", source) from None
        self.source = source
        return self.visit(tree.body)

    def generic_visit(self, node):
        raise ParseError(f"unsupported syntax {type(node).__name__}", self.source)

    def visit_BinOp(self, node: ast.BinOp) -> Expr:
        operator = _BINOPS.get(type(node.op))
        if operator is None:
            raise ParseError(f"unsupported operator {type(node.op).__name__}", self.source)
        return NaryOp(operator, (self.visit(node.left), self.visit(node.right)))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Expr:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        if isinstance(node.op, ast.USub) and isinstance(operand, Number):
            return Number(-operand.value)
        raise ParseError("negation is only supported on integer literals", self.source)

    def visit_Constant(self, node: ast.Constant) -> Expr:
        if isinstance(node.value, int) and not isinstance(node.value, bool):
            return Number(node.value)
        raise ParseError(f"unsupported literal {node.value!r}", self.source)

    def visit_Name(self, node: ast.Name) -> Expr:
        return Symbol(node.id)

    def visit_Call(self, node: ast.Call) -> Expr:
        if (
            isinstance(node.func, ast.Name)
            and node.func.id in FACTORIAL_CALLS
            and len(node.args) == 1
            and not node.keywords
        ):
            return UnaryOp(UnaryOperator.FACTORIAL, self.visit(node.args[0]))
        raise ParseError("only factorial(x) calls are supported", self.source)


def parse_expression(source: str) -> Expr:
    return ExpressionParser().parse(source)
