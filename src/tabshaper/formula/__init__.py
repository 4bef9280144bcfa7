"""Support for the formula language of computed columns.

Formulas are small expressions evaluated once for each row
of the dataset, the result of a formula becomes the value
of a new column. For example::

    price * qty
    IF(qty >= 10, "bulk", "retail")
    SUM(amount) / ROW()

The formula support is constituted by three major components:

1. Tokenizer
2. Parser
3. Evaluator

To evaluate a formula, you would typically combine them as following::

    ast = ExpressionParser(Tokenizer("price * qty").tokenize()).parse()
    evaluator = FormulaEvaluator(ast, rows, columns=["price", "qty"])
    value = evaluator.evaluate(0)  # value for the first row

The **Tokenizer** (:class:`tabshaper.formula.tokenize.Tokenizer`) converts the text of the
formula into a sequence of tokens, it's a simple regex-based tokenizer.

The **Parser** (:class:`tabshaper.formula.expressions.ExpressionParser`) is a recursive
descent parser that converts the tokens into an abstract syntax tree (AST) made of
nested dictionaries. A formula is parsed only once, however many rows it is evaluated on.

The **Evaluator** (:class:`tabshaper.formula.evaluator.FormulaEvaluator`) walks the AST
for each row, binding column names to the values of the row and providing
the functions ``SUM``, ``AVG``, ``LEN``, ``IF`` and ``ROW``.
"""

from .evaluator import FormulaEvaluationError, FormulaEvaluator
from .expressions import ExpressionParser, FormulaParseError, parse_formula
from .tokenize import FormulaTokenizeException, Tokenizer

__all__ = (
    "ExpressionParser",
    "FormulaEvaluator",
    "Tokenizer",
    "parse_formula",
    "FormulaEvaluationError",
    "FormulaParseError",
    "FormulaTokenizeException",
)
