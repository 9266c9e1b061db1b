import re
from typing import List, Optional

import sqlglot
from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import SqlglotError

from dump_anon.common.constants import DEFAULT_SQL_DIALECT
from dump_anon.common.enums import CellKind
from dump_anon.common.errors import StatementParseError

NUMBER_PATTERN = re.compile(r"-?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def validate_dialect(dialect: str) -> str:
    """
    Check that sqlglot knows the dialect
    :param dialect: dialect name, e.g. "mysql" or "postgres"
    :return: the same dialect name
    :raise ValueError: on unknown dialect
    """
    Dialect.get_or_raise(dialect)
    return dialect


def parse_insert(sql: str, dialect: str = DEFAULT_SQL_DIALECT) -> exp.Insert:
    """
    Parse exactly one INSERT statement (without the terminator)
    :param sql: statement text
    :param dialect: sqlglot dialect name
    :return: parsed INSERT expression
    :raise StatementParseError: on tokenize/parse failure, several statements or a statement of another kind
    """
    try:
        statements = [statement for statement in sqlglot.parse(sql, read=dialect) if statement is not None]
    except (SqlglotError, UnicodeError) as exc:
        raise StatementParseError(str(exc)) from exc

    if len(statements) != 1:
        raise StatementParseError(f"Expected one statement, got {len(statements)}")

    statement = statements[0]
    if not isinstance(statement, exp.Insert):
        raise StatementParseError(f"Expected INSERT statement, got {statement.key.upper()}")

    return statement


def render_insert(insert: exp.Insert, dialect: str = DEFAULT_SQL_DIALECT) -> str:
    return insert.sql(dialect=dialect)


def _get_table(insert: exp.Insert) -> Optional[exp.Table]:
    target = insert.this
    if isinstance(target, exp.Schema):
        target = target.this
    if isinstance(target, exp.Table):
        return target
    return None


def get_table_names(insert: exp.Insert) -> List[str]:
    """
    Names to look the table up by, most specific first: "db.table" (when qualified), then "table"
    """
    table = _get_table(insert)
    if table is None:
        return []

    if table.db:
        return [f"{table.db}.{table.name}", table.name]
    return [table.name]


def get_column_names(insert: exp.Insert) -> Optional[List[str]]:
    """
    Column names of the INSERT column list, None when the statement has no column list
    """
    target = insert.this
    if not isinstance(target, exp.Schema) or not target.expressions:
        return None

    return [column.name for column in target.expressions]


def get_rows(insert: exp.Insert) -> Optional[List[exp.Tuple]]:
    """
    Rows of INSERT ... VALUES, None for other row sources (INSERT ... SELECT and so on)
    """
    values = insert.expression
    if not isinstance(values, exp.Values):
        return None

    return [row for row in values.expressions if isinstance(row, exp.Tuple)]


def classify_cell(cell: exp.Expression) -> CellKind:
    if isinstance(cell, exp.Literal):
        return CellKind.STRING if cell.is_string else CellKind.NUMBER

    # sqlglot keeps the sign of a negative number as a separate node
    if isinstance(cell, exp.Neg) and isinstance(cell.this, exp.Literal) and not cell.this.is_string:
        return CellKind.NUMBER

    if isinstance(cell, exp.Null):
        return CellKind.NULL

    return CellKind.EXPRESSION


def get_literal_payload(cell: exp.Expression) -> str:
    if isinstance(cell, exp.Neg):
        return "-" + cell.this.this
    return cell.this


def is_number_payload(payload: str) -> bool:
    return NUMBER_PATTERN.fullmatch(payload) is not None


def make_literal(kind: CellKind, payload: str) -> exp.Expression:
    if kind == CellKind.STRING:
        return exp.Literal.string(payload)
    if kind == CellKind.NUMBER:
        return exp.Literal.number(payload)
    raise ValueError(f"Can't make literal of kind {kind.value}")
