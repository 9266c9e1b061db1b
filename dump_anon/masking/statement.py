import re
from typing import List, Mapping, Optional

import jinja2
from sqlglot import exp

from dump_anon.common.constants import DEFAULT_HASH_COST, DEFAULT_SQL_DIALECT, STATEMENT_TERMINATOR, \
    TEMPLATE_VALUE_NAME
from dump_anon.common.dto import MaskStats
from dump_anon.common.enums import CellKind
from dump_anon.common.errors import HashingError, StatementParseError, TemplateRenderError
from dump_anon.common.sql_utils import parse_insert, get_table_names, get_column_names, get_rows, classify_cell, \
    get_literal_payload, is_number_payload, make_literal, render_insert
from dump_anon.logger import get_logger
from dump_anon.masking.rules import MaskingRuleSet
from dump_anon.masking.template_value import TemplateValue

INSERT_PATTERN = re.compile(r"insert\b", re.IGNORECASE)


def is_candidate(line: str) -> bool:
    return INSERT_PATTERN.match(line) is not None


def strip_terminator(line: str) -> str:
    statement = line.rstrip()
    if statement.endswith(STATEMENT_TERMINATOR):
        statement = statement[:-len(STATEMENT_TERMINATOR)]
    return statement


class StatementMasker:
    """
    Masks column values of one-line INSERT statements.

    Lines which are not INSERT statements, INSERTs into tables without rules and INSERTs which can't be parsed
    are returned exactly as they came. INSERTs into masked tables are re-rendered by sqlglot, so their
    formatting may differ from the input.
    """

    def __init__(self, rules: MaskingRuleSet, dialect: str = DEFAULT_SQL_DIALECT,
                 hash_cost: int = DEFAULT_HASH_COST, logger=None):
        self.rules = rules
        self.dialect = dialect
        self.hash_cost = hash_cost
        self.logger = logger or get_logger()
        self.stats = MaskStats()

    def mask_line(self, line: str) -> Optional[str]:
        """
        :param line: one input line without the trailing newline
        :return: line to output, None when the line must be dropped (empty line)
        """
        if not line:
            return None

        if not is_candidate(line):
            return line

        self.stats.candidates += 1

        try:
            insert = parse_insert(strip_terminator(line), self.dialect)
        except StatementParseError as exc:
            self.stats.parse_errors += 1
            self.logger.error(f"Can't parse INSERT statement, passing it through unmasked: {exc}")
            return line

        table_names = get_table_names(insert)
        table_rules = self.rules.find_table_rules(table_names)
        if table_rules is None:
            self.logger.debug(f"No masking rules for table `{table_names[0] if table_names else '?'}`")
            return line

        table_name = table_names[0]

        column_names = get_column_names(insert)
        if column_names is None:
            self.logger.warning(
                f"INSERT into `{table_name}` has no column list, columns can't be matched. Passing it through unmasked"
            )
            return line

        rows = get_rows(insert)
        if rows is None:
            self.logger.warning(f"INSERT into `{table_name}` has no VALUES rows. Passing it through unmasked")
            return line

        self.logger.info(f"Masking `{table_name}`...")
        for row in rows:
            self._mask_row(table_name, column_names, table_rules, row)

        self.stats.masked_statements += 1
        return render_insert(insert, self.dialect) + STATEMENT_TERMINATOR

    def _mask_row(self, table_name: str, column_names: List[str], table_rules: Mapping[str, jinja2.Template],
                  row: exp.Tuple):
        cells = list(row.expressions)

        # cells beyond the column list have no name and are left as they are
        for position, (column_name, cell) in enumerate(zip(column_names, cells)):
            template = table_rules.get(column_name)
            if template is None:
                continue

            kind = classify_cell(cell)
            if kind in (CellKind.STRING, CellKind.NUMBER):
                masked_value = self._render(template, table_name, column_name, get_literal_payload(cell))
                if kind == CellKind.NUMBER and not is_number_payload(masked_value):
                    self.logger.warning(
                        f"Template of numeric column `{table_name}`.`{column_name}` rendered a non-numeric value, "
                        f"writing it as a string literal"
                    )
                    kind = CellKind.STRING
                cells[position] = make_literal(kind, masked_value)
                self.stats.masked_cells += 1
            elif kind == CellKind.NULL:
                self.logger.debug(f"Column `{table_name}`.`{column_name}` is NULL, nothing to mask")
            elif kind == CellKind.EXPRESSION:
                self.stats.skipped_cells += 1
                self.logger.warning(
                    f"Column `{table_name}`.`{column_name}` holds an expression instead of a literal, "
                    f"left unmasked: {cell.sql(dialect=self.dialect)}"
                )
            else:
                raise ValueError(f"Unknown cell kind: {kind}")

        row.set("expressions", cells)

    def _render(self, template: jinja2.Template, table_name: str, column_name: str, payload: str) -> str:
        try:
            return template.render({TEMPLATE_VALUE_NAME: TemplateValue(payload, self.hash_cost)})
        except HashingError:
            raise
        except Exception as exc:
            raise TemplateRenderError(
                f"Can't render template of column `{table_name}`.`{column_name}`: {exc}"
            ) from exc
