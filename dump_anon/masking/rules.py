import collections.abc
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

import jinja2

from dump_anon.common.errors import ConfigError, RuleCompileError

RawRules = Dict[str, Dict[str, str]]


def create_template_environment() -> jinja2.Environment:
    return jinja2.Environment(
        autoescape=False,
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
    )


def validate_raw_rules(raw_rules: Any) -> RawRules:
    """
    Check the shape of a rules document: table -> {column -> template string}
    :param raw_rules: deserialized rules document
    :return: the same document
    :raise ConfigError: on unexpected shape or types
    """
    if not raw_rules:
        raise ConfigError("Masking rules are empty")

    if not isinstance(raw_rules, dict):
        raise ConfigError(f"Masking rules must be a mapping of tables, got {type(raw_rules).__name__}")

    for table_name, columns in raw_rules.items():
        if not isinstance(table_name, str):
            raise ConfigError(f"Table name must be a string, got {table_name!r}")

        if not isinstance(columns, dict):
            raise ConfigError(f"Rules of table `{table_name}` must be a mapping of columns to templates")

        for column_name, template_source in columns.items():
            if not isinstance(column_name, str):
                raise ConfigError(f"Column name in table `{table_name}` must be a string, got {column_name!r}")

            if not isinstance(template_source, str):
                raise ConfigError(
                    f"Template of column `{table_name}`.`{column_name}` must be a string, got {template_source!r}"
                )

    return raw_rules


class MaskingRuleSet(collections.abc.Mapping):
    """
    Read-only mapping: table name -> column name -> compiled template.
    Built once at startup, safe to share between readers.
    """

    def __init__(self, rules: Mapping[str, Mapping[str, jinja2.Template]]):
        self._rules = MappingProxyType({
            table_name: MappingProxyType(dict(columns))
            for table_name, columns in rules.items()
        })

    def __getitem__(self, table_name: str) -> Mapping[str, jinja2.Template]:
        return self._rules[table_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def columns_count(self) -> int:
        return sum(len(columns) for columns in self._rules.values())

    def find_table_rules(self, table_names: Iterable[str]) -> Optional[Mapping[str, jinja2.Template]]:
        """
        Rules of the first table name found in the rule set
        :param table_names: candidate names, most specific first
        :return: column rules, or None when the table isn't masked
        """
        for table_name in table_names:
            table_rules = self._rules.get(table_name)
            if table_rules is not None:
                return table_rules
        return None


def compile_rules(raw_rules: Any, environment: Optional[jinja2.Environment] = None) -> MaskingRuleSet:
    """
    Compile every template of the rules document. Any broken template fails the whole rule set.
    :param raw_rules: table -> {column -> template source}
    :param environment: jinja2 environment to compile with
    :return: compiled rule set
    :raise ConfigError: on malformed document
    :raise RuleCompileError: on template syntax error
    """
    raw_rules = validate_raw_rules(raw_rules)
    environment = environment or create_template_environment()

    compiled = {}
    for table_name, columns in raw_rules.items():
        compiled[table_name] = {}
        for column_name, template_source in columns.items():
            try:
                compiled[table_name][column_name] = environment.from_string(template_source)
            except jinja2.TemplateSyntaxError as exc:
                raise RuleCompileError(table_name, column_name, f"line {exc.lineno}: {exc.message}") from exc

    return MaskingRuleSet(compiled)
