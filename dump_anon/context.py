from pathlib import Path
from typing import Optional

from dump_anon.common.dto import RunOptions
from dump_anon.common.utils import read_yaml
from dump_anon.logger import setup_logger
from dump_anon.masking.rules import MaskingRuleSet, RawRules, compile_rules, validate_raw_rules


class Context:
    def __init__(self, options: RunOptions):
        self.options = options
        self.raw_rules: Optional[RawRules] = None  # for worker processes, compiled templates aren't picklable
        self.rules: Optional[MaskingRuleSet] = None
        self.logger = None
        self.setup_logger()

    def read_rules(self):
        config_path = Path(self.options.config)
        if not config_path.is_absolute():
            config_path = Path.cwd() / config_path

        self.set_rules(read_yaml(config_path))

        self.logger.info(
            f"Masking rules loaded from {config_path}: {len(self.rules)} table(s), "
            f"{self.rules.columns_count} column(s)"
        )
        for table_name, columns in self.rules.items():
            self.logger.debug(f"Table `{table_name}` masked columns: {', '.join(columns) or '-'}")

    def set_rules(self, raw_rules: RawRules):
        self.raw_rules = validate_raw_rules(raw_rules)
        self.rules = compile_rules(self.raw_rules)

    def setup_logger(self):
        log_file = Path(self.options.log_file) if self.options.log_file else None
        self.logger = setup_logger(self.options.verbose, log_file=log_file)
