from typing import BinaryIO, Optional

from dump_anon.common.dto import DumpAnonResult, RunOptions
from dump_anon.common.utils import exception_helper
from dump_anon.context import Context
from dump_anon.logger import close_log_file
from dump_anon.modes.mask import MaskMode
from dump_anon.version import __version__


class DumpAnonApp:

    def __init__(self, options: RunOptions, input_stream: Optional[BinaryIO] = None,
                 output_stream: Optional[BinaryIO] = None):
        self.context = Context(options)
        self.result = DumpAnonResult()
        self.input_stream = input_stream
        self.output_stream = output_stream

    def _bootstrap(self):
        self.context.logger.info(
            "============> Started dump_anon (v%s) in %s mode, operation id: %s"
            % (
                __version__,
                self.context.options.processing_mode.value,
                self.context.options.internal_operation_id,
            )
        )
        if self.context.options.debug:
            params_info = "#--------------- Run options\n"
            params_info += self.context.options.to_json()
            params_info += "\n#-----------------------------------"
            self.context.logger.debug(params_info)

    def _get_mode(self) -> MaskMode:
        return MaskMode(self.context, input_stream=self.input_stream, output_stream=self.output_stream)

    async def run(self) -> DumpAnonResult:
        self._bootstrap()
        self.result.start(self.context.options)
        try:
            # a broken rule file must fail the run before any line is read
            self.context.read_rules()

            if self.context.options.validate_rules:
                self.context.logger.info("Masking rules are valid")
            else:
                mode = self._get_mode()
                self.result.stats = mode.stats
                await mode.run()

            self.result.complete()
        except Exception as exc:
            self.context.logger.error(exception_helper(show_traceback=self.context.options.debug))
            self.result.fail(exc)

        self.context.logger.info(
            f"<============ Finished dump_anon, "
            f"result_code = {self.result.result_code.value}, "
            f"elapsed: {self.result.elapsed} sec"
        )
        if self.result.stats is not None:
            self.context.logger.info(f"Stats: {self.result.stats}")
        close_log_file()

        return self.result
