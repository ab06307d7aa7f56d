#
# A singleton environment for capturing global numeric options.
#
# This holds the default precision used when an unlimited computation must be
# rounded, the policy for square roots of negative values, limits on constant
# generation, and output preferences. Options are meant to be set once at
# start-up; the environment is not thread safe.
#
from __future__ import annotations

import logging

from dataclasses       import dataclass, field
from decimal           import ROUND_HALF_EVEN
from typing            import Literal, Optional

from rich.console      import Console
from rich.logging      import RichHandler
from rich.theme        import Theme

from numtower.exceptions import ConstructionError

# Styles used in the markup produced by numeric values and parse errors
bright_theme = Theme({
    "numeric.value": "#3333cc",
    "numeric.inexact": "#996600",
    "parse.context": "#71716f",
    "parse.error": "#ff0f0f bold",
    "logging.level.debug": "#71716f",
})

dark_theme = Theme({
    "numeric.value": "#cccc33",
    "numeric.inexact": "#ffcc66",
    "parse.context": "#a0a09c",
    "parse.error": "#ff6666 bold",
    "logging.level.debug": "#a0a09c",
})

NegativeSqrtPolicy = Literal['promote', 'fail']


@dataclass
class Environment:
    """Options governing numeric computation and display, globally available.

    Precision and root options change results; the display options only
    affect text and rich rendering.
    """
    default_digits: int = 34
    default_rounding: str = ROUND_HALF_EVEN
    negative_sqrt: NegativeSqrtPolicy = 'promote'
    max_constant_digits: int = 100_000
    ascii_only: bool = False       # use @ for polar angles and ~ for approximations
    dark_mode: bool = False
    is_interactive: bool = False   # repr shows bare values
    console: Console = field(default_factory=lambda: Console(highlight=False, theme=bright_theme))

    def set_precision(self, digits: int, rounding: Optional[str] = None) -> None:
        "Sets the precision used when an unlimited computation must be rounded."
        if digits <= 0:
            raise ConstructionError(f'Default precision must be a positive number of digits, got {digits}')
        self.default_digits = digits
        if rounding is not None:
            self.default_rounding = rounding

    def promote_negative_roots(self) -> None:
        "Square roots of negative values produce Complex results."
        self.negative_sqrt = 'promote'

    def fail_negative_roots(self) -> None:
        "Square roots of negative values raise NumericArithmeticError."
        self.negative_sqrt = 'fail'

    def on_ascii_only(self) -> None:
        self.ascii_only = True

    def off_ascii_only(self) -> None:
        self.ascii_only = False

    def _use_theme(self, dark: bool) -> None:
        if dark and not self.dark_mode:
            self.console.push_theme(dark_theme)
        elif self.dark_mode and not dark:
            self.console.pop_theme()
        self.dark_mode = dark

    def on_dark_mode(self) -> None:
        "Styles suited to dark terminal backgrounds"
        self._use_theme(True)

    def on_bright_mode(self) -> None:
        "Styles suited to light terminal backgrounds (the default)"
        self._use_theme(False)

    def interactive_mode(self, ascii: Optional[bool] = None) -> None:
        "Marks the session as interactive, optionally choosing ASCII output."
        self.is_interactive = True
        if ascii is not None:
            self.ascii_only = ascii

    def enable_logging(self, level: int | str = logging.INFO) -> logging.Logger:
        """Sends numtower log records to this environment's console.

        The library itself never configures logging; call this from an
        application or an interactive session to see coercion and constant
        registry activity.
        """
        logger = logging.getLogger('numtower')
        for handler in list(logger.handlers):
            if isinstance(handler, RichHandler):
                logger.removeHandler(handler)
        handler = RichHandler(console=self.console, show_path=False)
        logger.addHandler(handler)
        logger.setLevel(level)
        return logger

    def console_str(self, renderable) -> str:
        "The text the console would print for `renderable`, styles included."
        with self.console.capture() as capture:
            self.console.print(renderable)
        return capture.get()

environment = Environment()
