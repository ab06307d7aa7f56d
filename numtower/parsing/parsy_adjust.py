#
# Parser descriptions and readable parse error messages
#
# parsy reports a failure as the set of descriptions it expected at the
# furthest position reached. The combinators here control those
# descriptions so that users see "a rational such as 3/4" rather than a raw
# regular expression, and ErrorLocation turns a ParseError into a message
# that points at the offending character.
#
from __future__ import annotations

from collections.abc   import Iterable
from dataclasses       import dataclass
from typing            import Literal

from parsy             import ParseError, Parser, Result
from rich.markup       import escape

MessageStyle = Literal['plain', 'rich', 'short']

CONTEXT_BEFORE = 5
CONTEXT_AFTER = 5
ELLIPSIS_AFTER = 8   # show '...' once this many characters precede the window


#
# Expected descriptions
#

def join_nl(terms: Iterable[str], *, conjunction: str = 'or') -> str:
    "Distinct terms as a natural language list, in sorted order."
    words = sorted(set(terms))
    if not words:
        return 'nothing'
    if len(words) <= 2:
        return f' {conjunction} '.join(words)
    return ', '.join(words[:-1]) + f', {conjunction} ' + words[-1]

def describe_expected(expected: Iterable[str]) -> str:
    words = sorted(set(expected))
    lead = {0: '', 1: '', 2: 'either '}.get(len(words), 'one of ')
    return lead + join_nl(words)


#
# Combinators
#

def relabel(description: str, p: Parser) -> Parser:
    "On failure, reports only `description` at the starting position."
    @Parser
    def relabelled(stream, index) -> Result:
        result = p(stream, index)
        return result if result.status else Result.failure(index, description)
    return relabelled


#
# Error messages
#

@dataclass(frozen=True)
class ErrorLocation:
    text: str
    index: int
    expected: frozenset[str]

    @classmethod
    def from_parse_error(cls, e: ParseError) -> ErrorLocation:
        return cls(e.stream, e.index, frozenset(e.expected))

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.text)

    @property
    def where(self) -> str:
        return 'the end of the input' if self.at_end else f'character {self.index + 1}'

    def window(self) -> tuple[str, str, str]:
        "Text before the error, the offending character, and a little after."
        start = max(self.index - CONTEXT_BEFORE, 0)
        lead = '...' if self.index > ELLIPSIS_AFTER else ''
        before = lead + self.text[start:self.index]
        offending = '' if self.at_end else self.text[self.index]
        after = self.text[self.index + 1:self.index + 1 + CONTEXT_AFTER]
        return before, offending, after

    def render(self, style: MessageStyle = 'plain') -> str:
        before, offending, after = self.window()
        expected = describe_expected(self.expected)
        if style == 'short':
            return f'Expected {expected} at {self.where}: "{before}*{offending}{after}"'

        pointer = ' ' * (len(before) + 5) + '^'
        heading = f'I expected to see {expected} at {self.where}:'
        if style == 'rich':
            heading = escape(heading)
            before, offending, after = escape(before), escape(offending), escape(after)
            quoted = f'"[parse.context]{before}[/][parse.error]{offending}[/]{after}"'
            pointer = pointer[:-1] + '[parse.error]^[/]'
        else:
            quoted = f'"{before}{offending}{after}"'
        return f'{heading}\n    {quoted}\n{pointer}'

def parse_error_message(e: ParseError, rich=True, short=False) -> str:
    # short only applies when rich is off
    style: MessageStyle = 'rich' if rich else ('short' if short else 'plain')
    return ErrorLocation.from_parse_error(e).render(style)
