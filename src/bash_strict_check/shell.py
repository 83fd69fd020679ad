"""Lexical view of a Bash script.

This is not a Bash parser. Scripts are split into logical lines (physical
lines joined across backslash continuations, open quotes and open ``$(...)``
groups, with here-document bodies dropped), tokenized into words and
operators, and grouped into simple statements. That is enough to recognise
``set``, ``trap`` and pipelines reliably without executing anything.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Sequence

from bash_strict_check.models import Script

OPERATOR_CHARS = frozenset(";&|()<>")

# Longest first so greedy matching picks "&&" over "&", "<<-" over "<<", ...
OPERATORS = sorted(
    [
        ";;&", "<<-", "<<<", "&>>",
        ";;", ";&", "&&", "||", "|&", ">>", "<<", ">&", "<&", "&>", ">|", "<>", "((", "))",
        ";", "&", "|", "(", ")", "<", ">",
    ],
    key=len,
    reverse=True,
)

SEPARATORS = frozenset({";", "&&", "||", "|", "|&", "&", ";;", ";&", ";;&", "(", ")", "\n"})
REDIRECTIONS = frozenset({"<", ">", ">>", ">&", "<&", "&>", "&>>", "<<", "<<-", "<<<", ">|", "<>"})
PIPE_OPERATORS = frozenset({"|", "|&"})
CASE_TERMINATORS = frozenset({";;", ";&", ";;&"})

# Words that may precede the command name of a simple statement.
RESERVED_PREFIXES = frozenset({"!", "{", "then", "else", "elif", "do", "time", "if", "while", "until"})

SHORT_SET_OPTIONS = {
    "e": "errexit",
    "u": "nounset",
    "E": "errtrace",
    "x": "xtrace",
    "v": "verbose",
    "T": "functrace",
    "f": "noglob",
    "C": "noclobber",
}

ENV_FLAGS_WITH_VALUE = frozenset({"-u", "--unset", "-C", "--chdir"})

COMMENT_LEADERS = frozenset(" \t\n;|&(")
GROUP_HEREDOC_RE = re.compile(r"<<(-?)[ \t]*(['\"]?)([^\s'\"<>;&|()]+)\2")
PRAGMA_RE = re.compile(r"strict-check:\s*(disable|disable-file)\s*=\s*([\w-]+(?:\s*,\s*[\w-]+)*)")


@dataclass(frozen=True)
class Token:
    text: str
    is_operator: bool = False


@dataclass(frozen=True)
class LogicalLine:
    line_number: int
    end_line: int
    text: str
    tokens: tuple[Token, ...]
    comment: str | None = None


@dataclass(frozen=True)
class Statement:
    line_number: int
    end_line: int
    words: tuple[str, ...]
    connector: str | None = None
    conditional: bool = False
    position: int = 0

    @property
    def command(self) -> tuple[str, ...]:
        index = 0
        while index < len(self.words) and self.words[index] in RESERVED_PREFIXES:
            index += 1
        return self.words[index:]

    @property
    def name(self) -> str | None:
        command = self.command
        return command[0] if command else None

    @property
    def args(self) -> tuple[str, ...]:
        return self.command[1:]


@dataclass(frozen=True)
class Pipe:
    line_number: int
    operator: str
    position: int = 0


@dataclass(frozen=True)
class Shebang:
    path: str
    interpreter: str
    args: tuple[str, ...]
    via_env: bool


@dataclass(frozen=True)
class ParsedScript:
    script: Script
    logical_lines: tuple[LogicalLine, ...]
    statements: tuple[Statement, ...]
    pipes: tuple[Pipe, ...]

    def line_text(self, line_number: int | None) -> str:
        if line_number is None or not 1 <= line_number <= self.script.line_count:
            return ""
        return self.script.lines[line_number - 1].strip()

    def commands(self, name: str) -> list[Statement]:
        return [item for item in self.statements if item.name == name]

    def comments_near(self, line_number: int, end_line: int | None = None, *, before: int = 1, after: int = 1) -> list[str]:
        low = line_number - before
        high = (end_line or line_number) + after
        return [
            line.comment
            for line in self.logical_lines
            if line.comment is not None and line.end_line >= low and line.line_number <= high
        ]


@dataclass(frozen=True)
class _Scan:
    tokens: tuple[Token, ...]
    comment: str | None
    incomplete: bool


def parse_script(script: Script) -> ParsedScript:
    logical = logical_lines(script.lines)
    statements, pipes = _walk(logical)
    return ParsedScript(
        script=script,
        logical_lines=tuple(logical),
        statements=tuple(statements),
        pipes=tuple(pipes),
    )


def logical_lines(lines: Sequence[str]) -> list[LogicalLine]:
    result: list[LogicalLine] = []
    total = len(lines)
    index = 0

    while index < total:
        start = index
        buffer = lines[index]
        index += 1
        scanned = scan(buffer)
        while scanned.incomplete and index < total:
            buffer = f"{buffer}\n{lines[index]}"
            index += 1
            scanned = scan(buffer)

        # Still open at end of file: keep the first physical line on its own.
        if scanned.incomplete and index - start > 1:
            buffer = lines[start]
            index = start + 1
            scanned = scan(buffer)

        result.append(
            LogicalLine(
                line_number=start + 1,
                end_line=index,
                text=buffer,
                tokens=scanned.tokens,
                comment=scanned.comment,
            )
        )

        for delimiter, strip_tabs in _heredoc_delimiters(scanned.tokens):
            while index < total:
                body = lines[index]
                index += 1
                candidate = body.lstrip("\t") if strip_tabs else body
                if candidate.rstrip() == delimiter:
                    break

    return result


def scan(text: str) -> _Scan:
    tokens: list[Token] = []
    comments: list[str] = []
    word: list[str] = []
    in_word = False
    length = len(text)
    i = 0

    def flush() -> None:
        nonlocal in_word
        if in_word:
            tokens.append(Token("".join(word)))
            word.clear()
            in_word = False

    while i < length:
        ch = text[i]

        if ch == "\\":
            if i + 1 >= length:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            if text[i + 1] != "\n":
                word.append(text[i + 1])
                in_word = True
            i += 2
            continue

        if ch == "'":
            end = text.find("'", i + 1)
            if end == -1:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            word.append(text[i + 1:end])
            in_word = True
            i = end + 1
            continue

        if ch == '"':
            end, value = _read_double_quoted(text, i)
            if end == -1:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            word.append(value)
            in_word = True
            i = end + 1
            continue

        if ch == "$" and i + 1 < length and text[i + 1] == "'":
            end = _find_unescaped(text, "'", i + 2)
            if end == -1:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            word.append(text[i + 2:end])
            in_word = True
            i = end + 1
            continue

        if ch == "$" and i + 1 < length and text[i + 1] in "({":
            end = _match_group(text, i + 1)
            if end == -1:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            word.append(text[i:end + 1])
            in_word = True
            i = end + 1
            continue

        if ch == "`":
            end = _find_unescaped(text, "`", i + 1)
            if end == -1:
                return _Scan(tuple(tokens), _join_comments(comments), True)
            word.append(text[i:end + 1])
            in_word = True
            i = end + 1
            continue

        if ch in " \t":
            flush()
            i += 1
            continue

        if ch == "\n":
            flush()
            tokens.append(Token("\n", True))
            i += 1
            continue

        if ch == "#" and not in_word:
            end = text.find("\n", i)
            if end == -1:
                end = length
            comments.append(text[i + 1:end].strip())
            i = end
            continue

        if ch in OPERATOR_CHARS:
            flush()
            if ch in "<>" and i + 1 < length and text[i + 1] == "(":
                end = _match_group(text, i + 1)
                if end == -1:
                    return _Scan(tuple(tokens), _join_comments(comments), True)
                tokens.append(Token(text[i:end + 1]))
                i = end + 1
                continue
            operator = next(op for op in OPERATORS if text.startswith(op, i))
            tokens.append(Token(operator, True))
            i += len(operator)
            continue

        word.append(ch)
        in_word = True
        i += 1

    flush()
    return _Scan(tuple(tokens), _join_comments(comments), False)


def parse_set_options(args: Iterable[str]) -> dict[str, bool]:
    """Map option names to enabled/disabled for the flags of one ``set`` call.

    ``set -Eeuo pipefail`` gives ``{"errtrace": True, "errexit": True,
    "nounset": True, "pipefail": True}``; ``set +e`` gives ``{"errexit": False}``.
    Parsing stops at the first positional argument or ``--``.
    """
    options: dict[str, bool] = {}
    items = list(args)
    index = 0
    while index < len(items):
        arg = items[index]
        if arg in {"-", "--"} or len(arg) < 2 or arg[0] not in "-+":
            break
        enable = arg[0] == "-"
        for flag in arg[1:]:
            if flag == "o":
                index += 1
                if index < len(items):
                    options[items[index]] = enable
            elif flag in SHORT_SET_OPTIONS:
                options[SHORT_SET_OPTIONS[flag]] = enable
        index += 1
    return options


def parse_trap(args: Sequence[str]) -> tuple[str | None, tuple[str, ...]]:
    """Return the handler and normalised signal names of a ``trap`` call.

    Listing and printing forms (``trap -p``, ``trap -l``, bare ``trap``) give
    ``(None, ())``.
    """
    items = list(args)
    if items and items[0] == "--":
        items = items[1:]
    if len(items) < 2 or items[0] in {"-p", "-l"}:
        return None, ()
    handler = items[0]
    signals = tuple(_normalize_signal(item) for item in items[1:])
    return handler, signals


def parse_shebang(line: str) -> Shebang | None:
    if not line.startswith("#!"):
        return None
    parts = line[2:].split()
    if not parts:
        return None

    path = parts[0]
    if PurePosixPath(path).name != "env":
        return Shebang(path=path, interpreter=PurePosixPath(path).name, args=tuple(parts[1:]), via_env=False)

    rest = parts[1:]
    index = 0
    while index < len(rest):
        item = rest[index]
        if item in ENV_FLAGS_WITH_VALUE:
            index += 2
            continue
        if item.startswith("-") or "=" in item:
            index += 1
            continue
        break
    if index >= len(rest):
        return Shebang(path=path, interpreter="", args=(), via_env=True)
    return Shebang(
        path=path,
        interpreter=PurePosixPath(rest[index]).name,
        args=tuple(rest[index + 1:]),
        via_env=True,
    )


def _walk(lines: Sequence[LogicalLine]) -> tuple[list[Statement], list[Pipe]]:
    statements: list[Statement] = []
    pipes: list[Pipe] = []
    case_stack: list[str] = []
    if_depth = 0
    position = 0

    for line in lines:
        words: list[str] = []
        connector: str | None = None
        in_test = False
        in_arith = False
        skip_target = False

        def emit() -> None:
            nonlocal position
            if words:
                statements.append(
                    Statement(
                        line_number=line.line_number,
                        end_line=line.end_line,
                        words=tuple(words),
                        connector=connector,
                        conditional=if_depth > 0 or any(state == "body" for state in case_stack),
                        position=position,
                    )
                )
                position += 1
            words.clear()

        for token in line.tokens:
            text = token.text

            if in_arith:
                if token.is_operator and text == "))":
                    in_arith = False
                continue

            if skip_target:
                skip_target = False
                if not token.is_operator:
                    continue

            if in_test:
                if not token.is_operator:
                    words.append(text)
                    if text == "]]":
                        in_test = False
                continue

            state = case_stack[-1] if case_stack else None

            if not token.is_operator:
                at_start = all(item in RESERVED_PREFIXES for item in words)

                if state == "pattern":
                    if text == "esac":
                        case_stack.pop()
                    continue

                if state == "header":
                    words.append(text)
                    if text == "in":
                        emit()
                        case_stack[-1] = "pattern"
                    continue

                if at_start:
                    if text == "esac" and case_stack:
                        case_stack.pop()
                        continue
                    if text == "case":
                        case_stack.append("header")
                    elif text == "if":
                        if_depth += 1
                    elif text == "fi":
                        if_depth = max(if_depth - 1, 0)

                if text == "[[":
                    in_test = True
                words.append(text)
                continue

            if text in REDIRECTIONS:
                skip_target = True
                continue

            if state == "pattern":
                if text == ")":
                    case_stack[-1] = "body"
                continue

            if text == "((":
                in_arith = True
                continue

            if text in SEPARATORS or text == "))":
                emit()
                connector = text
                if text in PIPE_OPERATORS:
                    pipes.append(Pipe(line_number=line.line_number, operator=text, position=position))
                    position += 1
                if text in CASE_TERMINATORS and state == "body":
                    case_stack[-1] = "pattern"
                continue

        emit()

    return statements, pipes


def _heredoc_delimiters(tokens: Sequence[Token]) -> list[tuple[str, bool]]:
    delimiters: list[tuple[str, bool]] = []
    for index, token in enumerate(tokens):
        if not token.is_operator or token.text not in {"<<", "<<-"}:
            continue
        if index + 1 < len(tokens) and not tokens[index + 1].is_operator:
            delimiters.append((tokens[index + 1].text, token.text == "<<-"))
    return delimiters


def _read_double_quoted(text: str, start: int) -> tuple[int, str]:
    value: list[str] = []
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            value.append(nxt if nxt in '$`"\\\n' else ch + nxt)
            i += 2
            continue
        if ch == "$" and i + 1 < len(text) and text[i + 1] in "({":
            end = _match_group(text, i + 1)
            if end == -1:
                return -1, ""
            value.append(text[i:end + 1])
            i = end + 1
            continue
        if ch == '"':
            return i, "".join(value)
        value.append(ch)
        i += 1
    return -1, ""


def _find_unescaped(text: str, target: str, start: int) -> int:
    i = start
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == target:
            return i
        i += 1
    return -1


def _match_group(text: str, open_index: int) -> int:
    opener = text[open_index]
    closer = ")" if opener == "(" else "}"
    depth = 0
    pending: list[tuple[str, bool]] = []
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n" and pending:
            i = _skip_heredoc_bodies(text, i, pending)
            if i == -1:
                return -1
            pending = []
            continue
        if opener == "(" and ch == "#" and text[i - 1] in COMMENT_LEADERS:
            end = text.find("\n", i)
            if end == -1:
                return -1
            i = end
            continue
        if opener == "(" and depth == 1 and text.startswith("<<", i) and text[i - 1] != "<" and not text.startswith("<<<", i):
            match = GROUP_HEREDOC_RE.match(text, i)
            if match is not None:
                pending.append((match.group(3), match.group(1) == "-"))
                i = match.end()
                continue
        if ch == "'" and opener == "(":
            end = text.find("'", i + 1)
            if end == -1:
                return -1
            i = end + 1
            continue
        if ch == '"':
            end, _ = _read_double_quoted(text, i)
            if end == -1:
                return -1
            i = end + 1
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _skip_heredoc_bodies(text: str, newline: int, pending: Sequence[tuple[str, bool]]) -> int:
    """Return the index of the newline that ends the last pending body, or -1."""
    i = newline
    for delimiter, strip_tabs in pending:
        while True:
            end = text.find("\n", i + 1)
            if end == -1:
                return -1
            body = text[i + 1:end]
            i = end
            candidate = body.lstrip("\t") if strip_tabs else body
            if candidate.rstrip() == delimiter:
                break
    return i


def _normalize_signal(value: str) -> str:
    name = value.upper()
    if name.startswith("SIG"):
        name = name[3:]
    return name


def _join_comments(comments: list[str]) -> str | None:
    if not comments:
        return None
    return " ".join(comments)


def parse_pragma(comment: str | None) -> tuple[str, tuple[str, ...]] | None:
    if not comment:
        return None
    match = PRAGMA_RE.search(comment)
    if match is None:
        return None
    rule_ids = tuple(item.strip() for item in match.group(2).split(",") if item.strip())
    return match.group(1), rule_ids
