"""
Template evaluation engine.

The engine is split in two parts:

* ``Engine`` is the definition built once at startup: delimiters, tag and
  filter registries, data adapters, sanitizer and global data. It is shared
  read-only between requests.
* ``RenderState`` is the evaluation state of one render (or of a sequence of
  renders that share blocks, such as a page followed by its layout): local
  context, variables, blocks and the error list.

``Engine.render`` and the block/variable accessors on the engine work on an
engine-owned default state and are serialized with a lock. Request handlers
should call ``Engine.new_state()`` and render on their own state instead.

Example:
    >>> engine = Engine()
    >>> output, errors = engine.render("Hello {{ .Name }}!", {"Name": "World"})
    >>> output
    'Hello World!'
"""

import io
import logging
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from .adapters import AdapterRegistry, DataAdapter
from .errors import ErrorKind, TemplateError
from .filters import FilterFunc, FilterRegistry
from .lexer import (ASSIGN, DEFAULT_END_DELIM, DEFAULT_START_DELIM, PIPE, Scanner, TokenClass,
                    TokenKind, classify_token, is_path, is_variable, parse_literal, split_tokens)
from .matcher import BlockMatch, seek_closing_tag
from .sanitizer import SanitizeFunc, make_sanitizer
from .tags import BUILTIN_TAGS, TemplateTag
from .values import stringify, walk_path

logger = logging.getLogger(__name__)

CURRENT = "."


@dataclass
class EngineConfig:
    """Configuration for a template engine"""
    start_delim: str = DEFAULT_START_DELIM
    end_delim: str = DEFAULT_END_DELIM
    tags: Optional[List[TemplateTag]] = None
    filters: Dict[str, FilterFunc] = field(default_factory=dict)
    data_adapters: Dict[str, DataAdapter] = field(default_factory=dict)
    global_data: Dict[str, Any] = field(default_factory=dict)
    sanitize: bool = True
    sanitizer: Optional[SanitizeFunc] = None
    clear_blocks_on_render: bool = False
    max_iterations: int = 10000
    max_depth: int = 64


class RenderResult(NamedTuple):
    output: str
    errors: List[TemplateError]

    @property
    def ok(self) -> bool:
        return not self.errors


class RenderState:
    """Mutable evaluation state. Never share one between threads."""

    def __init__(self, engine: "Engine"):
        self.engine = engine
        self.adapters = AdapterRegistry(parent=engine.adapters)
        self.variables: Dict[str, Any] = {}
        self.blocks: Dict[str, str] = {}
        self.local_context: Dict[str, Any] = {}
        self.errors: List[TemplateError] = []
        self._depth = 0

    # -- public API --------------------------------------------------------

    def render(self, source: str, local_data: Optional[Mapping] = None) -> RenderResult:
        """Render ``source`` against ``local_data`` layered over global data"""
        if self._depth == 0:
            self.errors = []
        output = self.render_fragment(source, local_data if local_data is not None else {})
        return RenderResult(output, list(self.errors))

    def render_fragment(self, source: str, context: Optional[Any] = None) -> str:
        """Render part of a template; used by tags to render their bodies.

        With ``context`` None the current local context is kept, otherwise a
        new local context is pushed for the duration of the call. Errors are
        appended to this state's error list.
        """
        if not source:
            return ""
        if self._depth >= self.engine.config.max_depth:
            self.add_error(ErrorKind.SYNTAX_ERROR,
                           f"maximum template nesting depth of {self.engine.config.max_depth} exceeded")
            return ""

        self._depth += 1
        try:
            if context is None:
                return self._render_source(source)
            with self.scoped(context):
                return self._render_source(source)
        finally:
            self._depth -= 1

    @contextmanager
    def scoped(self, context: Any):
        """Push a local context layered over global data, restoring on exit"""
        saved = self.local_context
        self.local_context = self.layer(context)
        try:
            yield self.local_context
        finally:
            self.local_context = saved

    def layer(self, context: Any) -> Dict[str, Any]:
        layered = dict(self.engine.global_data)
        if isinstance(context, Mapping):
            layered.update(context)
        elif context is not None:
            layered[CURRENT] = context
        return layered

    def define_block(self, name: str, source: str) -> None:
        self.blocks[name] = source

    def get_block(self, name: str) -> Optional[str]:
        return self.blocks.get(name)

    def clear_blocks(self) -> None:
        self.blocks.clear()

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name.lstrip("$")] = value

    def get_variable(self, name: str) -> Tuple[Any, bool]:
        name = name.lstrip("$")
        if name in self.variables:
            return self.variables[name], True
        return None, False

    def register_data_adapter(self, prefix: str, adapter: DataAdapter) -> None:
        """Register a request-scoped adapter on top of the engine's adapters"""
        self.adapters.register(prefix, adapter)

    def add_error(self, kind: ErrorKind, message: str, position: Optional[int] = None) -> None:
        error = TemplateError(kind, message, position)
        logger.debug("Template error: %s", error)
        self.errors.append(error)

    def seek(self, source: str, tag_name: str, pos: int) -> BlockMatch:
        """Find the closing tag of the block ``tag_name`` whose body starts at ``pos``"""
        return seek_closing_tag(source, tag_name, pos, self.engine.scanner, self.engine.block_tag_names)

    # -- walking -----------------------------------------------------------

    def _render_source(self, source: str) -> str:
        scanner = self.engine.scanner
        out = io.StringIO()
        pos = 0
        length = len(source)

        while pos < length:
            token = scanner.scan(source, pos)
            if token.kind is TokenKind.LITERAL:
                out.write(source[token.start:token.end])
                pos = token.end
            elif token.kind is TokenKind.UNCLOSED:
                self.add_error(ErrorKind.UNCLOSED_OPENING,
                               f"'{scanner.start_delim}' has no closing '{scanner.end_delim}'", token.start)
                out.write(source[token.start:])
                pos = length
            else:
                pos = self._render_tag(source, token, out)

        return out.getvalue()

    def _render_tag(self, source: str, token, out) -> int:
        tokens = split_tokens(token.body(source))
        if not tokens:
            self.add_error(ErrorKind.EMPTY_TAG, "tag has no content", token.start)
            return token.end

        head, args = tokens[0], tokens[1:]

        if is_path(head):
            value, ok = self.evaluate(tokens, token.start)
            if ok:
                self.emit(value, out)
            return token.end

        if is_variable(head):
            if args and args[0] == ASSIGN:
                self._assign(head, args[1:], token.start)
            else:
                value, ok = self.evaluate(tokens, token.start)
                if ok:
                    self.emit(value, out)
            return token.end

        tag = self.engine.tags.get(head)
        if tag is not None:
            new_pos = tag.handler(self, out, args, source, token.end)
            if new_pos is None or new_pos <= token.start:
                logger.warning("Tag '%s' did not advance past position %d", head, token.start)
                return token.end
            return new_pos

        if head == "else" or head.startswith("end"):
            self.add_error(ErrorKind.STRAY_END, f"unexpected '{head}' without an open block", token.start)
        else:
            self.add_error(ErrorKind.UNKNOWN_TAG, f"unknown tag '{head}'", token.start)
        return token.end

    def emit(self, value: Any, out) -> None:
        """Write an interpolated value, sanitized once in its final string form"""
        text = stringify(value)
        if text and self.engine.sanitizer.enabled:
            text = self.engine.sanitizer(text)
        out.write(text)

    def _assign(self, head: str, rhs: List[str], position: int) -> None:
        name = head[1:]
        if not name:
            self.add_error(ErrorKind.INVALID_ASSIGNMENT, "assignment needs a variable name", position)
            return
        if len(rhs) != 1:
            self.add_error(ErrorKind.INVALID_ASSIGNMENT,
                           f"'${name} :=' takes exactly one expression token, got {len(rhs)}", position)
            return
        value, ok = self.resolve_operand(rhs[0], position)
        if ok:
            self.variables[name] = value

    # -- resolution --------------------------------------------------------

    def evaluate(self, tokens: List[str], position: Optional[int] = None,
                 strict: bool = True) -> Tuple[Any, bool]:
        """Evaluate ``head [keys…] | filter args… | …``.

        With ``strict`` False a missing head value evaluates to None without an
        error; conditions use this so that absent values are simply false.
        """
        segments: List[List[str]] = [[]]
        for token in tokens:
            if token == PIPE:
                segments.append([])
            else:
                segments[-1].append(token)

        if not segments[0]:
            self.add_error(ErrorKind.SYNTAX_ERROR, "expression has no value before '|'", position)
            return None, False

        value, ok = self.resolve_head(segments[0], position, strict)
        if not ok:
            return None, False

        for segment in segments[1:]:
            value = self._apply_filter(value, segment, position)
        return value, True

    def _apply_filter(self, value: Any, segment: List[str], position: Optional[int]) -> Any:
        if not segment:
            self.add_error(ErrorKind.SYNTAX_ERROR, "empty filter after '|'", position)
            return value

        name, raw_args = segment[0], segment[1:]
        func = self.engine.filters.get(name)
        if func is None:
            self.add_error(ErrorKind.UNKNOWN_FILTER, f"unknown filter '{name}'", position)
            return value

        args = []
        for raw in raw_args:
            arg, _ = self.resolve_operand(raw, position)
            args.append(arg)

        try:
            return func(value, type(value), args, self.local_context)
        except Exception as exc:
            self.add_error(ErrorKind.FILTER_ERROR, f"filter '{name}' failed: {exc}", position)
            return value

    def resolve_head(self, segment: List[str], position: Optional[int] = None,
                     strict: bool = True) -> Tuple[Any, bool]:
        head, extra = segment[0], segment[1:]
        if is_path(head):
            return self.resolve_path(head, extra, position, strict)
        if extra:
            self.add_error(ErrorKind.SYNTAX_ERROR,
                           f"unexpected tokens after '{head}': {' '.join(extra)}", position)
            return None, False
        return self.resolve_operand(head, position, strict)

    def resolve_operand(self, token: str, position: Optional[int] = None,
                        strict: bool = True) -> Tuple[Any, bool]:
        """Resolve a single literal, ``.path`` or ``$variable`` token"""
        kind = classify_token(token)
        if kind is TokenClass.PATH:
            return self.resolve_path(token, [], position, strict)
        if kind is TokenClass.VARIABLE:
            value, found = self.get_variable(token)
            if not found:
                if not strict:
                    return None, True
                self.add_error(ErrorKind.UNKNOWN_VARIABLE, f"unknown variable '{token}'", position)
                return None, False
            return value, True
        return parse_literal(token), True

    def resolve_path(self, head: str, extra: List[str], position: Optional[int] = None,
                     strict: bool = True) -> Tuple[Any, bool]:
        context = self.local_context
        extra_keys = [key.lstrip(".") for key in extra]

        if head == CURRENT:
            current = context.get(CURRENT, context)
            if not extra_keys:
                return current, True
            return self._descend(current, extra_keys, head, position, strict)

        keys = head[1:].split(".") + extra_keys
        if any(not key for key in keys):
            self.add_error(ErrorKind.UNKNOWN_PATH, f"malformed path '{head}'", position)
            return None, False

        first = keys[0]
        if first in context:
            return self._descend(context[first], keys[1:], head, position, strict)

        current = context.get(CURRENT)
        if isinstance(current, Mapping) and first in current:
            return self._descend(current[first], keys[1:], head, position, strict)

        adapter = self.adapters.get(first)
        if adapter is not None:
            value, found = adapter.get(*keys)
            if found:
                return value, True
            return self._missing(ErrorKind.UNKNOWN_PATH,
                                 f"data adapter '{first}' has no value for '{'.'.join(keys)}'", position, strict)

        return self._missing(ErrorKind.UNKNOWN_VARIABLE, f"unknown variable '{'.'.join(keys)}'", position, strict)

    def _descend(self, value: Any, keys: List[str], head: str, position: Optional[int],
                 strict: bool) -> Tuple[Any, bool]:
        value, found = walk_path(value, keys)
        if found:
            return value, True
        return self._missing(ErrorKind.UNKNOWN_PATH, f"path '{head}' does not resolve", position, strict)

    def _missing(self, kind: ErrorKind, message: str, position: Optional[int],
                 strict: bool) -> Tuple[Any, bool]:
        if not strict:
            return None, True
        self.add_error(kind, message, position)
        return None, False


class Engine:
    """Template engine definition shared across renders"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.scanner = Scanner(self.config.start_delim, self.config.end_delim)
        self.sanitizer = make_sanitizer(self.config.sanitize, self.config.sanitizer)
        self.global_data: Dict[str, Any] = dict(self.config.global_data)

        self.filters = FilterRegistry()
        for name, func in self.config.filters.items():
            self.filters.register(name, func)

        self.tags: Dict[str, TemplateTag] = {}
        for tag in (self.config.tags if self.config.tags is not None else BUILTIN_TAGS):
            self.register_tag(tag)

        self.adapters = AdapterRegistry()
        for prefix, adapter in self.config.data_adapters.items():
            self.adapters.register(prefix, adapter)

        self._lock = threading.Lock()
        self._state = RenderState(self)

    @property
    def block_tag_names(self) -> frozenset:
        return frozenset(name for name, tag in self.tags.items() if tag.block)

    def register_tag(self, tag: TemplateTag) -> None:
        if not tag.name or tag.name.startswith((".", "$")) or tag.name.startswith("end"):
            raise ValueError(f"Invalid tag name '{tag.name}'")
        self.tags[tag.name] = tag

    def register_filter(self, name: str, func: FilterFunc) -> None:
        self.filters.register(name, func)

    def register_data_adapter(self, prefix: str, adapter: DataAdapter) -> None:
        self.adapters.register(prefix, adapter)

    def new_state(self) -> RenderState:
        """Fresh evaluation state for one request"""
        return RenderState(self)

    def render(self, source: str, local_data: Optional[Mapping] = None) -> RenderResult:
        with self._lock:
            if self.config.clear_blocks_on_render:
                self._state.clear_blocks()
            return self._state.render(source, local_data)

    def define_block(self, name: str, source: str) -> None:
        with self._lock:
            self._state.define_block(name, source)

    def get_block(self, name: str) -> Optional[str]:
        with self._lock:
            return self._state.get_block(name)

    def clear_blocks(self) -> None:
        with self._lock:
            self._state.clear_blocks()

    def set_variable(self, name: str, value: Any) -> None:
        with self._lock:
            self._state.set_variable(name, value)

    def get_variable(self, name: str) -> Tuple[Any, bool]:
        with self._lock:
            return self._state.get_variable(name)

    @property
    def local_context(self) -> Dict[str, Any]:
        return self._state.local_context
