"""
Built-in template tags.

A tag handler is called as ``handler(state, out, args, source, pos)`` where
``args`` are the tokens after the tag name, ``source`` is the fragment being
rendered and ``pos`` is the index just past the opening tag. It writes to
``out`` and returns the position from which rendering continues.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, List

from .errors import ErrorKind
from .lexer import unquote
from .values import is_sequence, is_truthy

TagHandler = Callable[..., int]


@dataclass(frozen=True)
class TemplateTag:
    name: str
    handler: TagHandler
    description: str = ""
    block: bool = True


def as_context(value: Any) -> Any:
    """Mappings become the new local context, anything else is bound to '.'"""
    if isinstance(value, Mapping):
        return value
    return {".": value}


def _open_block(state, tag: str, args: List[str], source: str, pos: int):
    """Match the closing tag; the flag is False when the block cannot be rendered.

    Without a matching end the rest of the source is the body.
    """
    match = state.seek(source, tag, pos)
    if not match.closed:
        state.add_error(ErrorKind.UNCLOSED_TAG, f"'{tag}' block has no matching end", pos)
    if not args:
        state.add_error(ErrorKind.SYNTAX_ERROR, f"'{tag}' requires an argument", pos)
        return match, False
    return match, True


def render_if(state, out, args, source, pos):
    match, usable = _open_block(state, "if", args, source, pos)
    if not usable:
        return match.end

    value, ok = state.evaluate(args, pos, strict=False)
    if ok and is_truthy(value):
        out.write(state.render_fragment(match.body))
    elif match.has_else:
        out.write(state.render_fragment(match.else_body))
    return match.end


def _iteration_pairs(collection):
    if isinstance(collection, Mapping):
        return list(collection.items()), True
    if isinstance(collection, str) or is_sequence(collection):
        return list(enumerate(collection)), False
    if isinstance(collection, Iterable) and not isinstance(collection, (bytes, bytearray)):
        return enumerate(collection), False
    return None, False


def render_range(state, out, args, source, pos):
    match, usable = _open_block(state, "range", args, source, pos)
    if not usable:
        return match.end

    collection, ok = state.evaluate(args, pos)
    if not ok:
        return match.end

    pairs, keyed = _iteration_pairs(collection)
    if pairs is None:
        state.add_error(ErrorKind.NON_ITERABLE,
                        f"'range' needs a sequence, mapping or string, got {type(collection).__name__}", pos)
        return match.end

    limit = state.engine.config.max_iterations
    for index, (key, item) in enumerate(pairs):
        if index >= limit:
            state.add_error(ErrorKind.SYNTAX_ERROR, f"'range' stopped after {limit} iterations", pos)
            break
        context = {".": item, "index": index}
        if keyed:
            context["key"] = key
        out.write(state.render_fragment(match.body, context))

    return match.end


def render_with(state, out, args, source, pos):
    match, usable = _open_block(state, "with", args, source, pos)
    if not usable:
        return match.end

    value, ok = state.evaluate(args, pos, strict=False)
    if not ok or not is_truthy(value):
        return match.end

    context = {".": value}
    if isinstance(value, Mapping):
        context.update(value)
    out.write(state.render_fragment(match.body, context))
    return match.end


def render_define(state, out, args, source, pos):
    match, usable = _open_block(state, "define", args, source, pos)
    if not usable:
        return match.end

    state.define_block(unquote(args[0]), match.body)
    return match.end


def render_block(state, out, args, source, pos):
    match, usable = _open_block(state, "block", args, source, pos)
    if not usable:
        return match.end

    name = unquote(args[0])
    if len(args) > 1:
        value, ok = state.evaluate(args[1:], pos)
        context = as_context(value) if ok else {}
    else:
        context = dict(state.local_context)

    content = state.get_block(name)
    if content is None:
        content = match.body
        state.define_block(name, content)

    out.write(state.render_fragment(content, context))
    return match.end


def render_template(state, out, args, source, pos):
    if not args:
        state.add_error(ErrorKind.SYNTAX_ERROR, "'template' requires a name", pos)
        return pos

    name = unquote(args[0])
    content = state.get_block(name)
    if content is None:
        state.add_error(ErrorKind.TEMPLATE_NOT_FOUND, f"no template named '{name}'", pos)
        return pos

    context = {}
    if len(args) > 1:
        value, ok = state.evaluate(args[1:], pos)
        if ok:
            context = as_context(value)

    out.write(state.render_fragment(content, context))
    return pos


BUILTIN_TAGS: List[TemplateTag] = [
    TemplateTag("if", render_if, "Render the body when the condition is truthy, else the else branch"),
    TemplateTag("range", render_range, "Render the body once per element of a collection"),
    TemplateTag("with", render_with, "Render the body with '.' bound to a truthy value"),
    TemplateTag("define", render_define, "Store the body as a named block without output"),
    TemplateTag("block", render_block, "Render a named block, defining it from the body if missing"),
    TemplateTag("template", render_template, "Render a previously defined block", block=False),
]
