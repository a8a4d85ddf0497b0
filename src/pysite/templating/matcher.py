"""
Block-tag matching.

Given the position just after an opening block tag, find the tag that closes
it. Every registered block tag opens a level on an explicit stack so that an
``end`` belonging to a nested block of another kind never closes the outer
one.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .lexer import Scanner, TokenKind, split_tag_parts

logger = logging.getLogger(__name__)

ELSE = "else"
END = "end"


@dataclass(frozen=True)
class BlockMatch:
    """Result of seeking a closing tag.

    ``end`` is the index just past the closing tag. For an ``if`` block with an
    ``else`` at depth one, ``body`` is the branch before the ``else`` and
    ``else_body`` the branch after it.
    """
    end: int
    body: str
    else_body: Optional[str] = None
    closed: bool = True

    @property
    def has_else(self) -> bool:
        return self.else_body is not None


def is_end_tag(head: str, names: Iterable[str]) -> bool:
    if head == END:
        return True
    return head.startswith(END) and head[len(END):] in names


def seek_closing_tag(source: str, tag_name: str, pos: int, scanner: Scanner,
                     block_tags: Iterable[str] = ()) -> BlockMatch:
    """Find the tag closing ``tag_name`` whose body starts at ``pos``"""
    openers = set(block_tags)
    openers.add(tag_name)
    stack = [tag_name]
    else_start = else_end = -1

    for token in scanner.tags(source, pos):
        if token.kind is TokenKind.UNCLOSED:
            break

        head, _ = split_tag_parts(token.body(source))
        if not head:
            continue

        if head == ELSE:
            if tag_name == "if" and len(stack) == 1 and else_start == -1:
                else_start, else_end = token.start, token.end
            continue

        if head in openers:
            stack.append(head)
        elif is_end_tag(head, openers):
            stack.pop()
            if not stack:
                if else_start != -1:
                    return BlockMatch(
                        end=token.end,
                        body=source[pos:else_start],
                        else_body=source[else_end:token.start],
                    )
                return BlockMatch(end=token.end, body=source[pos:token.start])

    logger.debug("No closing tag for '%s' opened before position %d", tag_name, pos)
    if else_start != -1:
        return BlockMatch(end=len(source), body=source[pos:else_start],
                          else_body=source[else_end:], closed=False)
    return BlockMatch(end=len(source), body=source[pos:], closed=False)
