from collections.abc import Mapping, MutableMapping, MutableSequence
from typing import Any, Iterable, Optional, Tuple

from treediff.dates import Token
from treediff.errors import EmptyPath, InvalidPath, NotObject
from treediff.value_type import MISSING


def _escape_key_for_brackets(key: str) -> str:
    """Escape a key for bracket notation with double quotes."""
    return key.replace("\\", "\\\\").replace('"', '\\"')


def _join_path(base: str, token: Token) -> str:
    """
    Join a base path string with a token (dict key or list index) using a JSONPath-like syntax:
    - dict keys with no '.' or '[' use dot notation
    - otherwise keys are quoted: ["..."]
    - list indices use [i]
    """
    if isinstance(token, int):
        return f"{base}[{token}]"

    key = str(token)
    use_dot = (key != "") and ("." not in key) and ("[" not in key)
    if use_dot:
        return base + "." + key
    return f'{base}["{_escape_key_for_brackets(key)}"]'


def format_path(path: Optional[Iterable[Token]]) -> str:
    """
    Render a property path for messages and logs, e.g. ``$.items[2]["a.b"]``.
    The root (no path) renders as ``$``.
    """
    rendered = "$"
    for token in path or ():
        rendered = _join_path(rendered, token)
    return rendered


def _is_sequence(obj: Any) -> bool:
    return isinstance(obj, (list, tuple))


def _child(current: Any, tok: Token, tokens: Tuple[Token, ...], step: int) -> Any:
    """Return current[tok], or MISSING when the slot is empty."""
    if isinstance(current, Mapping):
        return current.get(tok, MISSING)
    if _is_sequence(current):
        if not isinstance(tok, int) or isinstance(tok, bool):
            raise NotObject(
                f"Cannot traverse path {format_path(tokens)}: expected an index at step {step}, "
                f"found key {tok!r} on a {type(current).__name__}"
            )
        if tok < 0:
            raise InvalidPath(
                f"Negative index {tok} at step {step} of {format_path(tokens)} is not supported"
            )
        if tok < len(current):
            return current[tok]
        return MISSING
    raise NotObject(
        f"Cannot traverse path {format_path(tokens)}: {format_path(tokens[:step])} "
        f"is not an object (found {type(current).__name__})"
    )


def _empty_for(next_tok: Token) -> Any:
    return [] if isinstance(next_tok, int) and not isinstance(next_tok, bool) else {}


def assign(container: Any, tok: Token, value: Any) -> None:
    """Set container[tok], padding a list with None up to `tok`."""
    if isinstance(container, MutableSequence):
        if tok >= len(container):
            container.extend([None] * (tok - len(container) + 1))
        container[tok] = value
    else:
        container[tok] = value


def _check_writable(container: Any, tok: Token, tokens: Tuple[Token, ...], step: int) -> None:
    if isinstance(container, MutableMapping):
        return
    if isinstance(container, MutableSequence) and isinstance(tok, int) and not isinstance(tok, bool):
        if tok < 0:
            raise InvalidPath(
                f"Negative index {tok} at step {step} of {format_path(tokens)} is not supported"
            )
        return
    raise NotObject(
        f"Cannot write {tok!r} at step {step} of {format_path(tokens)}: "
        f"container is {type(container).__name__}"
    )


def resolve_parent(
    doc: Any, path: Optional[Iterable[Token]], *, create_missing: bool = True
) -> Tuple[Any, Token]:
    """
    Walk all but the last segment of `path` and return ``(parent, last_key)``.

    Missing (or None) intermediates are created when `create_missing` is
    True: a list when the following segment is an int, a dict otherwise.
    Every check runs before the first container is created, so a failure
    never leaves `doc` half-modified.

    Raises:
    - EmptyPath for the root path.
    - NotObject when a segment resolves to a scalar or the wrong container.
    - InvalidPath for a missing intermediate when `create_missing` is False.
    """
    tokens = tuple(path or ())
    if not tokens:
        raise EmptyPath("Path cannot be empty")

    current = doc
    for step, tok in enumerate(tokens[:-1]):
        child = _child(current, tok, tokens, step)
        if child is MISSING or child is None:
            if not create_missing:
                state = "null" if child is None else "missing"
                raise InvalidPath(
                    f"Cannot traverse path {format_path(tokens)}: "
                    f"{format_path(tokens[: step + 1])} is {state}"
                )
            _check_writable(current, tok, tokens, step)
            # Build the rest of the chain detached, then attach it in one step.
            root = leaf = _empty_for(tokens[step + 1])
            for sub_tok, next_tok in zip(tokens[step + 1 : -1], tokens[step + 2 :]):
                created = _empty_for(next_tok)
                assign(leaf, sub_tok, created)
                leaf = created
            assign(current, tok, root)
            return leaf, tokens[-1]
        if not isinstance(child, Mapping) and not _is_sequence(child):
            raise NotObject(
                f"Cannot traverse path {format_path(tokens)}: {format_path(tokens[: step + 1])} "
                f"is not an object (found {type(child).__name__})"
            )
        current = child

    _check_writable(current, tokens[-1], tokens, len(tokens) - 1)
    return current, tokens[-1]


def get_by_path(doc: Any, path: Optional[Iterable[Token]]) -> Any:
    """
    Retrieve the value at `path` without creating anything.
    The root (empty or missing path) returns `doc` itself.
    """
    tokens = tuple(path or ())
    current = doc
    for step, tok in enumerate(tokens):
        if current is None:
            raise InvalidPath(
                f"Cannot traverse path {format_path(tokens)}: {format_path(tokens[:step])} is null"
            )
        child = _child(current, tok, tokens, step)
        if child is MISSING:
            raise InvalidPath(
                f"Cannot traverse path {format_path(tokens)}: {format_path(tokens[: step + 1])} is missing"
            )
        current = child
    return current
