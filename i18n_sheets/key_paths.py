from typing import Any, Dict, List, Mapping, Optional, Union


class KeyPathConflictError(ValueError):
    """Raised when flat keys cannot be rebuilt into a single tree."""


def escape_segment(segment: str) -> str:
    """Escape a single path segment so it can be joined with dots."""
    return segment.replace('\\', '\\\\').replace('.', '\\.')


def join_key(segments: List[str]) -> str:
    """Join path segments into a flat key, escaping dots inside segments."""
    return '.'.join(escape_segment(segment) for segment in segments)


def split_key(flat_key: str) -> List[str]:
    """
    Split a flat key into its path segments.

    ``\\.`` is a literal dot and ``\\\\`` a literal backslash; any other
    backslash sequence is malformed.

    Args:
        flat_key (str): The flat key, e.g. ``login.title`` or ``version\\.label``.

    Returns:
        List[str]: The unescaped segments.
    """
    segments = []
    current = []
    i = 0
    while i < len(flat_key):
        char = flat_key[i]
        if char == '\\':
            if i + 1 >= len(flat_key) or flat_key[i + 1] not in ('\\', '.'):
                raise KeyPathConflictError(f"Malformed escape sequence in key '{flat_key}'.")
            current.append(flat_key[i + 1])
            i += 2
            continue
        if char == '.':
            segments.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1
    segments.append(''.join(current))

    if any(segment == '' for segment in segments):
        raise KeyPathConflictError(f"Key '{flat_key}' contains an empty path segment.")
    return segments


def flatten(tree: Union[Mapping[str, Any], list], prefix: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Flatten a nested translation tree into a mapping of flat keys to leaf values.

    Lists are containers too: their items are keyed by index (``steps.0``,
    ``steps.1``). Other leaves are copied unchanged. Empty containers produce
    no entries.

    Args:
        tree (Union[Mapping[str, Any], list]): The nested translation tree.
        prefix (List[str]): Path segments leading to ``tree``.

    Returns:
        Dict[str, Any]: Flat key to leaf value.
    """
    prefix = prefix or []
    flattened: Dict[str, Any] = {}
    items = enumerate(tree) if isinstance(tree, list) else tree.items()
    for key, value in items:
        path = prefix + [str(key)]
        if isinstance(value, (Mapping, list)):
            flattened.update(flatten(value, path))
        else:
            flattened[join_key(path)] = value
    return flattened


def unflatten(flat_map: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rebuild a nested translation tree from a flat key mapping.

    Args:
        flat_map (Mapping[str, Any]): Flat key to leaf value.

    Returns:
        Dict[str, Any]: The nested tree.

    Raises:
        KeyPathConflictError: If one key is used both as a leaf and as a
            container (e.g. ``a`` and ``a.b``), or a key is malformed.
    """
    result: Dict[str, Any] = {}
    # Remembers which flat key created each leaf so conflicts name both sides.
    leaf_owners: Dict[tuple, str] = {}

    for flat_key, value in flat_map.items():
        segments = split_key(flat_key)
        current = result
        for depth, segment in enumerate(segments[:-1]):
            if segment not in current:
                current[segment] = {}
            node = current[segment]
            if not isinstance(node, dict):
                owner = leaf_owners[tuple(segments[:depth + 1])]
                raise KeyPathConflictError(
                    f"Key '{flat_key}' needs '{owner}' to be a group, but it holds a value."
                )
            current = node

        last = segments[-1]
        if isinstance(current.get(last), dict):
            raise KeyPathConflictError(
                f"Key '{flat_key}' holds a value, but other keys use it as a group."
            )
        current[last] = value
        leaf_owners[tuple(segments)] = flat_key

    return result
