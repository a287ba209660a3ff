"""Conversion between flattened translations and spreadsheet rows.

A row is ``[domain, key, value_locale_0, value_locale_1, ...]``. Value
columns map to the configured locales by position; the header text is
only written, never read back.
"""
import logging
from typing import Any, Dict, List, Mapping, Sequence

HEADER_PREFIX = ["Domain", "Key"]

Row = List[Any]
Table = List[Row]

logger = logging.getLogger(__name__)


def build_header(locales: Sequence[str]) -> Row:
    """Return the header row for the given locale order."""
    return HEADER_PREFIX + list(locales)


def collect_keys(localized: Mapping[str, Mapping[str, Any]], locales: Sequence[str]) -> List[str]:
    """
    Union of the flat keys of every locale, in order of first appearance.

    Locales are walked in configured order, so the first locale's file order
    decides the row order and keys only found in later locales follow.
    """
    ordered = dict.fromkeys(
        key
        for locale in locales
        for key in localized.get(locale, {})
    )
    return list(ordered)


def encode_domain(
        domain: str,
        localized: Mapping[str, Mapping[str, Any]],
        locales: Sequence[str]
) -> Table:
    """
    Encode one domain's flattened translations into rows.

    Args:
        domain (str): The domain name, e.g. ``account``.
        localized (Mapping[str, Mapping[str, Any]]): Locale code to flattened map.
        locales (Sequence[str]): The configured locale order.

    Returns:
        Table: One row per key found in any locale. Missing translations are
        empty cells, never missing rows.
    """
    rows: Table = []
    for key in collect_keys(localized, locales):
        row: Row = [domain, key]
        for locale in locales:
            value = localized.get(locale, {}).get(key)
            row.append('' if value is None else value)
        rows.append(row)
    return rows


def encode_table(
        per_domain: Mapping[str, Mapping[str, Mapping[str, Any]]],
        locales: Sequence[str]
) -> Table:
    """Build the full table: header row followed by every domain's rows."""
    table: Table = [build_header(locales)]
    for domain, localized in per_domain.items():
        table.extend(encode_domain(domain, localized, locales))
    return table


def _is_blank(cell: Any) -> bool:
    return cell is None or (isinstance(cell, str) and cell.strip() == '')


def decode_table(table: Sequence[Sequence[Any]], locales: Sequence[str]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """
    Group table rows by domain and locale.

    The first row is the header. Columns are assigned to ``locales`` by
    index; locales whose column lies past the header width are not part of
    the table and get no bucket. Empty cells mean "no translation" and
    produce no entry. A repeated (domain, key) row overwrites earlier cells.

    Args:
        table (Sequence[Sequence[Any]]): All rows including the header.
        locales (Sequence[str]): The configured locale order.

    Returns:
        Dict[str, Dict[str, Dict[str, Any]]]: domain -> locale -> flat key -> value.
    """
    if not table:
        return {}

    header, data_rows = table[0], table[1:]
    available_locales = list(locales[:max(0, len(header) - len(HEADER_PREFIX))])
    if len(available_locales) < len(locales):
        logger.warning(
            "Table header has %d locale column(s); locales %s are not in the table.",
            len(available_locales),
            ", ".join(locales[len(available_locales):])
        )

    grouped: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for row_number, row in enumerate(data_rows, start=2):
        if len(row) < 2 or _is_blank(row[0]) or _is_blank(row[1]):
            logger.debug("Skipping row %d without domain or key: %r", row_number, list(row))
            continue

        domain, key, values = str(row[0]), str(row[1]), row[2:]
        buckets = grouped.setdefault(domain, {})
        for index, locale in enumerate(available_locales):
            bucket = buckets.setdefault(locale, {})
            # Sheets omits trailing empty cells, so short rows are padded here.
            value = values[index] if index < len(values) else ''
            if value != '' and value is not None:
                bucket[key] = value

    return grouped
