from typing import Any, Dict, List, Mapping, Sequence, Set, Tuple
import re
from collections import Counter

# Matches {name}, {0} and {{name}} (i18next / vue-i18n interpolation).
PLACEHOLDER_REGEX = re.compile(r'\{\{?\s*([^{}\s]+)\s*\}?\}')

# 'Ã' followed by a character in 0x80-0xFF is UTF-8 text that was decoded as latin-1/cp1252.
MOJIBAKE_REGEX = re.compile(r'Ã[\x80-\xff]')


def check_key_coverage(base_keys: Set[str], target_keys: Set[str]) -> Tuple[Set[str], Set[str]]:
    """
    Compares the keys of a target locale against a base locale.

    Args:
        base_keys: Flat keys of the base locale.
        target_keys: Flat keys of the target locale.

    Returns:
        A tuple containing two sets:
        - missing_keys: Keys present in the base locale but missing from the target.
        - extra_keys: Keys present in the target but absent from the base locale.
    """
    missing_keys = base_keys - target_keys
    extra_keys = target_keys - base_keys
    return missing_keys, extra_keys


def find_missing_translations(
        localized: Mapping[str, Mapping[str, Any]],
        locales: Sequence[str]
) -> Dict[str, Set[str]]:
    """
    For each locale, the keys that another locale of the same domain translates
    but this one lacks or leaves empty.
    """
    all_keys: Set[str] = set()
    for locale in locales:
        all_keys.update(localized.get(locale, {}).keys())

    missing: Dict[str, Set[str]] = {}
    for locale in locales:
        present = {key for key, value in localized.get(locale, {}).items() if value not in (None, '')}
        locale_missing, _ = check_key_coverage(all_keys, present)
        if locale_missing:
            missing[locale] = locale_missing
    return missing


def check_placeholder_parity(base_string: str, target_string: str) -> bool:
    """
    Checks if the placeholders are identical between a base and a target string.
    Reordering is allowed, but every placeholder must appear as often as in the base.
    """
    base_placeholders = Counter(PLACEHOLDER_REGEX.findall(base_string))
    target_placeholders = Counter(PLACEHOLDER_REGEX.findall(target_string))
    return base_placeholders == target_placeholders


def detect_mojibake(value: str) -> bool:
    """True if ``value`` shows signs of a previous encoding/decoding error."""
    return bool(MOJIBAKE_REGEX.search(value)) or '\uFFFD' in value


def build_quality_report(
        domain: str,
        localized: Mapping[str, Mapping[str, Any]],
        locales: Sequence[str]
) -> List[str]:
    """
    Collects human-readable warnings for one domain. Nothing here blocks an upload.

    The first configured locale is the base for placeholder checks.
    """
    warnings: List[str] = []

    for locale, keys in find_missing_translations(localized, locales).items():
        sample = ", ".join(sorted(keys)[:5])
        more = f" (+{len(keys) - 5} more)" if len(keys) > 5 else ""
        warnings.append(f"[{domain}/{locale}] {len(keys)} untranslated key(s): {sample}{more}")

    base_locale = locales[0] if locales else None
    base_values = localized.get(base_locale, {}) if base_locale else {}
    for locale in locales:
        for key, value in localized.get(locale, {}).items():
            if not isinstance(value, str):
                continue
            if detect_mojibake(value):
                warnings.append(f"[{domain}/{locale}] Potential mojibake in key '{key}'.")
            base_value = base_values.get(key)
            if locale != base_locale and isinstance(base_value, str) and value:
                if not check_placeholder_parity(base_value, value):
                    warnings.append(f"[{domain}/{locale}] Placeholder mismatch for key '{key}'.")

    return warnings
