"""Upload and download of translations between JSON files and the sheet."""
import asyncio
import json
import logging
import os
import re
from typing import Any, Dict, List, Tuple

from tqdm.asyncio import tqdm

from i18n_sheets.app_config import FILE_NAME_PATTERN, SyncConfig
from i18n_sheets.errors import FileReadError, SyncError, TableDataError, TransportError, WriteError
from i18n_sheets.key_paths import KeyPathConflictError, flatten, unflatten
from i18n_sheets.row_codec import Table, decode_table, encode_table
from i18n_sheets.table_store import TableStore
from i18n_sheets.translation_validator import build_quality_report

logger = logging.getLogger(__name__)


def translation_file_path(source_dir: str, locale: str, domain: str) -> str:
    return os.path.join(source_dir, locale, f'{domain}.json')


def read_translation_file(file_path: str) -> Dict[str, Any]:
    """
    Load one locale/domain JSON file.

    Args:
        file_path (str): Path to ``<sourceDir>/<locale>/<domain>.json``.

    Returns:
        Dict[str, Any]: The translation tree.

    Raises:
        FileReadError: If the file is missing, not UTF-8, not JSON, or not a JSON object.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise FileReadError("File not found.", file_path) from e
    except UnicodeDecodeError as e:
        raise FileReadError(f"File is not valid UTF-8: {e}", file_path) from e
    except json.JSONDecodeError as e:
        raise FileReadError(f"Invalid JSON: {e}", file_path) from e
    except OSError as e:
        raise FileReadError(f"Could not read file: {e}", file_path) from e

    if not isinstance(data, dict):
        raise FileReadError(f"Expected a JSON object at the top level, got {type(data).__name__}.", file_path)
    return data


def write_translation_file(file_path: str, tree: Dict[str, Any]) -> None:
    """Write a translation tree as indented UTF-8 JSON, creating the locale directory."""
    try:
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(json.dumps(tree, indent=2, ensure_ascii=False))
            f.write('\n')
    except OSError as e:
        raise WriteError(f"Could not write file: {e}", file_path) from e


class I18nSheetSync:
    """
    Runs one sync direction per call. Holds no state between calls.

    Args:
        config (SyncConfig): Source directory, locale order and domains.
        table_store (TableStore): Where the table is fetched from and written to.
        dry_run (bool): Log what would change instead of writing anything.
    """

    def __init__(self, config: SyncConfig, table_store: TableStore, dry_run: bool = False):
        self.config = config
        self.table_store = table_store
        self.dry_run = dry_run

    async def _read_flattened(self, domain: str, locale: str) -> Tuple[str, str, Dict[str, Any]]:
        file_path = translation_file_path(self.config.source_dir, locale, domain)
        tree = await asyncio.to_thread(read_translation_file, file_path)
        return domain, locale, flatten(tree)

    async def read_all(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """
        Read and flatten every configured (domain, locale) file.

        Returns:
            domain -> locale -> flattened map, in configured domain order.
        """
        tasks = [
            asyncio.ensure_future(self._read_flattened(domain, locale))
            for domain in self.config.domains
            for locale in self.config.locales
        ]
        results: Dict[Tuple[str, str], Dict[str, Any]] = {}
        try:
            for coro in tqdm.as_completed(tasks, desc="Reading i18n files", unit="file", disable=not tasks):
                domain, locale, flat = await coro
                results[(domain, locale)] = flat
                logger.debug("Read %d key(s) from %s/%s.json", len(flat), locale, domain)
        except BaseException:
            # Settle the remaining reads before re-raising the first failure.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return {
            domain: {locale: results[(domain, locale)] for locale in self.config.locales}
            for domain in self.config.domains
        }

    async def upload(self) -> Table:
        """
        Replace the sheet contents with the local translation files.

        Returns:
            Table: The rows written (or, in dry-run mode, the rows that would be written).
        """
        logger.info("Reading i18n files from '%s'...", self.config.source_dir)
        if not self.config.domains:
            logger.warning("No domains configured; the sheet will only contain the header row.")

        per_domain = await self.read_all()

        for domain, localized in per_domain.items():
            for warning in build_quality_report(domain, localized, self.config.locales):
                logger.warning(warning)

        table = encode_table(per_domain, self.config.locales)
        logger.info("Prepared %d translation row(s) for %d domain(s).", len(table) - 1, len(per_domain))

        if self.dry_run:
            logger.info("[Dry Run] Would replace the sheet with %d row(s) including the header.", len(table))
            return table

        try:
            await self.table_store.replace(table)
        except SyncError:
            raise
        except Exception as e:
            raise TransportError("upload", str(e)) from e

        logger.info("Successfully uploaded translations to the sheet!")
        return table

    async def download(self) -> List[str]:
        """
        Overwrite local translation files with the sheet contents.

        Every domain found in the sheet is written, configured or not. Every
        tree is rebuilt before the first write, so a key conflict leaves the
        files untouched.

        Returns:
            List[str]: Paths written (or, in dry-run mode, that would be written).
        """
        logger.info("Downloading translations from the sheet...")
        try:
            table = await self.table_store.fetch()
        except SyncError:
            raise
        except Exception as e:
            raise TransportError("download", str(e)) from e

        grouped = decode_table(table, self.config.locales)
        if not grouped:
            logger.warning("The sheet contains no translation rows; nothing to write.")
            return []

        for domain in grouped:
            if not re.match(FILE_NAME_PATTERN, domain):
                raise TableDataError(
                    f"Domain '{domain}' cannot be used as a file name.",
                    os.path.join(self.config.source_dir, domain)
                )

        unconfigured = [domain for domain in grouped if domain not in self.config.domains]
        if unconfigured:
            logger.info("Sheet contains domain(s) not in the configuration: %s", ", ".join(unconfigured))

        pending: List[Tuple[str, Dict[str, Any]]] = []
        for domain, buckets in grouped.items():
            for locale in self.config.locales:
                if locale not in buckets:
                    continue
                file_path = translation_file_path(self.config.source_dir, locale, domain)
                try:
                    pending.append((file_path, unflatten(buckets[locale])))
                except KeyPathConflictError as e:
                    raise TableDataError(f"Domain '{domain}', locale '{locale}': {e}", file_path) from e

        written: List[str] = []
        for file_path, tree in pending:
            if self.dry_run:
                logger.info("[Dry Run] Would write '%s'.", file_path)
            else:
                write_translation_file(file_path, tree)
                logger.info("Wrote '%s'.", file_path)
            written.append(file_path)

        logger.info("Successfully downloaded and saved translations!")
        return written
