"""
transfer.py - Export / import of the credential set as JSON.

File format: a JSON array of {"name", "secret", "issuer"} objects, sorted by
name. `{"entries": [...]}` is accepted on import as well.
"""

from typing import IO, Iterable, Mapping
import json

from totp_core.errors import InvalidEncoding
from totp_core.models import Credential, credential_map


def export_records(credentials: Iterable[Credential]) -> list[dict]:
    return [c.to_record() for c in sorted(credentials, key=lambda c: c.name)]


def dump_export(credentials: Iterable[Credential], fp: IO[str]) -> int:
    records = export_records(credentials)
    json.dump(records, fp, indent=2, ensure_ascii=False)
    fp.write("\n")
    return len(records)


def parse_records(data) -> list[Credential]:
    """
    Validate every record before anything is written.

    Raises:
        InvalidEncoding: a record is malformed or has a bad secret; the
            message names the offending record.
    """
    if isinstance(data, dict):
        data = data.get("entries")
    if not isinstance(data, list):
        raise InvalidEncoding("Import file must contain a list of entries")

    parsed = []
    for index, record in enumerate(data):
        try:
            credential = Credential.from_record(record)
        except ValueError as e:
            raise InvalidEncoding(f"Record #{index + 1}: {e}") from e
        try:
            parsed.append(credential.canonical())
        except InvalidEncoding as e:
            raise InvalidEncoding(f"Record '{credential.name}': {e}") from e
    return list(credential_map(parsed).values())


def load_import(fp: IO[str]) -> list[Credential]:
    try:
        data = json.load(fp)
    except ValueError as e:
        raise InvalidEncoding(f"Import file is not valid JSON: {e}") from e
    return parse_records(data)


def merge_import(
    existing: Mapping[str, Credential],
    imported: Iterable[Credential],
) -> tuple[list[str], list[str]]:
    """Split imported names into (added, updated) relative to `existing`."""
    added, updated = [], []
    for credential in imported:
        (updated if credential.name in existing else added).append(credential.name)
    return added, updated
