"""Moving entries between two databases.

Two operations are provided:

- :func:`import_entries` copies entries from a source database into a
  target in bulk, recreating each entry's group path in the target.
- :func:`transfer` applies a batch of per-entry instructions between two
  databases: copy an entry that exists on one side only, or overwrite the
  other side's version of an entry that exists on both.

Arguments are validated before anything is touched. Within a batch each
item either succeeds or is skipped, and the returned counts are the only
record of which.
"""

from __future__ import annotations

import logging
import uuid as uuid_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..database import Database
from ..exceptions import InvalidModeError, InvalidTransferError
from ..models import Entry
from .accessor import coerce_uuid, group_path_names
from .diff import compare

logger = logging.getLogger(__name__)


class ImportMode(Enum):
    """Which source entries a bulk import copies."""

    SKIP_EXISTING = "skip-existing"
    SELECTED = "selected"
    ALL = "all"

    @classmethod
    def parse(cls, value: ImportMode | str) -> ImportMode:
        """Look up a mode by value.

        Raises:
            InvalidModeError: If the value names no mode
        """
        if isinstance(value, cls):
            return value
        for mode in cls:
            if mode.value == value:
                return mode
        raise InvalidModeError(value)


class TransferAction(Enum):
    COPY = "copy"
    OVERWRITE = "overwrite"


class TransferDirection(Enum):
    TO_A = "toA"
    TO_B = "toB"


@dataclass(frozen=True, slots=True)
class Transfer:
    """One transfer instruction.

    Attributes:
        uuid: Entry to transfer (None if the given id was not a UUID)
        action: Copy a one-sided entry, or overwrite a two-sided one
        direction: Which database receives the entry
    """

    uuid: uuid_module.UUID | None
    action: TransferAction
    direction: TransferDirection

    @classmethod
    def from_value(cls, value: Transfer | Mapping[str, Any]) -> Transfer:
        """Build a Transfer from a mapping with uuid, action and direction keys.

        Raises:
            InvalidTransferError: If action or direction is not recognized
        """
        if isinstance(value, Transfer):
            return value
        if not isinstance(value, Mapping):
            raise InvalidTransferError(f"Transfer must be a mapping, got {type(value).__name__}")
        try:
            action = TransferAction(value.get("action"))
        except ValueError as e:
            raise InvalidTransferError(f"Unknown transfer action: {value.get('action')!r}") from e
        try:
            direction = TransferDirection(value.get("direction"))
        except ValueError as e:
            raise InvalidTransferError(
                f"Unknown transfer direction: {value.get('direction')!r}"
            ) from e
        return cls(coerce_uuid(value.get("uuid")), action, direction)


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of a bulk import."""

    imported: int
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"imported": self.imported, "skipped": self.skipped}


@dataclass(frozen=True, slots=True)
class TransferResult:
    """Outcome of a transfer batch."""

    copied_to_a: int = 0
    copied_to_b: int = 0
    overwritten: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "copiedToA": self.copied_to_a,
            "copiedToB": self.copied_to_b,
            "overwritten": self.overwritten,
            "skipped": self.skipped,
        }


def import_entries(
    source_db: Database,
    target_db: Database,
    mode: ImportMode | str,
    selected_uuids: Iterable[object] | None = None,
) -> ImportResult:
    """Copy entries from ``source_db`` into ``target_db``.

    Each copy keeps its source UUID and is placed under the same group path
    it had in the source, creating groups in the target as needed.

    Args:
        source_db: Database to import from
        target_db: Database to import into
        mode: ``"skip-existing"`` copies only entries with no counterpart in
            the target; ``"selected"`` copies the entries named in
            ``selected_uuids``; ``"all"`` copies everything
        selected_uuids: UUIDs or UUID strings, used by ``"selected"``

    Returns:
        ImportResult; selected ids that don't resolve count as skipped

    Raises:
        InvalidModeError: If mode is not recognized
    """
    mode = ImportMode.parse(mode)
    skipped = 0

    if mode is ImportMode.SKIP_EXISTING:
        to_import = compare(source_db, target_db).only_in_a
    elif mode is ImportMode.SELECTED:
        wanted: set[uuid_module.UUID] = set()
        for value in selected_uuids or ():
            uuid = coerce_uuid(value)
            if uuid is None:
                skipped += 1
            else:
                wanted.add(uuid)
        to_import = [e for e in source_db.iter_entries() if e.uuid in wanted]
        skipped += len(wanted - {e.uuid for e in to_import})
    else:
        to_import = source_db.entries()

    for entry in to_import:
        _import_with_path(entry, source_db, target_db)

    logger.info(
        "Imported %d entries (%s, %d skipped)", len(to_import), mode.value, skipped
    )
    return ImportResult(imported=len(to_import), skipped=skipped)


def _import_with_path(entry: Entry, source_db: Database, target_db: Database) -> Entry:
    group = target_db.ensure_group_path(group_path_names(entry, include_root=True))
    return target_db.import_entry(entry, group, source_db)


def transfer(
    db_a: Database,
    db_b: Database,
    transfers: Iterable[Transfer | Mapping[str, Any]],
) -> TransferResult:
    """Apply a batch of transfers between two databases.

    ``copy`` places a copy of the other side's entry in the receiving
    database's default group. ``overwrite`` replaces the receiving side's
    entry with the same UUID, keeping its group. Entries that can't be
    found on the side an action needs are skipped.

    Args:
        db_a: Database A
        db_b: Database B
        transfers: Transfer objects or mappings with uuid, action, direction

    Returns:
        TransferResult with per-action counts

    Raises:
        InvalidTransferError: If any instruction is malformed; raised before
            any instruction is applied
    """
    batch = [Transfer.from_value(t) for t in transfers]
    copied_to_a = copied_to_b = overwritten = skipped = 0

    for item in batch:
        if item.direction is TransferDirection.TO_B:
            source_db, dest_db = db_a, db_b
        else:
            source_db, dest_db = db_b, db_a

        source = source_db.find_entry_by_uuid(item.uuid) if item.uuid else None
        if source is None:
            logger.debug("Skipping %s of unknown entry %s", item.action.value, item.uuid)
            skipped += 1
            continue

        if item.action is TransferAction.COPY:
            dest_db.import_entry(source, dest_db.default_group, source_db)
            if item.direction is TransferDirection.TO_B:
                copied_to_b += 1
            else:
                copied_to_a += 1
            continue

        target = dest_db.find_entry_by_uuid(source.uuid)
        if target is None:
            logger.debug("Skipping overwrite of %s: not present on both sides", source.uuid)
            skipped += 1
            continue
        dest_db.replace_contents(target, source, source_db)
        overwritten += 1

    result = TransferResult(copied_to_a, copied_to_b, overwritten, skipped)
    logger.info("Transfer finished: %s", result.to_dict())
    return result
