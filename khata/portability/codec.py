"""
Backup and Sync Code Codecs

Pure transforms between AppState and the two transport formats:

- Backup file: pretty-printed UTF-8 JSON of the whole document.
- Sync code: base64 of the compact UTF-8 JSON. The text is encoded to
  UTF-8 bytes BEFORE base64, so Bengali notes and names survive the trip.

Decoding always goes through the StateValidator; nothing half-valid ever
comes out of here.
"""

import base64
import binascii
from datetime import date
from typing import Optional

from khata.models.state import AppState
from khata.portability.errors import InvalidBackupError, InvalidSyncCodeError
from khata.validation import StateValidator


DEFAULT_BACKUP_PREFIX = "khoroch-khata"

_validator = StateValidator()


def export_backup(state: AppState) -> str:
    return state.to_json(indent=2)


def backup_file_name(
    today: Optional[date] = None,
    prefix: str = DEFAULT_BACKUP_PREFIX,
) -> str:
    """e.g. khoroch-khata-backup-2024-05-01.json"""
    return f"{prefix}-backup-{(today or date.today()).isoformat()}.json"


def parse_backup(
    text: str,
    validator: Optional[StateValidator] = None,
) -> AppState:
    """
    Parse and fully validate a backup document.

    Raises:
        InvalidBackupError: with the field-level issues
    """
    result = (validator or _validator).validate_text(text)
    if not result.is_valid:
        raise InvalidBackupError(
            f"Invalid backup file:\n{result.summary()}",
            result.issues,
        )
    return result.state


def generate_sync_code(state: AppState) -> str:
    return base64.b64encode(state.to_json().encode("utf-8")).decode("ascii")


def decode_sync_code(
    code: str,
    validator: Optional[StateValidator] = None,
) -> AppState:
    """
    Decode and fully validate a sync code.

    Whitespace (line breaks from copy/paste) is ignored.

    Raises:
        InvalidSyncCodeError: for undecodable or invalid codes
    """
    compact = "".join((code or "").split())
    if not compact:
        raise InvalidSyncCodeError("Sync code is empty")

    try:
        text = base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidSyncCodeError(f"Sync code cannot be decoded: {e}") from e

    result = (validator or _validator).validate_text(text)
    if not result.is_valid:
        raise InvalidSyncCodeError(
            f"Sync code does not contain a valid document:\n{result.summary()}",
            result.issues,
        )
    return result.state
