"""
Portability Package

Backup files, restore and sync codes for moving the state document
between devices without a server.
"""

from khata.portability.codec import (
    backup_file_name,
    decode_sync_code,
    export_backup,
    generate_sync_code,
    parse_backup,
)
from khata.portability.errors import (
    InvalidBackupError,
    InvalidSyncCodeError,
    PortabilityError,
)
from khata.portability.service import PortabilityService

__all__ = [
    "PortabilityService",
    # Codecs
    "backup_file_name",
    "decode_sync_code",
    "export_backup",
    "generate_sync_code",
    "parse_backup",
    # Exceptions
    "PortabilityError",
    "InvalidBackupError",
    "InvalidSyncCodeError",
]
