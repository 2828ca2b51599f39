"""Project-wide named constants.

Constants defined here replace inline magic numbers and literal file
names across the codebase.
"""

# Subfolder of the user's documents directory that holds the store.
# Not configurable at runtime: every process on the machine must agree on
# the same location for the single-instance lock to mean anything.
STORE_FOLDER_NAME: str = "Archive"

# Period of the background checkpoint, in seconds.
CHECKPOINT_INTERVAL_SECONDS: float = 30.0

# Files and folders inside the store directory (reference engine layout).
DATABASE_FILENAME: str = "archive.db"
LOCK_FILENAME: str = "archive.lock"
BACKUP_DIRNAME: str = "backups"
CORRUPTED_DIRNAME: str = "corrupted"
BACKUP_PREFIX: str = "archive-"

# Instants are reported as ISO-8601 UTC with a trailing Z, e.g.
# 2024-01-01T00:00:00Z. Backup filenames use the compact form.
INSTANT_FORMAT: str = "%Y-%m-%dT%H:%M:%SZ"
BACKUP_STAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"

DEFAULT_MAX_BACKUPS: int = 10

# A new backup snapshot is only taken by store() when the newest one is
# older than this, so a 30 s checkpoint does not churn the backup folder.
DEFAULT_BACKUP_MIN_AGE_SECONDS: float = 600.0
